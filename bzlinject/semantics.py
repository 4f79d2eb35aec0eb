# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Semantics store: named configuration flags consulted by builtins injection.

The store is immutable; `with_flags` returns a new store. Values are host
values (bool/int/str/list/dict, or anything a host chooses to put there);
conversion into the script value model happens in `_builtins.get_flag`, not
here.

Flag files use a pinned JSON format:

  {
    "format": "bzlinject-flags",
    "version": 0,
    "flags": { "<name>": <value>, ... }
  }
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable

from bzlinject.flag_parser import parse_flags

# Flag consulted by environment setup to force per-symbol injection on/off.
INJECTION_OVERRIDE_FLAG = "experimental_builtins_injection_override"


@dataclass(frozen=True)
class Semantics:
	flags: Mapping[str, Any] = field(default_factory=dict)

	def __post_init__(self) -> None:
		# Own a private copy so callers cannot mutate the store through the
		# mapping they passed in.
		object.__setattr__(self, "flags", MappingProxyType(dict(self.flags)))

	def get_generic(self, name: str, default: Any) -> Any:
		return self.flags.get(name, default)

	def contains(self, name: str) -> bool:
		return name in self.flags

	def names(self) -> list[str]:
		return sorted(self.flags)

	def to_dict(self) -> dict[str, Any]:
		return dict(self.flags)

	def with_flags(self, **flags: Any) -> "Semantics":
		merged = dict(self.flags)
		merged.update(flags)
		return Semantics(merged)

	def __hash__(self) -> int:
		return hash(tuple(sorted(self.flags)))


DEFAULT_SEMANTICS = Semantics()


def parse_flag_args(args: Iterable[str], base: Semantics | None = None) -> Semantics:
	"""Build a store from `--name[=value]` arguments layered over `base`."""
	parsed = parse_flags(args)
	merged = dict(base.flags) if base is not None else {}
	merged.update(parsed)
	return Semantics(merged)


def load_flags_json(path: Path) -> Semantics:
	obj = json.loads(path.read_text(encoding="utf-8"))
	if not isinstance(obj, dict):
		raise ValueError("flags file must be a JSON object")
	if obj.get("format") != "bzlinject-flags" or obj.get("version") != 0:
		raise ValueError("unsupported flags file format/version")
	flags = obj.get("flags", {})
	if not isinstance(flags, dict):
		raise ValueError("flags file 'flags' must be a JSON object")
	return Semantics({str(k): v for k, v in flags.items()})


__all__ = [
	"INJECTION_OVERRIDE_FLAG",
	"Semantics",
	"DEFAULT_SEMANTICS",
	"parse_flag_args",
	"load_flags_json",
]
