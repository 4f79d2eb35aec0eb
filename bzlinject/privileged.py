# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
The `_builtins` object, visible only to trusted override scripts.

Fields:

  _builtins.native    the `native` object as it would exist without
                      injection. If an override script replaces
                      `cc_library` through exported_rules, user scripts see
                      the replacement as `native.cc_library`, but
                      `_builtins.native.cc_library` is still the original.
  _builtins.toplevel  the same view of predeclared top-level bzl symbols
                      before exported_toplevels is applied.
  _builtins.internal  symbols registered for trusted scripts only.
  _builtins.get_flag  get_flag(name, default): the semantics flag value in
                      the script value model, or `default` if the flag is
                      not set.

The view is assembled from snapshots taken before any override is installed;
building it performs no resolution.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from bzlinject.registry import Symbol
from bzlinject.semantics import Semantics
from bzlinject.values import Struct, to_script_value

BUILTINS_BINDING_NAME = "_builtins"

_MISSING = object()


@dataclass(frozen=True, repr=False)
class PrivilegedView:
	native: Struct
	toplevel: Struct
	internal: Struct
	_semantics: Semantics = field(compare=False)

	def get_flag(self, name: str, default: Any) -> Any:
		"""
		Look up semantics flag `name` (without leading dashes).

		Returns `default` unchanged when the flag is not set. A set flag is
		converted with `to_script_value`; a value with no script
		representation raises `UnrepresentableValueError` rather than falling
		back to the default.
		"""
		value = self._semantics.get_generic(name, _MISSING)
		if value is _MISSING:
			return default
		return to_script_value(value)

	@staticmethod
	def field_names() -> tuple[str, ...]:
		return ("get_flag", "internal", "native", "toplevel")

	def __repr__(self) -> str:
		return f"<{BUILTINS_BINDING_NAME} module>"

	def __dir__(self) -> list[str]:
		return list(self.field_names())


def _symbol_struct(symbols: Mapping[str, Symbol], type_name: str) -> Struct:
	return Struct({name: sym.value for name, sym in symbols.items()}, type_name=type_name)


def build_privileged_view(
	native: Mapping[str, Symbol],
	toplevel: Mapping[str, Symbol],
	internal: Mapping[str, Symbol],
	semantics: Semantics,
) -> PrivilegedView:
	"""
	Assemble `_builtins` from symbol snapshots.

	Callers must pass snapshots taken before overrides are installed; each
	struct copies its mapping, so later changes elsewhere are not observed.
	"""
	return PrivilegedView(
		native=_symbol_struct(native, "native"),
		toplevel=_symbol_struct(toplevel, "toplevel"),
		internal=_symbol_struct(internal, "internal"),
		_semantics=semantics,
	)


__all__ = ["BUILTINS_BINDING_NAME", "PrivilegedView", "build_privileged_view"]
