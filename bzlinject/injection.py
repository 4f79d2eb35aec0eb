# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Selection of injected exports.

Trusted override scripts export two maps, `exported_rules` (fields of
`native`) and `exported_toplevels` (predeclared bzl symbols). Each key is a
symbol name with a one-character prefix:

  +name   injected unless switched off by the override flag
  -name   not injected unless switched on by the override flag

The `experimental_builtins_injection_override` flag is a list of `+name` /
`-name` items; for each name the last item wins.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from bzlinject.errors import InjectionError
from bzlinject.semantics import INJECTION_OVERRIDE_FLAG, Semantics

# Fields of `native` are overridden through exported_rules, never by replacing
# the `native` object itself.
NATIVE_OBJECT_NAME = "native"


@dataclass(frozen=True)
class InjectedExports:
	"""Export maps declared by trusted override scripts, keyed by `+name` / `-name`."""

	rules: Mapping[str, Any] = field(default_factory=dict)
	toplevels: Mapping[str, Any] = field(default_factory=dict)


def split_key(key: str) -> tuple[bool, str]:
	"""Split an export key into (injected_by_default, name)."""
	if not isinstance(key, str) or len(key) < 2 or key[0] not in "+-":
		raise InjectionError(
			reason_code="bad-injection-key",
			message=f"export key {key!r} must be a name prefixed by '+' or '-'",
		)
	return key[0] == "+", key[1:]


def parse_injection_overrides(items: Iterable[str]) -> dict[str, bool]:
	overrides: dict[str, bool] = {}
	for item in items:
		if not isinstance(item, str) or len(item) < 2 or item[0] not in "+-":
			raise InjectionError(
				reason_code="bad-injection-override",
				message=f"invalid injection override item {item!r}: expected '+name' or '-name'",
			)
		overrides[item[1:]] = item[0] == "+"
	return overrides


def injection_overrides_from(semantics: Semantics) -> dict[str, bool]:
	raw = semantics.get_generic(INJECTION_OVERRIDE_FLAG, ())
	if isinstance(raw, str):
		# A single `--flag=+foo` parses as a plain string.
		raw = [raw] if raw else []
	if not isinstance(raw, (list, tuple)):
		raise InjectionError(
			reason_code="bad-injection-override",
			message=f"flag '{INJECTION_OVERRIDE_FLAG}' must be a list of strings",
			name=INJECTION_OVERRIDE_FLAG,
		)
	return parse_injection_overrides(raw)


def injection_applies(key: str, overrides: Mapping[str, bool]) -> bool:
	default, name = split_key(key)
	forced = overrides.get(name)
	if forced is None:
		return default
	return forced


def select_exports(exports: Mapping[str, Any], overrides: Mapping[str, bool]) -> dict[str, Any]:
	"""Return name -> value for the export keys that apply."""
	out: dict[str, Any] = {}
	seen: set[str] = set()
	for key, value in exports.items():
		_, name = split_key(key)
		if name in seen:
			raise InjectionError(
				reason_code="bad-injection-key",
				message=f"symbol '{name}' is exported under both '+{name}' and '-{name}'",
				name=name,
			)
		seen.add(name)
		if injection_applies(key, overrides):
			out[name] = value
	return out


def check_toplevel_exports(exports: Mapping[str, Any]) -> None:
	for key in exports:
		_, name = split_key(key)
		if name == NATIVE_OBJECT_NAME:
			raise InjectionError(
				reason_code="native-override-disallowed",
				message="overriding 'native' is disallowed; use exported_rules to set fields of 'native'",
				name=name,
			)


__all__ = [
	"NATIVE_OBJECT_NAME",
	"InjectedExports",
	"split_key",
	"parse_injection_overrides",
	"injection_overrides_from",
	"injection_applies",
	"select_exports",
	"check_toplevel_exports",
]
