# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Script value model.

Scripts see a closed set of value kinds:

  NONE    None
  BOOL    bool
  INT     int
  STRING  str
  LIST    tuple of script values (lists are immutable once handed to a script)
  STRUCT  `Struct` whose field values are script values

`to_script_value` is the single coercion entry point from host values. It is
total over the kinds above and raises `UnrepresentableValueError` for anything
else; there is no best-effort fallback.

`Struct` doubles as the read-only facade type for symbol namespaces
(`native`, `toplevel`, `internal`). Those structs hold arbitrary symbol values
(callables etc.) and are built directly, not through `to_script_value`.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator

from bzlinject.errors import UnrepresentableValueError


class ValueKind(Enum):
	NONE = "NoneType"
	BOOL = "bool"
	INT = "int"
	STRING = "string"
	LIST = "list"
	STRUCT = "struct"


class Struct:
	"""
	Immutable struct with named fields.

	Fields are read with attribute access (`s.cc_library`). Every non-dunder
	attribute name is a field lookup, so a field may be called `get` or
	`to_dict` without being shadowed; helpers live at module level
	(`struct_field_names`, `struct_get`, `struct_to_dict`, `struct_type_name`).
	The field mapping is copied at construction, so later changes to the
	source mapping are not observed.
	"""

	__slots__ = ("_fields", "_type_name")

	def __init__(self, fields: Mapping[str, Any] | None = None, *, type_name: str = "struct") -> None:
		object.__setattr__(self, "_fields", MappingProxyType(dict(fields or {})))
		object.__setattr__(self, "_type_name", type_name)

	def __getattribute__(self, name: str) -> Any:
		if name.startswith("__"):
			return object.__getattribute__(self, name)
		fields = _fields_of(self)
		try:
			return fields[name]
		except KeyError:
			raise AttributeError(f"'{_type_name_of(self)}' value has no field or method '{name}'") from None

	def __setattr__(self, name: str, value: Any) -> None:
		raise AttributeError(f"'{_type_name_of(self)}' value is immutable (cannot set '{name}')")

	def __delattr__(self, name: str) -> None:
		raise AttributeError(f"'{_type_name_of(self)}' value is immutable (cannot delete '{name}')")

	def __contains__(self, name: object) -> bool:
		return name in _fields_of(self)

	def __iter__(self) -> Iterator[str]:
		return iter(sorted(_fields_of(self)))

	def __len__(self) -> int:
		return len(_fields_of(self))

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, Struct):
			return NotImplemented
		return _type_name_of(self) == _type_name_of(other) and dict(_fields_of(self)) == dict(_fields_of(other))

	def __hash__(self) -> int:
		return hash((_type_name_of(self), frozenset(_fields_of(self))))

	def __repr__(self) -> str:
		fields = _fields_of(self)
		body = ", ".join(f"{k} = {fields[k]!r}" for k in sorted(fields))
		return f"{_type_name_of(self)}({body})"

	def __dir__(self) -> list[str]:
		return sorted(_fields_of(self))


def _fields_of(s: Struct) -> Mapping[str, Any]:
	return object.__getattribute__(s, "_fields")


def _type_name_of(s: Struct) -> str:
	return object.__getattribute__(s, "_type_name")


def struct_type_name(s: Struct) -> str:
	return _type_name_of(s)


def struct_field_names(s: Struct) -> list[str]:
	return sorted(_fields_of(s))


def struct_get(s: Struct, name: str, default: Any = None) -> Any:
	return _fields_of(s).get(name, default)


def struct_to_dict(s: Struct) -> dict[str, Any]:
	return dict(_fields_of(s))


def kind_of(value: Any) -> ValueKind:
	"""Classify a value that is already in the script value model."""
	if value is None:
		return ValueKind.NONE
	# bool before int: bool is an int subclass.
	if isinstance(value, bool):
		return ValueKind.BOOL
	if isinstance(value, int):
		return ValueKind.INT
	if isinstance(value, str):
		return ValueKind.STRING
	if isinstance(value, tuple):
		return ValueKind.LIST
	if isinstance(value, Struct):
		return ValueKind.STRUCT
	raise UnrepresentableValueError(
		reason_code="unrepresentable-value",
		message=f"value of type '{type(value).__name__}' is not a script value",
	)


def to_script_value(value: Any) -> Any:
	"""
	Coerce a host value into the script value model.

	- None, bool, int and str pass through unchanged;
	- lists and tuples become tuples with every element coerced;
	- mappings with string keys become `Struct`s with every field coerced;
	- `Struct`s pass through unchanged.

	Anything else (floats, bytes, sets, arbitrary objects, mappings with
	non-string keys) raises `UnrepresentableValueError`.
	"""
	if value is None or isinstance(value, (bool, int, str, Struct)):
		return value
	if isinstance(value, (list, tuple)):
		return tuple(to_script_value(v) for v in value)
	if isinstance(value, Mapping):
		fields: dict[str, Any] = {}
		for key, item in value.items():
			if not isinstance(key, str):
				raise UnrepresentableValueError(
					reason_code="unrepresentable-value",
					message=f"struct field name must be a string, got '{type(key).__name__}'",
				)
			fields[key] = to_script_value(item)
		return Struct(fields)
	raise UnrepresentableValueError(
		reason_code="unrepresentable-value",
		message=f"value of type '{type(value).__name__}' has no script representation",
	)


def to_host_value(value: Any) -> Any:
	"""Inverse of `to_script_value` for JSON output (tuples become lists, structs dicts)."""
	kind = kind_of(value)
	if kind is ValueKind.LIST:
		return [to_host_value(v) for v in value]
	if kind is ValueKind.STRUCT:
		return {k: to_host_value(v) for k, v in sorted(struct_to_dict(value).items())}
	return value


__all__ = [
	"ValueKind",
	"Struct",
	"struct_type_name",
	"struct_field_names",
	"struct_get",
	"struct_to_dict",
	"kind_of",
	"to_script_value",
	"to_host_value",
]
