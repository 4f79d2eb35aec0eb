# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from collections import OrderedDict

import pytest

from bzlinject.errors import UnrepresentableValueError
from bzlinject.values import (
	Struct,
	ValueKind,
	kind_of,
	struct_field_names,
	struct_get,
	struct_to_dict,
	struct_type_name,
	to_host_value,
	to_script_value,
)


def test_scalars_pass_through():
	assert to_script_value(None) is None
	assert to_script_value(True) is True
	assert to_script_value(7) == 7
	assert to_script_value("s") == "s"


def test_bool_is_not_classified_as_int():
	assert kind_of(True) is ValueKind.BOOL
	assert kind_of(1) is ValueKind.INT
	assert kind_of(None) is ValueKind.NONE
	assert kind_of("x") is ValueKind.STRING
	assert kind_of(()) is ValueKind.LIST
	assert kind_of(Struct({})) is ValueKind.STRUCT


def test_lists_become_immutable_tuples():
	host = [1, [True, "x"]]
	value = to_script_value(host)
	assert value == (1, (True, "x"))
	host.append(2)
	assert value == (1, (True, "x"))


def test_mappings_become_structs():
	value = to_script_value(OrderedDict([("b", 1), ("a", ["x"])]))
	assert isinstance(value, Struct)
	assert struct_field_names(value) == ["a", "b"]
	assert value.a == ("x",)
	assert value == Struct({"a": ("x",), "b": 1})


@pytest.mark.parametrize("bad", [1.5, b"raw", {1, 2}, object(), {1: "x"}, [complex(1, 2)]])
def test_unsupported_values_raise(bad):
	with pytest.raises(UnrepresentableValueError):
		to_script_value(bad)


def test_kind_of_rejects_host_containers():
	with pytest.raises(UnrepresentableValueError):
		kind_of([1, 2])


def test_struct_is_read_only():
	s = Struct({"x": 1}, type_name="point")
	with pytest.raises(AttributeError, match="immutable"):
		s.x = 2
	with pytest.raises(AttributeError, match="immutable"):
		del s.x
	assert "x" in s
	assert len(s) == 1
	assert list(s) == ["x"]
	assert struct_get(s, "y", 0) == 0
	assert repr(s) == "point(x = 1)"
	assert struct_type_name(s) == "point"


def test_struct_equality_includes_type_name():
	assert Struct({"x": 1}) != Struct({"x": 1}, type_name="native")
	assert hash(Struct({"x": 1})) == hash(Struct({"x": 1}))


def test_to_host_value_round_trips_for_json():
	host = {"flags": [1, "a", {"on": True}]}
	assert to_host_value(to_script_value(host)) == host


def test_struct_fields_are_not_shadowed_by_helpers():
	s = Struct({"get": "g", "to_dict": "d", "field_names": "f", "type_name": "t", "_fields": "slot"})
	assert s.get == "g"
	assert s.to_dict == "d"
	assert s.field_names == "f"
	assert s.type_name == "t"
	assert s._fields == "slot"
	assert struct_to_dict(s)["get"] == "g"
	with pytest.raises(AttributeError, match="has no field or method 'items'"):
		s.items
