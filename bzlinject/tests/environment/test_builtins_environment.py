# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from bzlinject.environment import BuiltinsEnvironment, EnvironmentState
from bzlinject.errors import FrozenRegistryError, InjectionError, NotFoundError, UnknownBaseSymbolError
from bzlinject.injection import InjectedExports
from bzlinject.registry import Namespace
from bzlinject.semantics import INJECTION_OVERRIDE_FLAG, Semantics
from bzlinject.trust_v0 import TrustPolicy


def java_cc_library(**kwargs):
	return ("java", kwargs)


def java_genrule(**kwargs):
	return ("java_genrule", kwargs)


class JavaCcInfo:
	pass


def _env(semantics: Semantics | None = None) -> BuiltinsEnvironment:
	env = BuiltinsEnvironment(semantics or Semantics({"debug": True}))
	env.register_native("cc_library", java_cc_library)
	env.register_native("genrule", java_genrule)
	env.register_toplevel("CcInfo", JavaCcInfo)
	env.register_toplevel("select", "java_select")
	env.register_internal("cc_internal", "internal_helper")
	# Same name as a native rule, visible only through _builtins.internal.
	env.register_internal("genrule", "internal_genrule")
	return env


def _exports() -> InjectedExports:
	def starlark_cc_library(**kwargs):
		return ("starlark", kwargs)

	return InjectedExports(
		rules={"+cc_library": starlark_cc_library},
		toplevels={"+CcInfo": "StarlarkCcInfo"},
	)


def test_state_transition_is_one_way():
	env = _env()
	assert env.state is EnvironmentState.BUILDING
	sealed = env.seal(_exports())
	assert env.state is EnvironmentState.SEALED
	assert sealed.state is EnvironmentState.SEALED

	with pytest.raises(FrozenRegistryError):
		env.seal()
	with pytest.raises(FrozenRegistryError):
		env.register_native("cc_binary", object())


def test_view_keeps_uninjected_originals():
	sealed = _env().seal(_exports())

	# Ordinary scripts see the injected definitions...
	assert sealed.resolve_native("cc_library") is not java_cc_library
	assert sealed.native_object().cc_library(name="x") == ("starlark", {"name": "x"})
	assert sealed.resolve("CcInfo") == "StarlarkCcInfo"
	# ...while _builtins still exposes the originals.
	assert sealed.view.native.cc_library is java_cc_library
	assert sealed.view.toplevel.CcInfo is JavaCcInfo
	# Unoverridden symbols are the same in both views.
	assert sealed.view.native.genrule is sealed.resolve_native("genrule") is java_genrule


def test_override_can_delegate_to_original():
	env = _env()
	# The override receives _builtins lazily, the way a trusted script body would.
	holder = {}

	def wrapping_cc_library(**kwargs):
		original = holder["builtins"].native.cc_library
		kind, attrs = original(**kwargs)
		return ("wrapped", kind, attrs)

	sealed = env.seal(InjectedExports(rules={"+cc_library": wrapping_cc_library}))
	holder["builtins"] = sealed.view
	assert sealed.native_object().cc_library(name="lib") == ("wrapped", "java", {"name": "lib"})


def test_internal_symbols_never_reach_ordinary_resolution():
	sealed = _env().seal(_exports())

	assert sealed.view.internal.genrule == "internal_genrule"
	assert sealed.view.internal.cc_internal == "internal_helper"
	assert sealed.resolve_native("genrule") is java_genrule
	with pytest.raises(NotFoundError):
		sealed.resolve("cc_internal")
	with pytest.raises(NotFoundError):
		sealed.resolve_native("cc_internal")
	user = sealed.user_predeclared()
	assert "cc_internal" not in user
	assert "_builtins" not in user
	assert user["native"].genrule is java_genrule


def test_predeclared_environments():
	sealed = _env().seal(_exports())

	user = sealed.user_predeclared()
	assert user["CcInfo"] == "StarlarkCcInfo"
	assert user["select"] == "java_select"
	assert sorted(user) == ["CcInfo", "native", "select"]

	trusted = sealed.builtins_predeclared()
	# Trusted scripts reach overridden symbols and native only via _builtins.
	assert sorted(trusted) == ["_builtins", "select"]
	assert trusted["_builtins"] is sealed.view

	assert sealed.predeclared_for("@_builtins//exports.bzl") is trusted
	assert sealed.predeclared_for("//pkg:defs.bzl") is user


def test_predeclared_for_uses_custom_trust_policy():
	env = BuiltinsEnvironment(Semantics(), trust_policy=TrustPolicy(("//tools/overrides/*",)))
	env.register_native("genrule", java_genrule)
	sealed = env.seal()
	assert "_builtins" in sealed.predeclared_for("//tools/overrides/cc.bzl")
	assert "_builtins" not in sealed.predeclared_for("@_builtins//exports.bzl")


def test_get_flag_through_environment():
	sealed = _env(Semantics({"debug": True})).seal()
	assert sealed.view.get_flag("debug", False) is True
	assert sealed.view.get_flag("verbosity", 0) == 0


def test_unknown_override_is_fatal():
	env = _env()
	with pytest.raises(UnknownBaseSymbolError) as info:
		env.seal(InjectedExports(rules={"+py_library": object()}))
	assert info.value.reason_code == "unknown-base-symbol"
	assert env.state is EnvironmentState.BUILDING
	assert not env.registry.frozen
	# The host can still fix up the registry and seal again.
	env.register_native("py_library", object())
	sealed = env.seal(InjectedExports(rules={"+py_library": "injected_py_library"}))
	assert sealed.resolve_native("py_library") == "injected_py_library"


def test_unknown_toplevel_override_leaves_registry_open():
	env = _env()
	with pytest.raises(UnknownBaseSymbolError) as info:
		env.seal(InjectedExports(toplevels={"+PyInfo": object()}))
	assert info.value.namespace == "toplevel"
	assert info.value.name == "PyInfo"
	assert not env.registry.frozen
	assert env.state is EnvironmentState.BUILDING


def test_bad_exports_leave_registry_open():
	env = _env()
	with pytest.raises(InjectionError):
		env.seal(InjectedExports(toplevels={"+native": object()}))
	assert not env.registry.frozen
	env.register_native("cc_binary", object())


def test_injection_override_flag_controls_installation():
	semantics = Semantics({INJECTION_OVERRIDE_FLAG: ["-cc_library", "+genrule"]})
	env = _env(semantics)
	sealed = env.seal(
		InjectedExports(rules={"+cc_library": "new_cc", "-genrule": "new_genrule"}),
	)
	assert sealed.resolve_native("cc_library") is java_cc_library
	assert sealed.resolve_native("genrule") == "new_genrule"
	assert sealed.overrides.is_overridden("genrule", Namespace.NATIVE)


def test_reserved_toplevel_names():
	env = BuiltinsEnvironment()
	with pytest.raises(ValueError):
		env.register_toplevel("native", object())
	with pytest.raises(ValueError):
		env.register_toplevel("_builtins", object())
	# Going around the environment through its registry is rejected too.
	with pytest.raises(ValueError, match="reserved"):
		env.registry.register(Namespace.TOPLEVEL, "native", object())
	with pytest.raises(ValueError, match="reserved"):
		env.registry.register_all(Namespace.TOPLEVEL, {"CcInfo": object(), "_builtins": object()})
	assert env.registry.names(Namespace.TOPLEVEL) == []
	sealed = env.seal()
	assert sealed.resolve("native") is sealed.native_object()


def test_symbols_named_like_struct_helpers_stay_reachable():
	env = _env()
	env.register_internal("get", "internal_get")
	env.register_internal("to_dict", "internal_to_dict")
	env.register_native("to_dict", "native_to_dict")
	env.register_toplevel("field_names", "toplevel_field_names")
	sealed = env.seal()
	assert sealed.view.internal.get == "internal_get"
	assert sealed.view.internal.to_dict == "internal_to_dict"
	assert sealed.view.native.to_dict == "native_to_dict"
	assert sealed.view.toplevel.field_names == "toplevel_field_names"
	assert sealed.native_object().to_dict == "native_to_dict"


def test_concurrent_reads_see_stable_view():
	sealed = _env().seal(_exports())

	def read(_):
		view = sealed.predeclared_for("@_builtins//exports.bzl")["_builtins"]
		return (
			id(view),
			view.native.cc_library,
			view.toplevel.CcInfo,
			view.internal.genrule,
			view.get_flag("debug", False),
		)

	with ThreadPoolExecutor(max_workers=8) as pool:
		results = list(pool.map(read, range(200)))
	assert len(set(results)) == 1
	assert results[0][1] is java_cc_library
