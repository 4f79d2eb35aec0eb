# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
bzlinject: builtins injection for bzl-style scripting environments.

Ordinary scripts see native symbols with the overrides of trusted override
scripts applied. Trusted scripts additionally get `_builtins`, a read-only
view of the uninjected definitions, internal-only symbols and semantics
flags.

The CLI entrypoint is `bzlinject.cli:main`.
"""

from bzlinject.environment import BuiltinsEnvironment, EnvironmentState, SealedEnvironment
from bzlinject.errors import (
	BuiltinsError,
	DuplicateSymbolError,
	FlagSyntaxError,
	FrozenRegistryError,
	InjectionError,
	NotFoundError,
	UnknownBaseSymbolError,
	UnrepresentableValueError,
)
from bzlinject.injection import InjectedExports
from bzlinject.overrides import OverrideTable
from bzlinject.privileged import BUILTINS_BINDING_NAME, PrivilegedView, build_privileged_view
from bzlinject.registry import Namespace, RegistrySnapshot, Symbol, SymbolRegistry
from bzlinject.semantics import Semantics
from bzlinject.trust_v0 import TrustPolicy
from bzlinject.values import Struct, ValueKind

__all__ = [
	"BUILTINS_BINDING_NAME",
	"BuiltinsEnvironment",
	"BuiltinsError",
	"DuplicateSymbolError",
	"EnvironmentState",
	"FlagSyntaxError",
	"FrozenRegistryError",
	"InjectedExports",
	"InjectionError",
	"Namespace",
	"NotFoundError",
	"OverrideTable",
	"PrivilegedView",
	"RegistrySnapshot",
	"SealedEnvironment",
	"Semantics",
	"Struct",
	"Symbol",
	"SymbolRegistry",
	"TrustPolicy",
	"UnknownBaseSymbolError",
	"UnrepresentableValueError",
	"ValueKind",
	"build_privileged_view",
]
