# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Builtins environment setup.

`BuiltinsEnvironment` is in the BUILDING state while the host registers
native, toplevel and internal symbols. `seal()` performs the one-way
transition to SEALED and returns a `SealedEnvironment`:

  1. freeze the registry,
  2. build `_builtins` from the frozen (uninjected) snapshot,
  3. select the applicable exports of the override scripts and install them,
  4. seal the override table.

Step 2 precedes step 3, so `_builtins.native` / `_builtins.toplevel` always
hold the uninjected definitions. Everything a `SealedEnvironment` hands out is
immutable and may be shared across concurrent evaluations.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

from bzlinject.errors import FrozenRegistryError, UnknownBaseSymbolError
from bzlinject.injection import (
	NATIVE_OBJECT_NAME,
	InjectedExports,
	check_toplevel_exports,
	injection_overrides_from,
	select_exports,
)
from bzlinject.overrides import OverrideTable
from bzlinject.privileged import BUILTINS_BINDING_NAME, PrivilegedView, build_privileged_view
from bzlinject.registry import Namespace, RegistrySnapshot, Symbol, SymbolRegistry
from bzlinject.semantics import DEFAULT_SEMANTICS, Semantics
from bzlinject.trust_v0 import TrustPolicy
from bzlinject.values import Struct

logger = logging.getLogger(__name__)


class EnvironmentState(Enum):
	BUILDING = "building"
	SEALED = "sealed"


class SealedEnvironment:
	"""Read-only result of `BuiltinsEnvironment.seal()`."""

	def __init__(
		self,
		*,
		snapshot: RegistrySnapshot,
		overrides: OverrideTable,
		view: PrivilegedView,
		semantics: Semantics,
		trust_policy: TrustPolicy,
	) -> None:
		self._snapshot = snapshot
		self._overrides = overrides
		self._view = view
		self._semantics = semantics
		self._trust_policy = trust_policy
		self._native_object = Struct(overrides.effective_values(Namespace.NATIVE), type_name="native")
		user = overrides.effective_values(Namespace.TOPLEVEL)
		user[NATIVE_OBJECT_NAME] = self._native_object
		self._user_predeclared = MappingProxyType(user)
		trusted = {
			name: sym.value
			for name, sym in snapshot.toplevel.items()
			if not overrides.is_overridden(name, Namespace.TOPLEVEL)
		}
		trusted[BUILTINS_BINDING_NAME] = view
		self._builtins_predeclared = MappingProxyType(trusted)

	@property
	def state(self) -> EnvironmentState:
		return EnvironmentState.SEALED

	@property
	def view(self) -> PrivilegedView:
		return self._view

	@property
	def overrides(self) -> OverrideTable:
		return self._overrides

	@property
	def snapshot(self) -> RegistrySnapshot:
		return self._snapshot

	@property
	def semantics(self) -> Semantics:
		return self._semantics

	@property
	def trust_policy(self) -> TrustPolicy:
		return self._trust_policy

	def native_object(self) -> Struct:
		"""The `native` object ordinary scripts see (overrides applied)."""
		return self._native_object

	def resolve(self, name: str) -> Any:
		"""
		Resolve a bare name the way an ordinary script does.

		Internal symbols are never considered, even when an internal symbol
		shares its name with a native or toplevel one.
		"""
		if name == NATIVE_OBJECT_NAME:
			return self._native_object
		return self._overrides.resolve(name, Namespace.TOPLEVEL).value

	def resolve_native(self, name: str) -> Any:
		"""Resolve `native.<name>` for an ordinary script."""
		return self._overrides.resolve(name, Namespace.NATIVE).value

	def user_predeclared(self) -> Mapping[str, Any]:
		return self._user_predeclared

	def builtins_predeclared(self) -> Mapping[str, Any]:
		return self._builtins_predeclared

	def predeclared_for(self, label: str) -> Mapping[str, Any]:
		if self._trust_policy.is_trusted(label):
			return self._builtins_predeclared
		return self._user_predeclared


class BuiltinsEnvironment:
	"""
	Two-phase builder for a `SealedEnvironment`.

	Registration and sealing are a strictly sequential setup step and are not
	thread-safe; the sealed result is.
	"""

	def __init__(self, semantics: Semantics | None = None, trust_policy: TrustPolicy | None = None) -> None:
		self._semantics = semantics if semantics is not None else DEFAULT_SEMANTICS
		self._trust_policy = trust_policy if trust_policy is not None else TrustPolicy.default()
		self._registry = SymbolRegistry()
		self._sealed: SealedEnvironment | None = None

	@property
	def state(self) -> EnvironmentState:
		return EnvironmentState.BUILDING if self._sealed is None else EnvironmentState.SEALED

	@property
	def registry(self) -> SymbolRegistry:
		return self._registry

	def register_native(self, name: str, value: Any) -> Symbol:
		return self._registry.register(Namespace.NATIVE, name, value)

	def register_toplevel(self, name: str, value: Any) -> Symbol:
		return self._registry.register(Namespace.TOPLEVEL, name, value)

	def register_internal(self, name: str, value: Any) -> Symbol:
		return self._registry.register(Namespace.INTERNAL, name, value)

	def seal(self, exports: InjectedExports | None = None) -> SealedEnvironment:
		if self._sealed is not None:
			raise FrozenRegistryError(reason_code="frozen", message="environment is already sealed")
		exports = exports if exports is not None else InjectedExports()

		# Validate exports before freezing so a bad export set leaves the
		# environment in the BUILDING state with its registry still open.
		check_toplevel_exports(exports.toplevels)
		injection_overrides = injection_overrides_from(self._semantics)
		rules = select_exports(exports.rules, injection_overrides)
		toplevels = select_exports(exports.toplevels, injection_overrides)
		self._check_base_symbols(Namespace.NATIVE, rules)
		self._check_base_symbols(Namespace.TOPLEVEL, toplevels)

		snapshot = self._registry.freeze()
		view = build_privileged_view(snapshot.native, snapshot.toplevel, snapshot.internal, self._semantics)

		overrides = OverrideTable(snapshot)
		overrides.install_all(Namespace.NATIVE, rules)
		overrides.install_all(Namespace.TOPLEVEL, toplevels)
		overrides.seal()

		self._sealed = SealedEnvironment(
			snapshot=snapshot,
			overrides=overrides,
			view=view,
			semantics=self._semantics,
			trust_policy=self._trust_policy,
		)
		logger.info(
			"builtins environment sealed: %d native and %d toplevel overrides injected",
			len(rules),
			len(toplevels),
		)
		return self._sealed

	def _check_base_symbols(self, namespace: Namespace, selected: Mapping[str, Any]) -> None:
		for name in selected:
			if not self._registry.contains(namespace, name):
				raise UnknownBaseSymbolError(
					reason_code="unknown-base-symbol",
					message=f"cannot override '{name}': no such {namespace.value} symbol",
					namespace=namespace.value,
					name=name,
				)


__all__ = ["EnvironmentState", "SealedEnvironment", "BuiltinsEnvironment"]
