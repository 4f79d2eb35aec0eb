# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Override table: replacement bindings supplied by trusted override scripts.

Only NATIVE and TOPLEVEL symbols are overridable, each through its own keyed
table. An override must name a symbol that exists in the frozen registry
snapshot for the same namespace. The table is filled once during environment
setup and sealed; `resolve` is the view ordinary scripts get.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict

from bzlinject.errors import DuplicateSymbolError, FrozenRegistryError, NotFoundError, UnknownBaseSymbolError
from bzlinject.registry import Namespace, RegistrySnapshot, Symbol

logger = logging.getLogger(__name__)

OVERRIDABLE_NAMESPACES = (Namespace.NATIVE, Namespace.TOPLEVEL)


class OverrideTable:
	def __init__(self, snapshot: RegistrySnapshot) -> None:
		self._snapshot = snapshot
		self._tables: Dict[Namespace, Dict[str, Symbol]] = {ns: {} for ns in OVERRIDABLE_NAMESPACES}
		self._sealed = False

	@property
	def sealed(self) -> bool:
		return self._sealed

	@property
	def snapshot(self) -> RegistrySnapshot:
		return self._snapshot

	def install(self, name: str, value: Any, namespace: Namespace = Namespace.NATIVE) -> Symbol:
		self._check_install(name, namespace)
		sym = Symbol(name=name, namespace=namespace, value=value)
		self._tables[namespace][name] = sym
		logger.debug("installed %s override %s", namespace.value, name)
		return sym

	def install_all(self, namespace: Namespace, values: Mapping[str, Any]) -> list[Symbol]:
		"""Install several overrides; every name is checked before any is installed."""
		for name in values:
			self._check_install(name, namespace)
		return [self.install(name, value, namespace) for name, value in values.items()]

	def resolve(self, name: str, namespace: Namespace = Namespace.NATIVE) -> Symbol:
		"""Return the override for `name` if installed, else the registry symbol."""
		if namespace not in OVERRIDABLE_NAMESPACES:
			# Internal symbols are not part of ordinary resolution.
			raise NotFoundError(
				reason_code="not-found",
				message=f"name '{name}' is not defined",
				namespace=namespace.value,
				name=name,
			)
		sym = self._tables[namespace].get(name)
		if sym is not None:
			return sym
		return self._snapshot.lookup(namespace, name)

	def is_overridden(self, name: str, namespace: Namespace = Namespace.NATIVE) -> bool:
		return name in self._tables.get(namespace, {})

	def overrides(self, namespace: Namespace) -> Mapping[str, Symbol]:
		return MappingProxyType(self._tables.get(namespace, {}))

	def effective_values(self, namespace: Namespace) -> dict[str, Any]:
		"""Name -> value as seen by ordinary scripts (registry merged with overrides)."""
		out = self._snapshot.values(namespace)
		for name, sym in self._tables[namespace].items():
			out[name] = sym.value
		return out

	def seal(self) -> None:
		if not self._sealed:
			self._sealed = True
			logger.debug(
				"override table sealed: native=%d toplevel=%d",
				len(self._tables[Namespace.NATIVE]),
				len(self._tables[Namespace.TOPLEVEL]),
			)

	def _check_install(self, name: str, namespace: Namespace) -> None:
		if self._sealed:
			raise FrozenRegistryError(
				reason_code="frozen",
				message="override table is sealed; overrides can no longer be installed",
				namespace=namespace.value,
				name=name,
			)
		if namespace not in OVERRIDABLE_NAMESPACES:
			raise UnknownBaseSymbolError(
				reason_code="not-overridable",
				message=f"symbols in namespace '{namespace.value}' cannot be overridden",
				namespace=namespace.value,
				name=name,
			)
		if not self._snapshot.contains(namespace, name):
			raise UnknownBaseSymbolError(
				reason_code="unknown-base-symbol",
				message=f"cannot override '{name}': no such {namespace.value} symbol",
				namespace=namespace.value,
				name=name,
			)
		if name in self._tables[namespace]:
			raise DuplicateSymbolError(
				reason_code="duplicate-symbol",
				message=f"override for '{name}' is already installed",
				namespace=namespace.value,
				name=name,
			)


__all__ = ["OVERRIDABLE_NAMESPACES", "OverrideTable"]
