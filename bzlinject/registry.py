# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Symbol registry for native (uninjected) builtins.

The registry is the single source of truth for "what exists without any
injection". It has two phases:

  building: `register` binds names per namespace; duplicates are rejected.
  frozen:   `freeze` returns an immutable `RegistrySnapshot`; any further
            `register` fails.

Three namespaces are kept apart:
  - NATIVE:   fields of the `native` object seen by bzl files (rules etc.),
  - TOPLEVEL: predeclared top-level bzl symbols,
  - INTERNAL: symbols visible only through `_builtins.internal`.

A name may appear in several namespaces; they are independent mappings and
no cross-namespace validation is performed.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict

from bzlinject.errors import DuplicateSymbolError, FrozenRegistryError, NotFoundError

logger = logging.getLogger(__name__)


class Namespace(Enum):
	NATIVE = "native"
	TOPLEVEL = "toplevel"
	INTERNAL = "internal"


@dataclass(frozen=True)
class Symbol:
	"""A name bound to a value within one namespace."""

	name: str
	namespace: Namespace
	value: Any


# Toplevel names the environment assembles itself: the user-facing `native`
# object and the `_builtins` binding of trusted scripts.
RESERVED_TOPLEVEL_NAMES = ("native", "_builtins")


def _check_name(namespace: Namespace, name: str) -> None:
	# Dunder names are not reachable through struct field access.
	if not isinstance(name, str) or not name.isidentifier() or name.startswith("__"):
		raise ValueError(f"invalid symbol name {name!r} in namespace '{namespace.value}'")
	if namespace is Namespace.TOPLEVEL and name in RESERVED_TOPLEVEL_NAMES:
		raise ValueError(f"'{name}' is reserved and cannot be registered as a toplevel")


@dataclass(frozen=True)
class RegistrySnapshot:
	"""
	Frozen per-namespace symbol sets.

	The mappings are read-only proxies over dicts owned by the snapshot, so
	the snapshot can be shared across threads without locking.
	"""

	native: Mapping[str, Symbol]
	toplevel: Mapping[str, Symbol]
	internal: Mapping[str, Symbol]

	def symbols(self, namespace: Namespace) -> Mapping[str, Symbol]:
		if namespace is Namespace.NATIVE:
			return self.native
		if namespace is Namespace.TOPLEVEL:
			return self.toplevel
		return self.internal

	def lookup(self, namespace: Namespace, name: str) -> Symbol:
		sym = self.symbols(namespace).get(name)
		if sym is None:
			raise NotFoundError(
				reason_code="not-found",
				message=f"name '{name}' is not defined",
				namespace=namespace.value,
				name=name,
			)
		return sym

	def contains(self, namespace: Namespace, name: str) -> bool:
		return name in self.symbols(namespace)

	def values(self, namespace: Namespace) -> dict[str, Any]:
		"""Name -> bound value for one namespace (a fresh dict)."""
		return {name: sym.value for name, sym in self.symbols(namespace).items()}


class SymbolRegistry:
	"""
	Mutable builder for a `RegistrySnapshot`.

	Not thread-safe: registration is a strictly sequential setup step.
	"""

	def __init__(self) -> None:
		self._symbols: Dict[Namespace, Dict[str, Symbol]] = {ns: {} for ns in Namespace}
		self._snapshot: RegistrySnapshot | None = None

	@property
	def frozen(self) -> bool:
		return self._snapshot is not None

	def register(self, namespace: Namespace, name: str, value: Any) -> Symbol:
		self._require_building(namespace, name)
		_check_name(namespace, name)
		bucket = self._symbols[namespace]
		if name in bucket:
			raise DuplicateSymbolError(
				reason_code="duplicate-symbol",
				message=f"symbol '{name}' is already registered",
				namespace=namespace.value,
				name=name,
			)
		sym = Symbol(name=name, namespace=namespace, value=value)
		bucket[name] = sym
		logger.debug("registered %s symbol %s", namespace.value, name)
		return sym

	def register_all(self, namespace: Namespace, values: Mapping[str, Any]) -> list[Symbol]:
		"""
		Register several symbols at once.

		All names are validated before anything is bound, so a failure leaves
		the registry unchanged.
		"""
		self._require_building(namespace, None)
		bucket = self._symbols[namespace]
		for name in values:
			_check_name(namespace, name)
			if name in bucket:
				raise DuplicateSymbolError(
					reason_code="duplicate-symbol",
					message=f"symbol '{name}' is already registered",
					namespace=namespace.value,
					name=name,
				)
		return [self.register(namespace, name, value) for name, value in values.items()]

	def lookup(self, namespace: Namespace, name: str) -> Symbol:
		if self._snapshot is not None:
			return self._snapshot.lookup(namespace, name)
		sym = self._symbols[namespace].get(name)
		if sym is None:
			raise NotFoundError(
				reason_code="not-found",
				message=f"name '{name}' is not defined",
				namespace=namespace.value,
				name=name,
			)
		return sym

	def contains(self, namespace: Namespace, name: str) -> bool:
		return name in self._symbols[namespace]

	def names(self, namespace: Namespace) -> list[str]:
		return sorted(self._symbols[namespace])

	def freeze(self) -> RegistrySnapshot:
		"""Finalize the registry. Repeated calls return the same snapshot."""
		if self._snapshot is None:
			self._snapshot = RegistrySnapshot(
				native=MappingProxyType(dict(self._symbols[Namespace.NATIVE])),
				toplevel=MappingProxyType(dict(self._symbols[Namespace.TOPLEVEL])),
				internal=MappingProxyType(dict(self._symbols[Namespace.INTERNAL])),
			)
			logger.debug(
				"registry frozen: native=%d toplevel=%d internal=%d",
				len(self._snapshot.native),
				len(self._snapshot.toplevel),
				len(self._snapshot.internal),
			)
		return self._snapshot

	def _require_building(self, namespace: Namespace, name: str | None) -> None:
		if self._snapshot is not None:
			raise FrozenRegistryError(
				reason_code="frozen",
				message="symbol registry is frozen; registration is no longer allowed",
				namespace=namespace.value,
				name=name,
			)


__all__ = ["RESERVED_TOPLEVEL_NAMES", "Namespace", "Symbol", "RegistrySnapshot", "SymbolRegistry"]
