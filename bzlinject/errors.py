# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Structured errors for builtins injection.

Every failure carries a stable `reason_code` so hosts and the CLI can report
it without parsing message text. Errors are raised synchronously at the call
that caused them and are never retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class BuiltinsError(Exception):
	"""Base error for registry, override and privileged-view failures."""

	reason_code: str
	message: str
	namespace: str | None = None
	name: str | None = None

	def __str__(self) -> str:
		return self.format_human()

	def to_dict(self) -> dict[str, Any]:
		return {
			"reason_code": self.reason_code,
			"message": self.message,
			"namespace": self.namespace,
			"name": self.name,
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.namespace:
			parts.append(f"namespace={self.namespace}")
		if self.name:
			parts.append(f"name={self.name}")
		return " ".join(parts)


class DuplicateSymbolError(BuiltinsError):
	"""A name was bound twice in the same namespace."""


class FrozenRegistryError(BuiltinsError):
	"""A mutation was attempted after the structure was sealed."""


class UnknownBaseSymbolError(BuiltinsError):
	"""An override names a symbol the registry does not have (or cannot be overridden)."""


class NotFoundError(BuiltinsError, LookupError):
	"""Ordinary lookup miss; surfaces to scripts as an undefined name."""


class UnrepresentableValueError(BuiltinsError, TypeError):
	"""A native value has no representation in the script value model."""


class InjectionError(BuiltinsError):
	"""Malformed injection export key or injection override flag."""


class FlagSyntaxError(BuiltinsError, ValueError):
	"""A command-line flag could not be parsed."""


__all__ = [
	"BuiltinsError",
	"DuplicateSymbolError",
	"FrozenRegistryError",
	"UnknownBaseSymbolError",
	"NotFoundError",
	"UnrepresentableValueError",
	"InjectionError",
	"FlagSyntaxError",
]
