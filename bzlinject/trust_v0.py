# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Trust policy for override scripts (v0).

A script label is trusted when it matches one of the policy patterns; only
trusted scripts are given the `_builtins` binding.

Pattern matching rules:
- exact match: "@_builtins//exports.bzl" matches only that label,
- prefix match: "@_builtins//*" matches every label starting with
  "@_builtins//",
- the most specific (longest) matching pattern decides; a pattern prefixed
  with "!" denies instead of allowing.

Policy files use a pinned JSON format:

  {
    "format": "bzlinject-trust",
    "version": 0,
    "trusted": ["@_builtins//*", "!@_builtins//experimental/*"]
  }
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

DEFAULT_TRUSTED_PATTERNS = ("@_builtins//*",)


def _match_len(pattern: str, label: str) -> int:
	"""Length of the matched prefix, or -1 when `pattern` does not match `label`."""
	if pattern.endswith("*"):
		pfx = pattern[:-1]
		return len(pfx) if label.startswith(pfx) else -1
	return len(pattern) if label == pattern else -1


@dataclass(frozen=True)
class TrustPolicy:
	patterns: tuple[str, ...] = DEFAULT_TRUSTED_PATTERNS

	@classmethod
	def default(cls) -> "TrustPolicy":
		return cls(DEFAULT_TRUSTED_PATTERNS)

	def is_trusted(self, label: str) -> bool:
		best_len = -1
		allowed = False
		for raw in self.patterns:
			deny = raw.startswith("!")
			pattern = raw[1:] if deny else raw
			l = _match_len(pattern, label)
			if l < 0:
				continue
			# On equal specificity a deny wins.
			if l > best_len or (l == best_len and deny):
				best_len = l
				allowed = not deny
		return allowed


def load_trust_policy_json(path: Path) -> TrustPolicy:
	obj = json.loads(path.read_text(encoding="utf-8"))
	if not isinstance(obj, dict):
		raise ValueError("trust policy must be a JSON object")
	if obj.get("format") != "bzlinject-trust" or obj.get("version") != 0:
		raise ValueError("unsupported trust policy format/version")
	trusted = obj.get("trusted")
	if not isinstance(trusted, list) or not all(isinstance(p, str) and p for p in trusted):
		raise ValueError("trust policy 'trusted' must be a list of non-empty strings")
	return TrustPolicy(tuple(trusted))


__all__ = ["DEFAULT_TRUSTED_PATTERNS", "TrustPolicy", "load_trust_policy_json"]
