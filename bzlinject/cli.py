# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from bzlinject.errors import BuiltinsError
from bzlinject.flag_parser import parse_flag_value
from bzlinject.injection import injection_applies, injection_overrides_from, split_key
from bzlinject.privileged import build_privileged_view
from bzlinject.semantics import Semantics, load_flags_json, parse_flag_args
from bzlinject.trust_v0 import TrustPolicy, load_trust_policy_json
from bzlinject.values import to_host_value, to_script_value

logger = logging.getLogger(__name__)


def _add_flag_args(p: argparse.ArgumentParser) -> None:
	p.add_argument("--flags-file", type=Path, default=None, help="JSON flags file (bzlinject-flags v0) applied first")


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(
		prog="bzlinject",
		description="Builtins injection tooling (flags, injection, trust)",
		epilog="Semantics flags (--name, --noname, --name=value) go after a literal '--'.",
	)
	p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
	p.add_argument("--json", action="store_true", help="Emit machine-readable JSON (errors included)")
	sub = p.add_subparsers(dest="cmd", required=True)

	flags = sub.add_parser("flags", help="Parse semantics flags and print the resulting store")
	_add_flag_args(flags)

	get_flag = sub.add_parser("get-flag", help="Evaluate _builtins.get_flag(name, default)")
	get_flag.add_argument("name", type=str, help="Flag name, without leading dashes")
	get_flag.add_argument("--default", type=str, default="None", help="Default literal (flag value syntax; 'None' for None)")
	_add_flag_args(get_flag)

	injection = sub.add_parser("injection", help="Report which exported symbols are injected")
	injection.add_argument("--exports", type=Path, required=True, help='JSON file: {"rules": [keys], "toplevels": [keys]}')
	_add_flag_args(injection)

	trust = sub.add_parser("trust", help="Report whether script labels receive _builtins")
	trust.add_argument("--policy", type=Path, default=None, help="Trust policy JSON (bzlinject-trust v0); default trusts @_builtins//*")
	trust.add_argument("labels", nargs="+", help="Script labels")
	return p


def _split_flag_argv(argv: list[str]) -> tuple[list[str], list[str]]:
	"""
	Separate semantics flags from CLI options.

	Semantics flags look like options (`--foo`), so argparse cannot take
	them positionally; anything after a literal `--` is a semantics flag.
	"""
	if "--" in argv:
		idx = argv.index("--")
		return argv[:idx], argv[idx + 1 :]
	return argv, []


def _semantics_from(args: argparse.Namespace, extra: list[str]) -> Semantics:
	base = load_flags_json(args.flags_file) if args.flags_file is not None else None
	return parse_flag_args(extra, base=base)


def _emit(obj: Any, as_json: bool) -> None:
	if as_json:
		print(json.dumps(obj, sort_keys=True, separators=(",", ":")))
	else:
		print(json.dumps(obj, indent=2, sort_keys=True))


def _run(args: argparse.Namespace, extra: list[str]) -> int:
	if args.cmd == "flags":
		_emit(_semantics_from(args, extra).to_dict(), args.json)
		return 0

	if args.cmd == "get-flag":
		semantics = _semantics_from(args, extra)
		default = None if args.default == "None" else to_script_value(parse_flag_value(args.default))
		view = build_privileged_view({}, {}, {}, semantics)
		value = view.get_flag(args.name, default)
		_emit(to_host_value(value), args.json)
		return 0

	if args.cmd == "injection":
		semantics = _semantics_from(args, extra)
		obj = json.loads(args.exports.read_text(encoding="utf-8"))
		if not isinstance(obj, dict):
			raise ValueError("exports file must be a JSON object")
		overrides = injection_overrides_from(semantics)
		report: dict[str, dict[str, bool]] = {}
		for section in ("rules", "toplevels"):
			keys = obj.get(section) or []
			report[section] = {split_key(k)[1]: injection_applies(k, overrides) for k in keys}
		_emit(report, args.json)
		return 0

	if args.cmd == "trust":
		policy = load_trust_policy_json(args.policy) if args.policy is not None else TrustPolicy.default()
		_emit({label: policy.is_trusted(label) for label in args.labels}, args.json)
		return 0

	raise AssertionError("unreachable")


def main(argv: list[str] | None = None) -> int:
	raw = list(sys.argv[1:] if argv is None else argv)
	own, extra = _split_flag_argv(raw)
	p = _build_parser()
	args = p.parse_args(own)
	logging.basicConfig(
		level=logging.DEBUG if args.verbose else logging.WARNING,
		format="%(levelname)s %(name)s: %(message)s",
	)
	try:
		return _run(args, extra)
	except BuiltinsError as err:
		logger.debug("command failed", exc_info=True)
		if args.json:
			print(json.dumps(err.to_dict(), sort_keys=True, separators=(",", ":")), file=sys.stderr)
		else:
			print(err.format_human(), file=sys.stderr)
		return 2
	except (OSError, ValueError) as err:
		p.error(str(err))
		return 2


if __name__ == "__main__":
	sys.exit(main())
