# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Command-line flag parsing for the semantics store.

Accepted forms:
  --name              name = True
  --noname            name = False
  --name=value        value parsed with the `flags.lark` grammar

Values: `true`/`false` (any case), decimal ints, quoted strings, bracketed
lists and bare words. A bare comma-separated word list (`+foo,-bar`) is a list
of strings. Bare words that are not bools or ints stay strings.
"""

from __future__ import annotations

import codecs
import re
from pathlib import Path
from typing import Any, Iterable

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedInput

from bzlinject.errors import FlagSyntaxError

_GRAMMAR_PATH = Path(__file__).with_name("flags.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_VALUE_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="basic",
	start="start",
	maybe_placeholders=False,
)

_FLAG_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_INT_RE = re.compile(r"[+-]?[0-9]+")


def _name(node: Tree | Token) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	return node.type


def _decode_string_token(tok: Token) -> str:
	"""
	Decode a quoted STRING token. Escapes are interpreted Python-style; the
	resulting code points are reinterpreted as UTF-8 bytes so non-ASCII text
	survives the round trip.
	"""
	content = tok.value[1:-1]  # strip quotes
	unescaped = codecs.decode(content, "unicode_escape")
	return unescaped.encode("latin-1").decode("utf-8")


def _word_value(text: str) -> Any:
	lowered = text.lower()
	if lowered == "true":
		return True
	if lowered == "false":
		return False
	if _INT_RE.fullmatch(text):
		return int(text)
	return text


def _build_value(node: Tree | Token) -> Any:
	kind = _name(node)
	if kind == "start":
		return _build_value(node.children[0])
	if kind == "word":
		return _word_value(node.children[0].value)
	if kind == "string":
		return _decode_string_token(node.children[0])
	if kind == "bare_list":
		# Items of a bare list are always strings: `--x=1,2` is ["1", "2"].
		return [tok.value for tok in node.children]
	if kind == "list":
		return [_build_value(child) for child in node.children]
	raise TypeError(f"unexpected flag value node {kind}")


def parse_flag_value(text: str) -> Any:
	"""Parse the right-hand side of `--name=value` into a host value."""
	if text == "":
		return ""
	try:
		tree = _VALUE_PARSER.parse(text)
	except UnexpectedInput as err:
		raise FlagSyntaxError(
			reason_code="flag-syntax",
			message=f"invalid flag value {text!r} at column {getattr(err, 'column', '?')}",
		) from err
	try:
		return _build_value(tree)
	except UnicodeError as err:
		# Escapes must spell UTF-8 bytes (`\xc3\xa9`); `\xe9` or `☃` do not.
		raise FlagSyntaxError(
			reason_code="flag-syntax",
			message=f"invalid string escape in flag value {text!r}: {err}",
		) from err


def parse_flag(arg: str) -> tuple[str, Any]:
	"""Parse one `--name[=value]` argument into `(name, value)`."""
	if not arg.startswith("--"):
		raise FlagSyntaxError(reason_code="flag-syntax", message=f"flag must start with '--': {arg!r}")
	body = arg[2:]
	name, sep, raw = body.partition("=")
	if not _FLAG_NAME_RE.fullmatch(name):
		raise FlagSyntaxError(reason_code="flag-syntax", message=f"invalid flag name in {arg!r}", name=name or None)
	if sep:
		return name, parse_flag_value(raw)
	if name.startswith("no") and len(name) > 2:
		return name[2:], False
	return name, True


def parse_flags(args: Iterable[str]) -> dict[str, Any]:
	"""Parse flag arguments in order; later occurrences of a name win."""
	out: dict[str, Any] = {}
	for arg in args:
		name, value = parse_flag(arg)
		out[name] = value
	return out


__all__ = ["parse_flag", "parse_flag_value", "parse_flags"]
