from __future__ import annotations

"""Minification engines.

An engine takes text and `MinifierOptions` and returns minified text. Engines
with ``supports_correlation`` also accept a sink, called as
``sink(original_offset, generated_offset, name)`` for every position they
preserve, in output order.

`TokenMinifier` works on the token stream from `lexer`: it drops comments and
whitespace, keeps a line break wherever removing it could change automatic
semicolon insertion, and applies a few token-level rewrites. It reports the
first token of every statement and every identifier.

`RjsminMinifier` delegates to rjsmin, which cannot report positions.
"""

import re
from collections.abc import Callable
from dataclasses import fields, replace
from typing import Protocol

import rjsmin

from .lexer import RESERVED_WORDS, Token, TokenKind, is_identifier_char, tokenize
from .types import MinifierOptions, OutputMode

CorrelationSink = Callable[[int, int, str | None], None]


class Minifier(Protocol):
    supports_correlation: bool
    supported_options: frozenset[str]

    def minify(self, text: str, options: MinifierOptions, sink: CorrelationSink | None = None) -> str: ...


def unsupported_options(engine: Minifier, options: MinifierOptions) -> list[str]:
    """Names of options set to a non-default value that ``engine`` ignores."""

    defaults = MinifierOptions()
    ignored: list[str] = []
    for f in fields(MinifierOptions):
        if f.name in engine.supported_options:
            continue
        if getattr(options, f.name) != getattr(defaults, f.name):
            ignored.append(f.name)
    return ignored


_DECLARATION_WORDS = frozenset(("function", "var", "let", "const", "class"))
_DEBUG_ROOTS = frozenset(("$Debug", "Debug", "WAssert"))
_DEBUG_NAMESPACES = frozenset(("Web", "Msn"))
_STATEMENT_BOUNDARY = (";", "{", "}")
_VALUE_KINDS = (TokenKind.IDENTIFIER, TokenKind.NUMBER, TokenKind.STRING, TokenKind.TEMPLATE, TokenKind.REGEX)
_VALUE_END_PUNCT = frozenset((")", "]", "}", "++", "--"))
_VALUE_START_PUNCT = frozenset(("(", "[", "{", "+", "-", "++", "--", "!", "~", "/", "@"))
_NO_BREAK_AFTER_BRACE = frozenset((")", "]", ",", ";", ".", "?.", "?", ":", "++", "--", "=>"))
_NO_BREAK_WORDS = frozenset(("else", "catch", "finally", "while"))
_PLAIN_KEY = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")


def _at_statement_start(previous: Token | None) -> bool:
    return previous is None or previous.is_punct(*_STATEMENT_BOUNDARY)


def _matching_paren(tokens: list[Token], open_index: int) -> int | None:
    depth = 0
    for i in range(open_index, len(tokens)):
        if tokens[i].is_punct("(", "[", "{"):
            depth += 1
        elif tokens[i].is_punct(")", "]", "}"):
            depth -= 1
            if depth == 0:
                return i if tokens[i].text == ")" else None
    return None


def _top_level_commas(tokens: list[Token], start: int, end: int) -> int:
    depth = 0
    commas = 0
    for token in tokens[start:end]:
        if token.is_punct("(", "[", "{"):
            depth += 1
        elif token.is_punct(")", "]", "}"):
            depth -= 1
        elif depth == 0 and token.is_punct(","):
            commas += 1
    return commas


class TokenMinifier:
    supports_correlation = True
    supported_options = frozenset(
        (
            "collapse_to_literal",
            "mac_safari_quirks",
            "output_mode",
            "remove_unneeded_code",
            "strip_debug_statements",
        )
    )

    def __init__(self, *, keep_important_comments: bool = True) -> None:
        self.keep_important_comments = keep_important_comments

    def minify(self, text: str, options: MinifierOptions, sink: CorrelationSink | None = None) -> str:
        tokens = tokenize(text, keep_important_comments=self.keep_important_comments)
        tokens = self._rewrite(tokens, options)
        return self._emit(tokens, options, sink)

    # Rewrites

    def _rewrite(self, tokens: list[Token], options: MinifierOptions) -> list[Token]:
        out: list[Token] = []
        paren_depth = 0
        i = 0
        n = len(tokens)

        while i < n:
            token = tokens[i]
            previous = next((t for t in reversed(out) if t.kind is not TokenKind.COMMENT), None)

            if options.strip_debug_statements and _at_statement_start(previous):
                skip_to = self._debug_statement_end(tokens, i)
                if skip_to is not None:
                    i = skip_to
                    continue

            if options.collapse_to_literal and token.is_word("new"):
                collapsed = self._collapse_literal(tokens, i, previous)
                if collapsed is not None:
                    replacement, i = collapsed
                    out.extend(replacement)
                    continue

            if (
                options.remove_unneeded_code
                and token.kind is TokenKind.STRING
                and previous is not None
                and previous.is_punct("{", ",")
                and i + 1 < n
                and tokens[i + 1].is_punct(":")
            ):
                key = token.text[1:-1]
                if _PLAIN_KEY.fullmatch(key) and key not in RESERVED_WORDS:
                    token = replace(token, kind=TokenKind.IDENTIFIER, text=key)

            if token.is_punct(";") and paren_depth == 0 and (previous is None or previous.is_punct(";", "{")):
                i += 1
                continue

            if token.is_punct("("):
                paren_depth += 1
            elif token.is_punct(")"):
                paren_depth = max(paren_depth - 1, 0)

            out.append(token)
            i += 1

        return out

    def _debug_statement_end(self, tokens: list[Token], i: int) -> int | None:
        """Return the index after a debug-only statement starting at ``i``."""

        token = tokens[i]
        n = len(tokens)
        if token.is_word("debugger"):
            j = i + 1
        else:
            if token.kind is not TokenKind.IDENTIFIER:
                return None
            j = i
            if token.text in _DEBUG_NAMESPACES:
                if not (j + 2 < n and tokens[j + 1].is_punct(".") and tokens[j + 2].is_word("Debug")):
                    return None
                j += 2
            elif token.text not in _DEBUG_ROOTS:
                return None
            j += 1
            while j + 1 < n and tokens[j].is_punct(".") and tokens[j + 1].kind is TokenKind.IDENTIFIER:
                j += 2
            if j >= n or not tokens[j].is_punct("("):
                return None
            close = _matching_paren(tokens, j)
            if close is None:
                return None
            j = close + 1
            # `Debug.log(x) + 1` is not a bare call statement.
            if j < n and not tokens[j].is_punct(";", "}") and not tokens[j].newline_before:
                return None

        if j < n and tokens[j].is_punct(";"):
            j += 1
        return j

    def _collapse_literal(
        self, tokens: list[Token], i: int, previous: Token | None
    ) -> tuple[list[Token], int] | None:
        n = len(tokens)
        if i + 3 >= n or not tokens[i + 2].is_punct("("):
            return None
        ctor = tokens[i + 1]
        close = _matching_paren(tokens, i + 2)
        if close is None:
            return None
        start = tokens[i].start
        end = tokens[close].start

        if ctor.is_word("Object"):
            # `{}` would open a block here.
            if close != i + 3 or _at_statement_start(previous) or (previous is not None and previous.is_punct("=>")):
                return None
            opener, closer = "{", "}"
        elif ctor.is_word("Array"):
            args = tokens[i + 3 : close]
            if len(args) == 1 and args[0].kind is not TokenKind.STRING:
                return None
            if args and _top_level_commas(tokens, i + 3, close) == 0 and len(args) != 1:
                return None
            opener, closer = "[", "]"
        else:
            return None

        opening = Token(TokenKind.PUNCTUATOR, opener, start, tokens[i].newline_before)
        # `b\nnew Array(1)` ends a statement; `b\n[1]` continues it.
        if previous is not None and opening.newline_before and _line_break_matters(previous, opening):
            return None

        replacement = [opening]
        replacement.extend(tokens[i + 3 : close])
        replacement.append(Token(TokenKind.PUNCTUATOR, closer, end, tokens[close].newline_before))
        return replacement, close + 1

    # Output

    def _emit(self, tokens: list[Token], options: MinifierOptions, sink: CorrelationSink | None) -> str:
        multi_line = options.output_mode is OutputMode.MULTIPLE_LINES
        parts: list[str] = []
        generated = 0
        previous: Token | None = None
        previous_code: Token | None = None
        paren_depth = 0

        for token in tokens:
            separator = ""
            if previous is None:
                pass
            elif token.kind is TokenKind.COMMENT or previous.kind is TokenKind.COMMENT:
                if token.newline_before:
                    separator = "\n"
            elif token.newline_before and _line_break_matters(previous, token):
                separator = "\n"
            elif _tokens_fuse(previous, token):
                separator = " "
            elif multi_line and paren_depth == 0 and _break_after(previous, token):
                separator = "\n"

            if separator:
                parts.append(separator)
                generated += len(separator)

            if sink is not None and token.kind is not TokenKind.COMMENT:
                name = None
                is_identifier = token.kind is TokenKind.IDENTIFIER and token.text not in RESERVED_WORDS
                if is_identifier and previous_code is not None and previous_code.is_word(*_DECLARATION_WORDS):
                    name = token.text
                if is_identifier or (_at_statement_start(previous_code) and not token.is_punct(";", "}")):
                    sink(token.start, generated, name)

            parts.append(token.text)
            generated += len(token.text)

            if token.is_punct("("):
                paren_depth += 1
            elif token.is_punct(")"):
                paren_depth = max(paren_depth - 1, 0)

            previous = token
            if token.kind is not TokenKind.COMMENT:
                previous_code = token

        return "".join(parts)


def _line_break_matters(previous: Token, token: Token) -> bool:
    """True when dropping a source line break could change ASI."""

    ends_value = previous.kind in _VALUE_KINDS or previous.text in _VALUE_END_PUNCT
    starts_value = token.kind in _VALUE_KINDS or token.text in _VALUE_START_PUNCT
    return ends_value and starts_value


def _tokens_fuse(previous: Token, token: Token) -> bool:
    """True when writing the two tokens back to back changes their meaning."""

    last = previous.text[-1]
    first = token.text[0]
    if is_identifier_char(last) and is_identifier_char(first):
        return True
    if previous.kind is TokenKind.REGEX and is_identifier_char(first):
        return True
    if last in "+-" and first == last:
        return True
    if previous.kind is TokenKind.NUMBER and first == "." and previous.text.isdigit():
        return True
    if last == "/" and (first == "/" or first == "*"):
        return True
    if last == "<" and token.text == "!":
        return True
    if previous.text == "--" and first == ">":
        return True
    return False


def _break_after(previous: Token, token: Token) -> bool:
    if previous.is_punct(";"):
        return True
    if previous.is_punct("}"):
        return token.text not in _NO_BREAK_AFTER_BRACE and token.text not in _NO_BREAK_WORDS
    return False


class RjsminMinifier:
    """rjsmin-backed engine; positions are not reported."""

    supports_correlation = False
    supported_options: frozenset[str] = frozenset()

    def __init__(self, *, keep_bang_comments: bool = True) -> None:
        self.keep_bang_comments = keep_bang_comments

    def minify(self, text: str, options: MinifierOptions, sink: CorrelationSink | None = None) -> str:
        return rjsmin.jsmin(text, keep_bang_comments=self.keep_bang_comments)


ENGINES: dict[str, Callable[[], Minifier]] = {
    "token": TokenMinifier,
    "rjsmin": RjsminMinifier,
}


def create_engine(name: str) -> Minifier:
    try:
        factory = ENGINES[name]
    except KeyError:
        raise ValueError(f"Unknown minifier engine {name!r} (choose from {', '.join(sorted(ENGINES))})") from None
    return factory()
