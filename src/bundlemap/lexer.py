from __future__ import annotations

"""A small JavaScript tokenizer for position-preserving minification.

This is not a parser. It knows enough of the lexical grammar to tell
comments, strings, template literals and regular expression literals apart
from code, and records for every token its offset in the input and whether a
line terminator preceded it (which is what automatic semicolon insertion
looks at).

Block comments starting with ``/*!`` are kept as COMMENT tokens; all other
comments are dropped.
"""

import re
from dataclasses import dataclass
from enum import Enum

from .errors import JavaScriptSyntaxError


class TokenKind(Enum):
    IDENTIFIER = "identifier"
    NUMBER = "number"
    STRING = "string"
    TEMPLATE = "template"
    REGEX = "regex"
    PUNCTUATOR = "punctuator"
    COMMENT = "comment"


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    text: str
    start: int
    newline_before: bool = False

    @property
    def end(self) -> int:
        return self.start + len(self.text)

    def is_punct(self, *values: str) -> bool:
        return self.kind is TokenKind.PUNCTUATOR and self.text in values

    def is_word(self, *values: str) -> bool:
        return self.kind is TokenKind.IDENTIFIER and self.text in values


RESERVED_WORDS = frozenset(
    """
    break case catch class const continue debugger default delete do else enum export
    extends false finally for function if import in instanceof new null return super
    switch this throw true try typeof var void while with yield let static implements
    interface package private protected public await
    """.split()
)

# After these keywords an expression is expected, so '/' opens a regex.
_REGEX_AFTER_WORDS = frozenset(
    "return typeof instanceof in of new delete void throw case do else yield await".split()
)

# A `)` closing the head of one of these is followed by a statement.
_CONTROL_WORDS = frozenset(("if", "while", "for", "with"))

_PUNCTUATORS = sorted(
    """
    >>>= ... === !== **= <<= >>= >>> &&= ||= ??= => == != <= >= && || ?? ?. ++ -- += -= *= /=
    %= &= |= ^= ** << >> { } ( ) [ ] ; , < > + - * / % & | ^ ! ~ ? : = . @
    """.split(),
    key=len,
    reverse=True,
)
_PUNCTUATOR_RE = re.compile("|".join(re.escape(p) for p in _PUNCTUATORS))
_NUMBER_RE = re.compile(
    r"0[xXoObB][0-9a-fA-F_]+n?"
    r"|(?:\d[\d_]*(?:\.[\d_]*)?|\.\d[\d_]*)(?:[eE][+-]?\d[\d_]*)?n?"
)

_LINE_TERMINATORS = "\n\r\u2028\u2029"
_WHITESPACE = " \t\v\f\u00a0\ufeff"
_DIGITS = "0123456789"


def is_identifier_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$\\\u200c\u200d" or (ord(ch) > 0x7F and ch.isidentifier())


def _is_identifier_start(ch: str) -> bool:
    return ch.isalpha() or ch in "_$\\" or (ord(ch) > 0x7F and ch.isidentifier())


class _Scanner:
    def __init__(self, text: str, keep_important_comments: bool) -> None:
        self.text = text
        self.length = len(text)
        self.keep_important_comments = keep_important_comments
        self.tokens: list[Token] = []
        # Token before each open `(`, and whether the last `)` closed a control head.
        self._paren_owners: list[Token | None] = []
        self._closed_control_head = False

    def _previous_code(self) -> Token | None:
        for token in reversed(self.tokens):
            if token.kind is not TokenKind.COMMENT:
                return token
        return None

    def _track_parens(self, token: Token) -> None:
        if token.text == "(":
            self._paren_owners.append(self._previous_code())
        elif token.text == ")":
            owner = self._paren_owners.pop() if self._paren_owners else None
            self._closed_control_head = owner is not None and owner.is_word(*_CONTROL_WORDS)

    def _regex_allowed(self) -> bool:
        for token in reversed(self.tokens):
            if token.kind is TokenKind.COMMENT:
                continue
            if token.kind is TokenKind.PUNCTUATOR:
                if token.text == ")":
                    return self._closed_control_head
                return token.text != "]"
            if token.kind is TokenKind.IDENTIFIER:
                return token.text in _REGEX_AFTER_WORDS
            return False
        return True

    def run(self) -> list[Token]:
        text = self.text
        pos = 0
        newline = False

        if text.startswith("#!"):
            pos = self._skip_line(pos)

        while pos < self.length:
            ch = text[pos]

            if ch in _LINE_TERMINATORS:
                newline = True
                pos += 1
                continue
            if ch in _WHITESPACE or ch.isspace():
                pos += 1
                continue

            if ch == "/" and text.startswith("//", pos):
                pos = self._skip_line(pos)
                continue
            if ch == "/" and text.startswith("/*", pos):
                end = text.find("*/", pos + 2)
                if end == -1:
                    raise JavaScriptSyntaxError("Unterminated comment", pos)
                body = text[pos : end + 2]
                if self.keep_important_comments and body.startswith("/*!"):
                    self.tokens.append(Token(TokenKind.COMMENT, body, pos, newline))
                if any(t in body for t in _LINE_TERMINATORS):
                    newline = True
                pos = end + 2
                continue
            if ch == "<" and text.startswith("<!--", pos):
                pos = self._skip_line(pos)
                continue

            start = pos
            if ch in "'\"":
                pos = self._scan_string(pos)
                kind = TokenKind.STRING
            elif ch == "`":
                pos = self._scan_template(pos)
                kind = TokenKind.TEMPLATE
            elif ch in _DIGITS or (ch == "." and pos + 1 < self.length and text[pos + 1] in _DIGITS):
                match = _NUMBER_RE.match(text, pos)
                if match is None:
                    raise JavaScriptSyntaxError("Malformed number", pos)
                pos = match.end()
                kind = TokenKind.NUMBER
            elif _is_identifier_start(ch) or (ch == "#" and pos + 1 < self.length and _is_identifier_start(text[pos + 1])):
                pos += 1
                while pos < self.length and is_identifier_char(text[pos]):
                    pos += 2 if text[pos] == "\\" else 1
                kind = TokenKind.IDENTIFIER
            elif ch == "/" and self._regex_allowed():
                pos = self._scan_regex(pos)
                kind = TokenKind.REGEX
            else:
                match = _PUNCTUATOR_RE.match(text, pos)
                if match is None:
                    raise JavaScriptSyntaxError(f"Unexpected character {ch!r}", pos)
                value = match.group()
                # `a?.5:b` is a conditional, not optional chaining.
                if value == "?." and pos + 2 < self.length and text[pos + 2] in _DIGITS:
                    value = "?"
                pos += len(value)
                kind = TokenKind.PUNCTUATOR

            token = Token(kind, text[start:pos], start, newline)
            if kind is TokenKind.PUNCTUATOR:
                self._track_parens(token)
            self.tokens.append(token)
            newline = False

        return self.tokens

    def _skip_line(self, pos: int) -> int:
        while pos < self.length and self.text[pos] not in _LINE_TERMINATORS:
            pos += 1
        return pos

    def _scan_string(self, pos: int) -> int:
        quote = self.text[pos]
        start = pos
        pos += 1
        while pos < self.length:
            ch = self.text[pos]
            if ch == "\\":
                pos += 3 if self.text.startswith("\r\n", pos + 1) else 2
                continue
            if ch == quote:
                return pos + 1
            if ch in "\n\r":
                break
            pos += 1
        raise JavaScriptSyntaxError("Unterminated string literal", start)

    def _scan_template(self, pos: int) -> int:
        start = pos
        pos += 1
        while pos < self.length:
            ch = self.text[pos]
            if ch == "\\":
                pos += 2
                continue
            if ch == "`":
                return pos + 1
            if ch == "$" and self.text.startswith("${", pos):
                pos = self._scan_substitution(pos + 2)
                continue
            pos += 1
        raise JavaScriptSyntaxError("Unterminated template literal", start)

    def _scan_substitution(self, pos: int) -> int:
        """Skip a template ``${...}`` body; return the offset after its ``}``."""

        start = pos
        depth = 0
        while pos < self.length:
            ch = self.text[pos]
            if ch in "'\"":
                pos = self._scan_string(pos)
                continue
            if ch == "`":
                pos = self._scan_template(pos)
                continue
            if self.text.startswith("/*", pos):
                end = self.text.find("*/", pos + 2)
                if end == -1:
                    raise JavaScriptSyntaxError("Unterminated comment", pos)
                pos = end + 2
                continue
            if self.text.startswith("//", pos):
                pos = self._skip_line(pos)
                continue
            if ch == "{":
                depth += 1
            elif ch == "}":
                if depth == 0:
                    return pos + 1
                depth -= 1
            pos += 1
        raise JavaScriptSyntaxError("Unterminated template substitution", start)

    def _scan_regex(self, pos: int) -> int:
        start = pos
        pos += 1
        in_class = False
        while pos < self.length:
            ch = self.text[pos]
            if ch == "\\":
                pos += 2
                continue
            if ch in _LINE_TERMINATORS:
                break
            if ch == "[":
                in_class = True
            elif ch == "]":
                in_class = False
            elif ch == "/" and not in_class:
                pos += 1
                while pos < self.length and is_identifier_char(self.text[pos]):
                    pos += 1
                return pos
            pos += 1
        raise JavaScriptSyntaxError("Unterminated regular expression", start)


def tokenize(text: str, *, keep_important_comments: bool = True) -> list[Token]:
    return _Scanner(text, keep_important_comments).run()
