"""
@file tokenizer.py
@brief Lexer for the selector language.

Converts selector text such as ``[class=List]:has([text="Item 1"]) > [clickable=true]``
into a flat list of tokens. Whitespace only separates tokens; it never acts as a
combinator. Descendant reach is spelled ``:has()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .exceptions import SelectorSyntaxError


class TokenType:
    LBRACKET = "LBRACKET"  # [
    RBRACKET = "RBRACKET"  # ]
    LPAREN = "LPAREN"  # (
    RPAREN = "RPAREN"  # )
    CHILD = "CHILD"  # >
    COMMA = "COMMA"  # ,
    COLON = "COLON"  # :
    OP = "OP"  # =, ^=, $=, *=
    IDENT = "IDENT"  # attribute or pseudo-class name
    STRING = "STRING"  # quoted or bare attribute value
    EOF = "EOF"


_PUNCTUATION = {
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ">": TokenType.CHILD,
    ",": TokenType.COMMA,
    ":": TokenType.COLON,
}

_OPERATOR_PREFIXES = {"^", "$", "*"}
_UNSUPPORTED_OPERATOR_CHARS = {"~", "|", "!", "<"}
_QUOTES = {'"', "'"}


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    position: int

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.value!r}, @{self.position})"


def is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_-"


def is_legacy_form(text: str) -> bool:
    """True for the bracket-less ``name=value`` shorthand."""
    stripped = text.strip()
    return "=" in stripped and "[" not in stripped and not stripped.startswith(":")


class SelectorTokenizer:
    """Tokenizes selector text into a list ending with an EOF token."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.length = len(source)

    def _error(self, reason: str, position: int) -> SelectorSyntaxError:
        return SelectorSyntaxError(reason, position, self.source)

    def _peek(self, offset: int = 0) -> str:
        pos = self.pos + offset
        if pos < self.length:
            return self.source[pos]
        return ""

    def _skip_whitespace(self) -> None:
        while self.pos < self.length and self.source[self.pos].isspace():
            self.pos += 1

    def tokenize(self) -> List[Token]:
        if is_legacy_form(self.source):
            return self._tokenize_legacy()

        tokens: List[Token] = []
        while True:
            self._skip_whitespace()
            if self.pos >= self.length:
                tokens.append(Token(TokenType.EOF, "", self.pos))
                return tokens

            after_operator = bool(tokens) and tokens[-1].kind == TokenType.OP
            ch = self.source[self.pos]
            start = self.pos

            if ch in _QUOTES:
                tokens.append(Token(TokenType.STRING, self._read_quoted(ch), start))
            elif after_operator:
                tokens.append(Token(TokenType.STRING, self._read_bare_value(), start))
            elif ch in _PUNCTUATION:
                self.pos += 1
                tokens.append(Token(_PUNCTUATION[ch], ch, start))
            elif ch == "=":
                self.pos += 1
                tokens.append(Token(TokenType.OP, "=", start))
            elif ch in _OPERATOR_PREFIXES:
                if self._peek(1) != "=":
                    raise self._error(f"unrecognized operator '{ch}'", start)
                self.pos += 2
                tokens.append(Token(TokenType.OP, ch + "=", start))
            elif ch in _UNSUPPORTED_OPERATOR_CHARS:
                op = ch + "=" if self._peek(1) == "=" else ch
                raise self._error(
                    f"unrecognized operator '{op}' (expected one of =, ^=, $=, *=)", start
                )
            elif is_ident_char(ch):
                tokens.append(Token(TokenType.IDENT, self._read_ident(), start))
            else:
                raise self._error(f"unexpected character '{ch}'", start)

    def _read_ident(self) -> str:
        start = self.pos
        while self.pos < self.length and is_ident_char(self.source[self.pos]):
            self.pos += 1
        return self.source[start:self.pos]

    def _read_quoted(self, quote: str) -> str:
        opening = self.pos
        end = self.source.find(quote, opening + 1)
        if end < 0:
            raise self._error("unterminated string", opening)
        self.pos = end + 1
        return self.source[opening + 1:end]

    def _read_bare_value(self) -> str:
        start = self.pos
        while self.pos < self.length:
            ch = self.source[self.pos]
            if ch in "],)" or ch.isspace():
                break
            self.pos += 1
        if self.pos == start:
            raise self._error("expected attribute value", start)
        return self.source[start:self.pos]

    def _tokenize_legacy(self) -> List[Token]:
        offset = self.length - len(self.source.lstrip())
        stripped = self.source.strip()
        eq = stripped.index("=")

        raw_name = stripped[:eq]
        name = raw_name.strip()
        name_pos = offset + (len(raw_name) - len(raw_name.lstrip()))
        if not name or not all(is_ident_char(c) for c in name):
            raise self._error(f"invalid attribute name '{name}'", name_pos)

        raw_value = stripped[eq + 1:]
        value = raw_value.strip()
        value_pos = offset + eq + 1 + (len(raw_value) - len(raw_value.lstrip()))
        if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
            value = value[1:-1]
        if not value:
            raise self._error("expected attribute value", value_pos)

        return [
            Token(TokenType.IDENT, name, name_pos),
            Token(TokenType.OP, "=", offset + eq),
            Token(TokenType.STRING, value, value_pos),
            Token(TokenType.EOF, "", self.length),
        ]


def tokenize(text: str) -> List[Token]:
    """
    Tokenize selector text.

    @param text Selector source
    @return Tokens, always terminated by an EOF token
    @throws SelectorSyntaxError on an unterminated string or unknown character
    """
    return SelectorTokenizer(text).tokenize()
