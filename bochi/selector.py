"""
@file selector.py
@brief Selector AST and recursive-descent parser.

Syntax:
  - ``[attr="value"]`` or ``[attr=value]``: attribute assertion
  - ``[attr^=v]``, ``[attr$=v]``, ``[attr*=v]``: starts-with, ends-with, contains
  - ``[a=1][b=2]``: AND of assertions on the same node
  - ``sel1, sel2``: OR of selectors
  - ``parent > child``: direct child combinator
  - ``:has(list)``: some descendant matches ``list``
  - ``:not(list)``: the node itself does not match ``list``
  - ``attr=value``: legacy single assertion

Examples:
  - ``[class=Button][text="OK"]``
  - ``[text="Cancel"],[text="Back"]``
  - ``[class=android.widget.ListView]:has([text="Item 1"])``
  - ``[resource-id=com.example:id/toolbar] > [class=android.widget.TextView]``
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Mapping, Optional, Sequence, Tuple

from .exceptions import SelectorSyntaxError
from .tokenizer import Token, TokenType, tokenize
from .tree import normalize_attribute_name


class Operator(str, Enum):
    EQUALS = "="
    STARTS_WITH = "^="
    ENDS_WITH = "$="
    CONTAINS = "*="

    def test(self, actual: str, expected: str) -> bool:
        if self is Operator.EQUALS:
            return actual == expected
        if self is Operator.STARTS_WITH:
            return actual.startswith(expected)
        if self is Operator.ENDS_WITH:
            return actual.endswith(expected)
        return expected in actual


def _quote(value: str) -> str:
    """
    Render a value so it parses back unchanged.

    A value holding both quote characters can only come from the bare form,
    so it is rendered bare. If it also holds a bare-value terminator
    (``]``, ``,``, ``)`` or whitespace), or starts with a quote, no rendering
    parses back and the result is lossy.
    """
    if "'" not in value:
        return f"'{value}'" if '"' in value else f'"{value}"'
    if '"' not in value:
        return f'"{value}"'
    return value


@dataclass(frozen=True)
class AttributeAssertion:
    name: str
    operator: Operator
    value: str

    def test(self, attributes: Mapping[str, str]) -> bool:
        """A missing attribute never matches; an empty one is compared like any other."""
        actual = attributes.get(self.name)
        if actual is None:
            return False
        return self.operator.test(actual, self.value)

    def __str__(self) -> str:
        return f"[{self.name}{self.operator.value}{_quote(self.value)}]"


@dataclass(frozen=True)
class CompoundSelector:
    """AND-group of assertions plus optional ``:has()`` and ``:not()`` clauses."""
    assertions: Tuple[AttributeAssertion, ...] = ()
    has: Optional[SelectorList] = None
    not_: Optional[SelectorList] = None

    @property
    def is_empty(self) -> bool:
        return not self.assertions and self.has is None and self.not_ is None

    def __str__(self) -> str:
        text = "".join(str(a) for a in self.assertions)
        if self.has is not None:
            text += f":has({self.has})"
        if self.not_ is not None:
            text += f":not({self.not_})"
        return text


@dataclass(frozen=True)
class Selector:
    """Chain of compounds joined by ``>``; the last compound targets the node itself."""
    compounds: Tuple[CompoundSelector, ...]

    def __str__(self) -> str:
        return " > ".join(str(c) for c in self.compounds)


@dataclass(frozen=True)
class SelectorList:
    """OR of one or more selectors."""
    selectors: Tuple[Selector, ...]
    source: str = field(default="", compare=False)

    def __str__(self) -> str:
        return ", ".join(str(s) for s in self.selectors)

    @property
    def text(self) -> str:
        """Original selector text when known, canonical rendering otherwise."""
        return self.source or str(self)


_OPERATORS = {op.value: op for op in Operator}
_PSEUDO_CLASSES = ("has", "not")


class SelectorParser:
    """Recursive-descent parser over the token stream from ``tokenize``."""

    def __init__(self, tokens: Sequence[Token], source: str = ""):
        self.tokens = list(tokens)
        self.source = source
        self.pos = 0

    def _peek(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind != TokenType.EOF:
            self.pos += 1
        return token

    def _error(self, reason: str, token: Token) -> SelectorSyntaxError:
        return SelectorSyntaxError(reason, token.position, self.source)

    @staticmethod
    def _describe(token: Token) -> str:
        if token.kind == TokenType.EOF:
            return "end of input"
        return f"'{token.value}'"

    def _expect(self, kind: str, what: str) -> Token:
        token = self._peek()
        if token.kind != kind:
            raise self._error(f"expected {what} but found {self._describe(token)}", token)
        return self._advance()

    def parse(self) -> SelectorList:
        if self._peek().kind == TokenType.EOF:
            raise self._error("empty selector", self._peek())
        result = self._parse_list()
        token = self._peek()
        if token.kind == TokenType.RPAREN:
            raise self._error("unbalanced ')'", token)
        if token.kind != TokenType.EOF:
            raise self._error(f"unexpected {self._describe(token)}", token)
        return result

    def _parse_list(self) -> SelectorList:
        selectors = [self._parse_selector()]
        while self._peek().kind == TokenType.COMMA:
            self._advance()
            selectors.append(self._parse_selector())
        return SelectorList(tuple(selectors))

    def _parse_selector(self) -> Selector:
        compounds = [self._parse_compound()]
        while self._peek().kind == TokenType.CHILD:
            self._advance()
            compounds.append(self._parse_compound())
        return Selector(tuple(compounds))

    def _parse_compound(self) -> CompoundSelector:
        if self._peek().kind == TokenType.IDENT:
            return self._parse_legacy_pair()

        assertions: List[AttributeAssertion] = []
        has: Optional[SelectorList] = None
        not_: Optional[SelectorList] = None
        start = self._peek()

        while True:
            token = self._peek()
            if token.kind == TokenType.LBRACKET:
                assertions.append(self._parse_attribute())
            elif token.kind == TokenType.COLON:
                name, inner = self._parse_pseudo()
                if name == "has":
                    if has is not None:
                        raise self._error("duplicate :has() in one compound selector", token)
                    has = inner
                else:
                    if not_ is not None:
                        raise self._error("duplicate :not() in one compound selector", token)
                    not_ = inner
            else:
                break

        if not assertions and has is None and not_ is None:
            raise self._error(
                f"expected '[' or ':' but found {self._describe(start)}", start
            )
        return CompoundSelector(tuple(assertions), has, not_)

    def _parse_legacy_pair(self) -> CompoundSelector:
        name = self._advance()
        op = self._expect(TokenType.OP, "'=' after attribute name")
        if op.value != "=":
            raise self._error(
                f"operator '{op.value}' requires the bracket form [name{op.value}value]", op
            )
        value = self._expect(TokenType.STRING, "attribute value")
        assertion = AttributeAssertion(normalize_attribute_name(name.value), Operator.EQUALS, value.value)
        return CompoundSelector((assertion,))

    def _parse_attribute(self) -> AttributeAssertion:
        opening = self._advance()
        name = self._expect(TokenType.IDENT, "attribute name")
        op = self._peek()
        if op.kind != TokenType.OP:
            raise self._error(
                f"expected operator (=, ^=, $=, *=) but found {self._describe(op)}", op
            )
        self._advance()
        value = self._expect(TokenType.STRING, "attribute value")
        closing = self._peek()
        if closing.kind != TokenType.RBRACKET:
            raise self._error(
                f"unterminated '[' opened at position {opening.position}: "
                f"expected ']' but found {self._describe(closing)}",
                closing,
            )
        self._advance()
        return AttributeAssertion(normalize_attribute_name(name.value), _OPERATORS[op.value], value.value)

    def _parse_pseudo(self) -> Tuple[str, SelectorList]:
        colon = self._advance()
        name = self._expect(TokenType.IDENT, "pseudo-class name after ':'")
        if name.position != colon.position + 1:
            raise self._error(
                "whitespace is not allowed between ':' and the pseudo-class name", name
            )
        if name.value not in _PSEUDO_CLASSES:
            raise self._error(
                f"unknown pseudo-class ':{name.value}' (supported: :has, :not)", name
            )
        opening = self._expect(TokenType.LPAREN, f"'(' after ':{name.value}'")
        if opening.position != name.position + len(name.value):
            raise self._error(
                f"whitespace is not allowed between ':{name.value}' and '('", opening
            )
        if self._peek().kind == TokenType.RPAREN:
            raise self._error(f"empty :{name.value}()", self._peek())
        inner = self._parse_list()
        closing = self._peek()
        if closing.kind != TokenType.RPAREN:
            raise self._error(
                f"unbalanced '(' opened at position {opening.position}: "
                f"expected ')' but found {self._describe(closing)}",
                closing,
            )
        self._advance()
        return name.value, inner


def parse(tokens: Sequence[Token], source: str = "") -> SelectorList:
    """
    Parse a token stream into a SelectorList.

    @throws SelectorSyntaxError naming the offending position
    """
    return SelectorParser(tokens, source).parse()


def parse_selector(text: str) -> SelectorList:
    """Tokenize and parse selector text; the result remembers ``text`` for messages."""
    return replace(parse(tokenize(text), text), source=text)
