"""
RSQL filter expressions.

Parses strings such as ``name==foo*;(age=gt=18,status=in=(A,B))`` into a
small node tree that the stores compile into SQLAlchemy predicates or
MongoDB filter documents.

Grammar:
    or          = and { ("," | " or ") and }
    and         = constraint { (";" | " and ") constraint }
    constraint  = "(" or ")" | comparison
    comparison  = selector operator arguments
    arguments   = "(" value { "," value } ")" | value
    value       = unreserved-string | "'" ... "'" | '"' ... '"'

Usage:
    node = parse_query("name==foo;age=ge=18")
    node.accept(my_visitor)
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from shared.utils.exceptions import InvalidQueryError
from shared.utils.strings import is_blank

R = TypeVar("R")


# =============================================================================
# Operators
# =============================================================================


@dataclass(frozen=True)
class ComparisonOperator:
    """Comparison operator with its accepted spellings."""

    name: str
    symbols: tuple[str, ...]
    multi_value: bool = False

    @property
    def symbol(self) -> str:
        return self.symbols[0]

    def __str__(self) -> str:
        return self.symbol


EQUAL = ComparisonOperator("EQUAL", ("==",))
NOT_EQUAL = ComparisonOperator("NOT_EQUAL", ("!=",))
LESS_THAN = ComparisonOperator("LESS_THAN", ("=lt=", "<"))
LESS_THAN_OR_EQUAL = ComparisonOperator("LESS_THAN_OR_EQUAL", ("=le=", "<="))
GREATER_THAN = ComparisonOperator("GREATER_THAN", ("=gt=", ">"))
GREATER_THAN_OR_EQUAL = ComparisonOperator("GREATER_THAN_OR_EQUAL", ("=ge=", ">="))
IN = ComparisonOperator("IN", ("=in=",), multi_value=True)
NOT_IN = ComparisonOperator("NOT_IN", ("=out=",), multi_value=True)
LIKE = ComparisonOperator("LIKE", ("=like=",))
ILIKE = ComparisonOperator("ILIKE", ("=ilike=",))
IS_NULL = ComparisonOperator("IS_NULL", ("=isnull=",))
NOT_NULL = ComparisonOperator("NOT_NULL", ("=notnull=",))

DEFAULT_OPERATORS: tuple[ComparisonOperator, ...] = (
    EQUAL,
    NOT_EQUAL,
    LESS_THAN,
    LESS_THAN_OR_EQUAL,
    GREATER_THAN,
    GREATER_THAN_OR_EQUAL,
    IN,
    NOT_IN,
    LIKE,
    ILIKE,
    IS_NULL,
    NOT_NULL,
)

WILDCARD = "*"


# =============================================================================
# Nodes
# =============================================================================


class RSQLVisitor(ABC, Generic[R]):
    """Visitor over a parsed filter tree."""

    @abstractmethod
    def visit_and(self, node: AndNode) -> R:
        ...

    @abstractmethod
    def visit_or(self, node: OrNode) -> R:
        ...

    @abstractmethod
    def visit_comparison(self, node: ComparisonNode) -> R:
        ...


class Node(ABC):
    """Base class of filter tree nodes."""

    @abstractmethod
    def accept(self, visitor: RSQLVisitor[R]) -> R:
        ...


@dataclass(frozen=True)
class ComparisonNode(Node):
    """``selector operator arguments``."""

    selector: str
    operator: ComparisonOperator
    arguments: tuple[str, ...]

    @property
    def argument(self) -> str:
        return self.arguments[0]

    def accept(self, visitor: RSQLVisitor[R]) -> R:
        return visitor.visit_comparison(self)

    def __str__(self) -> str:
        values = [_quote(a) for a in self.arguments]
        if self.operator.multi_value:
            return f"{self.selector}{self.operator}({','.join(values)})"
        return f"{self.selector}{self.operator}{values[0]}"


@dataclass(frozen=True)
class LogicalNode(Node):
    children: tuple[Node, ...]

    separator = ";"

    def __iter__(self):
        return iter(self.children)

    def __str__(self) -> str:
        return "(" + self.separator.join(str(c) for c in self.children) + ")"


@dataclass(frozen=True)
class AndNode(LogicalNode):
    separator = ";"

    def accept(self, visitor: RSQLVisitor[R]) -> R:
        return visitor.visit_and(self)


@dataclass(frozen=True)
class OrNode(LogicalNode):
    separator = ","

    def accept(self, visitor: RSQLVisitor[R]) -> R:
        return visitor.visit_or(self)


_UNRESERVED = re.compile(r"[^\s\"'();,=!~<>]+")
_FIQL_OPERATOR = re.compile(r"=[A-Za-z]*=")
_SHORT_OPERATOR = re.compile(r"!=|<=|>=|<|>")


def _quote(value: str) -> str:
    if value and _UNRESERVED.fullmatch(value):
        return value
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


# =============================================================================
# Parser
# =============================================================================


class _Parser:
    """Recursive-descent parser over one source string."""

    def __init__(self, source: str, operators: dict[str, ComparisonOperator]):
        self.source = source
        self.operators = operators
        self.pos = 0

    def error(self, reason: str, position: int | None = None) -> InvalidQueryError:
        return InvalidQueryError(
            self.source,
            position=self.pos if position is None else position,
            reason=reason,
        )

    def parse(self) -> Node:
        node = self.parse_or()
        self.skip_whitespace()
        if self.pos < len(self.source):
            raise self.error(f"unexpected character {self.source[self.pos]!r}")
        return node

    # --- helpers ---------------------------------------------------------

    def peek(self) -> str:
        return self.source[self.pos] if self.pos < len(self.source) else ""

    def skip_whitespace(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos].isspace():
            self.pos += 1

    def match_keyword(self, word: str) -> bool:
        end = self.pos + len(word)
        if self.pos == 0 or not self.source[self.pos - 1].isspace():
            return False
        if self.source[self.pos:end].lower() != word:
            return False
        if end < len(self.source) and not (self.source[end].isspace() or self.source[end] == "("):
            return False
        self.pos = end
        return True

    def expect(self, char: str) -> None:
        self.skip_whitespace()
        if self.peek() != char:
            found = repr(self.peek()) if self.peek() else "end of input"
            raise self.error(f"expected {char!r}, found {found}")
        self.pos += 1

    # --- grammar ---------------------------------------------------------

    def parse_or(self) -> Node:
        nodes = [self.parse_and()]
        while True:
            self.skip_whitespace()
            if self.peek() == ",":
                self.pos += 1
            elif not self.match_keyword("or"):
                break
            nodes.append(self.parse_and())
        return nodes[0] if len(nodes) == 1 else OrNode(tuple(nodes))

    def parse_and(self) -> Node:
        nodes = [self.parse_constraint()]
        while True:
            self.skip_whitespace()
            if self.peek() == ";":
                self.pos += 1
            elif not self.match_keyword("and"):
                break
            nodes.append(self.parse_constraint())
        return nodes[0] if len(nodes) == 1 else AndNode(tuple(nodes))

    def parse_constraint(self) -> Node:
        self.skip_whitespace()
        if self.peek() == "(":
            self.pos += 1
            node = self.parse_or()
            self.expect(")")
            return node
        return self.parse_comparison()

    def parse_comparison(self) -> ComparisonNode:
        start = self.pos
        match = _UNRESERVED.match(self.source, self.pos)
        if not match:
            raise self.error("expected selector")
        selector = match.group()
        self.pos = match.end()

        self.skip_whitespace()
        operator_start = self.pos
        match = _FIQL_OPERATOR.match(self.source, self.pos) or _SHORT_OPERATOR.match(
            self.source, self.pos
        )
        if not match:
            raise self.error(f"expected operator after selector {selector!r}")
        symbol = match.group()
        operator = self.operators.get(symbol.lower())
        if operator is None:
            raise self.error(f"unknown operator {symbol!r}", operator_start)
        self.pos = match.end()

        self.skip_whitespace()
        if self.peek() == "(":
            self.pos += 1
            arguments = [self.parse_value()]
            while True:
                self.skip_whitespace()
                if self.peek() != ",":
                    break
                self.pos += 1
                arguments.append(self.parse_value())
            self.expect(")")
        else:
            arguments = [self.parse_value()]

        if not operator.multi_value and len(arguments) > 1:
            raise self.error(f"operator {symbol!r} expects a single argument", start)
        return ComparisonNode(selector, operator, tuple(arguments))

    def parse_value(self) -> str:
        self.skip_whitespace()
        quote = self.peek()
        if quote in ("'", '"'):
            return self.parse_quoted(quote)
        match = _UNRESERVED.match(self.source, self.pos)
        if not match:
            raise self.error("expected argument")
        self.pos = match.end()
        return match.group()

    def parse_quoted(self, quote: str) -> str:
        start = self.pos
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.source):
            char = self.source[self.pos]
            if char == "\\" and self.pos + 1 < len(self.source):
                chars.append(self.source[self.pos + 1])
                self.pos += 2
                continue
            if char == quote:
                self.pos += 1
                return "".join(chars)
            chars.append(char)
            self.pos += 1
        raise self.error("unterminated quoted argument", start)


class RSQLParser:
    """
    Parser for RSQL/FIQL filter expressions.

    Custom operator sets may be supplied; symbols are matched
    case-insensitively.
    """

    def __init__(self, operators: Iterable[ComparisonOperator] = DEFAULT_OPERATORS):
        self._operators = {
            symbol.lower(): operator
            for operator in operators
            for symbol in operator.symbols
        }

    @property
    def operators(self) -> frozenset[ComparisonOperator]:
        return frozenset(self._operators.values())

    def parse(self, source: str) -> Node:
        if source is None or is_blank(source):
            raise InvalidQueryError(source or "", position=0, reason="empty expression")
        return _Parser(source, self._operators).parse()


default_parser = RSQLParser()


def parse_query(source: str | None, parser: RSQLParser | None = None) -> Node | None:
    """Parse ``source``; blank or missing input means no filter."""
    if source is None or is_blank(source):
        return None
    return (parser or default_parser).parse(source)
