"""Gate expression language.

A deliberately small, non-Turing-complete condition language evaluated
against a wave's payload. Expressions are tokenized and parsed into a tree;
evaluation never executes user code.

Grammar::

    expression  := disjunction ( "&&" disjunction )*
    disjunction := term ( "||" term )*
    term        := "!" PATH | PATH [ OP literal ]
    literal     := STRING | NUMBER | "true" | "false" | "null" | TEXT
    OP          := "==" | "!=" | ">=" | "<=" | ">" | "<"

Unless it is quoted, everything after an operator up to the next ``&&`` or
``||`` is one literal. Text that is not a number or keyword compares as a
string, spaces and apostrophes included (``name == O'Brien``).

``&&`` binds looser than ``||``: ``a || b && c`` means ``(a || b) && c``.

Evaluation fails closed: any error (syntax or runtime) makes the gate
evaluate to ``False``.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, NamedTuple, Protocol

from weaver.runtime.wave import Wave

logger = logging.getLogger(__name__)


class GateSyntaxError(ValueError):
    """The expression is not part of the gate language."""


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"


MISSING: Any = _Missing()

_TOKEN_RE = re.compile(
    r"""
    (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    |(?P<number>-?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)(?=[\s&|!=<>]|$)
    |(?P<path>[A-Za-z_]\w*(?:\.\w+)*)(?=[\s&|!=<>]|$)
    |(?P<op>==|!=|>=|<=|>|<)
    |(?P<and>&&)
    |(?P<or>\|\|)
    |(?P<not>!)
    |(?P<word>[^\s&|!=<>"']+)
    """,
    re.VERBOSE,
)

_NUMBER_RE = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_IDENT_RE = re.compile(r"[A-Za-z_]\w*(?:\.\w+)*")
_RAW_LITERAL_RE = re.compile(r"(?:(?!&&|\|\|).)+", re.DOTALL)


class Token(NamedTuple):
    kind: str
    text: str


def tokenize(expression: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    length = len(expression)
    while pos < length:
        if expression[pos].isspace():
            pos += 1
            continue
        match = _TOKEN_RE.match(expression, pos)
        if match is None or match.lastgroup is None:
            raise GateSyntaxError(f"Unexpected character {expression[pos]!r} at {pos}")
        tokens.append(Token(match.lastgroup, match.group()))
        pos = match.end()
        if match.lastgroup == "op":
            pos = _raw_literal(expression, pos, tokens)
    return tokens


def _raw_literal(expression: str, pos: int, tokens: list[Token]) -> int:
    """Take the unquoted right-hand side of a comparison as a single token."""

    while pos < len(expression) and expression[pos].isspace():
        pos += 1
    if pos >= len(expression) or expression[pos] in "\"'":
        return pos
    match = _RAW_LITERAL_RE.match(expression, pos)
    if match is None:
        return pos

    text = match.group().strip()
    if _NUMBER_RE.fullmatch(text):
        kind = "number"
    elif _IDENT_RE.fullmatch(text):
        kind = "path"
    else:
        kind = "word"
    tokens.append(Token(kind, text))
    return match.end()


def resolve_path(payload: Any, parts: tuple[str, ...]) -> Any:
    """Walk a dotted path through nested mappings and lists.

    Returns ``MISSING`` as soon as a segment cannot be followed.
    """

    current = payload
    for part in parts:
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, list | tuple) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def truthy(value: Any) -> bool:
    if value is MISSING or value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    # Containers are truthy even when empty.
    return True


def to_number(value: Any) -> float:
    if value is MISSING:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, bool | int | float):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def loose_equals(left: Any, right: Any) -> bool:
    """Equality with numeric coercion between numbers, numeric strings and booleans."""

    left_null = left is MISSING or left is None
    right_null = right is MISSING or right is None
    if left_null or right_null:
        return left_null and right_null

    if isinstance(left, bool):
        left = int(left)
    if isinstance(right, bool):
        right = int(right)

    left_num = isinstance(left, int | float)
    right_num = isinstance(right, int | float)
    if left_num and isinstance(right, str):
        return left == to_number(right)
    if right_num and isinstance(left, str):
        return to_number(left) == right
    return bool(left == right)


_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": loose_equals,
    "!=": lambda a, b: not loose_equals(a, b),
    ">": lambda a, b: to_number(a) > to_number(b),
    "<": lambda a, b: to_number(a) < to_number(b),
    ">=": lambda a, b: to_number(a) >= to_number(b),
    "<=": lambda a, b: to_number(a) <= to_number(b),
}


class GateNode(Protocol):
    def evaluate(self, payload: Mapping[str, Any]) -> bool: ...


@dataclass(frozen=True, slots=True)
class PathTruth:
    parts: tuple[str, ...]

    def evaluate(self, payload: Mapping[str, Any]) -> bool:
        return truthy(resolve_path(payload, self.parts))


@dataclass(frozen=True, slots=True)
class Negation:
    operand: PathTruth

    def evaluate(self, payload: Mapping[str, Any]) -> bool:
        return not self.operand.evaluate(payload)


@dataclass(frozen=True, slots=True)
class Comparison:
    parts: tuple[str, ...]
    operator: str
    literal: Any

    def evaluate(self, payload: Mapping[str, Any]) -> bool:
        return _COMPARATORS[self.operator](resolve_path(payload, self.parts), self.literal)


@dataclass(frozen=True, slots=True)
class AllOf:
    operands: tuple[GateNode, ...]

    def evaluate(self, payload: Mapping[str, Any]) -> bool:
        return all(o.evaluate(payload) for o in self.operands)


@dataclass(frozen=True, slots=True)
class AnyOf:
    operands: tuple[GateNode, ...]

    def evaluate(self, payload: Mapping[str, Any]) -> bool:
        return any(o.evaluate(payload) for o in self.operands)


def _unquote(text: str) -> str:
    return re.sub(r"\\(.)", r"\1", text[1:-1])


def _literal(token: Token) -> Any:
    if token.kind == "string":
        return _unquote(token.text)
    if token.kind == "number":
        text = token.text
        if re.fullmatch(r"-?\d+", text):
            return int(text)
        return float(text)
    if token.kind == "word":
        return token.text
    if token.kind == "path":
        keywords: dict[str, Any] = {"true": True, "false": False, "null": None}
        if token.text in keywords:
            return keywords[token.text]
        # Bare words compare as strings.
        return token.text
    raise GateSyntaxError(f"Expected a literal, got {token.text!r}")


class _Parser:
    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    def _peek(self) -> Token | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _take(self, kind: str | None = None) -> Token:
        token = self._peek()
        if token is None:
            raise GateSyntaxError("Unexpected end of expression")
        if kind is not None and token.kind != kind:
            raise GateSyntaxError(f"Expected {kind}, got {token.text!r}")
        self._pos += 1
        return token

    def parse(self) -> GateNode:
        if not self._tokens:
            raise GateSyntaxError("Empty expression")
        node = self._expression()
        leftover = self._peek()
        if leftover is not None:
            raise GateSyntaxError(f"Unexpected token {leftover.text!r}")
        return node

    def _expression(self) -> GateNode:
        operands = [self._disjunction()]
        while (token := self._peek()) is not None and token.kind == "and":
            self._take()
            operands.append(self._disjunction())
        return operands[0] if len(operands) == 1 else AllOf(tuple(operands))

    def _disjunction(self) -> GateNode:
        operands = [self._term()]
        while (token := self._peek()) is not None and token.kind == "or":
            self._take()
            operands.append(self._term())
        return operands[0] if len(operands) == 1 else AnyOf(tuple(operands))

    def _term(self) -> GateNode:
        token = self._peek()
        if token is not None and token.kind == "not":
            self._take()
            return Negation(PathTruth(self._parts()))

        parts = self._parts()
        token = self._peek()
        if token is not None and token.kind == "op":
            operator = self._take().text
            return Comparison(parts, operator, _literal(self._take()))
        return PathTruth(parts)

    def _parts(self) -> tuple[str, ...]:
        return tuple(self._take("path").text.split("."))


@lru_cache(maxsize=1024)
def compile_gate(expression: str) -> GateNode:
    """Parse an expression into an evaluable tree. Raises ``GateSyntaxError``."""

    return _Parser(tokenize(expression)).parse()


def evaluate_gate(expression: str, wave: Wave | Mapping[str, Any]) -> bool:
    """Decide whether a wave may cross a gate. Never raises; errors mean ``False``."""

    try:
        payload = wave.payload if isinstance(wave, Wave) else wave
        return compile_gate(expression).evaluate(payload)
    except Exception:
        logger.debug("Gate failed closed", extra={"expression": expression}, exc_info=True)
        return False
