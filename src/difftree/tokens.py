# -----------------------------------------------------------------------------
# Token model & built-in catalog
# Purpose:
#   Immutable token types produced by the tokenizer / shunting-yard engine and
#   consumed by the tree builder, plus the descriptors for functions and
#   operators and the built-in catalogs both stages consult.
# Notes:
#   - Precedences follow the classic layout: additive < multiplicative <
#     unary sign < power.
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class TokenKind(Enum):
    NUMBER = "number"
    VARIABLE = "variable"
    OPERATOR = "operator"
    FUNCTION = "function"
    PAREN_OPEN = "paren_open"
    PAREN_CLOSE = "paren_close"
    SEPARATOR = "separator"


# ---------------------------- descriptors ------------------------------------

@dataclass(frozen=True)
class Function:
    """
    A named function usable in expressions, e.g. `sin(x)` or `pow(x, 2)`.
    - name: identifier used in the expression text
    - arity: number of comma-separated arguments
    """
    name: str
    arity: int = 1


@dataclass(frozen=True)
class Operator:
    """
    An operator symbol with its parsing properties.
    - arity: 1 (unary, prefix or postfix) or 2 (binary)
    - precedence: higher binds tighter
    """
    symbol: str
    arity: int
    left_associative: bool
    precedence: int

    def __post_init__(self):
        if self.arity not in (1, 2):
            raise ValueError(f"Operator '{self.symbol}' must take 1 or 2 operands, got {self.arity}")


PRECEDENCE_ADDITION = 500
PRECEDENCE_SUBTRACTION = PRECEDENCE_ADDITION
PRECEDENCE_MULTIPLICATION = 1000
PRECEDENCE_DIVISION = PRECEDENCE_MULTIPLICATION
PRECEDENCE_MODULO = PRECEDENCE_DIVISION
PRECEDENCE_UNARY_MINUS = 5000
PRECEDENCE_UNARY_PLUS = PRECEDENCE_UNARY_MINUS
PRECEDENCE_POWER = 10000

ALLOWED_OPERATOR_CHARS = frozenset("+-*/%^!#§$&;:~<>|=÷")


def is_allowed_operator_char(ch: str) -> bool:
    return ch in ALLOWED_OPERATOR_CHARS


ADDITION = Operator("+", 2, True, PRECEDENCE_ADDITION)
SUBTRACTION = Operator("-", 2, True, PRECEDENCE_SUBTRACTION)
MULTIPLICATION = Operator("*", 2, True, PRECEDENCE_MULTIPLICATION)
DIVISION = Operator("/", 2, True, PRECEDENCE_DIVISION)
MODULO = Operator("%", 2, True, PRECEDENCE_MODULO)
POWER = Operator("^", 2, False, PRECEDENCE_POWER)
UNARY_MINUS = Operator("-", 1, False, PRECEDENCE_UNARY_MINUS)
UNARY_PLUS = Operator("+", 1, False, PRECEDENCE_UNARY_PLUS)

BINARY_OPERATORS: Dict[str, Operator] = {
    op.symbol: op for op in (ADDITION, SUBTRACTION, MULTIPLICATION, DIVISION, MODULO, POWER)
}
UNARY_OPERATORS: Dict[str, Operator] = {op.symbol: op for op in (UNARY_MINUS, UNARY_PLUS)}


def get_builtin_operator(symbol: str, arity: int) -> Optional[Operator]:
    table = UNARY_OPERATORS if arity == 1 else BINARY_OPERATORS
    return table.get(symbol)


BUILTIN_FUNCTIONS: Dict[str, Function] = {f.name: f for f in (
    Function("sin", 1),
    Function("cos", 1),
    Function("tan", 1),
    Function("cot", 1),
    Function("log", 1),
    Function("log2", 1),
    Function("log10", 1),
    Function("log1p", 1),
    Function("abs", 1),
    Function("acos", 1),
    Function("asin", 1),
    Function("atan", 1),
    Function("cbrt", 1),
    Function("floor", 1),
    Function("sinh", 1),
    Function("sqrt", 1),
    Function("tanh", 1),
    Function("cosh", 1),
    Function("ceil", 1),
    Function("pow", 2),
    Function("exp", 1),
    Function("expm1", 1),
    Function("signum", 1),
    Function("csc", 1),
    Function("sec", 1),
    Function("csch", 1),
    Function("sech", 1),
    Function("coth", 1),
    Function("logb", 2),
    Function("toradian", 1),
    Function("todegree", 1),
)}


def get_builtin_function(name: str) -> Optional[Function]:
    return BUILTIN_FUNCTIONS.get(name)


def is_valid_function_name(name: str) -> bool:
    if not name:
        return False
    first = name[0]
    if not (first.isalpha() or first == "_"):
        return False
    return all(ch.isalnum() or ch == "_" for ch in name[1:])


# Names always declared as variables; the builder binds them to these values.
RESERVED_CONSTANTS: Dict[str, float] = {
    "pi": math.pi,
    "π": math.pi,
    "e": math.e,
    "φ": 1.61803398874,
}


# ---------------------------- tokens -----------------------------------------

class Token:
    kind: TokenKind


@dataclass(frozen=True)
class NumberToken(Token):
    value: float
    kind = TokenKind.NUMBER

    def __str__(self) -> str:
        return f"{self.value:g}"


@dataclass(frozen=True)
class VariableToken(Token):
    name: str
    kind = TokenKind.VARIABLE

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class OperatorToken(Token):
    operator: Operator
    kind = TokenKind.OPERATOR

    def __str__(self) -> str:
        # Unary signs are marked so an RPN listing stays unambiguous
        if self.operator.arity == 1 and self.operator.symbol in UNARY_OPERATORS:
            return f"u{self.operator.symbol}"
        return self.operator.symbol


@dataclass(frozen=True)
class FunctionToken(Token):
    function: Function
    kind = TokenKind.FUNCTION

    def __str__(self) -> str:
        return self.function.name


@dataclass(frozen=True)
class ParenOpenToken(Token):
    kind = TokenKind.PAREN_OPEN

    def __str__(self) -> str:
        return "("


@dataclass(frozen=True)
class ParenCloseToken(Token):
    kind = TokenKind.PAREN_CLOSE

    def __str__(self) -> str:
        return ")"


@dataclass(frozen=True)
class SeparatorToken(Token):
    kind = TokenKind.SEPARATOR

    def __str__(self) -> str:
        return ","
