# -----------------------------------------------------------------------------
# Expression configuration & RPN producer
# Purpose:
#   Fluent configurator that collects variable names, custom functions and
#   operators for one expression, validates them, and hands everything to the
#   shunting-yard engine to obtain the RPN token sequence.
# Rules enforced at compile():
#   - pi, π, e, φ are always part of the variable-name set.
#   - No variable may share its name with a built-in/custom function, and a
#     caller may not redeclare a reserved constant.
#   - Engine syntax failures surface as TokenizationError.
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Set

from .errors import (
    InvalidExpressionError,
    InvalidFunctionNameError,
    InvalidOperatorSymbolError,
    NameCollisionError,
    TokenizationError,
)
from .shunting_yard import convert_to_rpn
from .tokenizer import ExpressionSyntaxError
from .tokens import (
    RESERVED_CONSTANTS,
    Function,
    Operator,
    Token,
    get_builtin_function,
    is_allowed_operator_char,
    is_valid_function_name,
)

logger = logging.getLogger(__name__)


def configure(expression: str) -> "ExpressionParser":
    """Entry point: `configure("2x^2 + y").with_variables("x", "y").compile()`."""
    return ExpressionParser(expression)


class ExpressionParser:
    def __init__(self, expression: str):
        if expression is None or not str(expression).strip():
            raise InvalidExpressionError("Expression can not be empty")
        self.expression = expression
        self._functions: Dict[str, Function] = {}
        self._operators: Dict[str, Operator] = {}
        self._names: Set[str] = set()
        self._implicit = True

    # ---------------- fluent configuration ----------------

    def with_variable(self, name: str) -> "ExpressionParser":
        self._names.add(name)
        return self

    def with_variables(self, *names: str) -> "ExpressionParser":
        for name in names:
            self.with_variable(name)
        return self

    def with_function(self, function: Function) -> "ExpressionParser":
        if not is_valid_function_name(function.name):
            raise InvalidFunctionNameError(function.name)
        self._functions[function.name] = function
        return self

    def with_functions(self, *functions: Function) -> "ExpressionParser":
        for function in functions:
            self.with_function(function)
        return self

    def with_operator(self, operator: Operator) -> "ExpressionParser":
        self._check_operator_symbol(operator)
        self._operators[operator.symbol] = operator
        return self

    def with_operators(self, *operators: Operator) -> "ExpressionParser":
        for operator in operators:
            self.with_operator(operator)
        return self

    def with_implicit_multiplication(self, enabled: bool) -> "ExpressionParser":
        self._implicit = bool(enabled)
        return self

    @staticmethod
    def _check_operator_symbol(operator: Operator):
        symbol = operator.symbol
        if not symbol or not all(is_allowed_operator_char(ch) for ch in symbol):
            raise InvalidOperatorSymbolError(symbol)

    # ---------------- read-only views ----------------

    @property
    def variable_names(self) -> Set[str]:
        """Caller-declared names plus the reserved constants."""
        return set(self._names) | set(RESERVED_CONSTANTS)

    @property
    def implicit_multiplication(self) -> bool:
        return self._implicit

    # ---------------- compile ----------------

    def _check_collisions(self, names: Iterable[str]):
        reserved = sorted(self._names & set(RESERVED_CONSTANTS))
        if reserved:
            raise NameCollisionError(
                reserved[0], f"The variable name '{reserved[0]}' is reserved for a constant")
        for name in sorted(names):
            if get_builtin_function(name) is not None or name in self._functions:
                raise NameCollisionError(name)

    def compile(self) -> List[Token]:
        """
        Produce the RPN token sequence for the configured expression.
        Safe to call repeatedly: the declared names are never mutated.
        """
        names = self.variable_names
        self._check_collisions(names)
        try:
            rpn = convert_to_rpn(
                self.expression,
                dict(self._functions),
                dict(self._operators),
                names,
                self._implicit,
            )
        except ExpressionSyntaxError as e:
            logger.debug(f"Tokenization of {self.expression!r} failed: {e}")
            raise TokenizationError(str(e)) from e
        logger.debug(f"Compiled {self.expression!r} into RPN: {' '.join(str(t) for t in rpn)}")
        return rpn
