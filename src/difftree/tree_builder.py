# -----------------------------------------------------------------------------
# RPN -> differentiable tree builder
# Purpose:
#   Rebuild an expression tree from the RPN sequence produced by the
#   expression parser, one token per recursive step, reading the sequence
#   back to front. Node construction goes exclusively through the injected
#   factory, so any runtime satisfying types.FunctionFactory works.
# Key points:
#   - Reading back to front means a binary operator's RIGHT operand is built
#     first, then its LEFT operand.
#   - Parentheses (if present) are transparent.
#   - The exponent of "^" must be constant; it is rebuilt as a fresh constant
#     from its value before reaching factory.pow.
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from typing import Callable, Dict, List, Sequence, Tuple

from .errors import (
    InvalidExpressionError,
    NameCollisionError,
    NumericTypeError,
    TokenizerError,
    UnknownVariableError,
    UnsupportedFunctionError,
    UnsupportedOperationError,
    UnsupportedOperatorError,
)
from .expression_parser import configure
from .tokens import RESERVED_CONSTANTS, Function, Operator, Token, TokenKind
from .types import DifferentiableNode, FunctionFactory, VariableNode

logger = logging.getLogger(__name__)

Node = DifferentiableNode

# Closed catalog of unary functions the tree can represent.
_FUNCTIONS: Dict[str, Callable[[FunctionFactory, Node], Node]] = {
    "acos": lambda factory, arg: factory.acos(arg),
    "asin": lambda factory, arg: factory.asin(arg),
    "atan": lambda factory, arg: factory.atan(arg),
    "log": lambda factory, arg: factory.log(arg),
    "cos": lambda factory, arg: factory.cos(arg),
    "sin": lambda factory, arg: factory.sin(arg),
    "sqrt": lambda factory, arg: factory.sqrt(arg),
    "tan": lambda factory, arg: factory.tan(arg),
    "exp": lambda factory, arg: factory.exp(arg),
}
SUPPORTED_FUNCTIONS = frozenset(_FUNCTIONS)


class TokenCursor:
    """Single-pass cursor over an RPN sequence, yielding the last token first."""

    def __init__(self, rpn: Sequence[Token]):
        self._tokens: List[Token] = list(reversed(rpn))
        self._index = 0

    def next(self) -> Token:
        if self._index >= len(self._tokens):
            raise TokenizerError("Unexpected end of expression: no more tokens to read")
        token = self._tokens[self._index]
        self._index += 1
        return token

    def has_next(self) -> bool:
        return self._index < len(self._tokens)

    @property
    def remaining(self) -> int:
        return len(self._tokens) - self._index

    def __len__(self) -> int:
        return len(self._tokens)


class TreeBuilder:
    """
    Compile `expression` against the declared `variables` and build its tree.

        x = factory.var("x", 10.0)
        y = factory.var("y", 5.5)
        tree = TreeBuilder("2x^2 + y", factory, x, y).build_tree()

    One builder per compilation: the token cursor is consumed by build_tree().
    """

    def __init__(self, expression: str, factory: FunctionFactory, *variables: VariableNode,
                 functions: Sequence[Function] = (), operators: Sequence[Operator] = (),
                 implicit_multiplication: bool = True):
        if expression is None or not str(expression).strip():
            raise InvalidExpressionError("Invalid expression")
        self.expression = expression
        self.factory = factory
        self.variables: Tuple[VariableNode, ...] = tuple(variables)
        self._check_declarations()
        self._built = False
        self._unary_operators: Dict[str, Callable[[Node], Node]] = {
            "-": factory.neg,
            "+": lambda arg: arg,
        }
        self._binary_operators: Dict[str, Callable[[Node, Node], Node]] = {
            "+": factory.add,
            "-": factory.sub,
            "*": factory.mul,
            "/": factory.div,
            "^": self._power,
        }
        self.rpn = self._compile(functions, operators, implicit_multiplication)
        self._cursor = TokenCursor(self.rpn)

    # ---------------- construction helpers ----------------

    def _check_declarations(self):
        seen = set()
        field = self.factory.field
        for variable in self.variables:
            if variable.name in seen:
                raise NameCollisionError(
                    variable.name, f"Variable '{variable.name}' is declared more than once")
            seen.add(variable.name)
            if not field.is_scalar(variable.value):
                raise NumericTypeError(
                    f"Variable '{variable.name}' holds a {type(variable.value).__name__}, "
                    f"but the factory works with {field.name} scalars"
                )

    def _compile(self, functions, operators, implicit_multiplication) -> List[Token]:
        parser = (configure(self.expression)
                  .with_variables(*(v.name for v in self.variables))
                  .with_functions(*functions)
                  .with_operators(*operators)
                  .with_implicit_multiplication(implicit_multiplication))
        return parser.compile()

    # ---------------- public ----------------

    def build_tree(self) -> Node:
        """
        Build the tree for the expression.
        Raises TokenizerError (structural), UnknownVariableError or
        UnsupportedOperationError (semantic); never returns a partial tree.
        """
        if self._built:
            raise TokenizerError("The token stream was already consumed; create a new builder")
        self._built = True
        tree = self._next_node()
        while self._cursor.has_next():
            token = self._cursor.next()
            if token.kind not in (TokenKind.PAREN_OPEN, TokenKind.PAREN_CLOSE):
                raise TokenizerError(f"Unexpected token '{token}' after the end of the expression")
        logger.debug(f"Built tree for {self.expression!r}: {tree}")
        return tree

    # ---------------- recursive descent ----------------

    def _next_node(self) -> Node:
        token = self._cursor.next()
        kind = token.kind
        if kind is TokenKind.NUMBER:
            return self._constant(token)
        if kind is TokenKind.VARIABLE:
            return self._variable(token)
        if kind is TokenKind.FUNCTION:
            return self._function(token)
        if kind is TokenKind.OPERATOR:
            return self._operator(token)
        if kind in (TokenKind.PAREN_OPEN, TokenKind.PAREN_CLOSE):
            return self._next_node()
        raise TokenizerError("Invalid expression")

    def _constant(self, token) -> Node:
        # literals are doubles; the field converts them explicitly
        return self.factory.val(self.factory.field.from_double(token.value))

    def _variable(self, token) -> Node:
        name = token.name
        for variable in self.variables:
            if variable.name == name:
                return variable
        # reserved names can never be declared, so they are constants, not unknowns
        if name in RESERVED_CONSTANTS:
            return self.factory.val(self.factory.field.from_double(RESERVED_CONSTANTS[name]))
        raise UnknownVariableError(name)

    def _function(self, token) -> Node:
        name = token.function.name
        build = _FUNCTIONS.get(name)
        if build is None:
            raise UnsupportedFunctionError(name)
        return build(self.factory, self._next_node())

    def _operator(self, token) -> Node:
        operator = token.operator
        if operator.arity == 1:
            unary = self._unary_operators.get(operator.symbol)
            if unary is None:
                raise UnsupportedOperatorError(operator.symbol)
            return unary(self._next_node())
        right = self._next_node()
        left = self._next_node()
        binary = self._binary_operators.get(operator.symbol)
        if binary is None:
            raise UnsupportedOperatorError(operator.symbol)
        return binary(left, right)

    def _power(self, left: Node, right: Node) -> Node:
        if not right.is_constant:
            raise UnsupportedOperationError("Pow argument was expected to be a constant")
        constant = self.factory.val(right.value)
        return self.factory.pow(left, constant)
