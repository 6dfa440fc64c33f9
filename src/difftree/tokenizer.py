# -----------------------------------------------------------------------------
# Infix tokenizer
# Purpose:
#   Split a raw expression string into typed tokens (numbers, names, operators,
#   parentheses, argument separators) ready for the shunting-yard step.
# Behaviour:
#   - Names resolve by longest known prefix whose remainder is also known (or
#     starts a number), so "xy" with x and y declared yields x * y while
#     "xval" stays one name. Unresolved names become variable tokens; the tree
#     builder reports them. An unresolved name directly followed by "(" is an unknown
#     function and fails here.
#   - "+" and "-" are unary at the start, after an operator, "(" or ",".
#   - With implicit multiplication enabled a "*" is inserted between adjacent
#     operands ("2x", "x(y)", ")(", "2sin(x)"); disabled, that is an error.
# -----------------------------------------------------------------------------

from __future__ import annotations
import re
from typing import List, Mapping, Optional, Set, Tuple

from .tokens import (
    MULTIPLICATION,
    Function,
    FunctionToken,
    NumberToken,
    Operator,
    OperatorToken,
    ParenCloseToken,
    ParenOpenToken,
    SeparatorToken,
    Token,
    TokenKind,
    VariableToken,
    get_builtin_function,
    get_builtin_operator,
    is_allowed_operator_char,
)

_NUMBER_RE = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_NAME_RE = re.compile(r"[^\W\d]\w*")


class ExpressionSyntaxError(Exception):
    """Syntax failure raised by the tokenizer / shunting-yard engine."""

    def __init__(self, message: str, position: Optional[int] = None):
        super().__init__(message)
        self.position = position


class Tokenizer:
    def __init__(self, expression: str, functions: Mapping[str, Function],
                 operators: Mapping[str, Operator], variable_names: Set[str],
                 implicit_multiplication: bool = True):
        self.expression = expression
        self.functions = functions
        self.operators = operators
        self.variable_names = variable_names
        self.implicit_multiplication = implicit_multiplication

    # ---------------- lookups ----------------

    def _lookup_function(self, name: str) -> Optional[Function]:
        # User functions shadow built-ins of the same name
        if name in self.functions:
            return self.functions[name]
        return get_builtin_function(name)

    def _next_char(self, pos: int) -> Optional[str]:
        text = self.expression
        while pos < len(text) and text[pos].isspace():
            pos += 1
        return text[pos] if pos < len(text) else None

    @staticmethod
    def _expects_operand(last: Optional[Token]) -> bool:
        """True when the next "+"/"-" must be read as a unary sign."""
        if last is None:
            return True
        if last.kind in (TokenKind.PAREN_OPEN, TokenKind.SEPARATOR):
            return True
        if last.kind is TokenKind.OPERATOR:
            op = last.operator
            # postfix operators (e.g. factorial) close an operand
            return not (op.arity == 1 and op.left_associative)
        return False

    @staticmethod
    def _ends_operand(last: Optional[Token]) -> bool:
        if last is None:
            return False
        if last.kind in (TokenKind.NUMBER, TokenKind.VARIABLE, TokenKind.PAREN_CLOSE):
            return True
        if last.kind is TokenKind.OPERATOR:
            return last.operator.arity == 1 and last.operator.left_associative
        return False

    # ---------------- helpers ----------------

    def _before_operand(self, tokens: List[Token], new: Token, pos: int):
        """Insert the implicit "*" between two adjacent operands, or fail."""
        last = tokens[-1] if tokens else None
        if not self._ends_operand(last):
            return
        if last.kind is TokenKind.NUMBER and new.kind is TokenKind.NUMBER:
            raise ExpressionSyntaxError(f"Invalid number at position {pos}", pos)
        if not self.implicit_multiplication:
            raise ExpressionSyntaxError(
                f"Missing operator before '{new}' at position {pos} "
                "(implicit multiplication is disabled)", pos)
        tokens.append(OperatorToken(MULTIPLICATION))

    def _is_known(self, name: str) -> bool:
        return name in self.variable_names or self._lookup_function(name) is not None

    def _splits_cleanly(self, rest: str) -> bool:
        """True when `rest` is empty, starts a number, or is itself a run of known names."""
        if not rest or rest[0].isdigit():
            return True
        return any(self._is_known(rest[:length]) and self._splits_cleanly(rest[length:])
                   for length in range(len(rest), 0, -1))

    def _resolve_name(self, run: str, end: int) -> Tuple[Token, int]:
        # "xy" splits into x, y only if every piece is known; "xval" stays whole
        for length in range(len(run), 0, -1):
            name = run[:length]
            if not self._splits_cleanly(run[length:]):
                continue
            function = self._lookup_function(name)
            if function is not None:
                return FunctionToken(function), length
            if name in self.variable_names:
                return VariableToken(name), length
        if self._next_char(end) == "(":
            raise ExpressionSyntaxError(f"Unknown function '{run}'", end - len(run))
        return VariableToken(run), len(run)

    def _resolve_operator(self, pos: int, last: Optional[Token]) -> Tuple[Operator, int]:
        text = self.expression
        end = pos
        while end < len(text) and is_allowed_operator_char(text[end]):
            end += 1
        unary = self._expects_operand(last)
        # longest symbol first; user operators take priority over built-ins
        for stop in range(end, pos, -1):
            symbol = text[pos:stop]
            custom = self.operators.get(symbol)
            if custom is not None:
                if custom.arity == 2 and unary:
                    continue
                return custom, stop - pos
            builtin = get_builtin_operator(symbol, 1 if unary else 2)
            if builtin is not None:
                return builtin, stop - pos
        raise ExpressionSyntaxError(f"Unknown operator '{text[pos:end]}' at position {pos}", pos)

    # ---------------- main entry ----------------

    def tokenize(self) -> List[Token]:
        text = self.expression
        tokens: List[Token] = []
        pos = 0
        while pos < len(text):
            ch = text[pos]
            last = tokens[-1] if tokens else None
            if ch.isspace():
                pos += 1
            elif ch.isdigit() or ch == ".":
                m = _NUMBER_RE.match(text, pos)
                if m is None:
                    raise ExpressionSyntaxError(f"Invalid number at position {pos}", pos)
                token = NumberToken(float(m.group()))
                self._before_operand(tokens, token, pos)
                tokens.append(token)
                pos = m.end()
            elif ch.isalpha() or ch == "_":
                m = _NAME_RE.match(text, pos)
                token, length = self._resolve_name(m.group(), m.end())
                self._before_operand(tokens, token, pos)
                tokens.append(token)
                pos += length
                if token.kind is TokenKind.FUNCTION and self._next_char(pos) != "(":
                    raise ExpressionSyntaxError(
                        f"Function '{token.function.name}' must be followed by '('", pos)
            elif is_allowed_operator_char(ch):
                operator, length = self._resolve_operator(pos, last)
                tokens.append(OperatorToken(operator))
                pos += length
            elif ch == "(":
                token = ParenOpenToken()
                self._before_operand(tokens, token, pos)
                tokens.append(token)
                pos += 1
            elif ch == ")":
                tokens.append(ParenCloseToken())
                pos += 1
            elif ch == ",":
                tokens.append(SeparatorToken())
                pos += 1
            else:
                raise ExpressionSyntaxError(f"Unknown character '{ch}' at position {pos}", pos)
        return tokens
