# -----------------------------------------------------------------------------
# Shunting-yard engine
# Purpose:
#   Convert the tokenizer's infix stream into Reverse Polish Notation using the
#   operators' precedence/associativity, then verify the RPN is well formed
#   (every operator/function has enough operands, exactly one result).
# Output:
#   A flat list of tokens in RPN order; parentheses and separators are dropped.
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import Iterable, List, Mapping, Set

from .tokenizer import ExpressionSyntaxError, Tokenizer
from .tokens import Function, Operator, Token, TokenKind


def _should_pop(incoming: Operator, top: Operator) -> bool:
    if incoming.left_associative:
        return incoming.precedence <= top.precedence
    return incoming.precedence < top.precedence


def _shunt(tokens: Iterable[Token]) -> List[Token]:
    output: List[Token] = []
    stack: List[Token] = []
    for token in tokens:
        kind = token.kind
        if kind in (TokenKind.NUMBER, TokenKind.VARIABLE):
            output.append(token)
        elif kind is TokenKind.FUNCTION:
            stack.append(token)
        elif kind is TokenKind.SEPARATOR:
            while stack and stack[-1].kind is not TokenKind.PAREN_OPEN:
                output.append(stack.pop())
            if not stack:
                raise ExpressionSyntaxError("Misplaced function separator ',' or mismatched parentheses")
        elif kind is TokenKind.OPERATOR:
            incoming = token.operator
            # a prefix operator has no left operand, so nothing on the stack can bind to it yet
            prefix = incoming.arity == 1 and not incoming.left_associative
            while not prefix and stack and stack[-1].kind is TokenKind.OPERATOR \
                    and _should_pop(incoming, stack[-1].operator):
                output.append(stack.pop())
            stack.append(token)
        elif kind is TokenKind.PAREN_OPEN:
            stack.append(token)
        elif kind is TokenKind.PAREN_CLOSE:
            while stack and stack[-1].kind is not TokenKind.PAREN_OPEN:
                output.append(stack.pop())
            if not stack:
                raise ExpressionSyntaxError("Mismatched parentheses detected. Please check the expression")
            stack.pop()
            if stack and stack[-1].kind is TokenKind.FUNCTION:
                output.append(stack.pop())
        else:
            raise ExpressionSyntaxError(f"Unknown token type: {kind}")
    while stack:
        token = stack.pop()
        if token.kind in (TokenKind.PAREN_OPEN, TokenKind.PAREN_CLOSE):
            raise ExpressionSyntaxError("Mismatched parentheses detected. Please check the expression")
        output.append(token)
    return output


def validate_rpn(rpn: List[Token]) -> None:
    """Simulate the operand stack; raise if the sequence can not reduce to one value."""
    count = 0
    for token in rpn:
        if token.kind in (TokenKind.NUMBER, TokenKind.VARIABLE):
            count += 1
            continue
        if token.kind is TokenKind.OPERATOR:
            needed, label = token.operator.arity, f"operator '{token.operator.symbol}'"
        else:
            needed, label = token.function.arity, f"function '{token.function.name}'"
        if count < needed:
            raise ExpressionSyntaxError(f"Not enough operands for {label}")
        count = count - needed + 1
    if count > 1:
        raise ExpressionSyntaxError(f"Too many operands: {count} values left after evaluation")
    if count == 0:
        raise ExpressionSyntaxError("Expression does not produce a value")


def convert_to_rpn(expression: str, functions: Mapping[str, Function],
                   operators: Mapping[str, Operator], variable_names: Set[str],
                   implicit_multiplication: bool = True) -> List[Token]:
    """
    Tokenize `expression` and reorder it into RPN.
    Raises ExpressionSyntaxError on any lexical or structural problem.
    """
    tokens = Tokenizer(expression, functions, operators, variable_names,
                       implicit_multiplication).tokenize()
    rpn = _shunt(tokens)
    validate_rpn(rpn)
    return rpn
