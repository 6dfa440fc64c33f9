# -----------------------------------------------------------------------------
# SymPy-backed runtime
# Purpose:
#   A second implementation of the node/factory interfaces where every node
#   wraps a sympy expression. Differentiation is delegated to sympy.diff and
#   evaluation substitutes the variables' current values, so the tree builder
#   can target a CAS without modification.
# Notes:
#   - Scalars are Python floats (DoubleField); sympy numbers stay internal.
#   - `expr` exposes the underlying sympy object for printing/simplification
#     by callers; this module never simplifies on its own.
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import Dict

import sympy

from .errors import NumericTypeError, UnsupportedOperationError
from .fields import DOUBLE


class SympyFunction:
    def __init__(self, factory: "SympyFunctionFactory", expr: sympy.Expr):
        self.factory = factory
        self.expr = expr

    @property
    def value(self) -> float:
        subs = {sym: var.value for sym, var in self.factory.variables.items()
                if sym in self.expr.free_symbols}
        result = self.expr.evalf(subs=subs)
        if not result.is_real:
            raise ValueError(f"Expression {self.expr} does not evaluate to a real number: {result}")
        return float(result)

    @property
    def is_constant(self) -> bool:
        return not self.expr.free_symbols

    def diff(self, variable: "SympyVariable") -> "SympyFunction":
        return SympyFunction(self.factory, sympy.diff(self.expr, variable.symbol))

    def evaluate(self) -> float:
        return self.value

    def __str__(self) -> str:
        return str(self.expr)

    def __repr__(self) -> str:
        return f"SympyFunction({self.expr})"


class SympyVariable(SympyFunction):
    def __init__(self, factory, name: str, value: float):
        super().__init__(factory, sympy.Symbol(name, real=True))
        self.name = name
        self.symbol = self.expr
        self._value = value

    @property
    def value(self) -> float:
        return self._value

    @value.setter
    def value(self, new_value: float):
        self.factory.check_scalar(new_value, f"variable '{self.name}'")
        self._value = new_value

    def __repr__(self) -> str:
        return f"SympyVariable({self.name}={self._value})"


class SympyFunctionFactory:
    def __init__(self):
        self.field = DOUBLE
        self.variables: Dict[sympy.Symbol, SympyVariable] = {}

    def check_scalar(self, value, what: str = "value"):
        if not self.field.is_scalar(value):
            raise NumericTypeError(
                f"Expected a {self.field.name} scalar for {what}, got {type(value).__name__}"
            )

    def _wrap(self, expr) -> SympyFunction:
        return SympyFunction(self, expr)

    # leaves
    def val(self, value) -> SympyFunction:
        self.check_scalar(value, "constant")
        return self._wrap(sympy.Float(value))

    def var(self, name: str, value: float) -> SympyVariable:
        self.check_scalar(value, f"variable '{name}'")
        variable = SympyVariable(self, name, value)
        self.variables[variable.symbol] = variable
        return variable

    def zero(self) -> SympyFunction:
        return self._wrap(sympy.Integer(0))

    def one(self) -> SympyFunction:
        return self._wrap(sympy.Integer(1))

    # binary
    def add(self, left, right): return self._wrap(left.expr + right.expr)
    def sub(self, left, right): return self._wrap(left.expr - right.expr)
    def mul(self, left, right): return self._wrap(left.expr * right.expr)
    def div(self, left, right): return self._wrap(left.expr / right.expr)

    def pow(self, base, exponent):
        if not exponent.is_constant:
            raise UnsupportedOperationError("Pow argument was expected to be a constant")
        return self._wrap(base.expr ** exponent.expr)

    # unary
    def neg(self, arg): return self._wrap(-arg.expr)
    def acos(self, arg): return self._wrap(sympy.acos(arg.expr))
    def asin(self, arg): return self._wrap(sympy.asin(arg.expr))
    def atan(self, arg): return self._wrap(sympy.atan(arg.expr))
    def log(self, arg): return self._wrap(sympy.log(arg.expr))
    def cos(self, arg): return self._wrap(sympy.cos(arg.expr))
    def sin(self, arg): return self._wrap(sympy.sin(arg.expr))
    def sqrt(self, arg): return self._wrap(sympy.sqrt(arg.expr))
    def tan(self, arg): return self._wrap(sympy.tan(arg.expr))
    def exp(self, arg): return self._wrap(sympy.exp(arg.expr))

    def __repr__(self) -> str:
        return "SympyFunctionFactory()"
