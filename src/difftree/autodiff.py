# -----------------------------------------------------------------------------
# Native automatic-differentiation runtime
# Purpose:
#   Expression-tree nodes that evaluate themselves and build their own
#   derivative trees, plus the factory the tree builder talks to.
# Rules implemented:
#   - constant' = 0, x' = 1 (w.r.t. itself) / 0 (otherwise)
#   - sum/difference, product, quotient ((a'b - ab') / (b*b))
#   - power with constant exponent: c * a^(c-1) * a'
#   - chain rule for every unary function: f'(a) * a'
# Notes:
#   - Values are recomputed on every access, so updating a Variable's value
#     and reading `tree.value` again re-evaluates the whole tree.
#   - Nothing is simplified; derivative trees keep their zero/one factors.
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import Any

from .errors import NumericTypeError, UnsupportedOperationError
from .fields import DOUBLE
from .types import RealField


def _fmt(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


class DifferentialFunction:
    """Base node. Subclasses provide `value` and `diff`."""

    def __init__(self, factory: "DifferentialFunctionFactory"):
        self.factory = factory

    @property
    def value(self):
        raise NotImplementedError

    @property
    def is_constant(self) -> bool:
        return False

    def diff(self, variable: "Variable") -> "DifferentialFunction":
        raise NotImplementedError

    def evaluate(self):
        return self.value

    # ---------------- operator sugar ----------------

    def _lift(self, other) -> "DifferentialFunction":
        if isinstance(other, DifferentialFunction):
            return other
        if isinstance(other, (int, float)) and not isinstance(other, bool):
            return self.factory.val(self.factory.field.from_double(other))
        return self.factory.val(other)

    def __add__(self, other): return self.factory.add(self, self._lift(other))
    def __radd__(self, other): return self.factory.add(self._lift(other), self)
    def __sub__(self, other): return self.factory.sub(self, self._lift(other))
    def __rsub__(self, other): return self.factory.sub(self._lift(other), self)
    def __mul__(self, other): return self.factory.mul(self, self._lift(other))
    def __rmul__(self, other): return self.factory.mul(self._lift(other), self)
    def __truediv__(self, other): return self.factory.div(self, self._lift(other))
    def __rtruediv__(self, other): return self.factory.div(self._lift(other), self)
    def __pow__(self, other): return self.factory.pow(self, self._lift(other))
    def __neg__(self): return self.factory.neg(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self})"


class Constant(DifferentialFunction):
    def __init__(self, factory, value):
        super().__init__(factory)
        self._value = value

    @property
    def value(self):
        return self._value

    @property
    def is_constant(self) -> bool:
        return True

    def diff(self, variable):
        return self.factory.zero()

    def __str__(self) -> str:
        return _fmt(self._value)


class Variable(DifferentialFunction):
    def __init__(self, factory, name: str, value):
        super().__init__(factory)
        self.name = name
        self._value = value

    @property
    def value(self):
        return self._value

    @value.setter
    def value(self, new_value):
        self.factory.check_scalar(new_value, f"variable '{self.name}'")
        self._value = new_value

    def set(self, new_value) -> "Variable":
        self.value = new_value
        return self

    def diff(self, variable):
        if variable is self:
            return self.factory.one()
        return self.factory.zero()

    def __str__(self) -> str:
        return self.name


# ---------------------------- binary nodes -----------------------------------

class BinaryFunction(DifferentialFunction):
    symbol = "?"

    def __init__(self, factory, left: DifferentialFunction, right: DifferentialFunction):
        super().__init__(factory)
        self.left = left
        self.right = right

    @property
    def is_constant(self) -> bool:
        return self.left.is_constant and self.right.is_constant

    def __str__(self) -> str:
        return f"({self.left} {self.symbol} {self.right})"


class Sum(BinaryFunction):
    symbol = "+"

    @property
    def value(self):
        return self.left.value + self.right.value

    def diff(self, variable):
        return self.factory.add(self.left.diff(variable), self.right.diff(variable))


class Difference(BinaryFunction):
    symbol = "-"

    @property
    def value(self):
        return self.left.value - self.right.value

    def diff(self, variable):
        return self.factory.sub(self.left.diff(variable), self.right.diff(variable))


class Product(BinaryFunction):
    symbol = "*"

    @property
    def value(self):
        return self.left.value * self.right.value

    def diff(self, variable):
        f = self.factory
        return f.add(f.mul(self.left.diff(variable), self.right),
                     f.mul(self.left, self.right.diff(variable)))


class Quotient(BinaryFunction):
    symbol = "/"

    @property
    def value(self):
        return self.left.value / self.right.value

    def diff(self, variable):
        f = self.factory
        numerator = f.sub(f.mul(self.left.diff(variable), self.right),
                          f.mul(self.left, self.right.diff(variable)))
        return f.div(numerator, f.mul(self.right, self.right))


class Power(BinaryFunction):
    """base ^ c with c a Constant node."""
    symbol = "^"

    @property
    def value(self):
        return self.factory.field.pow(self.left.value, self.right.value)

    def diff(self, variable):
        f = self.factory
        lowered = f.val(self.right.value - f.field.one())
        return f.mul(f.mul(self.right, f.pow(self.left, lowered)), self.left.diff(variable))


# ---------------------------- unary nodes ------------------------------------

class UnaryFunction(DifferentialFunction):
    name = "?"

    def __init__(self, factory, arg: DifferentialFunction):
        super().__init__(factory)
        self.arg = arg

    @property
    def is_constant(self) -> bool:
        return self.arg.is_constant

    @property
    def value(self):
        return getattr(self.factory.field, self.name)(self.arg.value)

    def derivative(self) -> DifferentialFunction:
        """d(self)/d(arg) as a node."""
        raise NotImplementedError

    def diff(self, variable):
        return self.factory.mul(self.derivative(), self.arg.diff(variable))

    def __str__(self) -> str:
        return f"{self.name}({self.arg})"


class Negative(UnaryFunction):
    name = "neg"

    @property
    def value(self):
        return -self.arg.value

    def diff(self, variable):
        return self.factory.neg(self.arg.diff(variable))

    def __str__(self) -> str:
        return f"-{self.arg}"


class Sin(UnaryFunction):
    name = "sin"

    def derivative(self):
        return self.factory.cos(self.arg)


class Cos(UnaryFunction):
    name = "cos"

    def derivative(self):
        return self.factory.neg(self.factory.sin(self.arg))


class Tan(UnaryFunction):
    name = "tan"

    def derivative(self):
        f = self.factory
        cos = f.cos(self.arg)
        return f.div(f.one(), f.mul(cos, cos))


def _one_minus_square_root(f, arg):
    return f.sqrt(f.sub(f.one(), f.mul(arg, arg)))


class Asin(UnaryFunction):
    name = "asin"

    def derivative(self):
        f = self.factory
        return f.div(f.one(), _one_minus_square_root(f, self.arg))


class Acos(UnaryFunction):
    name = "acos"

    def derivative(self):
        f = self.factory
        return f.neg(f.div(f.one(), _one_minus_square_root(f, self.arg)))


class Atan(UnaryFunction):
    name = "atan"

    def derivative(self):
        f = self.factory
        return f.div(f.one(), f.add(f.one(), f.mul(self.arg, self.arg)))


class Log(UnaryFunction):
    name = "log"

    def derivative(self):
        return self.factory.div(self.factory.one(), self.arg)


class Sqrt(UnaryFunction):
    name = "sqrt"

    def derivative(self):
        f = self.factory
        two = f.val(f.field.from_double(2.0))
        return f.div(f.one(), f.mul(two, f.sqrt(self.arg)))


class Exp(UnaryFunction):
    name = "exp"

    def derivative(self):
        return self.factory.exp(self.arg)


# ---------------------------- factory ----------------------------------------

class DifferentialFunctionFactory:
    """
    Builds nodes over one numeric field. Every scalar entering a node is
    checked against the field; a mismatch is a NumericTypeError, never a cast.
    """

    def __init__(self, field: RealField = DOUBLE):
        self.field = field

    def check_scalar(self, value, what: str = "value"):
        if not self.field.is_scalar(value):
            raise NumericTypeError(
                f"Expected a {self.field.name} scalar for {what}, got {type(value).__name__}"
            )

    # leaves
    def val(self, value) -> Constant:
        self.check_scalar(value, "constant")
        return Constant(self, value)

    def var(self, name: str, value) -> Variable:
        self.check_scalar(value, f"variable '{name}'")
        return Variable(self, name, value)

    def zero(self) -> Constant:
        return Constant(self, self.field.zero())

    def one(self) -> Constant:
        return Constant(self, self.field.one())

    # binary
    def add(self, left, right): return Sum(self, left, right)
    def sub(self, left, right): return Difference(self, left, right)
    def mul(self, left, right): return Product(self, left, right)
    def div(self, left, right): return Quotient(self, left, right)

    def pow(self, base, exponent):
        if not isinstance(exponent, Constant):
            if not exponent.is_constant:
                raise UnsupportedOperationError("Pow argument was expected to be a constant")
            exponent = self.val(exponent.value)
        return Power(self, base, exponent)

    # unary
    def neg(self, arg): return Negative(self, arg)
    def acos(self, arg): return Acos(self, arg)
    def asin(self, arg): return Asin(self, arg)
    def atan(self, arg): return Atan(self, arg)
    def log(self, arg): return Log(self, arg)
    def cos(self, arg): return Cos(self, arg)
    def sin(self, arg): return Sin(self, arg)
    def sqrt(self, arg): return Sqrt(self, arg)
    def tan(self, arg): return Tan(self, arg)
    def exp(self, arg): return Exp(self, arg)

    def __repr__(self) -> str:
        return f"DifferentialFunctionFactory({self.field!r})"
