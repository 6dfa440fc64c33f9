# -----------------------------------------------------------------------------
# Numeric fields
# Purpose:
#   Concrete scalar backends for the autodiff runtime. A field fixes the
#   scalar type once per factory; literals from the tokenizer (Python floats)
#   enter through `from_double`, never through an implicit cast.
#   - DoubleField : float + math (default)
#   - MpmathField : mpmath.mpf at a configurable decimal precision
# -----------------------------------------------------------------------------

from __future__ import annotations
import math

import mpmath


class DoubleField:
    name = "double"
    scalar_type = float

    def from_double(self, value: float) -> float:
        return float(value)

    def is_scalar(self, value) -> bool:
        # ints are exact in double precision for the magnitudes expressions use
        return isinstance(value, (float, int)) and not isinstance(value, bool)

    def zero(self) -> float:
        return 0.0

    def one(self) -> float:
        return 1.0

    def pow(self, x, y): return math.pow(x, y)
    def sin(self, x): return math.sin(x)
    def cos(self, x): return math.cos(x)
    def tan(self, x): return math.tan(x)
    def asin(self, x): return math.asin(x)
    def acos(self, x): return math.acos(x)
    def atan(self, x): return math.atan(x)
    def log(self, x): return math.log(x)
    def sqrt(self, x): return math.sqrt(x)
    def exp(self, x): return math.exp(x)

    def __repr__(self) -> str:
        return "DoubleField()"


class MpmathField:
    """
    Arbitrary precision reals. Uses a private mpmath context so the precision
    chosen here does not leak into other users of the global `mpmath.mp`.
    """
    name = "mpmath"
    scalar_type = mpmath.mpf

    def __init__(self, dps: int = 30):
        self.dps = dps
        self.ctx = mpmath.MPContext()
        self.ctx.dps = dps
        # scalars from a private context are mpf subclasses of that context
        self.scalar_type = self.ctx.mpf

    def from_double(self, value: float):
        return self.ctx.mpf(float(value))

    def is_scalar(self, value) -> bool:
        return isinstance(value, self.scalar_type)

    def zero(self):
        return self.ctx.mpf(0)

    def one(self):
        return self.ctx.mpf(1)

    def _real(self, x):
        # complex results mean the input left the real domain, as math would report
        if isinstance(x, self.ctx.mpc):
            raise ValueError("math domain error")
        return x

    def pow(self, x, y): return self._real(self.ctx.power(x, y))
    def sin(self, x): return self.ctx.sin(x)
    def cos(self, x): return self.ctx.cos(x)
    def tan(self, x): return self.ctx.tan(x)
    def asin(self, x): return self._real(self.ctx.asin(x))
    def acos(self, x): return self._real(self.ctx.acos(x))
    def atan(self, x): return self.ctx.atan(x)
    def log(self, x): return self._real(self.ctx.log(x))
    def sqrt(self, x): return self._real(self.ctx.sqrt(x))
    def exp(self, x): return self.ctx.exp(x)

    def __repr__(self) -> str:
        return f"MpmathField(dps={self.dps})"


DOUBLE = DoubleField()
