import math

import pytest

from difftree.autodiff import Constant, DifferentialFunctionFactory, Power
from difftree.errors import NumericTypeError, UnsupportedOperationError
from difftree.fields import DOUBLE, DoubleField, MpmathField
from difftree.types import RealField

EPS = 1e-9


def test_operator_sugar_builds_nodes():
    f = DifferentialFunctionFactory()
    x = f.var("x", 3.0)
    expr = x * x + 2 * x - 1
    assert abs(expr.value - 14.0) < EPS
    assert abs(expr.diff(x).value - 8.0) < EPS
    assert abs((1 / x).diff(x).value + 1 / 9) < EPS


def test_leaves():
    f = DifferentialFunctionFactory()
    x = f.var("x", 2.0)
    y = f.var("y", 5.0)
    c = f.val(4.0)
    assert c.is_constant and not x.is_constant
    assert c.diff(x).value == 0.0
    assert x.diff(x).value == 1.0
    assert x.diff(y).value == 0.0


def test_constant_propagates_through_composites():
    f = DifferentialFunctionFactory()
    x = f.var("x", 2.0)
    assert f.sin(f.add(f.val(1.0), f.val(2.0))).is_constant
    assert not f.mul(f.val(1.0), x).is_constant


def test_pow_requires_constant_exponent():
    f = DifferentialFunctionFactory()
    x = f.var("x", 3.0)
    with pytest.raises(UnsupportedOperationError):
        f.pow(x, x)
    node = f.pow(x, f.add(f.val(1.0), f.val(1.0)))
    assert isinstance(node, Power)
    assert isinstance(node.right, Constant)
    assert abs(node.value - 9.0) < EPS


def test_values_are_recomputed():
    f = DifferentialFunctionFactory()
    x = f.var("x", 1.0)
    node = f.exp(x)
    assert abs(node.value - math.e) < EPS
    x.value = 0.0
    assert abs(node.value - 1.0) < EPS


def test_scalars_are_checked():
    f = DifferentialFunctionFactory()
    with pytest.raises(NumericTypeError):
        f.val("3")
    with pytest.raises(NumericTypeError):
        f.var("x", True)
    x = f.var("x", 1.0)
    with pytest.raises(NumericTypeError):
        x.value = "2"


def test_rendering():
    f = DifferentialFunctionFactory()
    x = f.var("x", 1.0)
    assert str(f.add(x, f.val(2.0))) == "(x + 2)"
    assert str(f.neg(f.sin(x))) == "-sin(x)"


def test_domain_errors_surface_as_value_errors():
    f = DifferentialFunctionFactory()
    x = f.var("x", -1.0)
    with pytest.raises(ValueError):
        f.log(x).value
    with pytest.raises(ValueError):
        f.pow(x, f.val(0.5)).value


def test_fields_satisfy_protocol():
    assert isinstance(DOUBLE, RealField)
    assert isinstance(MpmathField(), RealField)
    assert isinstance(DOUBLE, DoubleField)


def test_mpmath_field_scalars():
    field = MpmathField(40)
    f = DifferentialFunctionFactory(field)
    with pytest.raises(NumericTypeError):
        f.var("x", 2.0)
    x = f.var("x", field.from_double(2.0))
    node = f.sqrt(x)
    assert isinstance(node.value, field.scalar_type)
    assert field.ctx.nstr(node.value, 35) == field.ctx.nstr(field.ctx.sqrt(2), 35)
    # 1 / (2 sqrt(2))
    expected = 1 / (2 * field.ctx.sqrt(2))
    assert abs(node.diff(x).value - expected) < field.ctx.mpf("1e-35")


def test_mpmath_domain_errors():
    field = MpmathField(20)
    f = DifferentialFunctionFactory(field)
    x = f.var("x", field.from_double(-4.0))
    with pytest.raises(ValueError):
        f.sqrt(x).value
    with pytest.raises(ValueError):
        f.asin(f.mul(x, x)).value
