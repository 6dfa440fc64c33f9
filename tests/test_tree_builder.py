import math

import pytest

from difftree.autodiff import DifferentialFunctionFactory
from difftree.errors import (
    InvalidExpressionError,
    NameCollisionError,
    NumericTypeError,
    TokenizerError,
    UnknownVariableError,
    UnsupportedFunctionError,
    UnsupportedOperationError,
    UnsupportedOperatorError,
)
from difftree.fields import DOUBLE, MpmathField
from difftree.tokens import (
    ADDITION,
    Function,
    Operator,
    OperatorToken,
    ParenCloseToken,
    ParenOpenToken,
    SeparatorToken,
    VariableToken,
)
from difftree.tree_builder import SUPPORTED_FUNCTIONS, TokenCursor, TreeBuilder

EPS = 1e-5


def _factory():
    return DifferentialFunctionFactory(DOUBLE)


def _build(expression, **values):
    f = _factory()
    variables = [f.var(name, float(v)) for name, v in values.items()]
    return TreeBuilder(expression, f, *variables).build_tree(), variables


def test_quadratic_value_and_gradient():
    f = _factory()
    x = f.var("x", 10.0)
    y = f.var("y", 5.5)
    tree = TreeBuilder("2x^2 + y", f, x, y).build_tree()
    assert abs(tree.value - 205.5) < EPS
    dx, dy = tree.diff(x), tree.diff(y)
    assert dx is not None and dy is not None
    assert abs(dx.value - 40.0) < EPS
    assert abs(dy.value - 1.0) < EPS


def test_difference_keeps_operand_order():
    tree, _ = _build("a - b", a=10, b=3)
    assert abs(tree.value - 7.0) < EPS
    tree, _ = _build("a / b", a=12, b=3)
    assert abs(tree.value - 4.0) < EPS


def test_power_with_constant_exponent():
    tree, (x,) = _build("x^2", x=3)
    assert abs(tree.value - 9.0) < EPS
    assert abs(tree.diff(x).value - 6.0) < EPS


def test_power_with_constant_expression_exponent():
    tree, (x,) = _build("x^(1/2)", x=4)
    assert abs(tree.value - 2.0) < EPS
    assert abs(tree.diff(x).value - 0.25) < EPS


def test_power_with_negative_exponent():
    tree, _ = _build("2^-3")
    assert abs(tree.value - 0.125) < EPS


def test_power_with_variable_exponent_is_rejected():
    f = _factory()
    builder = TreeBuilder("x^y", f, f.var("x", 2.0), f.var("y", 3.0))
    with pytest.raises(UnsupportedOperationError):
        builder.build_tree()


def test_unknown_variable():
    f = _factory()
    builder = TreeBuilder("x + z", f, f.var("x", 1.0))
    with pytest.raises(UnknownVariableError) as exc:
        builder.build_tree()
    assert exc.value.identifier == "z"
    assert "z" in str(exc.value)


@pytest.mark.parametrize("expression, identifier", [
    ("elevation + 1", "elevation"),
    ("exponent + 1", "exponent"),
    ("xval + 1", "xval"),
])
def test_unknown_variable_keeps_its_full_name(expression, identifier):
    f = _factory()
    builder = TreeBuilder(expression, f, f.var("x", 1.0))
    with pytest.raises(UnknownVariableError) as exc:
        builder.build_tree()
    assert exc.value.identifier == identifier


def test_declared_names_still_split():
    tree, (x, y) = _build("xy + 1", x=2, y=3)
    assert abs(tree.value - 7.0) < EPS


def test_unary_minus_and_plus():
    tree, (x,) = _build("-x + 3", x=2)
    assert abs(tree.value - 1.0) < EPS
    assert abs(tree.diff(x).value + 1.0) < EPS

    tree, (x,) = _build("+x", x=2)
    assert tree is x


def test_negated_power_binds_after_the_power():
    tree, _ = _build("-x^2", x=3)
    assert abs(tree.value + 9.0) < EPS


def test_parenthesized_variable_is_the_variable():
    plain, (x,) = _build("x", x=4)
    wrapped, (x2,) = _build("(x)", x=4)
    assert plain is x and wrapped is x2
    assert abs(wrapped.diff(x2).value - 1.0) < EPS


def test_parentheses_in_token_stream_are_transparent():
    f = _factory()
    x = f.var("x", 4.0)
    builder = TreeBuilder("x", f, x)
    builder._cursor = TokenCursor([ParenOpenToken(), VariableToken("x"), ParenCloseToken()])
    assert builder.build_tree() is x


def test_reserved_constants():
    tree, _ = _build("sin(pi)")
    assert abs(tree.value) < EPS
    assert tree.is_constant
    tree, _ = _build("e")
    assert abs(tree.value - math.e) < EPS
    tree, (r,) = _build("2π r", r=1)
    assert abs(tree.value - 2 * math.pi) < EPS


def test_unsupported_function():
    f = _factory()
    builder = TreeBuilder("abs(x)", f, f.var("x", -2.0))
    with pytest.raises(UnsupportedFunctionError) as exc:
        builder.build_tree()
    assert exc.value.name == "abs"
    assert isinstance(exc.value, TokenizerError)


def test_unsupported_custom_function():
    f = _factory()
    twice = Function("twice", 1)
    builder = TreeBuilder("twice(x)", f, f.var("x", 1.0), functions=[twice])
    with pytest.raises(UnsupportedFunctionError):
        builder.build_tree()


def test_unsupported_operators():
    f = _factory()
    builder = TreeBuilder("x % 2", f, f.var("x", 5.0))
    with pytest.raises(UnsupportedOperatorError) as exc:
        builder.build_tree()
    assert exc.value.symbol == "%"

    factorial = Operator("!", 1, True, 10001)
    builder = TreeBuilder("x!", f, f.var("x", 3.0), operators=[factorial])
    with pytest.raises(UnsupportedOperatorError):
        builder.build_tree()


def test_exhausted_token_stream():
    f = _factory()
    x = f.var("x", 1.0)
    builder = TreeBuilder("x", f, x)
    builder._cursor = TokenCursor([VariableToken("x"), OperatorToken(ADDITION)])
    with pytest.raises(TokenizerError):
        builder.build_tree()


def test_leftover_tokens():
    f = _factory()
    builder = TreeBuilder("x", f, f.var("x", 1.0))
    builder._cursor = TokenCursor([VariableToken("x"), VariableToken("x")])
    with pytest.raises(TokenizerError):
        builder.build_tree()


def test_unexpected_token_kind():
    f = _factory()
    builder = TreeBuilder("x", f, f.var("x", 1.0))
    builder._cursor = TokenCursor([SeparatorToken()])
    with pytest.raises(TokenizerError):
        builder.build_tree()


def test_builder_is_single_use():
    f = _factory()
    builder = TreeBuilder("x + 1", f, f.var("x", 1.0))
    builder.build_tree()
    with pytest.raises(TokenizerError):
        builder.build_tree()


def test_cursor_reads_back_to_front():
    cursor = TokenCursor([VariableToken("a"), VariableToken("b")])
    assert len(cursor) == 2
    assert cursor.next().name == "b"
    assert cursor.remaining == 1
    assert cursor.next().name == "a"
    assert not cursor.has_next()
    with pytest.raises(TokenizerError):
        cursor.next()


@pytest.mark.parametrize("expression", ["", "   ", None])
def test_empty_expression(expression):
    with pytest.raises(InvalidExpressionError):
        TreeBuilder(expression, _factory())


def test_name_collisions():
    f = _factory()
    with pytest.raises(NameCollisionError):
        TreeBuilder("pi", f, f.var("pi", 3.0))
    with pytest.raises(NameCollisionError):
        TreeBuilder("sin + 1", f, f.var("sin", 1.0))
    with pytest.raises(NameCollisionError):
        TreeBuilder("x", f, f.var("x", 1.0), f.var("x", 2.0))


def test_variable_from_another_field_is_rejected():
    native = _factory()
    precise = DifferentialFunctionFactory(MpmathField(40))
    with pytest.raises(NumericTypeError):
        TreeBuilder("x + 1", precise, native.var("x", 1.0))


def test_mpmath_field():
    field = MpmathField(50)
    f = DifferentialFunctionFactory(field)
    x = f.var("x", field.from_double(10.0))
    y = f.var("y", field.from_double(5.5))
    tree = TreeBuilder("2x^2 + y", f, x, y).build_tree()
    assert isinstance(tree.value, field.scalar_type)
    assert tree.value == field.ctx.mpf("205.5")
    assert tree.diff(x).value == 40

    root = TreeBuilder("sqrt(2)", f).build_tree()
    assert field.ctx.nstr(root.value, 45) == field.ctx.nstr(field.ctx.sqrt(2), 45)


def test_tree_follows_variable_updates():
    tree, (x,) = _build("x * x", x=2)
    assert abs(tree.value - 4.0) < EPS
    x.set(5.0)
    assert abs(tree.value - 25.0) < EPS


def _central_difference(tree, x, at, h=1e-6):
    x.set(at + h)
    upper = tree.value
    x.set(at - h)
    lower = tree.value
    x.set(at)
    return (upper - lower) / (2 * h)


@pytest.mark.parametrize("name", sorted(SUPPORTED_FUNCTIONS))
def test_function_derivatives_match_finite_differences(name):
    tree, (x,) = _build(f"{name}(x)", x=0.4)
    numeric = _central_difference(tree, x, 0.4)
    assert abs(tree.diff(x).value - numeric) < EPS * max(1.0, abs(numeric))


@pytest.mark.parametrize("expression", [
    "x * sin(x) / (1 + x^2)",
    "exp(-x/2) * cos(3x)",
    "sqrt(x^3 + 1) - log(x)",
    "atan(2x) + asin(x/2) - acos(x/3)",
    "-tan(x)^2 + 4",
])
def test_composite_derivatives_match_finite_differences(expression):
    tree, (x,) = _build(expression, x=0.7)
    numeric = _central_difference(tree, x, 0.7)
    assert abs(tree.diff(x).value - numeric) < EPS * max(1.0, abs(numeric))
