import pytest

from difftree.autodiff import DifferentialFunctionFactory
from difftree.compiler import CompileResult, ExpressionCompiler, compile_expression
from difftree.config import Settings, make_factory
from difftree.errors import STAGE_TREE, UnsupportedOperationError
from difftree.fields import MpmathField
from difftree.sympy_backend import SympyFunctionFactory

EPS = 1e-9


def test_compile_expression_with_mapping():
    tree = compile_expression("2x^2 + y", {"x": 10, "y": 5.5})
    assert abs(tree.value - 205.5) < EPS


def test_compile_expression_with_factory():
    field = MpmathField(30)
    tree = compile_expression("x / 4", {"x": 1}, factory=DifferentialFunctionFactory(field))
    assert tree.value == field.ctx.mpf("0.25")


def test_compile_expression_propagates_errors():
    with pytest.raises(UnsupportedOperationError) as exc:
        compile_expression("x^y", {"x": 2, "y": 3})
    assert exc.value.stage == STAGE_TREE


def test_structured_result():
    res = ExpressionCompiler(Settings()).compile("2x^2 + y", {"x": 10, "y": 5.5})
    assert isinstance(res, CompileResult)
    assert res.ok
    assert abs(res.value - 205.5) < EPS
    assert abs(res.gradient["x"] - 40.0) < EPS
    assert abs(res.gradient["y"] - 1.0) < EPS
    assert res.rpn == ["2", "x", "2", "^", "*", "y", "+"]
    assert [step["kind"] for step in res.trace] == ["inputs", "rpn", "tree", "evaluation"]
    assert res.error is None


@pytest.mark.parametrize("expression, values, stage, kind", [
    ("", {}, "configuration", "InvalidExpressionError"),
    ("pi + 1", {"pi": 3}, "configuration", "NameCollisionError"),
    ("x +", {"x": 1}, "tokenization", "TokenizationError"),
    ("x^y", {"x": 2, "y": 3}, "tree", "UnsupportedOperationError"),
    ("x + z", {"x": 1}, "tree", "UnknownVariableError"),
    ("log(x)", {"x": -1}, "evaluation", "ValueError"),
    ("1 / x", {"x": 0}, "evaluation", "ZeroDivisionError"),
])
def test_failures_are_reported(expression, values, stage, kind):
    res = ExpressionCompiler(Settings()).compile(expression, values)
    assert not res.ok
    assert res.error_stage == stage
    assert res.error_kind == kind
    assert res.error
    assert res.trace[-1]["kind"] == "error"


def test_implicit_multiplication_override():
    compiler = ExpressionCompiler(Settings(implicit_multiplication=True))
    assert compiler.compile("2x", {"x": 3}).ok
    res = compiler.compile("2x", {"x": 3}, implicit_multiplication=False)
    assert res.error_stage == "tokenization"

    strict = ExpressionCompiler(Settings(implicit_multiplication=False))
    assert not strict.compile("2x", {"x": 3}).ok


@pytest.mark.parametrize("settings", [
    Settings(backend="sympy"),
    Settings(field="mpmath", precision=40),
])
def test_backends_through_compiler(settings):
    res = ExpressionCompiler(settings).compile("sin(x) * y", {"x": 0.5, "y": 2})
    reference = ExpressionCompiler(Settings()).compile("sin(x) * y", {"x": 0.5, "y": 2})
    assert res.ok
    assert abs(res.value - reference.value) < EPS
    for name in ("x", "y"):
        assert abs(res.gradient[name] - reference.gradient[name]) < EPS


def test_make_factory():
    assert isinstance(make_factory(Settings(backend="sympy")), SympyFunctionFactory)
    factory = make_factory(Settings(field="mpmath", precision=25))
    assert isinstance(factory.field, MpmathField)
    assert factory.field.dps == 25


def test_settings_validation():
    with pytest.raises(ValueError):
        Settings(backend="maple")
    with pytest.raises(ValueError):
        Settings(field="decimal")


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("DIFFTREE_IMPLICIT_MULTIPLICATION", "false")
    monkeypatch.setenv("DIFFTREE_BACKEND", "SymPy")
    monkeypatch.setenv("DIFFTREE_PRECISION", "50")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = Settings.from_env()
    assert settings.implicit_multiplication is False
    assert settings.backend == "sympy"
    assert settings.precision == 50
    assert settings.log_level == "DEBUG"


def test_result_serializes():
    res = ExpressionCompiler(Settings()).compile("x", {"x": 1})
    payload = res.to_dict()
    assert payload["ok"] is True
    assert set(payload) == {"ok", "expression", "rpn", "tree", "value", "gradient",
                            "trace", "error", "error_stage", "error_kind"}
