# -----------------------------------------------------------------------------
# Compiler: caller-facing entry points
# Responsibilities:
#   - compile_expression(): string + bindings -> differentiable tree, raising
#     typed errors that carry the failing stage
#   - ExpressionCompiler.compile(): the same pipeline wrapped into a
#     structured CompileResult (value, gradient, RPN, trace, error info)
#     for API-style callers
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .config import Settings, make_factory
from .errors import ExpressionError
from .tokens import Function, Operator
from .tracer import Tracer
from .tree_builder import TreeBuilder
from .types import DifferentiableNode, FunctionFactory, VariableNode

logger = logging.getLogger(__name__)

STAGE_EVALUATION = "evaluation"

Bindings = Union[Mapping[str, Any], Iterable[VariableNode]]


def bind_variables(factory: FunctionFactory, variables: Bindings) -> List[VariableNode]:
    """
    Turn `{name: value}` into factory variables; pass variable nodes through.
    Plain Python numbers are converted with the field's from_double.
    """
    if isinstance(variables, Mapping):
        bound = []
        for name, value in variables.items():
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                value = factory.field.from_double(float(value))
            bound.append(factory.var(name, value))
        return bound
    return list(variables)


def compile_expression(expression: str, variables: Bindings = (),
                       factory: Optional[FunctionFactory] = None,
                       functions: Sequence[Function] = (),
                       operators: Sequence[Operator] = (),
                       implicit_multiplication: bool = True) -> DifferentiableNode:
    """
    Compile `expression` into a differentiable tree.

    `variables` is either a mapping name -> value (variables are created with
    `factory`) or an iterable of variable nodes already created by `factory`.
    Errors propagate unchanged; each has `.stage` set to "configuration",
    "tokenization" or "tree".
    """
    factory = factory or make_factory(Settings())
    bound = bind_variables(factory, variables)
    builder = TreeBuilder(expression, factory, *bound, functions=functions,
                          operators=operators, implicit_multiplication=implicit_multiplication)
    return builder.build_tree()


@dataclass
class CompileResult:
    ok: bool
    expression: str
    rpn: List[str] = field(default_factory=list)
    tree: Optional[str] = None
    value: Optional[float] = None
    gradient: Dict[str, float] = field(default_factory=dict)
    trace: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    error_stage: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "expression": self.expression,
            "rpn": self.rpn,
            "tree": self.tree,
            "value": self.value,
            "gradient": self.gradient,
            "trace": self.trace,
            "error": self.error,
            "error_stage": self.error_stage,
            "error_kind": self.error_kind,
        }


class ExpressionCompiler:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()

    def compile(self, expression: str, values: Mapping[str, Any],
                functions: Sequence[Function] = (), operators: Sequence[Operator] = (),
                implicit_multiplication: Optional[bool] = None) -> CompileResult:
        """
        Full pipeline with a uniform error funnel:
          1) bind values to fresh variables (new factory per call)
          2) tokenize + build the tree
          3) evaluate the tree and every partial derivative
        Failures come back as ok=False with the stage that failed.
        """
        trace = Tracer()
        implicit = (self.settings.implicit_multiplication
                    if implicit_multiplication is None else implicit_multiplication)
        result = CompileResult(ok=False, expression=expression)
        trace.add("inputs", {
            "expression": expression,
            "variables": {k: str(v) for k, v in values.items()},
            "implicit_multiplication": implicit,
            "backend": self.settings.backend,
            "field": self.settings.field,
        })
        stage = None
        try:
            factory = make_factory(self.settings)
            bound = bind_variables(factory, values)
            builder = TreeBuilder(expression, factory, *bound, functions=functions,
                                  operators=operators, implicit_multiplication=implicit)
            result.rpn = [str(t) for t in builder.rpn]
            trace.add_tokens("rpn", builder.rpn)

            tree = builder.build_tree()
            result.tree = str(tree)
            trace.add("tree", {"rendered": result.tree, "constant": tree.is_constant})

            stage = STAGE_EVALUATION
            result.value = float(tree.value)
            result.gradient = {v.name: float(tree.diff(v).value) for v in bound}
            trace.add("evaluation", {"value": result.value, "gradient": result.gradient})
            result.ok = True
        except ExpressionError as e:
            logger.info(f"Compilation of {expression!r} failed at {e.stage}: {e}")
            self._fail(result, trace, e, e.stage)
        except (ArithmeticError, ValueError) as e:
            if stage != STAGE_EVALUATION:
                raise
            logger.warning(f"Evaluation of {expression!r} failed: {e}")
            self._fail(result, trace, e, STAGE_EVALUATION)
        result.trace = trace.steps()
        return result

    @staticmethod
    def _fail(result: CompileResult, trace: Tracer, error: Exception, stage: Optional[str]):
        result.ok = False
        result.error = str(error)
        result.error_stage = stage
        result.error_kind = type(error).__name__
        trace.add("error", {"stage": stage, "kind": result.error_kind, "message": result.error})
