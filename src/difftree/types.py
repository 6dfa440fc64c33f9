# -----------------------------------------------------------------------------
# Types module: shared interfaces for the compiler and its runtimes
# Purpose:
#   Structural (duck-typed) contracts the tree builder depends on, so any
#   autodiff backend and any scalar type can be plugged in without touching
#   the builder:
#     - RealField          : scalar type + elementary functions
#     - DifferentiableNode : value / is_constant / diff
#     - FunctionFactory    : node constructors used by the builder
# -----------------------------------------------------------------------------

from __future__ import annotations
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RealField(Protocol):
    """Scalar arithmetic used by a runtime (e.g. float via math, mpf via mpmath)."""
    name: str
    scalar_type: type

    def from_double(self, value: float) -> Any: ...
    def is_scalar(self, value: Any) -> bool: ...
    def zero(self) -> Any: ...
    def one(self) -> Any: ...
    def pow(self, x: Any, y: Any) -> Any: ...
    def sin(self, x: Any) -> Any: ...
    def cos(self, x: Any) -> Any: ...
    def tan(self, x: Any) -> Any: ...
    def asin(self, x: Any) -> Any: ...
    def acos(self, x: Any) -> Any: ...
    def atan(self, x: Any) -> Any: ...
    def log(self, x: Any) -> Any: ...
    def sqrt(self, x: Any) -> Any: ...
    def exp(self, x: Any) -> Any: ...


@runtime_checkable
class DifferentiableNode(Protocol):
    @property
    def value(self) -> Any: ...

    @property
    def is_constant(self) -> bool: ...

    def diff(self, variable: "VariableNode") -> "DifferentiableNode": ...


@runtime_checkable
class VariableNode(DifferentiableNode, Protocol):
    name: str


class FunctionFactory(Protocol):
    field: RealField

    def val(self, value: Any) -> DifferentiableNode: ...
    def var(self, name: str, value: Any) -> VariableNode: ...
    def zero(self) -> DifferentiableNode: ...
    def one(self) -> DifferentiableNode: ...

    def add(self, left: DifferentiableNode, right: DifferentiableNode) -> DifferentiableNode: ...
    def sub(self, left: DifferentiableNode, right: DifferentiableNode) -> DifferentiableNode: ...
    def mul(self, left: DifferentiableNode, right: DifferentiableNode) -> DifferentiableNode: ...
    def div(self, left: DifferentiableNode, right: DifferentiableNode) -> DifferentiableNode: ...
    def neg(self, arg: DifferentiableNode) -> DifferentiableNode: ...
    def pow(self, base: DifferentiableNode, exponent: DifferentiableNode) -> DifferentiableNode: ...

    def acos(self, arg: DifferentiableNode) -> DifferentiableNode: ...
    def asin(self, arg: DifferentiableNode) -> DifferentiableNode: ...
    def atan(self, arg: DifferentiableNode) -> DifferentiableNode: ...
    def log(self, arg: DifferentiableNode) -> DifferentiableNode: ...
    def cos(self, arg: DifferentiableNode) -> DifferentiableNode: ...
    def sin(self, arg: DifferentiableNode) -> DifferentiableNode: ...
    def sqrt(self, arg: DifferentiableNode) -> DifferentiableNode: ...
    def tan(self, arg: DifferentiableNode) -> DifferentiableNode: ...
    def exp(self, arg: DifferentiableNode) -> DifferentiableNode: ...
