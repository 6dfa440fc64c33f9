# -----------------------------------------------------------------------------
# Compilation trace
# Purpose:
#   Append-only record of what happened while compiling one expression
#   (inputs, RPN, rendered tree, evaluation, errors). Exported as plain dicts
#   for API responses and debugging.
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List


@dataclass
class TraceStep:
    kind: str
    detail: Dict[str, Any]


class Tracer:
    def __init__(self): self._steps: List[TraceStep] = []

    def add(self, kind: str, detail: Dict[str, Any]): self._steps.append(TraceStep(kind, detail))

    def add_tokens(self, kind: str, tokens: Iterable[Any]):
        # Tokens are rendered with str() so the trace stays JSON-friendly
        rendered = [str(t) for t in tokens]
        self.add(kind, {"tokens": rendered, "count": len(rendered)})

    def steps(self) -> List[Dict[str, Any]]:
        return [{"kind": s.kind, "detail": s.detail} for s in self._steps]
