# --- Differentiable Expression Compiler API (FastAPI) -------------------------
# Purpose: Minimal API that compiles an infix expression into a differentiable
# tree and returns its value, gradient, RPN and compilation trace. A YAML
# catalog provides named sample formulas.
# ------------------------------------------------------------------------------

from __future__ import annotations
import logging
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from difftree.catalog import Catalog, CatalogError
from difftree.compiler import ExpressionCompiler
from difftree.config import Settings, configure_logging

# Settings come from the environment (.env loaded by difftree.config)
_settings = Settings.from_env()
configure_logging(_settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Differentiable Expression Compiler API")

# Initialize catalog + compiler
_catalog = Catalog.from_file(_settings.catalog_path)
_compiler = ExpressionCompiler(_settings)
logger.info(f"Loaded {len(_catalog.formulas)} formulas from {_settings.catalog_path}")

# ----------------------------- Schemas ----------------------------------------
class CompileRequest(BaseModel):
    expression: str
    # variable name -> value at which value and gradient are evaluated
    variables: Dict[str, float] = {}
    # None falls back to DIFFTREE_IMPLICIT_MULTIPLICATION
    implicit_multiplication: Optional[bool] = None

class FormulaOverrides(BaseModel):
    # replaces the catalog's sample value for each name given
    variables: Dict[str, float] = {}

# ----------------------------- Routes -----------------------------------------
@app.get("/health")
def health(): return {"ok": True, "backend": _settings.backend, "field": _settings.field}

@app.get("/catalog")
def list_catalog():
    """List formulas from the loaded catalog."""
    return {"count": len(_catalog.formulas), "items": _catalog.list_formulas()}

@app.post("/compile")
def compile_expression(req: CompileRequest):
    """
    Compile and evaluate one expression. Expression errors are not HTTP errors:
    they come back with ok=false plus error, error_stage and error_kind.
    """
    res = _compiler.compile(req.expression, req.variables,
                            implicit_multiplication=req.implicit_multiplication)
    return res.to_dict()

@app.post("/catalog/{formula_id}/compile")
def compile_formula(formula_id: str, req: Optional[FormulaOverrides] = None):
    """Compile a catalog formula with its sample bindings (optionally overridden)."""
    try:
        formula = _catalog.get(formula_id)
    except CatalogError as e:
        raise HTTPException(status_code=404, detail=str(e))
    values = dict(formula.variables)
    if req is not None:
        values.update(req.variables)
    res = _compiler.compile(formula.expression, values,
                            implicit_multiplication=formula.implicit_multiplication)
    payload = res.to_dict()
    payload["formula"] = {"id": formula.id, "name": formula.name, "tags": formula.tags}
    return payload


if __name__ == "__main__":
    uvicorn.run(app, host=_settings.api_host, port=_settings.api_port)
