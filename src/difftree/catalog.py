# -----------------------------------------------------------------------------
# Formula catalog loader & accessor
# Purpose: Parse a flat YAML catalog of named expressions (with sample
# variable bindings) into typed objects the compiler and API can run.
# -----------------------------------------------------------------------------

from __future__ import annotations
import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Domain-specific error to signal malformed catalog inputs, missing fields, etc.
class CatalogError(Exception): pass


@dataclass
class Formula:
    id: str
    name: str
    expression: str
    # sample bindings: variable name -> value
    variables: Dict[str, float] = field(default_factory=dict)
    implicit_multiplication: Optional[bool] = None   # None = use settings
    tags: List[str] = field(default_factory=list)


@dataclass
class Catalog:
    formulas: List[Formula]

    @staticmethod
    def from_yaml_dict(d: Dict[str, Any]) -> "Catalog":
        """
        Build a Catalog from a pre-parsed YAML dictionary.
        Expected YAML shape:
          formulas:
            - id: quadratic_sample
              name: "..."
              expression: "2x^2 + y"
              variables: { x: 10, y: 5.5 }
              implicit_multiplication: true   # optional
              tags: ["polynomial"]            # optional
        """
        if not isinstance(d, dict):
            raise CatalogError("Catalog root must be a mapping")
        forms: List[Formula] = []
        seen = set()
        for i, fd in enumerate(d.get("formulas") or []):
            if not isinstance(fd, dict):
                raise CatalogError(f"Formula #{i} must be a mapping")
            for key in ("id", "expression"):
                if key not in fd:
                    raise CatalogError(f"Formula #{i} is missing '{key}'")
            fid = str(fd["id"])
            if fid in seen:
                raise CatalogError(f"Duplicate formula id '{fid}'")
            seen.add(fid)
            try:
                variables = {str(k): float(v) for k, v in (fd.get("variables") or {}).items()}
            except (TypeError, ValueError) as e:
                raise CatalogError(f"Formula '{fid}' has a non-numeric variable value: {e}") from e
            implicit = fd.get("implicit_multiplication")
            forms.append(Formula(
                id=fid,
                name=str(fd.get("name", fid)),
                expression=str(fd["expression"]),
                variables=variables,
                implicit_multiplication=None if implicit is None else bool(implicit),
                tags=list(fd.get("tags", [])),
            ))
        return Catalog(formulas=forms)

    @staticmethod
    def from_yaml_text(text: str) -> "Catalog":
        """
        Convenience: parse raw YAML string into a Catalog.
        Uses yaml.safe_load for security (no arbitrary object constructors).
        """
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise CatalogError(f"Invalid catalog YAML: {e}") from e
        return Catalog.from_yaml_dict(data or {})

    @staticmethod
    def from_file(path: str) -> "Catalog":
        with open(path, "r", encoding="utf-8") as f:
            return Catalog.from_yaml_text(f.read())

    def get(self, formula_id: str) -> Formula:
        for f in self.formulas:
            if f.id == formula_id:
                return f
        raise CatalogError(f"Unknown formula '{formula_id}'")

    def list_formulas(self) -> List[Dict[str, Any]]:
        """Flattened, UI-friendly listing (id, name, expression, variables, tags)."""
        out = []
        for f in self.formulas:
            out.append({
                "id": f.id, "name": f.name, "expression": f.expression,
                "variables": dict(f.variables), "tags": f.tags,
            })
        return out
