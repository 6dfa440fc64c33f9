# -----------------------------------------------------------------------------
# Settings & logging
# Purpose:
#   Read runtime configuration from the environment (optionally from a .env
#   file) and build the matching autodiff factory.
# Environment:
#   DIFFTREE_IMPLICIT_MULTIPLICATION  true|false   (default true)
#   DIFFTREE_BACKEND                  native|sympy (default native)
#   DIFFTREE_FIELD                    double|mpmath (native backend only)
#   DIFFTREE_PRECISION                decimal digits for the mpmath field
#   CATALOG_PATH                      YAML formula catalog
#   LOG_LEVEL, API_HOST, API_PORT
# -----------------------------------------------------------------------------

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .autodiff import DifferentialFunctionFactory
from .fields import DOUBLE, MpmathField
from .sympy_backend import SympyFunctionFactory

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CATALOG_PATH = str(PROJECT_ROOT / "examples" / "formulas.yaml")

BACKENDS = ("native", "sympy")
FIELDS = ("double", "mpmath")

# Load .env once at import so os.getenv sees it
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    implicit_multiplication: bool = True
    backend: str = "native"
    field: str = "double"
    precision: int = 30
    catalog_path: str = DEFAULT_CATALOG_PATH
    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend '{self.backend}', expected one of {BACKENDS}")
        if self.field not in FIELDS:
            raise ValueError(f"Unknown field '{self.field}', expected one of {FIELDS}")

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            implicit_multiplication=_env_bool("DIFFTREE_IMPLICIT_MULTIPLICATION", True),
            backend=os.getenv("DIFFTREE_BACKEND", "native").strip().lower(),
            field=os.getenv("DIFFTREE_FIELD", "double").strip().lower(),
            precision=int(os.getenv("DIFFTREE_PRECISION", "30")),
            catalog_path=os.getenv("CATALOG_PATH", DEFAULT_CATALOG_PATH),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            api_host=os.getenv("API_HOST", "127.0.0.1"),
            api_port=int(os.getenv("API_PORT", "8000")),
        )


def make_factory(settings: Settings):
    """Fresh factory for the configured backend (sympy ignores `field`)."""
    if settings.backend == "sympy":
        return SympyFunctionFactory()
    if settings.field == "mpmath":
        return DifferentialFunctionFactory(MpmathField(settings.precision))
    return DifferentialFunctionFactory(DOUBLE)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
