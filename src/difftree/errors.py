# -----------------------------------------------------------------------------
# Error taxonomy for the expression compiler
# Purpose:
#   One exception class per failure kind, grouped by the pipeline stage that
#   raises it (configuration -> tokenization -> tree). Callers can catch the
#   shared base `ExpressionError` and read `.stage` to know where it failed.
# -----------------------------------------------------------------------------

from __future__ import annotations

STAGE_CONFIGURATION = "configuration"
STAGE_TOKENIZATION = "tokenization"
STAGE_TREE = "tree"


class ExpressionError(Exception):
    """Base class for every failure surfaced by the compiler."""
    stage: str | None = None


# ---------------------------- configuration ----------------------------------

class ConfigurationError(ExpressionError):
    stage = STAGE_CONFIGURATION


class InvalidExpressionError(ConfigurationError):
    def __init__(self, message: str = "Expression can not be empty"):
        super().__init__(message)


class InvalidOperatorSymbolError(ConfigurationError):
    def __init__(self, symbol: str):
        super().__init__(f"The operator symbol '{symbol}' is invalid")
        self.symbol = symbol


class InvalidFunctionNameError(ConfigurationError):
    def __init__(self, name: str):
        super().__init__(f"The function name '{name}' is invalid")
        self.name = name


class NameCollisionError(ConfigurationError):
    def __init__(self, identifier: str, message: str | None = None):
        super().__init__(message or (
            f"A variable can not have the same name as a function [{identifier}]"
        ))
        self.identifier = identifier


class NumericTypeError(ConfigurationError):
    pass


# ---------------------------- tokenization -----------------------------------

class TokenizationError(ExpressionError):
    """Wraps the syntax failure reported by the shunting-yard engine."""
    stage = STAGE_TOKENIZATION


# ---------------------------- tree building ----------------------------------

class TreeBuildError(ExpressionError):
    stage = STAGE_TREE


class TokenizerError(TreeBuildError):
    pass


class UnsupportedFunctionError(TokenizerError):
    def __init__(self, name: str):
        super().__init__(f"Unsupported function: {name}")
        self.name = name


class UnsupportedOperatorError(TokenizerError):
    def __init__(self, symbol: str):
        super().__init__(f"Unsupported operator '{symbol}'")
        self.symbol = symbol


class UnknownVariableError(TreeBuildError):
    def __init__(self, identifier: str):
        super().__init__(f"Unknown variable '{identifier}'")
        self.identifier = identifier


class UnsupportedOperationError(TreeBuildError):
    pass
