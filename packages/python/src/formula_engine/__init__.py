"""formula_engine - tokenize, parse and evaluate spreadsheet formulas."""

from formula_engine.cache import CacheStats
from formula_engine.engine import FormulaEngine
from formula_engine.errors import (
    ArityError,
    CircularReferenceError,
    CoercionError,
    EvaluationDepthError,
    FormulaError,
    FunctionArgumentError,
    ParseError,
    TokenizerError,
    UnknownFunctionError,
    UnsupportedOperatorError,
)
from formula_engine.evaluator import CellResolver
from formula_engine.functions import BUILTIN_FUNCTIONS, FunctionRegistry
from formula_engine.types import FormulaValue

__all__ = [
    "ArityError",
    "BUILTIN_FUNCTIONS",
    "CacheStats",
    "CellResolver",
    "CircularReferenceError",
    "CoercionError",
    "EvaluationDepthError",
    "FormulaEngine",
    "FormulaError",
    "FormulaValue",
    "FunctionArgumentError",
    "FunctionRegistry",
    "ParseError",
    "TokenizerError",
    "UnknownFunctionError",
    "UnsupportedOperatorError",
]
