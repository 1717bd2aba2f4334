import logging
from typing import Optional

from formula_engine.ast import ASTNode
from formula_engine.cache import BoundedCache, CacheStats
from formula_engine.errors import EvaluationDepthError
from formula_engine.evaluator import CellResolver, Evaluator
from formula_engine.functions import FormulaFunction, FunctionRegistry
from formula_engine.guard import CycleGuard
from formula_engine.parser import parse_formula
from formula_engine.types import FormulaValue

logger = logging.getLogger(__name__)


class FormulaEngine:
    """Calculates spreadsheet formulas one at a time.

    Each engine owns its function registry, caches and cycle guard. An engine
    is not safe to share between threads: use one per worker, or hold a lock
    around `calculate`.

    The result cache is keyed by the formula text and the active chain of
    cell addresses. It assumes cell values don't change within a
    recalculation pass; call `clear_cache` between passes.
    """

    def __init__(
        self,
        max_cache_size: int = 10000,
        enable_cache: bool = True,
        resolver: Optional[CellResolver] = None,
        max_depth: Optional[int] = None,
        strict: bool = False,
    ):
        self.max_cache_size = max_cache_size
        self.enable_cache = enable_cache
        # Bounds re-entrant calculate() calls made through the resolver
        self.max_depth = max_depth
        # Raise on unrecognized characters instead of dropping them
        self.strict = strict
        self._resolver = resolver
        self._functions = FunctionRegistry()
        self._formula_cache: BoundedCache[str, Optional[ASTNode]] = BoundedCache(
            max_cache_size
        )
        self._result_cache: BoundedCache[
            tuple[str, tuple[str, ...]], FormulaValue
        ] = BoundedCache(max_cache_size)
        self._guard = CycleGuard()
        self._depth = 0

    def set_cell_resolver(self, resolver: Optional[CellResolver]) -> "FormulaEngine":
        """Install the callback that supplies cell values.

        Cached results came from the previous resolver's values, so they are
        dropped.
        """
        self._resolver = resolver
        self._result_cache.clear()
        return self

    def add_function(self, name: str, fn: FormulaFunction) -> "FormulaEngine":
        """Register or replace a function, case-insensitively."""
        self._functions.register(name, fn)
        self.clear_cache()
        return self

    def get_supported_functions(self) -> list[str]:
        return self._functions.names()

    def clear_cache(self) -> "FormulaEngine":
        self._formula_cache.clear()
        self._result_cache.clear()
        return self

    def get_cache_stats(self) -> CacheStats:
        return CacheStats(
            formula_cache_size=len(self._formula_cache),
            result_cache_size=len(self._result_cache),
            max_cache_size=self.max_cache_size,
            cache_enabled=self.enable_cache,
        )

    def calculate(self, formula: str, address: str = "") -> FormulaValue:
        """Calculate a formula (the text after '=') for the cell at `address`.

        `address` may be empty for formulas that don't belong to a cell; such
        calls are not checked for circular references.
        """
        if self.max_depth is not None and self._depth >= self.max_depth:
            raise EvaluationDepthError(self.max_depth)
        self._depth += 1
        try:
            with self._guard.track(address):
                return self._calculate(formula)
        finally:
            self._depth -= 1

    def _calculate(self, formula: str) -> FormulaValue:
        key = (formula, self._guard.stack)
        if self.enable_cache and key in self._result_cache:
            logger.debug("Result cache hit for %r", formula)
            return self._result_cache.get(key)

        node = self._parse(formula)
        result = Evaluator(self._functions, self._resolver).evaluate(node)

        if self.enable_cache:
            self._result_cache.set(key, result)
        return result

    def _parse(self, formula: str) -> Optional[ASTNode]:
        if self.enable_cache and formula in self._formula_cache:
            return self._formula_cache.get(formula)
        node = parse_formula(formula, self._functions, strict=self.strict)
        if self.enable_cache:
            self._formula_cache.set(formula, node)
        return node
