from typing import Callable, Optional

from formula_engine.functions import FunctionRegistry
from formula_engine.operators import apply_binary, apply_unary
from formula_engine.types import FormulaValue, normalize_value
from formula_engine.utils import expand_range
from .ast import (
    ASTNode,
    BinaryOperation,
    CellRange,
    CellReference,
    Constant,
    FunctionCall,
    UnaryOperation,
)

CellResolver = Callable[[str], FormulaValue]


class Evaluator:
    """Evaluates a parsed formula tree against a function registry and a cell
    resolver. Holds no state between calls."""

    def __init__(
        self, functions: FunctionRegistry, resolver: Optional[CellResolver] = None
    ):
        self.functions = functions
        self.resolver = resolver

    def evaluate(self, node: Optional[ASTNode]) -> FormulaValue:
        """Evaluate a tree. An empty formula evaluates to 0."""
        if node is None:
            return 0
        return self._evaluate_node(node)

    def _evaluate_node(self, node: ASTNode) -> FormulaValue:
        if isinstance(node, Constant):
            return node.value

        elif isinstance(node, BinaryOperation):
            left = self._evaluate_node(node.left)
            right = self._evaluate_node(node.right)
            return apply_binary(node.operator, left, right)

        elif isinstance(node, UnaryOperation):
            return apply_unary(node.operator, self._evaluate_node(node.operand))

        elif isinstance(node, CellReference):
            return self._resolve(node.address)

        elif isinstance(node, FunctionCall):
            return self._evaluate_function(node)

        raise ValueError(f"Unknown node type: {type(node)}")

    def _resolve(self, address: str) -> FormulaValue:
        if self.resolver is None:
            return 0
        return normalize_value(self.resolver(address))

    def _evaluate_function(self, node: FunctionCall) -> FormulaValue:
        """Evaluate arguments left to right and call the function.

        A range argument contributes each of its cells as a separate argument.
        """
        args: list[FormulaValue] = []
        for arg in node.arguments:
            if isinstance(arg, CellRange):
                args.extend(self._resolve(address) for address in expand_range(arg))
            else:
                args.append(self._evaluate_node(arg))
        return self.functions.call(node.name, args)
