import re

from openpyxl.utils import get_column_letter, range_boundaries

import formula_engine.ast as ast
from formula_engine.errors import ParseError

# Constants
CELL_REF_REGEX = re.compile(r"^[A-Z]+[0-9]+$")


def is_cell_reference(value: str) -> bool:
    return CELL_REF_REGEX.match(value) is not None


def range_bounds(start: str, end: str) -> tuple[int, int, int, int]:
    """Return (min_col, min_row, max_col, max_row) for two corner addresses.

    The corners may be given in any order.
    """
    try:
        start_col, start_row, end_col, end_row = range_boundaries(f"{start}:{end}")
    except ValueError as e:
        raise ParseError(f"Invalid range: {start}:{end}") from e
    if min(start_row, end_row) < 1:
        raise ParseError(f"Invalid range: {start}:{end}")
    return (
        min(start_col, end_col),
        min(start_row, end_row),
        max(start_col, end_col),
        max(start_row, end_row),
    )


def expand_range(node: ast.CellRange) -> list[str]:
    """Expand a range into its cell addresses, row by row."""
    min_col, min_row, max_col, max_row = range_bounds(
        node.start.address, node.end.address
    )
    return [
        f"{get_column_letter(col)}{row}"
        for row in range(min_row, max_row + 1)
        for col in range(min_col, max_col + 1)
    ]


def pretty_print_ast(node: ast.ASTNode | None, indent: int = 0) -> None:
    """Print AST in a human-readable format."""
    indent_str = "  " * indent
    if node is None:
        print(f"{indent_str}Empty")
    elif isinstance(node, ast.FunctionCall):
        print(f"{indent_str}Function: {node.name}")
        for i, arg in enumerate(node.arguments):
            print(f"{indent_str}  Argument {i + 1}:")
            pretty_print_ast(arg, indent + 2)
    elif isinstance(node, ast.BinaryOperation):
        print(f"{indent_str}Binary Operation: {node.operator}")
        print(f"{indent_str}  Left:")
        pretty_print_ast(node.left, indent + 2)
        print(f"{indent_str}  Right:")
        pretty_print_ast(node.right, indent + 2)
    elif isinstance(node, ast.UnaryOperation):
        print(f"{indent_str}Unary Operation: {node.operator}")
        pretty_print_ast(node.operand, indent + 1)
    elif isinstance(node, ast.CellReference):
        print(f"{indent_str}Cell Reference: {node.address}")
    elif isinstance(node, ast.CellRange):
        print(f"{indent_str}Cell Range: {node.start.address}:{node.end.address}")
    elif isinstance(node, ast.Constant):
        print(f"{indent_str}Constant: {node.value!r}")
    else:
        print(f"{indent_str}Unknown node type: {type(node)}")
