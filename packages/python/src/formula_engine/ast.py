from typing import Iterator, NamedTuple


class FunctionCall(NamedTuple):
    name: str
    arguments: "tuple[ASTNode, ...]"


class BinaryOperation(NamedTuple):
    left: "ASTNode"
    operator: str
    right: "ASTNode"


class UnaryOperation(NamedTuple):
    operator: str
    operand: "ASTNode"


class CellReference(NamedTuple):
    address: str


class CellRange(NamedTuple):
    start: CellReference
    end: CellReference


class Constant(NamedTuple):
    value: int | float | str | bool


# Type alias for all possible AST nodes
ASTNode = (
    FunctionCall
    | BinaryOperation
    | UnaryOperation
    | CellReference
    | CellRange
    | Constant
)


class Call(NamedTuple):
    """Postfix instruction: call `name` with the top `arg_count` operands."""

    name: str
    arg_count: int


# Postfix spelling of unary operators, so they can't be mistaken for binary ones
UNARY_POSTFIX = {"-": "NEG", "+": "POS"}

PostfixItem = Constant | CellReference | CellRange | Call | str


def to_postfix(node: ASTNode | None) -> Iterator[PostfixItem]:
    """Yield the tree in reverse Polish order, with explicit call arities."""
    if node is None:
        return
    if isinstance(node, BinaryOperation):
        yield from to_postfix(node.left)
        yield from to_postfix(node.right)
        yield node.operator
    elif isinstance(node, UnaryOperation):
        yield from to_postfix(node.operand)
        yield UNARY_POSTFIX[node.operator]
    elif isinstance(node, FunctionCall):
        for arg in node.arguments:
            yield from to_postfix(arg)
        yield Call(node.name, len(node.arguments))
    else:
        yield node
