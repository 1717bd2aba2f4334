from dataclasses import dataclass
from typing import List, Optional, Union

from formula_engine.errors import ArityError, ParseError, UnknownFunctionError
from formula_engine.functions import FunctionRegistry
from formula_engine.operators import PRECEDENCE, UNARY_PRECEDENCE
from formula_engine.types import parse_number
from formula_engine.utils import is_cell_reference, range_bounds
from .ast import (
    ASTNode,
    BinaryOperation,
    CellRange,
    CellReference,
    Constant,
    FunctionCall,
    UnaryOperation,
)
from .tokenizer import Token, TokenType, tokenize


def parse_formula(
    formula: str, functions: FunctionRegistry, strict: bool = False
) -> Optional[ASTNode]:
    """Helper function to parse a formula string into an AST."""
    formula = formula.strip()
    # Skip leading equals sign if present
    if formula.startswith("="):
        formula = formula[1:]
    return FormulaParser(tokenize(formula, strict=strict), functions).parse()


@dataclass
class _Group:
    """An open parenthesis on the operator stack.

    `name` is set when the parenthesis opens a function call. `start` is the
    operand stack size when it opened and `arg_start` the size when the
    current argument began.
    """

    start: int
    arg_start: int
    name: Optional[str] = None
    commas: int = 0


@dataclass
class _Operator:
    symbol: str
    unary: bool = False

    @property
    def precedence(self) -> int:
        return UNARY_PRECEDENCE if self.unary else PRECEDENCE[self.symbol]


class FormulaParser:
    """Shunting-yard parser building an AST from a flat token stream.

    Operators wait on an operator stack until an operator of lower or equal
    precedence arrives (every binary operator is left-associative). Where the
    classic algorithm emits postfix output, each popped operator or closed
    call is reduced into a tree node on the operand stack, so a call node
    holds its arguments directly.
    """

    def __init__(self, tokens: List[Token], functions: FunctionRegistry):
        self.tokens = tokens
        self.functions = functions
        self.current = 0
        self.operands: List[ASTNode] = []
        self.stack: List[Union[_Group, _Operator]] = []

    def peek(self, offset: int = 0) -> Optional[Token]:
        """Look at a token ahead of the current one without consuming it."""
        index = self.current + offset
        if index >= len(self.tokens):
            return None
        return self.tokens[index]

    def parse(self) -> Optional[ASTNode]:
        """Parse tokens into an AST. An empty formula gives None."""
        self.current = 0
        self.operands = []
        self.stack = []
        # Whether the next token should start an operand (prefix position)
        expect_operand = True

        while (token := self.peek()) is not None:
            if token.type == TokenType.NUMBER:
                self.operands.append(Constant(self._parse_number(token)))
                expect_operand = False

            elif token.type == TokenType.STRING:
                self.operands.append(Constant(token.value))
                expect_operand = False

            elif token.type == TokenType.BOOLEAN:
                self.operands.append(Constant(token.value == "TRUE"))
                expect_operand = False

            elif token.type == TokenType.IDENTIFIER:
                expect_operand = self._parse_identifier(token)

            elif token.type == TokenType.LPAREN:
                depth = len(self.operands)
                self.stack.append(_Group(start=depth, arg_start=depth))
                expect_operand = True

            elif token.type == TokenType.COMMA:
                group = self._flush_to_group()
                if group is None or group.name is None:
                    raise ParseError(
                        f"Unexpected ',' outside of a function call at position {token.position}"
                    )
                self._check_single_operand(group, f"argument of {group.name}")
                group.commas += 1
                group.arg_start = len(self.operands)
                expect_operand = True

            elif token.type == TokenType.RPAREN:
                group = self._flush_to_group()
                if group is None:
                    raise ParseError(f"Unmatched ')' at position {token.position}")
                self.stack.pop()
                self._close_group(group)
                expect_operand = False

            elif token.type == TokenType.OPERATOR:
                if expect_operand and token.value in ("+", "-"):
                    self.stack.append(_Operator(token.value, unary=True))
                else:
                    self._push_binary(_Operator(token.value))
                    expect_operand = True

            else:
                raise ParseError(
                    f"Unexpected token: {token.value!r} at position {token.position}"
                )

            self.current += 1

        # Remaining operators are flushed; open parentheses close implicitly
        while self.stack:
            item = self.stack.pop()
            if isinstance(item, _Operator):
                self._reduce(item)
            else:
                self._close_group(item)

        if not self.operands:
            return None
        if len(self.operands) > 1:
            raise ParseError("Missing operator between operands")
        return self._check_not_range(self.operands[0])

    def _parse_identifier(self, token: Token) -> bool:
        """Handle a function name, cell reference or range.

        Returns whether an operand is expected next.
        """
        next_token = self.peek(1)
        if next_token is not None and next_token.type == TokenType.LPAREN:
            name = token.value.upper()
            if not self.functions.has(name):
                raise UnknownFunctionError(name)
            depth = len(self.operands)
            self.stack.append(_Group(start=depth, arg_start=depth, name=name))
            self.current += 1  # consume '('
            return True

        if not is_cell_reference(token.value):
            raise ParseError(
                f"Unknown identifier: {token.value} at position {token.position}"
            )

        if next_token is not None and next_token.type == TokenType.COLON:
            end_token = self.peek(2)
            if (
                end_token is None
                or end_token.type != TokenType.IDENTIFIER
                or not is_cell_reference(end_token.value)
            ):
                raise ParseError(f"Invalid range at position {token.position}")
            # Validates both corners
            range_bounds(token.value, end_token.value)
            self.operands.append(
                CellRange(CellReference(token.value), CellReference(end_token.value))
            )
            self.current += 2  # consume ':' and the end reference
            return False

        self.operands.append(CellReference(token.value))
        return False

    def _parse_number(self, token: Token) -> int | float:
        try:
            return parse_number(token.value)
        except ValueError:
            raise ParseError(
                f"Invalid number {token.value!r} at position {token.position}"
            ) from None

    def _push_binary(self, incoming: _Operator) -> None:
        # Equal precedence pops too, which makes every operator left-associative
        while self.stack:
            top = self.stack[-1]
            if not isinstance(top, _Operator) or top.precedence < incoming.precedence:
                break
            self._reduce(self.stack.pop())
        self.stack.append(incoming)

    def _flush_to_group(self) -> Optional[_Group]:
        """Reduce operators down to the nearest open parenthesis and return it."""
        while self.stack:
            top = self.stack[-1]
            if isinstance(top, _Group):
                return top
            self._reduce(self.stack.pop())
        return None

    def _check_single_operand(self, group: _Group, what: str) -> None:
        count = len(self.operands) - group.arg_start
        if count == 0:
            raise ParseError(f"Empty {what}")
        if count > 1:
            raise ParseError(f"Missing operator in {what}")

    def _close_group(self, group: _Group) -> None:
        if group.name is None:
            self._check_single_operand(group, "parentheses")
            return

        # NAME() is the only way to pass zero arguments
        if group.commas or len(self.operands) > group.arg_start:
            self._check_single_operand(group, f"argument of {group.name}")
        arguments = tuple(self.operands[group.start :])
        del self.operands[group.start :]
        self.operands.append(FunctionCall(group.name, arguments))

    def _reduce(self, op: _Operator) -> None:
        """Pop the operands an operator needs and push the resulting node."""
        floor = self._operand_floor()
        needed = 1 if op.unary else 2
        if len(self.operands) - floor < needed:
            raise ArityError(
                op.symbol,
                f"Operator '{op.symbol}' requires "
                f"{'an operand' if op.unary else 'two operands'}",
            )
        if op.unary:
            operand = self._check_not_range(self.operands.pop())
            self.operands.append(UnaryOperation(op.symbol, operand))
            return
        right = self._check_not_range(self.operands.pop())
        left = self._check_not_range(self.operands.pop())
        self.operands.append(BinaryOperation(left, op.symbol, right))

    def _operand_floor(self) -> int:
        """Operands below this index belong to enclosing expressions."""
        for item in reversed(self.stack):
            if isinstance(item, _Group):
                return item.arg_start
        return 0

    @staticmethod
    def _check_not_range(node: ASTNode) -> ASTNode:
        if isinstance(node, CellRange):
            raise ParseError("A range can only be used as a function argument")
        return node
