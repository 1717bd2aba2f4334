import logging
import string
from enum import Enum, auto
from typing import List, NamedTuple

from formula_engine.errors import TokenizerError

logger = logging.getLogger(__name__)


class TokenType(Enum):
    IDENTIFIER = auto()
    NUMBER = auto()
    OPERATOR = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    SEMICOLON = auto()
    COLON = auto()
    BOOLEAN = auto()
    STRING = auto()


class Token(NamedTuple):
    type: TokenType
    value: str
    position: int


# Only ASCII letters and digits form identifiers and numbers
LETTERS = frozenset(string.ascii_letters)
DIGITS = frozenset(string.digits)
IDENTIFIER_CHARS = LETTERS | DIGITS | {"_"}

OPERATOR_CHARS = "+-*/%^&=<>"

PUNCTUATION = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ",": TokenType.COMMA,
    ":": TokenType.COLON,
    ";": TokenType.SEMICOLON,
}

# After one of these a '-' directly followed by a number is a sign.
SIGN_CONTEXT = {TokenType.OPERATOR, TokenType.LPAREN, TokenType.COMMA}


def tokenize(formula: str, strict: bool = False) -> List[Token]:
    """Helper function to tokenize a formula string."""
    return FormulaTokenizer(formula, strict=strict).tokenize()


class FormulaTokenizer:
    TWO_CHAR_OPERATORS = {"<": {"=", ">"}, ">": {"="}}

    def __init__(self, formula: str, strict: bool = False):
        self.formula = formula
        self.strict = strict
        self.pos = 0
        self.length = len(self.formula)

    def tokenize(self) -> List[Token]:
        """Tokenize the formula and return list of tokens.

        Scans left to right without backtracking. Characters that cannot start
        a token are dropped, unless the tokenizer is strict.
        """
        tokens: List[Token] = []
        while self.pos < self.length:
            char = self.formula[self.pos]

            if char.isspace():
                self.pos += 1
            elif char == '"':
                tokens.append(self._tokenize_string())
            elif char in LETTERS:
                tokens.append(self._tokenize_identifier())
            elif self._starts_number(self.pos):
                tokens.append(self._tokenize_number(self.pos))
            elif char == "-" and self._is_sign(tokens):
                tokens.append(self._tokenize_number(self.pos + 1))
            elif char in OPERATOR_CHARS:
                tokens.append(self._tokenize_operator())
            elif char in PUNCTUATION:
                tokens.append(Token(PUNCTUATION[char], char, self.pos))
                self.pos += 1
            elif self.strict:
                raise TokenizerError(
                    f"Unexpected character: {char} at position {self.pos}"
                )
            else:
                logger.debug("Dropping unrecognized character %r at %d", char, self.pos)
                self.pos += 1

        return tokens

    def _starts_number(self, pos: int) -> bool:
        return pos < self.length and (
            self.formula[pos] in DIGITS or self.formula[pos] == "."
        )

    def _is_sign(self, tokens: List[Token]) -> bool:
        """A '-' is a sign when nothing operand-like precedes it and a number follows."""
        if tokens and tokens[-1].type not in SIGN_CONTEXT:
            return False
        return self._starts_number(self.pos + 1)

    def _tokenize_identifier(self) -> Token:
        """Tokenize an identifier (function name, cell reference or boolean)."""
        start = self.pos
        while (
            self.pos < self.length and self.formula[self.pos] in IDENTIFIER_CHARS
        ):
            self.pos += 1

        value = self.formula[start : self.pos]
        if value.upper() in ("TRUE", "FALSE"):
            return Token(TokenType.BOOLEAN, value.upper(), start)
        return Token(TokenType.IDENTIFIER, value, start)

    def _tokenize_number(self, digits_start: int) -> Token:
        """Tokenize digits with at most one decimal point.

        `digits_start` is past the sign when the number is negative; the token
        value then includes the leading '-'.
        """
        start = self.pos
        self.pos = digits_start
        seen_decimal = False
        while self.pos < self.length:
            char = self.formula[self.pos]
            if char in DIGITS:
                self.pos += 1
            elif char == "." and not seen_decimal:
                seen_decimal = True
                self.pos += 1
            else:
                break

        return Token(TokenType.NUMBER, self.formula[start : self.pos], start)

    def _tokenize_operator(self) -> Token:
        """Tokenize an operator (+, -, *, /, %, ^, &, =, <, >, <=, >=, <>)."""
        start = self.pos
        current_char = self.formula[self.pos]
        next_char = self.formula[self.pos + 1] if self.pos + 1 < self.length else None

        if (
            next_char
            and current_char in self.TWO_CHAR_OPERATORS
            and next_char in self.TWO_CHAR_OPERATORS[current_char]
        ):
            self.pos += 2
        else:
            self.pos += 1

        return Token(TokenType.OPERATOR, self.formula[start : self.pos], start)

    def _tokenize_string(self) -> Token:
        """Tokenize a string literal.

        Characters are taken verbatim up to the next double quote. There is no
        escape syntax, and an unterminated string runs to the end of input.
        """
        start = self.pos
        self.pos += 1  # Skip opening quote
        end = self.formula.find('"', self.pos)
        if end == -1:
            end = self.length
        value = self.formula[self.pos : end]
        self.pos = min(end + 1, self.length)
        return Token(TokenType.STRING, value, start)
