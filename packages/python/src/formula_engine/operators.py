import logging
import math
import operator
from datetime import datetime
from typing import Any, Callable

from formula_engine.errors import UnsupportedOperatorError
from formula_engine.types import (
    FormulaValue,
    coerce_to_number,
    coerce_to_text,
    fit_float_range,
    numeric_text,
    text_to_datetime,
)

logger = logging.getLogger(__name__)

# Binding strength of each binary operator. All of them are left-associative.
PRECEDENCE: dict[str, int] = {
    "=": 0,
    "<>": 0,
    "<": 0,
    ">": 0,
    "<=": 0,
    ">=": 0,
    "+": 1,
    "-": 1,
    "&": 1,
    "*": 2,
    "/": 2,
    "%": 2,
    "^": 3,
}

# Prefix +/- bind tighter than any binary operator
UNARY_PRECEDENCE = 4


def add(left: FormulaValue, right: FormulaValue) -> FormulaValue:
    return fit_float_range(coerce_to_number(left) + coerce_to_number(right))


def subtract(left: FormulaValue, right: FormulaValue) -> FormulaValue:
    return fit_float_range(coerce_to_number(left) - coerce_to_number(right))


def multiply(left: FormulaValue, right: FormulaValue) -> FormulaValue:
    return fit_float_range(coerce_to_number(left) * coerce_to_number(right))


def divide(left: FormulaValue, right: FormulaValue) -> FormulaValue:
    """Division where a zero divisor yields 0 instead of an error."""
    dividend = coerce_to_number(left)
    divisor = coerce_to_number(right)
    if divisor == 0:
        logger.debug("Division of %r by zero, returning 0", dividend)
        return 0
    return dividend / divisor


def modulo(left: FormulaValue, right: FormulaValue) -> FormulaValue:
    """Integer remainder of the truncated operands, with the dividend's sign.

    A divisor that truncates to zero yields 0. An infinite or NaN operand
    yields NaN.
    """
    dividend = coerce_to_number(left)
    divisor = coerce_to_number(right)
    if not (math.isfinite(dividend) and math.isfinite(divisor)):
        return math.nan
    dividend = int(dividend)
    divisor = int(divisor)
    if divisor == 0:
        logger.debug("Modulo of %r by zero, returning 0", dividend)
        return 0
    remainder = abs(dividend) % abs(divisor)
    return -remainder if dividend < 0 else remainder


def _int_power_fits(base: int, exponent: int) -> bool:
    """Whether base ** exponent stays within float range."""
    return abs(base) <= 1 or exponent * math.log2(abs(base)) < 1023


def power(left: FormulaValue, right: FormulaValue) -> FormulaValue:
    """Exponentiation. Results past float range become signed infinity."""
    base = coerce_to_number(left)
    exponent = coerce_to_number(right)
    if base == 0 and exponent < 0:
        return 0
    if (
        isinstance(base, int)
        and isinstance(exponent, int)
        and exponent >= 0
        and _int_power_fits(base, exponent)
    ):
        return base**exponent
    try:
        return math.pow(base, exponent)
    except ValueError:
        # Fractional power of a negative base
        return math.nan
    except OverflowError:
        return -math.inf if base < 0 and exponent % 2 == 1 else math.inf


def concatenate(left: FormulaValue, right: FormulaValue) -> str:
    return coerce_to_text(left) + coerce_to_text(right)


def _empty_like(value: FormulaValue) -> Any:
    """The value an empty operand takes when compared against `value`."""
    if isinstance(value, str):
        return ""
    if isinstance(value, bool):
        return False
    return 0


def _text_pair(left: FormulaValue, right: FormulaValue) -> tuple[Any, Any]:
    """Comparison pair when at least one side is text.

    Numeric text compares numerically against numbers and numeric text.
    Everything else compares as case-insensitive text.
    """
    left_num = numeric_text(left) if isinstance(left, str) else left
    right_num = numeric_text(right) if isinstance(right, str) else right
    if (
        isinstance(left_num, (int, float))
        and not isinstance(left_num, bool)
        and isinstance(right_num, (int, float))
        and not isinstance(right_num, bool)
    ):
        return left_num, right_num
    return coerce_to_text(left).lower(), coerce_to_text(right).lower()


def _datetime_pair(left: FormulaValue, right: FormulaValue) -> tuple[Any, Any]:
    """Comparison pair when at least one side is a datetime."""
    if isinstance(left, datetime) and isinstance(right, datetime):
        return left, right
    if isinstance(left, str) or isinstance(right, str):
        text = left if isinstance(left, str) else right
        parsed = text_to_datetime(text)
        if parsed is None:
            return coerce_to_text(left).lower(), coerce_to_text(right).lower()
        if isinstance(left, str):
            return parsed, right
        return left, parsed
    return coerce_to_number(left), coerce_to_number(right)


def comparable_pair(left: FormulaValue, right: FormulaValue) -> tuple[Any, Any]:
    """Bring two operands to one comparable kind.

    1. Empty takes the empty value of the other side (0, "" or FALSE).
    2. Datetimes compare with datetimes natively, with numbers as serial
       numbers, with text by parsing ISO-8601 (else as text).
    3. Text is handled by `_text_pair`; booleans against text compare as
       "TRUE"/"FALSE".
    4. Booleans and numbers compare as numbers.
    """
    if left is None and right is None:
        return 0, 0
    if left is None:
        left = _empty_like(right)
    if right is None:
        right = _empty_like(left)

    if isinstance(left, datetime) or isinstance(right, datetime):
        return _datetime_pair(left, right)
    if isinstance(left, str) or isinstance(right, str):
        return _text_pair(left, right)
    if isinstance(left, bool) and isinstance(right, bool):
        return left, right
    return coerce_to_number(left), coerce_to_number(right)


def _comparison(compare: Callable[[Any, Any], bool]):
    def apply(left: FormulaValue, right: FormulaValue) -> bool:
        return compare(*comparable_pair(left, right))

    apply.__name__ = compare.__name__
    return apply


eq = _comparison(operator.eq)
neq = _comparison(operator.ne)
lt = _comparison(operator.lt)
gt = _comparison(operator.gt)
lte = _comparison(operator.le)
gte = _comparison(operator.ge)


BINARY_OPERATORS: dict[str, Callable[[FormulaValue, FormulaValue], FormulaValue]] = {
    "+": add,
    "-": subtract,
    "*": multiply,
    "/": divide,
    "%": modulo,
    "^": power,
    "&": concatenate,
    "=": eq,
    "<>": neq,
    "<": lt,
    ">": gt,
    "<=": lte,
    ">=": gte,
}


def apply_binary(op: str, left: FormulaValue, right: FormulaValue) -> FormulaValue:
    """Apply a binary operator to two evaluated operands."""
    fn = BINARY_OPERATORS.get(op)
    if fn is None:
        raise UnsupportedOperatorError(op)
    return fn(left, right)


def apply_unary(op: str, value: FormulaValue) -> FormulaValue:
    match op:
        case "+":
            return value
        case "-":
            return -coerce_to_number(value)
        case _:
            raise UnsupportedOperatorError(op)
