import inspect
import logging
import math
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable

from formula_engine.errors import (
    CoercionError,
    FunctionArgumentError,
    UnknownFunctionError,
)
from formula_engine.operators import power
from formula_engine.types import (
    FormulaValue,
    coerce_to_bool,
    coerce_to_text,
    fit_float_range,
    is_number,
    numeric_text,
)

logger = logging.getLogger(__name__)

FormulaFunction = Callable[..., FormulaValue]

ROUND_DIGIT_LIMIT = 400


def aggregate_numbers(values: tuple[FormulaValue, ...]) -> list[int | float]:
    """Collect the numeric arguments.

    Numbers and numeric text such as "5" count; other text, booleans and empty
    values are skipped.
    """
    nums: list[int | float] = []
    for val in values:
        if is_number(val):
            nums.append(fit_float_range(val))
        elif isinstance(val, str) and (num := numeric_text(val)) is not None:
            nums.append(num)
    return nums


def _date_part_source(value: FormulaValue) -> datetime:
    """The datetime YEAR/MONTH/DAY read from.

    A number is a Unix timestamp; anything that is neither a datetime nor a
    number falls back to the current date.
    """
    if isinstance(value, datetime):
        return value
    if is_number(value):
        try:
            return datetime.fromtimestamp(value)
        except (OverflowError, OSError, ValueError) as e:
            raise CoercionError(f"Timestamp out of range: {value}") from e
    return datetime.now()


def _char_count(text: FormulaValue, num_chars: FormulaValue) -> int:
    """How many characters LEFT/RIGHT take, capped at the text length."""
    if not is_number(num_chars) or not num_chars >= 1:
        return 0
    return int(min(num_chars, len(coerce_to_text(text))))


class BuiltinFunctions:
    """Collection of built-in function implementations.

    Each function receives already-evaluated arguments. Its Python signature
    is its arity: required parameters, defaults for optional ones, and
    *values for variadic functions.
    """

    @staticmethod
    def SUM(*values: FormulaValue) -> FormulaValue:
        """Sum of the numeric arguments."""
        return fit_float_range(sum(aggregate_numbers(values)))

    @staticmethod
    def AVERAGE(*values: FormulaValue) -> FormulaValue:
        """Mean of the numeric arguments, 0 if there are none."""
        nums = aggregate_numbers(values)
        return (fit_float_range(sum(nums)) / len(nums)) if nums else 0

    @staticmethod
    def MIN(*values: FormulaValue) -> FormulaValue:
        nums = aggregate_numbers(values)
        return min(nums) if nums else 0

    @staticmethod
    def MAX(*values: FormulaValue) -> FormulaValue:
        nums = aggregate_numbers(values)
        return max(nums) if nums else 0

    @staticmethod
    def COUNT(*values: FormulaValue) -> FormulaValue:
        """Count of the numeric arguments."""
        return len(aggregate_numbers(values))

    @staticmethod
    def ABS(number: FormulaValue) -> FormulaValue:
        return abs(number) if is_number(number) else 0

    @staticmethod
    def ROUND(number: FormulaValue, num_digits: FormulaValue = 0) -> FormulaValue:
        """Round half away from zero to `num_digits` decimals.

        Negative `num_digits` rounds to tens, hundreds, and so on. Non-numeric
        input gives 0.
        """
        if not is_number(number) or not is_number(num_digits):
            return 0
        if isinstance(number, float) and not math.isfinite(number):
            return number
        if math.isnan(num_digits):
            return math.nan
        # Past this many digits either way the result no longer changes
        digits = max(-ROUND_DIGIT_LIMIT, min(ROUND_DIGIT_LIMIT, num_digits))
        quantum = Decimal(1).scaleb(-int(digits))
        try:
            rounded = Decimal(str(number)).quantize(quantum, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            # More digits than the decimal context can hold; nothing to round
            return number
        return int(rounded) if isinstance(number, int) else float(rounded)

    @staticmethod
    def POWER(base: FormulaValue, exponent: FormulaValue) -> FormulaValue:
        """Same result as the ^ operator; non-numeric input gives 0."""
        if not is_number(base) or not is_number(exponent):
            return 0
        return power(base, exponent)

    @staticmethod
    def SQRT(number: FormulaValue) -> FormulaValue:
        """Square root; negative or non-numeric input gives 0."""
        if not is_number(number) or number < 0:
            return 0
        return math.sqrt(number)

    @staticmethod
    def IF(
        condition: FormulaValue,
        value_if_true: FormulaValue = "",
        value_if_false: FormulaValue = "",
    ) -> FormulaValue:
        return value_if_true if coerce_to_bool(condition) else value_if_false

    @staticmethod
    def AND(*values: FormulaValue) -> FormulaValue:
        return all(coerce_to_bool(val) for val in values)

    @staticmethod
    def OR(*values: FormulaValue) -> FormulaValue:
        return any(coerce_to_bool(val) for val in values)

    @staticmethod
    def NOT(value: FormulaValue) -> FormulaValue:
        return not coerce_to_bool(value)

    @staticmethod
    def LEN(text: FormulaValue) -> FormulaValue:
        """Number of characters (not bytes) in the text form of the value."""
        return len(coerce_to_text(text))

    @staticmethod
    def LEFT(text: FormulaValue, num_chars: FormulaValue) -> FormulaValue:
        count = _char_count(text, num_chars)
        return coerce_to_text(text)[:count] if count else ""

    @staticmethod
    def RIGHT(text: FormulaValue, num_chars: FormulaValue) -> FormulaValue:
        count = _char_count(text, num_chars)
        return coerce_to_text(text)[-count:] if count else ""

    @staticmethod
    def UPPER(text: FormulaValue) -> FormulaValue:
        return coerce_to_text(text).upper()

    @staticmethod
    def LOWER(text: FormulaValue) -> FormulaValue:
        return coerce_to_text(text).lower()

    @staticmethod
    def CONCATENATE(*values: FormulaValue) -> FormulaValue:
        return "".join(coerce_to_text(val) for val in values)

    @staticmethod
    def NOW() -> FormulaValue:
        return datetime.now()

    @staticmethod
    def TODAY() -> FormulaValue:
        """Today's date, at midnight."""
        return datetime.combine(date.today(), time())

    @staticmethod
    def YEAR(value: FormulaValue = None) -> FormulaValue:
        return _date_part_source(value).year

    @staticmethod
    def MONTH(value: FormulaValue = None) -> FormulaValue:
        return _date_part_source(value).month

    @staticmethod
    def DAY(value: FormulaValue = None) -> FormulaValue:
        return _date_part_source(value).day


BUILTIN_FUNCTIONS: dict[str, FormulaFunction] = {}

# Register all public static methods on BuiltinFunctions by their method names
for _name, _member in BuiltinFunctions.__dict__.items():
    if _name.startswith("_"):
        continue
    if isinstance(_member, staticmethod):
        BUILTIN_FUNCTIONS[_name] = _member.__func__


def _signature(fn: FormulaFunction) -> inspect.Signature | None:
    # Some callables (C builtins, certain partials) have no introspectable
    # signature; their arity is left for the call itself to enforce.
    try:
        return inspect.signature(fn)
    except (TypeError, ValueError):
        return None


class FunctionRegistry:
    """Named functions available to formulas.

    Starts with the builtins and can be extended with custom functions. Names
    are case-insensitive and stored upper-cased.
    """

    def __init__(self) -> None:
        self._functions: dict[str, FormulaFunction] = {}
        self._signatures: dict[str, inspect.Signature | None] = {}
        for name, fn in BUILTIN_FUNCTIONS.items():
            self._store(name, fn)

    def _store(self, name: str, fn: FormulaFunction) -> None:
        self._functions[name] = fn
        self._signatures[name] = _signature(fn)

    def register(self, name: str, fn: FormulaFunction) -> None:
        """Register a function, replacing any existing one with the same name."""
        if not callable(fn):
            raise TypeError(f"Function {name!r} must be callable")
        key = name.upper()
        if key in BUILTIN_FUNCTIONS and self._functions.get(key) is BUILTIN_FUNCTIONS[key]:
            logger.warning("Overriding built-in function %s", key)
        else:
            logger.debug("Registering function %s", key)
        self._store(key, fn)

    def get(self, name: str) -> FormulaFunction | None:
        return self._functions.get(name.upper())

    def has(self, name: str) -> bool:
        return name.upper() in self._functions

    def names(self) -> list[str]:
        return list(self._functions.keys())

    def call(self, name: str, args: list[FormulaValue]) -> FormulaValue:
        """Call a function with evaluated arguments, checking its arity first."""
        key = name.upper()
        fn = self._functions.get(key)
        if fn is None:
            raise UnknownFunctionError(key)
        signature = self._signatures[key]
        if signature is not None:
            try:
                signature.bind(*args)
            except TypeError:
                raise FunctionArgumentError(key, len(args)) from None
        return fn(*args)
