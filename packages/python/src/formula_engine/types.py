import math
import re
import sys
from datetime import date, datetime
from decimal import Decimal

from openpyxl.utils.datetime import (
    WINDOWS_EPOCH,
    from_ISO8601,
    to_excel,
    to_ISO8601,
)

from formula_engine.errors import CoercionError

FormulaValue = None | bool | int | float | str | datetime

# Same shape as a NUMBER token, plus an optional sign and exponent.
NUMERIC_TEXT_REGEX = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")

# Ints past this magnitude cannot be converted to a float
MAX_FLOAT_INT = int(sys.float_info.max)


def normalize_value(value) -> FormulaValue:
    """Bring a host-supplied value into the FormulaValue domain."""
    if isinstance(value, int) and not isinstance(value, bool):
        return fit_float_range(value)
    if value is None or isinstance(value, (bool, float, str, datetime)):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, Decimal):
        return float(value)
    raise CoercionError(f"Unsupported cell value: {value!r}")


def fit_float_range(value: int | float) -> int | float:
    """Turn an int too large to become a float into signed infinity."""
    if isinstance(value, int) and abs(value) > MAX_FLOAT_INT:
        return math.inf if value > 0 else -math.inf
    return value


def parse_number(val: str) -> int | float:
    is_float = ("." in val) or ("e" in val) or ("E" in val)
    return float(val) if is_float else fit_float_range(int(val))


def is_number(value: FormulaValue) -> bool:
    """Return True for ints and floats. Booleans are not numbers here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def numeric_text(value: str) -> int | float | None:
    """Return the number a piece of text spells out, or None."""
    if not NUMERIC_TEXT_REGEX.match(value):
        return None
    try:
        return parse_number(value.strip())
    except ValueError:
        # Past the interpreter's limit on int digits
        return None


def coerce_to_number(value: FormulaValue, epoch=WINDOWS_EPOCH) -> int | float:
    """Convert a value to a number for arithmetic.

    Text is never converted, even when it looks numeric.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return fit_float_range(value)
    if isinstance(value, datetime):
        return to_excel(value, epoch=epoch)
    if isinstance(value, str):
        raise CoercionError(f"Cannot use text '{value}' as a number")
    raise CoercionError(f"Cannot convert {value!r} to number")


def coerce_to_text(value: FormulaValue) -> str:
    """Convert a value to its text form."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return to_ISO8601(value).replace("T", " ")
    raise CoercionError(f"Cannot convert {value!r} to text")


def coerce_to_bool(value: FormulaValue) -> bool:
    """Truthiness of a value.

    Empty, FALSE, zero, the empty string, "0" and "FALSE" (any case) are false.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return value not in ("", "0") and value.upper() != "FALSE"
    if isinstance(value, datetime):
        return True
    return bool(value)


def text_to_datetime(value: str) -> datetime | None:
    """Parse ISO-8601 date or datetime text, returning None if it is neither."""
    try:
        parsed = from_ISO8601(value)
    except ValueError:
        return None
    if isinstance(parsed, datetime):
        return parsed
    if isinstance(parsed, date):
        return datetime(parsed.year, parsed.month, parsed.day)
    return None
