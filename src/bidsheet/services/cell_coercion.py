"""Coercion of untyped spreadsheet cells into text, booleans and numbers.

Sheets hands back cells whose type depends on how a human typed them and on
how the checkbox rendering looked when the row was written. Every function
here is total: each branch has a defined fallback and nothing raises.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

from bidsheet.utils.logging import get_logger

logger = get_logger(__name__)

# Checkbox tokens plus the legacy free-text values 対象 ("target") and
# 成功 ("success") written before the columns became checkboxes.
TRUE_TOKENS = frozenset({"true", "1", "✓", "yes", "対象", "成功"})

_NUMBER_NOISE = re.compile(r"[,¥￥\s]")


@dataclass(frozen=True)
class SheetCell:
    """A cell read in both render modes.

    Attributes:
        value: Unformatted value (computed result for formula cells). May be
            None, bool, int, float or str; may be stale or 0 for formulas
            the service has not recalculated.
        formatted: Display string as shown in the Sheets UI, or None when
            the formatted view was not requested.
    """

    value: Any = None
    formatted: str | None = None


EMPTY_CELL = SheetCell()


def to_text(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw)


def to_bool(raw: Any) -> bool:
    """Interpret a checkbox-like cell.

    Native booleans pass through, the number 1 is true, and strings are
    compared against TRUE_TOKENS. Everything else is false.
    """
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return raw == 1
    if isinstance(raw, str):
        return raw.strip().lower() in TRUE_TOKENS
    return False


def to_number(raw: Any) -> float | int | None:
    """Parse a monetary cell.

    Strings such as ``"¥85,000"`` or ``" 1 200 "`` are cleaned of thousands
    separators, yen signs and whitespace before parsing.

    Returns:
        The number, or None when the cell is empty or not numeric.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return raw if math.isfinite(raw) else None
    if isinstance(raw, str):
        cleaned = _NUMBER_NOISE.sub("", raw)
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def read_price(cell: SheetCell, label: str = "price") -> float | int | None:
    """Read a monetary cell that may hold a formula.

    The display string is preferred because the computed value of a formula
    can be 0 or missing until Sheets recalculates it. The computed value is
    used only when the display string does not parse.

    Args:
        cell: The cell in both render modes.
        label: Cell description used in debug logs (e.g. "row 5 K bid_price").

    Returns:
        The price, or None when neither view holds a number.
    """
    logger.debug(
        "Reading price cell",
        cell=label,
        value=repr(cell.value),
        formatted=repr(cell.formatted),
    )

    if cell.formatted:
        parsed = to_number(cell.formatted)
        if parsed is not None:
            return parsed

    return to_number(cell.value)
