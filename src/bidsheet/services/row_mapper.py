"""Mapping between positional spreadsheet rows and AuctionItem records.

The LAYOUT table is the only place that knows which column holds which
field. Reads, appends and partial updates all go through it, so the read and
write paths cannot drift apart.

Column layout (0-based index, sheet letter):
    0 A product_url          12-16 M-Q reference_url1..5
    3 D brand_name              17 R   notes
    4 E check                   18 S   representative_check
    5 F bid_target              19 T   judgment_result
    6 G assignee                20 U   feedback
    7 H market_price            21 V   feedback_confirmed
   10 K bid_price (formula)
   11 L wholesale_price (formula)
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from bidsheet.models import ASSIGNEES, AuctionItem, ItemFields, UpdatePayload
from bidsheet.services.cell_coercion import (
    EMPTY_CELL,
    SheetCell,
    read_price,
    to_bool,
    to_number,
    to_text,
)
from bidsheet.utils.exceptions import InvalidIdentifierError
from bidsheet.utils.logging import get_logger

logger = get_logger(__name__)

HEADER_ROW = 1
FIRST_DATA_ROW = 2


class CellKind(str, Enum):
    """How a column's cells are coerced when read."""

    TEXT = "text"
    BOOL = "bool"
    NUMBER = "number"
    PRICE = "price"
    ASSIGNEE = "assignee"


@dataclass(frozen=True)
class Column:
    """One entry of the layout map."""

    field: str
    index: int
    kind: CellKind
    mutable: bool = True

    @property
    def letter(self) -> str:
        return chr(ord("A") + self.index)


LAYOUT: tuple[Column, ...] = (
    Column("product_url", 0, CellKind.TEXT, mutable=False),
    Column("brand_name", 3, CellKind.TEXT, mutable=False),
    Column("check", 4, CellKind.BOOL),
    Column("bid_target", 5, CellKind.BOOL),
    Column("assignee", 6, CellKind.ASSIGNEE),
    Column("market_price", 7, CellKind.NUMBER),
    Column("bid_price", 10, CellKind.PRICE, mutable=False),
    Column("wholesale_price", 11, CellKind.PRICE, mutable=False),
    Column("reference_url1", 12, CellKind.TEXT),
    Column("reference_url2", 13, CellKind.TEXT),
    Column("reference_url3", 14, CellKind.TEXT),
    Column("reference_url4", 15, CellKind.TEXT),
    Column("reference_url5", 16, CellKind.TEXT),
    Column("notes", 17, CellKind.TEXT),
    Column("representative_check", 18, CellKind.BOOL),
    Column("judgment_result", 19, CellKind.BOOL),
    Column("feedback", 20, CellKind.TEXT),
    Column("feedback_confirmed", 21, CellKind.BOOL),
)

COLUMNS_BY_FIELD: dict[str, Column] = {column.field: column for column in LAYOUT}
COLUMN_COUNT = max(column.index for column in LAYOUT) + 1
PRIMARY_COLUMN = COLUMNS_BY_FIELD["product_url"]

_ROW_NUMBER = re.compile(r"[0-9]+")


def _read_cell(column: Column, cell: SheetCell, row_number: int) -> Any:
    if column.kind is CellKind.BOOL:
        return to_bool(cell.value)
    if column.kind is CellKind.NUMBER:
        return to_number(cell.value)
    if column.kind is CellKind.PRICE:
        label = f"row {row_number} {column.letter} {column.field}"
        return read_price(cell, label=label)
    if column.kind is CellKind.ASSIGNEE:
        name = to_text(cell.value).strip()
        if name and name not in ASSIGNEES:
            logger.warning(
                "Unknown assignee treated as unassigned",
                row=row_number,
                assignee=name,
            )
            return ""
        return name
    return to_text(cell.value)


def row_to_item(
    cells: Sequence[SheetCell],
    row_number: int,
    now: datetime | None = None,
) -> AuctionItem | None:
    """Convert one positional row into a record.

    Args:
        cells: Cells of the row starting at column A. Short rows are padded
            with empty cells, as Sheets trims trailing blanks.
        row_number: 1-based sheet row number, which becomes the record id.
        now: Timestamp used for created_at / updated_at.

    Returns:
        The record, or None for a gap row (empty product URL).
    """
    padded = list(cells[:COLUMN_COUNT])
    padded.extend([EMPTY_CELL] * (COLUMN_COUNT - len(padded)))

    if not to_text(padded[PRIMARY_COLUMN.index].value):
        return None

    values = {
        column.field: _read_cell(column, padded[column.index], row_number)
        for column in LAYOUT
    }
    stamp = now or datetime.now(UTC)
    return AuctionItem(
        id=str(row_number),
        created_at=stamp,
        updated_at=stamp,
        **values,
    )


def item_to_row(item: ItemFields) -> list[Any]:
    """Build the full positional row used when appending a record.

    Unmapped columns (B, C, I, J) and unset prices are written as "".
    """
    row: list[Any] = [""] * COLUMN_COUNT
    for column in LAYOUT:
        value = getattr(item, column.field)
        row[column.index] = "" if value is None else value
    return row


def payload_to_writes(
    payload: UpdatePayload | Mapping[str, Any],
) -> list[tuple[int, Any]]:
    """Translate a sparse update into (column index, value) writes.

    Only keys present in the payload produce a write. ``None`` becomes ""
    so that clearing a price empties the cell instead of writing 0.

    Raises:
        pydantic.ValidationError: If a mapping payload does not validate.
    """
    if not isinstance(payload, UpdatePayload):
        payload = UpdatePayload.model_validate(payload)

    changes = payload.changes()
    writes = []
    for column in LAYOUT:
        if column.mutable and column.field in changes:
            value = changes[column.field]
            writes.append((column.index, "" if value is None else value))
    return writes


def parse_row_number(raw: Any) -> int:
    """Validate a record id and return the sheet row number it addresses.

    Raises:
        InvalidIdentifierError: If the id is not an integer of at least
            FIRST_DATA_ROW. Row 1 is the header and never addressable.
    """
    if isinstance(raw, bool):
        raise InvalidIdentifierError(raw)
    if isinstance(raw, int):
        row_number = raw
    else:
        text = str(raw).strip()
        if not _ROW_NUMBER.fullmatch(text):
            raise InvalidIdentifierError(raw)
        row_number = int(text)

    if row_number < FIRST_DATA_ROW:
        raise InvalidIdentifierError(raw)
    return row_number
