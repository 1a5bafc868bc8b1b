"""Test fixtures and helpers for exercising the record store without Sheets.

This module provides an in-memory stand-in for ``gspread.Worksheet`` that
implements the handful of calls SheetsItemStore makes, plus helpers for
building positional rows.

Example usage:
    from tests.fixtures import FakeWorksheet, make_row

    sheet = FakeWorksheet([HEADER, make_row({0: "https://a", 4: True})])
    store = SheetsItemStore(settings, opener=lambda _settings: sheet)
"""

from typing import Any

from gspread.cell import Cell
from gspread.utils import ValueRenderOption, a1_to_rowcol

ROW_WIDTH = 22

HEADER = [
    "商品URL", "", "", "ブランド", "チェック", "入札対象", "担当者", "相場",
    "", "", "入札価格", "卸価格", "参考URL1", "参考URL2", "参考URL3",
    "参考URL4", "参考URL5", "備考", "代表チェック", "判定", "フィードバック",
    "フィードバック確認",
]  # fmt: skip


def make_row(values: dict[int, Any]) -> list[Any]:
    """Build a 22-column row from ``{column index: value}``."""
    row: list[Any] = [""] * ROW_WIDTH
    for index, value in values.items():
        row[index] = value
    return row


def _display(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


def _trim(values: list[Any]) -> list[Any]:
    """Drop trailing blanks the way the Sheets API does."""
    end = len(values)
    while end and values[end - 1] in ("", None):
        end -= 1
    return values[:end]


class FakeWorksheet:
    """In-memory worksheet recording every call made against it.

    Args:
        rows: Grid contents starting at row 1 (the header).
        formatted: Display strings keyed by 1-based ``(row, col)``. Cells
            without an override display ``str(value)``.
        row_count: Grid size reported to callers. Defaults to len(rows).
    """

    def __init__(
        self,
        rows: list[list[Any]],
        formatted: dict[tuple[int, int], str] | None = None,
        row_count: int | None = None,
    ) -> None:
        self.rows = [list(row) for row in rows]
        self.formatted = dict(formatted or {})
        self._row_count = row_count
        self.calls: list[tuple[str, Any]] = []
        self.input_options: list[tuple[str, Any]] = []

    @property
    def row_count(self) -> int:
        return self._row_count if self._row_count is not None else len(self.rows)

    def cell_value(self, row: int, col: int) -> Any:
        if row > len(self.rows):
            return ""
        values = self.rows[row - 1]
        return values[col - 1] if col <= len(values) else ""

    def _set(self, row: int, col: int, value: Any) -> None:
        while len(self.rows) < row:
            self.rows.append([])
        values = self.rows[row - 1]
        values.extend([""] * (col - len(values)))
        values[col - 1] = value
        self.formatted.pop((row, col), None)

    @staticmethod
    def _bounds(name: str) -> tuple[int, int, int, int]:
        first, _, last = name.partition(":")
        first_row, first_col = a1_to_rowcol(first)
        last_row, last_col = a1_to_rowcol(last or first)
        return first_row, first_col, last_row, last_col

    def get(
        self,
        range_name: str,
        value_render_option: ValueRenderOption = ValueRenderOption.formatted,
    ) -> list[list[Any]]:
        self.calls.append(("get", range_name))
        first_row, first_col, last_row, last_col = self._bounds(range_name)
        result = []
        for row in range(first_row, min(last_row, len(self.rows)) + 1):
            values = []
            for col in range(first_col, last_col + 1):
                value = self.cell_value(row, col)
                if value_render_option == ValueRenderOption.formatted:
                    value = self.formatted.get((row, col), _display(value))
                values.append(value)
            result.append(_trim(values))
        while result and not result[-1]:
            result.pop()
        return result

    def range(self, name: str) -> list[Cell]:
        self.calls.append(("range", name))
        first_row, first_col, last_row, last_col = self._bounds(name)
        return [
            Cell(row, col, self.cell_value(row, col))
            for row in range(first_row, last_row + 1)
            for col in range(first_col, last_col + 1)
        ]

    def update_cells(
        self, cell_list: list[Cell], value_input_option: Any = None
    ) -> None:
        self.calls.append(
            ("update_cells", [(cell.row, cell.col, cell.value) for cell in cell_list])
        )
        self.input_options.append(("update_cells", value_input_option))
        for cell in cell_list:
            self._set(cell.row, cell.col, cell.value)

    def append_row(
        self,
        values: list[Any],
        value_input_option: Any = None,
        table_range: str | None = None,
    ) -> None:
        self.calls.append(("append_row", list(values)))
        self.input_options.append(("append_row", value_input_option))
        self.rows.append(list(values))

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


class FailingWorksheet(FakeWorksheet):
    """Worksheet whose every call raises ``error``."""

    def __init__(self, error: Exception) -> None:
        super().__init__([HEADER], row_count=10)
        self.error = error

    def get(self, *args: Any, **kwargs: Any) -> list[list[Any]]:
        raise self.error

    def range(self, *args: Any, **kwargs: Any) -> list[Cell]:
        raise self.error

    def append_row(self, *args: Any, **kwargs: Any) -> None:
        raise self.error
