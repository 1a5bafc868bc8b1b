"""Record store backed by a Google Sheets worksheet.

Every operation opens its own authorized connection; nothing is pooled
between calls. Failures from gspread or google-auth are wrapped in
BackingStoreError with the original message attached.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from itertools import zip_longest
from typing import Any

import gspread
from google.oauth2.service_account import Credentials
from gspread.cell import Cell
from gspread.exceptions import WorksheetNotFound
from gspread.utils import ValueInputOption, ValueRenderOption, rowcol_to_a1
from pydantic import ValidationError as PydanticValidationError

from bidsheet.config import SHEETS_SCOPES, Settings
from bidsheet.config import settings as default_settings
from bidsheet.models import AuctionItem, CreateItemRequest, ItemFields, UpdatePayload
from bidsheet.services.cell_coercion import SheetCell
from bidsheet.services.row_mapper import (
    COLUMN_COUNT,
    FIRST_DATA_ROW,
    HEADER_ROW,
    item_to_row,
    parse_row_number,
    payload_to_writes,
    row_to_item,
)
from bidsheet.utils.exceptions import (
    BackingStoreError,
    BidSheetError,
    ErrorCode,
    InvalidPayloadError,
    NotConfiguredError,
)
from bidsheet.utils.logging import LogContext, get_logger, timed_operation

logger = get_logger(__name__)

WorksheetOpener = Callable[[Settings], gspread.Worksheet]


def open_worksheet(settings: Settings) -> gspread.Worksheet:
    """Authorize with the service account and open the configured worksheet.

    Raises:
        gspread.exceptions.WorksheetNotFound: If sheet_index is out of range.
        google.auth.exceptions.GoogleAuthError: If the credentials are invalid.
        gspread.exceptions.APIError: On any Sheets API failure.
    """
    credentials = Credentials.from_service_account_info(
        settings.service_account_info(), scopes=SHEETS_SCOPES
    )
    client = gspread.authorize(credentials)
    spreadsheet = client.open_by_key(settings.spreadsheet_id)
    try:
        return spreadsheet.get_worksheet(settings.sheet_index)
    except WorksheetNotFound as e:
        raise WorksheetNotFound(
            f"Worksheet index {settings.sheet_index} not found"
        ) from e


def _row_window(first_row: int, last_row: int) -> str:
    return f"A{first_row}:{rowcol_to_a1(last_row, COLUMN_COUNT)}"


class SheetsItemStore:
    """Fetch, update and append AuctionItem records in one worksheet.

    Args:
        settings: Connection settings. Defaults to the global settings.
        opener: Callable returning the worksheet to operate on. Tests pass
            a fake worksheet here.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        opener: WorksheetOpener = open_worksheet,
    ) -> None:
        self._settings = settings or default_settings
        self._opener = opener

    @property
    def settings(self) -> Settings:
        return self._settings

    def is_configured(self) -> bool:
        return self._settings.is_configured

    def missing_settings(self) -> list[str]:
        return self._settings.missing_settings()

    def _require_configured(self) -> None:
        missing = self._settings.missing_settings()
        if missing:
            logger.error(
                "Google Sheets settings missing",
                spreadsheet_id=bool(self._settings.spreadsheet_id),
                service_account_email=bool(self._settings.service_account_email),
                service_account_private_key=(
                    "BIDSHEET_SERVICE_ACCOUNT_PRIVATE_KEY" not in missing
                ),
            )
            raise NotConfiguredError(missing)

    @property
    def _value_input_option(self) -> ValueInputOption:
        return ValueInputOption(self._settings.value_input_option)

    def _failure(
        self, operation: str, error_code: ErrorCode, exc: Exception
    ) -> BackingStoreError:
        message = str(exc) or type(exc).__name__
        logger.error(
            f"Store call failed: {operation}",
            exc_info=True,
            error_type=type(exc).__name__,
        )
        return BackingStoreError(message, error_code=error_code, operation=operation)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def fetch_all(self) -> list[AuctionItem]:
        """Load every non-gap record, in sheet row order.

        At most ``settings.max_rows`` data rows are read. Each row is read
        twice, unformatted and formatted, so formula prices can prefer the
        displayed value.

        Raises:
            NotConfiguredError: If connection settings are missing.
            BackingStoreError: If the Sheets call or row mapping fails.
        """
        self._require_configured()

        with (
            LogContext(operation="fetch_all"),
            timed_operation(logger, "fetch_all") as metrics,
        ):
            try:
                worksheet = self._opener(self._settings)
                last_row = min(
                    worksheet.row_count, self._settings.max_rows + HEADER_ROW
                )
                if last_row < FIRST_DATA_ROW:
                    return []

                window = _row_window(FIRST_DATA_ROW, last_row)
                values = worksheet.get(
                    window, value_render_option=ValueRenderOption.unformatted
                )
                display = worksheet.get(
                    window, value_render_option=ValueRenderOption.formatted
                )

                now = datetime.now(UTC)
                items: list[AuctionItem] = []
                for offset, (raw_row, shown_row) in enumerate(
                    zip_longest(values, display, fillvalue=[])
                ):
                    cells = [
                        SheetCell(value=value, formatted=shown)
                        for value, shown in zip_longest(raw_row, shown_row)
                    ]
                    item = row_to_item(cells, FIRST_DATA_ROW + offset, now=now)
                    if item is not None:
                        items.append(item)
            except BidSheetError:
                raise
            except Exception as exc:
                raise self._failure("fetch_all", ErrorCode.FETCH_FAILED, exc) from exc

            metrics.rows_read = max(len(values), len(display))
            metrics.records_loaded = len(items)

        logger.info("Records loaded", count=len(items), last_row=last_row)
        return items

    def update(
        self,
        row_id: int | str,
        payload: UpdatePayload | Mapping[str, Any],
    ) -> int:
        """Write a sparse update to one row.

        Only the target row's cells are loaded, and only the cells named in
        the payload are written back. Concurrent writers to the same cell
        follow Sheets' last-write-wins semantics.

        Args:
            row_id: Record id (sheet row number, 2 or more).
            payload: Fields to write; absent fields are left untouched.

        Returns:
            Number of cells written.

        Raises:
            NotConfiguredError: If connection settings are missing.
            InvalidIdentifierError: If row_id does not address a data row.
            InvalidPayloadError: If a mapping payload does not validate.
            BackingStoreError: If the Sheets call fails.
        """
        self._require_configured()
        row_number = parse_row_number(row_id)
        try:
            writes = payload_to_writes(payload)
        except PydanticValidationError as exc:
            raise InvalidPayloadError.from_validation_error(
                "Invalid update payload", exc
            ) from exc

        with LogContext(operation="update", row=row_number):
            if not writes:
                logger.info("Update payload has no fields; nothing written")
                return 0

            with timed_operation(logger, "update") as metrics:
                try:
                    worksheet = self._opener(self._settings)
                    window = _row_window(row_number, row_number)
                    cells_by_index = {
                        cell.col - 1: cell for cell in worksheet.range(window)
                    }
                    changed = []
                    for index, value in writes:
                        cell = cells_by_index.get(index) or Cell(row_number, index + 1)
                        cell.value = value
                        changed.append(cell)
                    # RAW keeps free text such as "001" or "3/4" as typed.
                    worksheet.update_cells(
                        changed, value_input_option=ValueInputOption.raw
                    )
                except BidSheetError:
                    raise
                except Exception as exc:
                    raise self._failure(
                        "update", ErrorCode.UPDATE_FAILED, exc
                    ) from exc
                metrics.cells_written = len(changed)

        logger.info("Record updated", row=row_number, cells=len(changed))
        return len(changed)

    def append(self, item: ItemFields | Mapping[str, Any]) -> None:
        """Append a record as the new last row of the table.

        The sheet assigns the row position, which becomes the record id on
        the next fetch.

        Raises:
            NotConfiguredError: If connection settings are missing.
            InvalidPayloadError: If a mapping item does not validate.
            BackingStoreError: If the Sheets call fails.
        """
        self._require_configured()
        if not isinstance(item, ItemFields):
            try:
                item = CreateItemRequest.model_validate(item)
            except PydanticValidationError as exc:
                raise InvalidPayloadError.from_validation_error(
                    "Invalid record", exc
                ) from exc

        row = item_to_row(item)
        with (
            LogContext(operation="append"),
            timed_operation(logger, "append") as metrics,
        ):
            try:
                worksheet = self._opener(self._settings)
                worksheet.append_row(
                    row,
                    value_input_option=self._value_input_option,
                    table_range="A1",
                )
            except BidSheetError:
                raise
            except Exception as exc:
                raise self._failure("append", ErrorCode.APPEND_FAILED, exc) from exc
            metrics.cells_written = len(row)

        logger.info("Record appended", product_url=item.product_url)
