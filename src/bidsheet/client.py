"""HTTP client for the /items API.

Error bodies are turned back into the exception classes raised by
SheetsItemStore, so callers such as WorkflowState handle both the same way.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import TypeAdapter

from bidsheet.models import AuctionItem, CreateItemRequest, ItemFields, UpdatePayload
from bidsheet.utils.exceptions import (
    BackingStoreError,
    BidSheetError,
    ErrorCode,
    InvalidIdentifierError,
    InvalidPayloadError,
    NotConfiguredError,
)
from bidsheet.utils.logging import get_logger

logger = get_logger(__name__)

_ITEM_LIST = TypeAdapter(list[AuctionItem])


class ItemsApiClient:
    """Synchronous client for a running bidsheet API.

    Args:
        base_url: Root URL of the API, e.g. ``http://localhost:8000``.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url, timeout=timeout, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ItemsApiClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _request(
        self,
        method: str,
        url: str,
        operation: str,
        error_code: ErrorCode,
        json: Any = None,
    ) -> httpx.Response:
        try:
            response = self._client.request(method, url, json=json)
        except httpx.HTTPError as exc:
            logger.error(f"API request failed: {operation}", error=str(exc))
            raise BackingStoreError(
                str(exc) or type(exc).__name__,
                error_code=error_code,
                operation=operation,
            ) from exc

        if response.is_error:
            raise self._error_from_response(response, operation, error_code)
        return response

    @staticmethod
    def _error_from_response(
        response: httpx.Response, operation: str, error_code: ErrorCode
    ) -> BidSheetError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        kind = body.get("error")
        message = body.get("message") or f"HTTP {response.status_code}"
        details = body.get("details") or {}
        logger.warning(
            f"API returned an error: {operation}",
            status_code=response.status_code,
            error=kind,
        )

        if kind == ErrorCode.NOT_CONFIGURED.value:
            return NotConfiguredError(details.get("missing"), message=message)
        if kind == ErrorCode.INVALID_ID.value:
            return InvalidIdentifierError(details.get("row_id", ""), message=message)
        if kind == ErrorCode.INVALID_PAYLOAD.value:
            return InvalidPayloadError(message, errors=details.get("validation_errors"))
        return BackingStoreError(message, error_code=error_code, operation=operation)

    def fetch_all(self) -> list[AuctionItem]:
        response = self._request("GET", "/items", "fetch_all", ErrorCode.FETCH_FAILED)
        return _ITEM_LIST.validate_python(response.json())

    def update(
        self, row_id: int | str, payload: UpdatePayload | Mapping[str, Any]
    ) -> None:
        """Send a sparse update; only keys present in ``payload`` are sent."""
        if not isinstance(payload, UpdatePayload):
            payload = UpdatePayload.model_validate(payload)
        self._request(
            "PATCH",
            f"/items/{row_id}",
            "update",
            ErrorCode.UPDATE_FAILED,
            json=payload.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )

    def append(self, item: ItemFields | Mapping[str, Any]) -> None:
        if not isinstance(item, ItemFields):
            item = CreateItemRequest.model_validate(item)
        body = item.model_dump(mode="json", by_alias=True)
        for key in ("id", "createdAt", "updatedAt"):
            body.pop(key, None)
        self._request("POST", "/items", "append", ErrorCode.APPEND_FAILED, json=body)
