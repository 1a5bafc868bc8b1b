"""FastAPI application exposing the spreadsheet record store."""

import uuid
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import Body, FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException

from bidsheet.config import Settings, settings, validate_settings_on_startup
from bidsheet.models import (
    AuctionItem,
    CreateItemRequest,
    ErrorResponse,
    HealthResponse,
    SuccessResponse,
    UpdatePayload,
)
from bidsheet.services.row_mapper import parse_row_number
from bidsheet.services.sheets_store import SheetsItemStore
from bidsheet.utils.exceptions import (
    BidSheetError,
    InvalidPayloadError,
    NotConfiguredError,
)
from bidsheet.utils.logging import (
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)

VERSION = "0.1.0"

# Configure structured logging using settings
configure_logging(
    level=settings.log_level_int,
    use_structured_formatter=True,
)
logger = get_logger(__name__)


def _error_response(
    request: Request, status_code: int, body: dict[str, Any]
) -> JSONResponse:
    """Render an ``{error, message, details?}`` body with the request id."""
    request_id = getattr(request.state, "request_id", get_request_id())
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(**body, request_id=request_id).model_dump(
            by_alias=True, exclude_none=True
        ),
    )


def create_app(
    store: SheetsItemStore | None = None,
    app_settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        store: Record store to serve. Defaults to a SheetsItemStore built
            from ``app_settings``.
        app_settings: Settings to use. Defaults to the global settings.
    """
    app_settings = app_settings or (store.settings if store else settings)
    store = store or SheetsItemStore(app_settings)

    app = FastAPI(
        title="Bidsheet API",
        description=(
            "Auction bid research records stored in a Google Sheets worksheet: "
            "employee entry, representative approval and feedback review."
        ),
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    validate_settings_on_startup(app_settings)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next: Any) -> Any:
        """Assign a request ID, expose it in logs and in the X-Request-ID header."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        set_request_id(request_id)
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()

    @app.exception_handler(BidSheetError)
    async def bidsheet_exception_handler(
        request: Request, exc: BidSheetError
    ) -> JSONResponse:
        """Render application errors as ``{error, message}`` bodies."""
        http_status = exc.get_http_status()
        log = logger.warning if http_status < 500 else logger.error
        log(
            f"Request failed: {exc.message}",
            error=exc.error_code.value,
            http_status=http_status,
            path=request.url.path,
        )
        return _error_response(request, http_status, exc.to_dict())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        logger.warning(f"HTTP Error: {exc.detail}", status_code=exc.status_code)
        return _error_response(
            request,
            exc.status_code,
            {"error": "http_error", "message": str(exc.detail)},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Bodies that are not valid JSON are reported as invalid_payload."""
        errors = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        logger.warning("Request body rejected", errors=errors)
        return _error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            InvalidPayloadError(
                "Invalid request body: " + "; ".join(errors), errors=errors
            ).to_dict(),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all handler that avoids leaking internals unless in debug mode."""
        logger.exception(
            f"Unexpected error: {type(exc).__name__}",
            error_type=type(exc).__name__,
        )
        if app_settings.debug:
            message = f"Internal server error: {type(exc).__name__}: {exc}"
        else:
            message = "Internal server error. Please try again later."
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            BidSheetError(message).to_dict(),
        )

    def require_configured() -> None:
        missing = store.missing_settings()
        if missing:
            raise NotConfiguredError(missing)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> dict[str, Any]:
        """Report service status and whether Sheets settings are present."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": VERSION,
            "sheets_configured": store.is_configured(),
        }

    @app.get(
        "/items",
        response_model=list[AuctionItem],
        tags=["Items"],
        responses={
            500: {"model": ErrorResponse, "description": "fetch_failed"},
            503: {"model": ErrorResponse, "description": "not_configured"},
        },
    )
    async def list_items() -> list[AuctionItem]:
        """Return every record in sheet row order. Gap rows are skipped."""
        require_configured()
        items = await run_in_threadpool(store.fetch_all)
        logger.debug("Items listed", count=len(items))
        return items

    @app.post(
        "/items",
        response_model=SuccessResponse,
        tags=["Items"],
        responses={
            400: {"model": ErrorResponse, "description": "invalid_payload"},
            500: {"model": ErrorResponse, "description": "append_failed"},
            503: {"model": ErrorResponse, "description": "not_configured"},
        },
    )
    async def create_item(
        body: Annotated[Any, Body(description="Record fields")] = None,
    ) -> dict[str, Any]:
        """Append a record as a new last row of the worksheet."""
        require_configured()
        try:
            item = CreateItemRequest.model_validate(body)
        except PydanticValidationError as exc:
            raise InvalidPayloadError.from_validation_error(
                "Invalid record", exc
            ) from exc

        await run_in_threadpool(store.append, item)
        return {"success": True}

    @app.patch(
        "/items/{row_id}",
        response_model=SuccessResponse,
        tags=["Items"],
        responses={
            400: {"model": ErrorResponse, "description": "invalid_id / payload"},
            500: {"model": ErrorResponse, "description": "update_failed"},
            503: {"model": ErrorResponse, "description": "not_configured"},
        },
    )
    async def update_item(
        row_id: str,
        body: Annotated[Any, Body(description="Fields to change")] = None,
    ) -> dict[str, Any]:
        """Write only the fields present in the body to sheet row ``row_id``.

        ``row_id`` is the 1-based sheet row number; row 1 is the header.
        Configuration is checked first, then the id, then the body.
        """
        require_configured()
        row_number = parse_row_number(row_id)
        try:
            payload = UpdatePayload.model_validate(body)
        except PydanticValidationError as exc:
            raise InvalidPayloadError.from_validation_error(
                "Invalid update payload", exc
            ) from exc

        await run_in_threadpool(store.update, row_number, payload)
        return {"success": True}

    logger.info("FastAPI application created successfully")
    return app


# Create the application instance
app = create_app()
