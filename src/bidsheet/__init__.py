"""Bidsheet - auction bid research workflow over a Google Sheets record store."""

from bidsheet.api import app, create_app

__all__ = ["app", "create_app"]
__version__ = "0.1.0"


def main() -> None:
    """Run the FastAPI server using uvicorn."""
    import uvicorn

    from bidsheet.config import settings

    uvicorn.run(
        "bidsheet.api:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
