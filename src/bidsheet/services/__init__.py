"""Services for bidsheet."""

from bidsheet.services.sheets_store import SheetsItemStore, open_worksheet

__all__ = ["SheetsItemStore", "open_worksheet"]
