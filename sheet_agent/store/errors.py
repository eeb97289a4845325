from __future__ import annotations


class StoreError(RuntimeError):
    """Raised when the backing sheet store fails."""


class SheetNotFound(StoreError):
    def __init__(self, sheet_id: str):
        super().__init__(f"Sheet not found: {sheet_id}")
        self.sheet_id = sheet_id


class RowNotFound(StoreError):
    def __init__(self, sheet_id: str, row_id: str):
        super().__init__(f"Row not found: {row_id} (sheet {sheet_id})")
        self.sheet_id = sheet_id
        self.row_id = row_id
