"""Pydantic schemas for spreadsheet import."""

from pydantic import BaseModel


class ImportFailure(BaseModel):
    row_number: int
    error: str


class ImportResult(BaseModel):
    created: int = 0
    skipped: int = 0
    failed: list[ImportFailure] = []
