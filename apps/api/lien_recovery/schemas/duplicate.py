"""Pydantic schemas for duplicate detection and merge."""

from pydantic import BaseModel, Field


class MergeRequest(BaseModel):
    primary_id: str = Field(..., min_length=1)
    duplicate_ids: list[str] = Field(..., min_length=1, max_length=100)


class MergeResult(BaseModel):
    primary_id: str
    merged_records: int
    merged_comments: int
    deleted_duplicates: int
