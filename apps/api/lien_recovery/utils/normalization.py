"""Normalization helpers for names, identities and repeatable entries."""

from __future__ import annotations

import re
from typing import Any, Iterable

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_identity(value: str | None) -> str:
    """
    Normalize a provider/patient name for matching.

    Matching is case-insensitive and ignores surrounding whitespace:
    " Acme Clinic " and "acme clinic" compare equal.
    """
    if not value:
        return ""
    return value.strip().lower()


def identities_match(left: str | None, right: str | None) -> bool:
    left_norm = normalize_identity(left)
    return bool(left_norm) and left_norm == normalize_identity(right)


def normalize_header(header: str) -> str:
    """Lower-case a spreadsheet header and drop every whitespace character."""
    return _WHITESPACE_RE.sub("", header or "").lower()


def clean_text(value: Any) -> str | None:
    """Trim a scalar to text; empty strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_entries(values: Iterable[str | None]) -> list[dict[str, str]]:
    """Compact values into a dense [{"value": ...}] list, dropping blanks."""
    entries = []
    for value in values:
        text = clean_text(value)
        if text:
            entries.append({"value": text})
    return entries


def entry_values(entries: Iterable[dict[str, Any]] | None) -> list[str]:
    if not entries:
        return []
    return [str(entry["value"]) for entry in entries if entry.get("value")]
