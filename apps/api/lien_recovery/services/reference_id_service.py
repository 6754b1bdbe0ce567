"""Sequential human-facing reference ids (REF-0000001)."""

from __future__ import annotations

import logging
import re

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lien_recovery.core.constants import (
    REFERENCE_COUNTER_NAME,
    REFERENCE_ID_PREFIX,
    REFERENCE_ID_WIDTH,
)
from lien_recovery.db.models import Record, RecordCounter

logger = logging.getLogger(__name__)

_REFERENCE_RE = re.compile(rf"^{re.escape(REFERENCE_ID_PREFIX)}(\d+)$")


def format_reference_id(number: int) -> str:
    return f"{REFERENCE_ID_PREFIX}{number:0{REFERENCE_ID_WIDTH}d}"


def parse_reference_number(reference_id: str | None) -> int | None:
    """Numeric suffix of a REF-nnnnnnn id, or None when malformed."""
    if not reference_id:
        return None
    match = _REFERENCE_RE.match(reference_id.strip())
    if not match:
        return None
    return int(match.group(1))


def scan_max_reference_number(db: Session) -> int:
    """
    Highest numeric suffix among existing reference ids.

    Compared numerically, so REF-100 beats REF-99. Malformed ids are
    ignored; an empty table yields 0.
    """
    highest = 0
    for reference_id in db.scalars(
        select(Record.reference_id).where(Record.reference_id.like(f"{REFERENCE_ID_PREFIX}%"))
    ):
        number = parse_reference_number(reference_id)
        if number is not None and number > highest:
            highest = number
    return highest


def next_reference_id(db: Session) -> str:
    """
    Draw the next reference id.

    Uses atomic INSERT...ON CONFLICT so concurrent creators never draw the
    same value. The counter is seeded from existing data the first time
    it is used.
    """
    seed = 1
    if db.get(RecordCounter, REFERENCE_COUNTER_NAME) is None:
        seed = scan_max_reference_number(db) + 1

    result = db.execute(
        text("""
            INSERT INTO record_counters (name, current_value, updated_at)
            VALUES (:name, :seed, CURRENT_TIMESTAMP)
            ON CONFLICT (name)
            DO UPDATE SET current_value = record_counters.current_value + 1,
                          updated_at = CURRENT_TIMESTAMP
            RETURNING current_value
        """),
        {"name": REFERENCE_COUNTER_NAME, "seed": seed},
    ).scalar_one_or_none()
    if result is None:
        raise RuntimeError("Failed to generate reference id")
    # Keep the identity map in step with the raw upsert
    counter = db.get(RecordCounter, REFERENCE_COUNTER_NAME)
    if counter is not None:
        db.expire(counter)

    return format_reference_id(result)


def resync_counter(db: Session) -> int:
    """
    Move the counter past the highest stored id.

    Called after a reference-id collision (rows written outside the
    counter, e.g. restored backups). Commits.
    """
    highest = scan_max_reference_number(db)
    counter = db.get(RecordCounter, REFERENCE_COUNTER_NAME)
    if counter is None:
        counter = RecordCounter(name=REFERENCE_COUNTER_NAME, current_value=highest)
        db.add(counter)
    elif counter.current_value < highest:
        counter.current_value = highest
    try:
        db.commit()
    except IntegrityError:
        # Another writer created the counter first; its value is authoritative
        db.rollback()
        counter = db.get(RecordCounter, REFERENCE_COUNTER_NAME)
    logger.warning(
        "Reference id counter resynced",
        extra={"counter": REFERENCE_COUNTER_NAME, "value": counter.current_value if counter else highest},
    )
    return highest


def is_reference_id_conflict(error: IntegrityError) -> bool:
    constraint_name = getattr(getattr(error.orig, "diag", None), "constraint_name", None)
    if constraint_name and "reference_id" in constraint_name:
        return True
    message = str(error.orig) if error.orig else str(error)
    return "reference_id" in message
