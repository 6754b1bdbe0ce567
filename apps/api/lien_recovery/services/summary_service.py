"""Provider dashboard: record counts per standardized case status."""

from __future__ import annotations

import re
from collections import defaultdict

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lien_recovery.db.enums import LienStatus, Role
from lien_recovery.db.models import Record
from lien_recovery.schemas.auth import Actor
from lien_recovery.schemas.record import ProviderStatusCount, ProviderSummary
from lien_recovery.services.record_query_service import collector_clause, provider_clause
from lien_recovery.utils.normalization import normalize_identity

CR_GRANTED = "C & R (GRANTED)"
CIC_PENDING = "CIC PENDING"
SETTLED = "SETTLED"
OUT_OF_SOL = "OUT OF SOL"
OTHER = "OTHER"

SUMMARY_STATUSES = (CR_GRANTED, CIC_PENDING, SETTLED, OUT_OF_SOL)

_STATUS_PATTERNS = (
    (re.compile(r"c ?& ?r.*granted", re.IGNORECASE), CR_GRANTED),
    (re.compile(r"cic.*pend", re.IGNORECASE), CIC_PENDING),
    (re.compile(r"settled", re.IGNORECASE), SETTLED),
)


def standardize_case_status(case_status: str | None) -> str:
    if not case_status:
        return OTHER
    for pattern, label in _STATUS_PATTERNS:
        if pattern.search(case_status):
            return label
    return OTHER


def get_provider_summary(db: Session, actor: Actor) -> list[ProviderSummary]:
    """
    Per-provider counts of C & R granted, CIC pending, settled and out-of-SOL records.

    Collectors only count their own queue and providers their own records.
    Providers with nothing in those buckets are left out.
    """
    stmt = select(Record.provider, Record.case_status, Record.lien_status).where(
        Record.provider.is_not(None), func.trim(Record.provider) != ""
    )
    if actor.role == Role.COLLECTOR:
        stmt = stmt.where(collector_clause(actor.user_id))
    elif actor.role == Role.PROVIDER:
        if not normalize_identity(actor.identity):
            return []
        stmt = stmt.where(provider_clause(actor.identity))

    counts: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    out_of_sol = normalize_identity(LienStatus.OUT_OF_SOL.value)
    for provider, case_status, lien_status in db.execute(stmt):
        status = standardize_case_status(case_status)
        if status != OTHER:
            counts[provider][status] += 1
        if normalize_identity(lien_status) == out_of_sol:
            counts[provider][OUT_OF_SOL] += 1

    summary = []
    for provider in sorted(counts):
        statuses = [
            ProviderStatusCount(status=status, count=counts[provider][status])
            for status in SUMMARY_STATUSES
            if counts[provider].get(status)
        ]
        summary.append(
            ProviderSummary(
                provider=provider,
                statuses=statuses,
                total_count=sum(s.count for s in statuses),
            )
        )
    return summary
