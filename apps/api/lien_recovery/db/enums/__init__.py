"""Enum definitions for application constants."""

from lien_recovery.db.enums.auth import ADMIN_ROLES, Role
from lien_recovery.db.enums.records import (
    PAYMENT_QUEUE_EXIT_STATUSES,
    REDACTED_COMMENT_STATUSES,
    CaseStatus,
    CommentStatus,
    DocumentFlag,
    DorFiledBy,
    HearingTime,
    JudgeOrderStatus,
    LienStatus,
    YesNo,
)

__all__ = [
    "ADMIN_ROLES",
    "Role",
    "PAYMENT_QUEUE_EXIT_STATUSES",
    "REDACTED_COMMENT_STATUSES",
    "CaseStatus",
    "CommentStatus",
    "DocumentFlag",
    "DorFiledBy",
    "HearingTime",
    "JudgeOrderStatus",
    "LienStatus",
    "YesNo",
]
