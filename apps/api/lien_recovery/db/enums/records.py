"""Record and comment enums."""

from enum import Enum


class CommentStatus(str, Enum):
    """Closed set of timeline statuses a comment can carry."""

    CALLBACK = "callback"
    LVM = "lvm"  # Left voicemail
    SPOKE_TO = "spoke_to"
    SENT_EMAIL_FAX = "sent_email_fax"
    OFFER = "offer"
    SETTLE = "settle"
    REQUEST_TO_CLOSE = "request_to_close"
    WFP = "wfp"  # Waiting for payment
    PAYMENT_RECEIVED = "payment_received"
    CLOSED = "closed"
    FILE_PMR = "file_pmr"
    FILE_LIEN = "file_lien"
    HEARING_REMARKS = "hearing_remarks"


class DocumentFlag(str, Enum):
    """Ledger / HCF / invoice / sign-in sheet availability."""

    YES = "yes"
    NO = "no"
    NOT_REQUIRED = "not required"


class YesNo(str, Enum):
    YES = "yes"
    NO = "no"


class LienStatus(str, Enum):
    NOT_FILED = "Not Filed"
    OUT_OF_SOL = "Out of SOL"
    FILED = "Filed"
    SETTLED = "Settled"


class CaseStatus(str, Enum):
    SETTLED = "SETTLED"
    CR_GRANTED = "C & R (GRANTED)"
    CIC_PENDING = "CIC PENDING"
    AS_GRANTED = "A & S GRANTED"
    ADR_SETTLED_PAID = "ADR CASE - SETTED AND PAID ADR"
    ORDER_OF_DISMISSAL = "ORDER OF DISMISAAL OF CASE"


class HearingTime(str, Enum):
    AM = "AM"
    PM = "PM"


class DorFiledBy(str, Enum):
    HUBUR = "HUBUR"
    CLIENT = "CLIENT"
    ANOTHER_LIEN_CLAIMANT = "ANOTHER LIEN CLAIMANT"


class JudgeOrderStatus(str, Enum):
    GRANTED = "GRANTED"
    PENDING = "PENDING"


# Statuses that take a record out of the payment-redeemer queue
PAYMENT_QUEUE_EXIT_STATUSES = frozenset({CommentStatus.PAYMENT_RECEIVED, CommentStatus.CLOSED})

# Statuses hidden from roles that must not see payment details
REDACTED_COMMENT_STATUSES = frozenset({CommentStatus.PAYMENT_RECEIVED})
