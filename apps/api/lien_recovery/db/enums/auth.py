"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles.

    - SUPER_ADMIN / ADMIN: full access, close records, merge duplicates
    - VERIFIER / PAYMENT_POSTER: back-office staff, read access
    - COLLECTOR: works their own assigned queue
    - PAYMENT_REDEEMER: works the "waiting for payment" queue
    - HEARING_REPRESENTATIVE: hearing-side staff
    - PROVIDER: external clinic, sees only records filed under its own name
    """

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    VERIFIER = "verifier"
    COLLECTOR = "collector"
    PAYMENT_REDEEMER = "payment_redeemer"
    PAYMENT_POSTER = "payment_poster"
    HEARING_REPRESENTATIVE = "hearing_representative"
    PROVIDER = "provider"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})
