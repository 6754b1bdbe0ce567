"""Application constants."""

from datetime import timedelta

# Follow-up notification windows (relative to the scheduled instant)
FOLLOW_UP_WINDOW = timedelta(hours=1)

# Assignment alerts: candidates come from the last day, the banner itself
# expires an hour after the hand-off.
ASSIGNMENT_LOOKBACK = timedelta(hours=24)
ASSIGNMENT_BANNER_TTL = timedelta(hours=1)

# Overdue sweep: a timed follow-up is late this long after its start
OVERDUE_GRACE_PERIOD = timedelta(minutes=15)

# Sentinel accepted wherever a collector id is expected
UNASSIGNED = "unassigned"

# Reference ids: REF-0000001
REFERENCE_ID_PREFIX = "REF-"
REFERENCE_ID_WIDTH = 7
REFERENCE_COUNTER_NAME = "record_reference_id"

DEFAULT_PAGE_SIZE = 25
