"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DUPLICATE_WINDOW_MINUTES = 5
EXCESSIVE_ENTRY_THRESHOLD = 6

# Entries outside [AFTER_HOURS_START:00, AFTER_HOURS_END:00) raise an advisory warning
AFTER_HOURS_START = 5
AFTER_HOURS_END = 23

# Days per month used for the overtime hourly rate
OVERTIME_RATE_MONTH_DAYS = 26

PAID_LEAVE_TYPES = ("casual", "sick", "earned", "paid")

DEFAULT_WORKER_TIMEOUT_SECONDS = 30.0
DEFAULT_UNRECONCILED_LIMIT = 200
MIN_LEAVE_REASON_LENGTH = 10
