"""Workflow constants and defaults."""

DEFAULT_LIST_LIMIT = 200
MAX_LIST_LIMIT = 1000
MAX_HOURS_PER_DAY = 24
DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
