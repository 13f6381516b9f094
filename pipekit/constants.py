"""Shared defaults."""

DEFAULT_SEARCH_DEBOUNCE = 0.3
DEFAULT_SEARCH_PAGE_SIZE = 10

DEFAULT_TIMEOUT = "20m"
DEFAULT_MAXIMUM_ATTEMPTS = 1

DEEPLINK_STEP_ID_PLACEHOLDER = "get-deeplink"
DEEPLINK_MARKERS = ("${DL}", "${deeplink}")

SCHEDULES_COLLECTION = "schedules"
PIPELINES_COLLECTION = "pipelines"
