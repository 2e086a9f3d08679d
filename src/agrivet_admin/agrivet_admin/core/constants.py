"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_LIST_LIMIT = 200
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

MIN_PASSWORD_LENGTH = 8
ONLINE_WINDOW_MINUTES = 15

DEFAULT_WORKDAY_START = "08:00"
DEFAULT_LATE_GRACE_MINUTES = 15
DEFAULT_STANDARD_WORKDAY_HOURS = 8.0

TOP_PRODUCTS_LIMIT = 5
RECENT_TRANSACTIONS_LIMIT = 5
DAILY_TRANSACTIONS_LIMIT = 10
TREND_SEGMENTS = 5
SALES_TARGET_GROWTH = "1.1"
MONTHLY_HISTORY_MONTHS = 6
EXPORT_ROW_LIMIT = 10000

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
MAX_IMAGE_WIDTH = 1920
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": (".jpg", ".jpeg"),
    "image/png": (".png",),
    "image/webp": (".webp",),
    "image/gif": (".gif",),
}

SUPER_ADMIN_ROLE = "super-admin"
