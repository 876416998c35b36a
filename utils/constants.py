"""
Application-wide constants.
Centralizes magic numbers and configuration values.
"""

# Collections
BOOKINGS_COLLECTION = "bookings"
ADMIN_LOGS_COLLECTION = "admin_logs"
SYSTEM_STATUS_COLLECTION = "system_status"
PAYMENTS_STATUS_KEY = "payments"
PENDING_ROLE_ASSIGNMENTS_COLLECTION = "pending_role_assignments"
EMERGENCY_BACKUPS_COLLECTION = "emergency_backups"
ALERTS_COLLECTION = "alerts"

# Emergency actions per performer and action
EMERGENCY_MAX_CALLS_PER_HOUR = 5
EMERGENCY_MAX_CALLS_PER_DAY = 20

# Validation limits
MAX_NAME_LENGTH = 120
MAX_NOTES_LENGTH = 1000
MAX_QUESTION_LENGTH = 1000

# Pricing
DEFAULT_SERVICE_PRICE = 50  # Used when a booked service is not in the catalog
DAY_MS = 24 * 60 * 60 * 1000

# Stats windows
STATS_WEEK_DAYS = 7
STATS_MONTH_DAYS = 30

# Webhooks
MAX_REQUEST_BODY_SIZE = 1024 * 1024  # 1MB
