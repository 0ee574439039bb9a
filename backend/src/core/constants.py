"""Engine constants and configuration values."""

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_ID_LENGTH = 64

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# Notification priorities, most urgent first
PRIORITY_URGENT = "urgent"
PRIORITY_HIGH = "high"
PRIORITY_NORMAL = "normal"
PRIORITY_LOW = "low"
PRIORITIES = (PRIORITY_URGENT, PRIORITY_HIGH, PRIORITY_NORMAL, PRIORITY_LOW)

# Sort rank used by the queue sweep (lower = dispatched first)
PRIORITY_RANK = {priority: rank for rank, priority in enumerate(PRIORITIES)}

# Delivery channels
CHANNEL_BROWSER = "browser"
CHANNEL_EMAIL = "email"
CHANNEL_SMS = "sms"
CHANNEL_PUSH = "push"
CHANNELS = (CHANNEL_BROWSER, CHANNEL_EMAIL, CHANNEL_SMS, CHANNEL_PUSH)

# Queue item statuses
STATUS_PENDING = "pending"
STATUS_SENT = "sent"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"
QUEUE_STATUSES = (STATUS_PENDING, STATUS_SENT, STATUS_FAILED, STATUS_CANCELLED)
TERMINAL_STATUSES = frozenset({STATUS_SENT, STATUS_FAILED, STATUS_CANCELLED})

# Recipient types
RECIPIENT_ADMIN = "admin"
RECIPIENT_PATIENT = "patient"
RECIPIENT_TYPES = (RECIPIENT_ADMIN, RECIPIENT_PATIENT)

# Channel used by send-message actions when the action does not pin one
DEFAULT_MESSAGE_CHANNEL_BY_RECIPIENT = {
    RECIPIENT_PATIENT: CHANNEL_PUSH,
    RECIPIENT_ADMIN: CHANNEL_BROWSER,
}

# Default notification preferences (used when a user has no stored row)
DEFAULT_QUIET_HOURS_START = "22:00"
DEFAULT_QUIET_HOURS_END = "08:00"

# Scheduler settings
NOTIFICATION_SCHEDULER_MAX_INSTANCES = 1  # Only one tick may run at a time
QUEUE_SWEEP_BATCH_SIZE = 100

# Inactivity trigger
DEFAULT_INACTIVE_DAYS = 3

# Message event types routed to the escalation engine
MESSAGE_EVENT_TYPES = frozenset({"message-received", "message-sent"})
MESSAGE_RESOLVED_EVENT_TYPE = "message-resolved"

# Escalation
ESCALATION_PRIORITY = PRIORITY_URGENT

# Daily digest
DAILY_DIGEST_TITLE = "Daily Patient Support Digest"
