"""Application-wide constants."""

# Version info
APP_NAME = "Forgeflow"
APP_DESCRIPTION = "Event-driven agent runtime: triggers in, prompts out"

# Agent runtime
DEFAULT_EVENT_CHANNEL_CAPACITY = 100  # Backpressure valve between triggers and agent
DEFAULT_SHUTDOWN_GRACE_SECONDS = 10.0
PROMPT_TEMPLATE_NAME = "prompt"

# Retry defaults
DEFAULT_RETRY_MAX_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY_MS = 1000
RATE_LIMIT_ERROR_CODE = 429
RETRY_JITTER_STEP_MS = 50
RETRY_JITTER_CAP_MS = 200
RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"

# Triggers
DEFAULT_GMAIL_POLL_INTERVAL_SECONDS = 120
DEFAULT_GMAIL_QUERY = "is:unread"
GMAIL_EVENT_NAME = "NewEmail"
TELEGRAM_EVENT_NAME = "TelegramMessage"
DEFAULT_TELEGRAM_POLL_TIMEOUT_SECONDS = 30
TELEGRAM_ERROR_BACKOFF_SECONDS = 5.0

# Google API scopes
GMAIL_READONLY_SCOPE = "https://www.googleapis.com/auth/gmail.readonly"
GMAIL_MODIFY_SCOPE = "https://www.googleapis.com/auth/gmail.modify"
