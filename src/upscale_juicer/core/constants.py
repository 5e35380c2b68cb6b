"""
Constants and configuration for Upscale Juicer.
Centralizes all magic numbers and configuration values.
Includes Pydantic validation for environment variables.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ============================================================================
# Runtime Paths
# ============================================================================

#: Environment variable that overrides the directory for errors.jsonl.
LOG_DIR_ENV_VAR = "UPSCALE_JUICER_LOG_DIR"

#: Log directory name, resolved against the working directory when LOG_DIR_ENV_VAR is unset.
DEFAULT_LOG_DIR_NAME = "logs"

#: Name of the dotenv file, looked up from the working directory.
ENV_FILE_NAME = ".env"

# ============================================================================
# Backend Wire Contract
# ============================================================================

#: Backend origin used when UPSCALER_API_URL is not set.
DEFAULT_API_URL = "http://127.0.0.1:8000"

#: Liveness probe route. Any 2xx response means the backend is reachable.
HEALTH_ROUTE = "/health"

#: Multipart upload route. Responds with {"filename": ..., "path": ...}.
UPLOAD_ROUTE = "/upload"

#: Upscale request route. Accepts {"filename": ...}, responds with {"output": ..., "scale": ...}.
UPSCALE_ROUTE = "/upscale"

#: Binary download route prefix. The URL-encoded trailing filename is appended.
DOWNLOAD_ROUTE = "/download"

#: Multipart field name the backend expects the file under (``file: UploadFile = File(...)``).
UPLOAD_FIELD_NAME = "file"

#: URL schemes treated as already fully-qualified by resolve_download_url().
ABSOLUTE_URL_SCHEMES = ("http://", "https://")

# ============================================================================
# Timeouts
# ============================================================================

#: Time to establish a TCP connection to the backend.
DEFAULT_CONNECT_TIMEOUT = 10.0

#: Read timeout for short calls (health, upload, download).
DEFAULT_READ_TIMEOUT = 60.0

#: Time to send a request body (uploads up to MAX_UPLOAD_SIZE).
DEFAULT_WRITE_TIMEOUT = 60.0

#: Time to acquire a connection from the pool.
DEFAULT_POOL_TIMEOUT = 10.0

#: Read timeout for the upscale request (5 minutes).
#: CPU upscaling with RealESRGAN x4 can take minutes on large inputs, so this
#: must never be on the order of tens of seconds.
UPSCALE_TIMEOUT_SECONDS = 300.0

# ============================================================================
# Health Monitoring
# ============================================================================

#: Seconds between backend liveness checks.
HEALTH_POLL_INTERVAL_SECONDS = 5.0

# ============================================================================
# File Intake
# ============================================================================

#: Maximum accepted upload size in bytes (10 MiB).
MAX_UPLOAD_SIZE = 10 * 1024 * 1024

#: Media type prefix required for accepted files.
IMAGE_MEDIA_PREFIX = "image/"

#: Media type used when the type of a file cannot be guessed.
FALLBACK_MEDIA_TYPE = "application/octet-stream"

#: Default name for downloads that arrive without a suggested name.
DEFAULT_DOWNLOAD_NAME = "upscaled.png"

#: Filename template for saved results. Formatted with unix time in milliseconds.
RESULT_DOWNLOAD_TEMPLATE = "upscaled-{timestamp}.png"

# ============================================================================
# Notifications
# ============================================================================

#: Seconds a notification stays visible before it is removed automatically.
NOTIFICATION_DURATION_SECONDS = 3.0

#: Maximum number of live notifications. Posting past this evicts the oldest.
MAX_NOTIFICATIONS = 5

# ============================================================================
# User-Facing Messages
# ============================================================================

MSG_INVALID_FILE_TYPE = "Invalid file type. Please upload an image."
MSG_FILE_TOO_LARGE = "File too large. Max 10MB."
MSG_FILE_LOADED = "Image loaded successfully"
MSG_UPLOADING = "Uploading image to backend..."
MSG_PROCESSING = "Upscaling with RealESRGAN x4... (This may take a moment)"
MSG_COMPLETE = "Upscaling complete!"
MSG_PROCESS_FAILED = "Failed to process image"
MSG_DOWNLOAD_STARTED = "Download started"
MSG_BACKEND_OFFLINE = "Backend disconnected"
MSG_BACKEND_ONLINE = "Backend connection restored"

#: Fixed text for failures where no response reached the client.
MSG_UNREACHABLE_TEMPLATE = "Cannot connect to backend server. Ensure it is running on {origin}"

#: Fallback text when an error carries no usable message.
MSG_UNEXPECTED_ERROR = "An unexpected error occurred"

# ============================================================================
# Logging Configuration
# ============================================================================

#: Maximum size in bytes for log files before rotation (10MB).
LOG_MAX_SIZE = 10 * 1024 * 1024

#: Number of error log backups to retain during rotation.
LOG_BACKUP_COUNT_ERRORS = 3

#: Maximum characters of a response body to include in log previews.
LOG_PREVIEW_LENGTH = 200

#: Length of generated session IDs (hex characters) used for log correlation.
SESSION_ID_LENGTH = 8

# ============================================================================
# Environment Configuration with Pydantic Validation
# ============================================================================


class Settings(BaseSettings):
    """Environment settings with validation.

    Loads from environment variables and .env file.
    Validates at startup to fail fast on configuration errors.
    """

    # Backend origin
    upscaler_api_url: str = Field(default=DEFAULT_API_URL, description="Base URL of the upscaling backend")

    # Timing
    upscale_timeout_seconds: float = Field(
        default=UPSCALE_TIMEOUT_SECONDS, description="Read timeout for the upscale request"
    )
    health_poll_interval_seconds: float = Field(
        default=HEALTH_POLL_INTERVAL_SECONDS, description="Seconds between health checks"
    )
    notification_duration_seconds: float = Field(
        default=NOTIFICATION_DURATION_SECONDS, description="Notification display duration"
    )
    max_notifications: int = Field(default=MAX_NOTIFICATIONS, description="Maximum live notifications")

    # Optional debug setting
    debug: bool = Field(default=False, description="Enable debug logging")

    # HTTP request/response logging (for debugging backend issues)
    http_request_logging: bool = Field(default=False, description="Enable HTTP request/response logging")

    model_config = SettingsConfigDict(
        env_file=ENV_FILE_NAME,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    @field_validator("upscaler_api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Require an http(s) origin and strip trailing slashes."""
        value = v.strip()
        if not value.startswith(ABSOLUTE_URL_SCHEMES):
            raise ValueError("upscaler_api_url must start with http:// or https://")
        return value.rstrip("/")

    @field_validator("upscale_timeout_seconds", "health_poll_interval_seconds", "notification_duration_seconds")
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        """Timing values must be positive."""
        if v <= 0:
            raise ValueError("timing values must be greater than zero")
        return v

    @field_validator("max_notifications")
    @classmethod
    def validate_max_notifications(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_notifications must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses LRU cache to ensure we only load and validate settings once.
    This function will raise validation errors at startup if config is invalid.
    """
    return Settings()
