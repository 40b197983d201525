from typing import Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from w32peer.errors import SettingsError

DWORD_MAX = 0xFFFFFFFF


class Settings(BaseSettings):
    """Tool settings with environment variable support (prefix W32PEER_)"""

    model_config = SettingsConfigDict(
        env_prefix="W32PEER_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Service
    SERVICE_NAME: str = "w32time"
    SETTLE_DELAY: float = Field(default=5.0, ge=0)  # seconds after each service transition

    # Clock plausibility check
    TIME_CHECK_URL: str = "https://www.google.com"
    TIME_CHECK_TOLERANCE: float = Field(default=1.0, gt=0)  # seconds
    TIME_CHECK_TIMEOUT: float = Field(default=5.0, gt=0)  # seconds
    TIME_CHECK_RETRIES: int = Field(default=1, ge=0, le=3)
    TIME_CHECK_RETRY_DELAY: float = Field(default=2.0, ge=0)

    # Registry values written under W32Time\Config
    MAX_POS_PHASE_CORRECTION: int = Field(default=3600, ge=0, le=DWORD_MAX)  # seconds
    MAX_NEG_PHASE_CORRECTION: int = Field(default=3600, ge=0, le=DWORD_MAX)  # seconds
    MIN_POLL_INTERVAL: int = Field(default=6, ge=4, le=17)  # log2 seconds, 6 = 64s
    MAX_POLL_INTERVAL: int = Field(default=10, ge=4, le=17)  # log2 seconds, 10 = 1024s
    UTILIZE_SSL_TIME_DATA: int = 0

    # Diagnostics
    STRIPCHART_SAMPLES: int = Field(default=5, ge=0, le=50)

    # Logging
    LOG_DIR: str = "logs"  # relative to the working directory
    LOG_LEVEL: str = "INFO"

    @field_validator("UTILIZE_SSL_TIME_DATA")
    @classmethod
    def _ssl_flag(cls, value: int) -> int:
        if value not in (0, 1):
            raise ValueError("UTILIZE_SSL_TIME_DATA must be 0 or 1")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def _log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return value

    @model_validator(mode="after")
    def _poll_bounds(self) -> "Settings":
        if self.MIN_POLL_INTERVAL > self.MAX_POLL_INTERVAL:
            raise ValueError(
                f"MIN_POLL_INTERVAL ({self.MIN_POLL_INTERVAL}) exceeds "
                f"MAX_POLL_INTERVAL ({self.MAX_POLL_INTERVAL})"
            )
        return self


def get_settings(env_file: Optional[str] = ".env", **overrides) -> Settings:
    """Build settings from the environment, raising SettingsError on bad values."""
    try:
        return Settings(_env_file=env_file, **overrides)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings: {e}") from e


