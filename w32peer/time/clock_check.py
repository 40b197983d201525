"""Advisory clock plausibility check against an HTTPS Date header.

The check never blocks configuration: network errors and unusable responses
degrade to an ``unknown`` result with a warning.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Callable, Optional

import requests
import structlog

logger = structlog.get_logger(__name__)


class ClockStatus(Enum):
    IN_SYNC = "in_sync"
    OUT_OF_SYNC = "out_of_sync"
    UNKNOWN = "unknown"


@dataclass
class ClockCheckConfig:
    """Configuration for the clock check."""
    url: str = "https://www.google.com"
    tolerance: float = 1.0  # seconds
    timeout: float = 5.0  # connect/read timeout in seconds
    retries: int = 1  # extra attempts after the first one
    retry_delay: float = 2.0  # seconds

    @classmethod
    def from_settings(cls, settings) -> "ClockCheckConfig":
        return cls(
            url=settings.TIME_CHECK_URL,
            tolerance=settings.TIME_CHECK_TOLERANCE,
            timeout=settings.TIME_CHECK_TIMEOUT,
            retries=settings.TIME_CHECK_RETRIES,
            retry_delay=settings.TIME_CHECK_RETRY_DELAY,
        )


@dataclass
class ClockCheckResult:
    status: ClockStatus
    offset: Optional[float] = None  # remote minus local, seconds
    remote_time: Optional[datetime] = None
    local_time: Optional[datetime] = None
    attempts: int = 0
    error: Optional[str] = None

    @property
    def in_sync(self) -> bool:
        return self.status is ClockStatus.IN_SYNC

    def describe(self) -> str:
        if self.status is ClockStatus.UNKNOWN:
            return f"Clock status unknown ({self.error or 'no response'})"
        label = "in sync" if self.in_sync else "OUT OF SYNC"
        return (
            f"Local clock is {label}: local={self.local_time.isoformat()} "
            f"remote={self.remote_time.isoformat()} offset={self.offset:+.3f}s"
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_http_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 2822 ``Date`` header into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def classify_offset(offset: float, tolerance: float = 1.0) -> ClockStatus:
    return ClockStatus.IN_SYNC if abs(offset) <= tolerance else ClockStatus.OUT_OF_SYNC


def fetch_remote_time(url: str, timeout: float, session=None) -> datetime:
    """HEAD ``url`` and return the server's Date header as a UTC datetime.

    Raises ``requests.RequestException`` on network errors and ``ValueError``
    when the response carries no usable Date header.
    """
    http = session or requests
    response = http.head(url, timeout=timeout, allow_redirects=False)
    remote = parse_http_date(response.headers.get("Date"))
    if remote is None:
        raise ValueError(f"No usable Date header from {url}")
    return remote


def check_clock(
    config: Optional[ClockCheckConfig] = None,
    session=None,
    now: Callable[[], datetime] = _utcnow,
    sleep: Callable[[float], None] = time.sleep,
) -> ClockCheckResult:
    """Compare the local wall clock with the remote Date header."""
    config = config or ClockCheckConfig()
    attempts = 0
    last_error: Optional[str] = None

    for attempt in range(1 + max(0, config.retries)):
        attempts += 1
        if attempt:
            sleep(config.retry_delay)
        try:
            remote = fetch_remote_time(config.url, config.timeout, session=session)
        except (requests.RequestException, ValueError) as e:
            last_error = f"{type(e).__name__}: {e}"
            logger.warning("Clock check attempt failed", url=config.url, attempt=attempts, error=last_error)
            continue

        local = now()
        # Date headers carry whole seconds only
        offset = (remote - local).total_seconds()
        status = classify_offset(offset, config.tolerance)
        logger.info(
            "Clock check completed",
            url=config.url,
            status=status.value,
            offset=round(offset, 3),
            tolerance=config.tolerance,
        )
        return ClockCheckResult(
            status=status,
            offset=offset,
            remote_time=remote,
            local_time=local,
            attempts=attempts,
        )

    logger.warning("Clock check unavailable, continuing without it", url=config.url, attempts=attempts)
    return ClockCheckResult(status=ClockStatus.UNKNOWN, attempts=attempts, error=last_error)
