"""Helper utilities.

This module centralises common helper functions such as creating a
configured HTTP session, the tracker's exception types and the retry
policy applied to outgoing mail.
"""

from __future__ import annotations

import logging
import smtplib
from typing import Any, Callable, Optional

import requests
from tenacity import (after_log, retry, retry_if_exception_type,
                      stop_after_attempt, wait_exponential)

from . import config


logger = logging.getLogger(__name__)


def setup_logging() -> None:
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def get_http_session() -> requests.Session:
    """Return a new HTTP session with sensible defaults.

    The session sets a realistic User-Agent header, which the availability
    endpoint expects.  Caller is responsible for closing the session or
    letting it be garbage collected.
    """
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                          "(KHTML, like Gecko) Chrome/124.0 Safari/537.36",
            "Accept": "application/json, text/javascript, */*; q=0.01",
        }
    )
    # Respect environment proxies if configured (requests does this by default)
    return session


class TrackerError(Exception):
    """Base class for all tracker failures."""


class InvalidInput(TrackerError):
    """Raised when a query is requested for an empty SKU set."""


class TransportError(TrackerError):
    """Raised on network failure or a non-2xx response.

    The message is meant to be shown verbatim, so it always carries the
    numeric status and reason text when a response was received.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, reason: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class ParseError(TrackerError):
    """Raised when the response body does not have the expected JSON shape."""


class DeliveryError(TrackerError):
    """Raised when the mail transport fails to deliver an alert."""


# Connection-level problems only; auth or recipient refusals are not retried.
_TRANSIENT_SMTP_ERRORS = (
    smtplib.SMTPServerDisconnected,
    smtplib.SMTPConnectError,
    ConnectionError,
    TimeoutError,
)


def retryable_send(method: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator applying a short retry policy to SMTP sends.

    A maximum of 3 attempts are made with exponential back-off between
    1 and 4 seconds.  Only transient connection errors are retried; the
    last error is re-raised to the caller.
    """

    @retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(_TRANSIENT_SMTP_ERRORS),
        after=after_log(logger, logging.WARNING),
    )
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return method(*args, **kwargs)

    return wrapper


__all__ = [
    "setup_logging",
    "get_http_session",
    "retryable_send",
    "TrackerError",
    "InvalidInput",
    "TransportError",
    "ParseError",
    "DeliveryError",
]
