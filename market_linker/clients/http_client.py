from __future__ import annotations

import logging
import random
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Dict, Optional

import requests
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({408, 429})


def is_retryable_status(status: int) -> bool:
    return status in RETRYABLE_STATUSES or 500 <= status < 600


class RetryableHTTPError(requests.HTTPError):
    def __init__(self, message: str, response: requests.Response, retry_after: Optional[float] = None):
        super().__init__(message, response=response)
        self.retry_after = retry_after


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a Retry-After header, in either delta-seconds or HTTP-date form."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, RetryableHTTPError):
        return True
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    return False


class BackoffWait:
    """Exponential backoff with jitter; a server Retry-After wins, capped at ``max_delay``."""

    def __init__(self, base_delay: float = 1.0, max_delay: float = 60.0, jitter: float = 0.25):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter

    def __call__(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        retry_after = getattr(exc, "retry_after", None)
        if retry_after is not None:
            return min(retry_after, self.max_delay)
        delay = min(self.base_delay * 2 ** (retry_state.attempt_number - 1), self.max_delay)
        return delay + delay * random.uniform(0.0, self.jitter)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "HTTP retry",
        extra={
            "attempt": retry_state.attempt_number,
            "sleep": round(retry_state.next_action.sleep, 2) if retry_state.next_action else None,
            "error": str(exc),
        },
    )


class HttpClient:
    def __init__(
        self,
        timeout: int = 15,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session = session or requests.Session()
        self._timeout = timeout
        self._retrying = Retrying(
            retry=retry_if_exception(is_retryable),
            wait=BackoffWait(base_delay, max_delay),
            stop=stop_after_attempt(max_attempts),
            before_sleep=_log_retry,
            sleep=sleep,
            reraise=True,
        )

    def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        response = self._session.request(method, url, timeout=self._timeout, **kwargs)
        if is_retryable_status(response.status_code):
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            raise RetryableHTTPError(f"{response.status_code} for {url}", response=response, retry_after=retry_after)
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            body = response.text[:600] if response is not None else ""
            raise requests.HTTPError(f"{exc} | response_body={body}", response=response) from exc
        return response.json()

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> Any:
        return self._retrying(self._send, "GET", url, params=params, headers=headers)

    def post_json(self, url: str, json_body: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Any:
        return self._retrying(self._send, "POST", url, json=json_body, headers=headers)
