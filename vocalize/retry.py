"""
vocalize/retry.py
==================
Gemini request retries

Every call to the Gemini SDK goes through ``generate_content_with_retry``.
Rate limiting (429), server-side failures (5xx) and transport timeouts are
retried after an exponentially growing pause; anything else fails fast.

    response = generate_content_with_retry(
        client, model=TTS_MODEL, contents=prompt, config=config,
    )

This module does NOT:
    - Build genai clients or request configs
    - Look inside responses
"""

import logging
import time
from typing import Any, Iterator

logger = logging.getLogger("vocalize.retry")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

MAX_RETRIES: int = 4          # retries after the first attempt
BASE_DELAY: float = 1.0       # seconds
MAX_DELAY: float = 30.0
BACKOFF_FACTOR: float = 2.0

_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

# Transport-level failures raised by httpx underneath the SDK
_RETRYABLE_EXCEPTION_NAMES: frozenset[str] = frozenset({
    "TimeoutException",
    "ConnectTimeout",
    "ReadTimeout",
    "ConnectError",
    "RemoteProtocolError",
})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_retryable(exc: Exception) -> bool:
    """Transient API or transport error?"""
    if type(exc).__name__ in _RETRYABLE_EXCEPTION_NAMES:
        return True

    # google.genai.errors.APIError carries the HTTP status in ``code``
    for attr in ("code", "status_code"):
        status = getattr(exc, attr, None)
        if isinstance(status, int):
            return status in _RETRYABLE_STATUS_CODES

    message = str(exc)
    return any(str(code) in message for code in _RETRYABLE_STATUS_CODES)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def backoff_delays() -> Iterator[float]:
    """Sleep before each retry: BASE_DELAY doubling up to MAX_DELAY, MAX_RETRIES times."""
    delay = BASE_DELAY
    for _ in range(MAX_RETRIES):
        yield delay
        delay = min(delay * BACKOFF_FACTOR, MAX_DELAY)


def generate_content_with_retry(client: Any, **kwargs: Any) -> Any:
    """
    ``client.models.generate_content(**kwargs)``, retried on transient errors.

    Non-retryable errors propagate from the first attempt. After the last
    back-off delay one final attempt is made and its error, if any, is
    raised as is.
    """
    generate = client.models.generate_content

    for attempt, delay in enumerate(backoff_delays(), start=1):
        try:
            return generate(**kwargs)
        except Exception as exc:
            if not _is_retryable(exc):
                raise
            logger.warning(
                "Transient Gemini error on attempt %d: %s (next try in %.1fs)",
                attempt, exc, delay,
            )
        time.sleep(delay)

    try:
        return generate(**kwargs)
    except Exception as exc:
        logger.error("Gemini still failing after %d attempts: %s", MAX_RETRIES + 1, exc)
        raise
