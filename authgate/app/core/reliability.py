"""
Reliability utilities for outbound HTTP calls.

Classifies failures as transient or terminal and computes exponential
backoff with jitter.
"""

import random
from typing import Callable

import httpx

TOO_MANY_REQUESTS = 429


def is_retryable_status(status_code: int) -> bool:
    """5xx and 429 are transient; every other non-2xx status is final."""
    return status_code >= 500 or status_code == TOO_MANY_REQUESTS


def is_retryable_error(exc: BaseException) -> bool:
    """
    Network-level failures that may succeed on a later attempt.

    Covers timeouts, connection resets/refusals, DNS failures (surfaced by
    httpx as ConnectError) and peers closing the connection mid-response.
    """
    return isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError))


def backoff_delay(
    attempt: int,
    base_seconds: float,
    max_jitter_seconds: float,
    rand: Callable[[], float] = random.random,
) -> float:
    """
    Delay before retry number `attempt` (0-based).

    base * 2**attempt plus uniform jitter in [0, max_jitter).
    """
    return base_seconds * (2 ** attempt) + rand() * max_jitter_seconds
