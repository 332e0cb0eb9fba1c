"""Error classification and retry helpers for the sync pipeline.

Every network call the pipeline makes (category discovery, page fetches,
embedding batches) goes through ``with_retry``. Whether a failure is retried is
decided by ``categorize_error``, which looks at, in order:

1. Structured provider error codes and library exception types
2. The HTTP status code
3. The error message, against a vocabulary of known failure phrases
"""

import asyncio
import random
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
import openai
from pydantic import BaseModel, Field
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from contentsync.core.logging import ContextualLogger
from contentsync.core.logging import logger as default_logger
from contentsync.core.shared_models import ErrorCategory

T = TypeVar("T")

RETRYABLE_CATEGORIES = frozenset(
    {
        ErrorCategory.NETWORK,
        ErrorCategory.TIMEOUT,
        ErrorCategory.RATE_LIMIT,
        ErrorCategory.SERVER_ERROR,
    }
)
NEVER_RETRY_CATEGORIES = frozenset(
    {
        ErrorCategory.AUTHENTICATION,
        ErrorCategory.AUTHORIZATION,
        ErrorCategory.VALIDATION,
        ErrorCategory.CLIENT_ERROR,
    }
)
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})

# Provider error codes (Contentstack style upper-case, OpenAI style lower-case)
PROVIDER_ERROR_CODES = {
    "UNAUTHORIZED": ErrorCategory.AUTHENTICATION,
    "INVALID_API_KEY": ErrorCategory.AUTHENTICATION,
    "FORBIDDEN": ErrorCategory.AUTHORIZATION,
    "RATE_LIMIT_EXCEEDED": ErrorCategory.RATE_LIMIT,
    "INSUFFICIENT_QUOTA": ErrorCategory.CLIENT_ERROR,
    "CONTEXT_LENGTH_EXCEEDED": ErrorCategory.VALIDATION,
}

# Message vocabulary, checked in this order
MESSAGE_PATTERNS = (
    (ErrorCategory.TIMEOUT, ("timeout", "timed out", "etimedout")),
    (
        ErrorCategory.NETWORK,
        (
            "network",
            "connection reset",
            "connection refused",
            "connection",
            "econnreset",
            "econnrefused",
            "enotfound",
            "name resolution",
            "dns",
            "socket hang up",
        ),
    ),
    (
        ErrorCategory.SERVER_ERROR,
        ("service unavailable", "bad gateway", "internal server error"),
    ),
    (
        ErrorCategory.RATE_LIMIT,
        ("rate limit", "too many requests"),
    ),
    (ErrorCategory.AUTHENTICATION, ("unauthorized", "authentication")),
    (ErrorCategory.AUTHORIZATION, ("forbidden", "permission")),
    (ErrorCategory.NOT_FOUND, ("not found",)),
    (ErrorCategory.VALIDATION, ("validation", "invalid")),
)


class RetryPolicy(BaseModel):
    """Backoff parameters shared by the pipeline components.

    Delays are in seconds. ``max_retries`` counts retries, so an operation is
    attempted at most ``max_retries + 1`` times.
    """

    max_retries: int = Field(3, ge=0)
    base_delay: float = Field(1.0, ge=0)
    max_delay: float = Field(30.0, ge=0)
    jitter: float = Field(1.0, ge=0)


def get_status_code(error: BaseException) -> Optional[int]:
    """Extract an HTTP status code from an exception, if it carries one."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def _category_from_provider(error: BaseException) -> Optional[ErrorCategory]:
    """Map structured error codes and library exception types to a category."""
    for attr in ("error_code", "code"):
        code = getattr(error, attr, None)
        if isinstance(code, str) and code.upper() in PROVIDER_ERROR_CODES:
            return PROVIDER_ERROR_CODES[code.upper()]

    # Timeouts first: the OpenAI timeout error subclasses its connection error
    if isinstance(
        error, (httpx.TimeoutException, openai.APITimeoutError, asyncio.TimeoutError, TimeoutError)
    ):
        return ErrorCategory.TIMEOUT
    if isinstance(error, (httpx.NetworkError, openai.APIConnectionError, ConnectionError)):
        return ErrorCategory.NETWORK
    return None


def _category_from_status(status: int) -> Optional[ErrorCategory]:
    if status == 401:
        return ErrorCategory.AUTHENTICATION
    if status == 403:
        return ErrorCategory.AUTHORIZATION
    if status == 404:
        return ErrorCategory.NOT_FOUND
    if status == 422:
        return ErrorCategory.VALIDATION
    if status == 429:
        return ErrorCategory.RATE_LIMIT
    if status >= 500:
        return ErrorCategory.SERVER_ERROR
    if status >= 400:
        return ErrorCategory.CLIENT_ERROR
    return None


def categorize_error(error: BaseException) -> ErrorCategory:
    """Categorize an exception for retry decisions and reporting.

    Args:
        error: The exception to categorize

    Returns:
        The ErrorCategory derived from provider codes, status, then message
    """
    category = _category_from_provider(error)
    if category is not None:
        return category

    status = get_status_code(error)
    if status is not None:
        category = _category_from_status(status)
        if category is not None:
            return category

    message = str(error).lower()
    for category, patterns in MESSAGE_PATTERNS:
        if any(pattern in message for pattern in patterns):
            return category

    return ErrorCategory.UNKNOWN


def is_retryable_error(error: BaseException) -> bool:
    """Check whether retrying could change the outcome of this failure.

    Args:
        error: The exception to check

    Returns:
        True for network, timeout, rate-limit and server failures
        (or status 429/502/503/504); False otherwise
    """
    category = categorize_error(error)
    if category in NEVER_RETRY_CATEGORIES:
        return False
    if category in RETRYABLE_CATEGORIES:
        return True
    return get_status_code(error) in RETRYABLE_STATUS_CODES


def compute_backoff_delay(
    attempt: int, base_delay: float, max_delay: float, jitter: float = 1.0
) -> float:
    """Delay before the retry that follows failed attempt number ``attempt`` (1-based)."""
    delay = base_delay * (2 ** (attempt - 1))
    if jitter:
        delay += random.uniform(0, jitter)
    return min(delay, max_delay)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: float = 1.0,
    should_retry: Callable[[BaseException], bool] = is_retryable_error,
    operation_name: str = "operation",
    logger: Optional[ContextualLogger] = None,
) -> T:
    """Run an async operation, retrying retryable failures with exponential backoff.

    Example:
        page = await with_retry(
            lambda: source.list_records("blog_post", "en-us", 50, 0),
            operation_name="list_records",
        )

    Args:
        operation: Zero-argument callable returning an awaitable
        max_retries: Retries after the first attempt
        base_delay: Delay in seconds before the first retry
        max_delay: Upper bound for any single delay
        jitter: Upper bound of the random seconds added to each delay
        should_retry: Predicate deciding whether a failure is retried
        operation_name: Name used in log lines
        logger: Logger to use, defaults to the module logger

    Returns:
        The operation's result

    Raises:
        The last exception raised by the operation, unchanged, with
        ``retry_attempts`` set to the number of attempts made.
    """
    log = logger or default_logger
    total_attempts = max_retries + 1

    def _wait(retry_state: RetryCallState) -> float:
        return compute_backoff_delay(retry_state.attempt_number, base_delay, max_delay, jitter)

    def _before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        log.warning(
            f"{operation_name} failed on attempt {retry_state.attempt_number}/{total_attempts}, "
            f"retrying in {retry_state.next_action.sleep:.2f}s: {error} "
            f"(category={categorize_error(error).value})"
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(total_attempts),
        wait=_wait,
        retry=retry_if_exception(should_retry),
        before_sleep=_before_sleep,
        reraise=True,
    )

    try:
        async for attempt in retrying:
            with attempt:
                result = await operation()
    except Exception as e:
        attempts = retrying.statistics.get("attempt_number", 1)
        e.retry_attempts = attempts
        category = categorize_error(e)
        if attempts >= total_attempts and should_retry(e):
            log.error(
                f"{operation_name} failed after {max_retries} retries: {e} "
                f"(category={category.value})"
            )
        else:
            log.error(
                f"{operation_name} failed with non-retryable error: {e} "
                f"(category={category.value})"
            )
        raise

    attempts = retrying.statistics.get("attempt_number", 1)
    if attempts > 1:
        log.info(f"{operation_name} succeeded on attempt {attempts}/{total_attempts}")
    return result


async def retry_with_policy(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    operation_name: str = "operation",
    logger: Optional[ContextualLogger] = None,
    **kwargs: Any,
) -> T:
    """Run ``with_retry`` with the parameters of a ``RetryPolicy``."""
    return await with_retry(
        operation,
        max_retries=policy.max_retries,
        base_delay=policy.base_delay,
        max_delay=policy.max_delay,
        jitter=policy.jitter,
        operation_name=operation_name,
        logger=logger,
        **kwargs,
    )
