"""
Decorators for error handling, retry logic, and request management.

Every outbound call to Jira, Azure DevOps or GitHub is wrapped so that it
has a bounded timeout, is retried on transient failures and surfaces
library exceptions as the error taxonomy in ``errors``.
"""

import asyncio
import logging
from functools import wraps
from typing import Callable, TypeVar, Any, Optional

import requests

from .constants import Timeouts
from .errors import (
    SprintIntelError,
    UpstreamUnavailableError,
    map_status_code_to_error,
    RateLimitError,
    TransientError,
    UpstreamTimeoutError,
)
from .log_sanitizer import safe_log_error

# Type variable for generic function signatures
T = TypeVar('T')

logger = logging.getLogger(__name__)


def _instance_setting(args: tuple, name: str, default: Any) -> Any:
    """Read a per-instance override (e.g. ``timeout_seconds``) from ``self``."""
    if args:
        value = getattr(args[0], name, None)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
    return default


def _extract_status_code(error: Exception) -> Optional[int]:
    status_code = getattr(error, 'status_code', None)

    # If no status code, check response object
    if not status_code:
        response = getattr(error, 'response', None)
        if response is not None:
            status_code = getattr(response, 'status_code', None)

    return status_code if isinstance(status_code, int) else None


def _extract_retry_after(error: Exception) -> Optional[int]:
    response = getattr(error, 'response', None)
    headers = getattr(response, 'headers', None) if response is not None else None
    if not headers:
        return None

    # Retry-After can be in seconds or HTTP-date
    retry_after_header = headers.get('Retry-After') or headers.get('retry-after')
    if not retry_after_header:
        return None
    try:
        return int(retry_after_header)
    except (ValueError, TypeError):
        logger.warning(f"Could not parse Retry-After header: {retry_after_header}")
        return 60


def handle_upstream_error(system: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to convert upstream library exceptions into the error taxonomy.

    Handles ``jira.JIRAError``, ``requests`` exceptions and Azure DevOps SDK
    errors, all of which expose the HTTP status either directly or through
    their ``response`` object.

    Args:
        system: Upstream system name used in error messages

    Example:
        @handle_upstream_error("Jira")
        async def list_sprints(self):
            return await self.executor.run(self.client.sprints, self.board_id)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except SprintIntelError:
                # Already a custom error, re-raise as-is
                raise
            except asyncio.CancelledError:
                raise
            except (requests.Timeout, asyncio.TimeoutError) as e:
                logger.error(safe_log_error(e, f"{system} request timed out in {func.__name__}"))
                raise UpstreamTimeoutError(
                    system=system,
                    timeout_seconds=_instance_setting(args, 'timeout_seconds', Timeouts.HTTP_REQUEST),
                    original_error=e
                )
            except Exception as e:
                status_code = _extract_status_code(e)

                if status_code:
                    retry_after = _extract_retry_after(e) if status_code == 429 else None
                    error = map_status_code_to_error(
                        status_code,
                        system=system,
                        original_error=e,
                        retry_after=retry_after
                    )
                    logger.error(safe_log_error(e, f"{system} API error in {func.__name__}"))
                    raise error

                if isinstance(e, (requests.ConnectionError, ConnectionError)):
                    logger.error(safe_log_error(e, f"{system} connection failed in {func.__name__}"))
                    raise TransientError(system=system, original_error=e)

                logger.error(
                    safe_log_error(e, f"Unexpected {system} error in {func.__name__}"),
                    exc_info=True
                )
                raise UpstreamUnavailableError(
                    system=system,
                    message=f"{system} request failed in {func.__name__}: {safe_log_error(e)}",
                    original_error=e
                )

        return wrapper
    return decorator


def retry_on_transient_error(
    max_retries: Optional[int] = None,
    base_delay: Optional[float] = None,
    exponential_base: float = 2.0,
    max_delay: float = 60.0,
    budget_seconds: Optional[float] = None,
    budget_attr: Optional[str] = None
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to retry operations on transient errors with exponential backoff.

    Automatically retries on:
    - Rate limit errors (429)
    - Server errors (500, 502, 503, 504) and dropped connections

    When ``max_retries`` or ``base_delay`` is None the values are read from
    the decorated instance (``self.max_retries`` / ``self.retry_base_delay``),
    defaulting to 3 and 1.0.

    ``budget_seconds`` bounds all attempts together. A backoff that would
    not end before the budget runs out is skipped and the last error is
    raised instead, so a long Retry-After surfaces as RateLimitError.
    With ``budget_attr`` the budget is read from that instance attribute
    when ``budget_seconds`` is None.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            retries = max_retries if max_retries is not None else \
                _instance_setting(args, 'max_retries', 3)
            delay_base = base_delay if base_delay is not None else \
                _instance_setting(args, 'retry_base_delay', 1.0)
            loop = asyncio.get_running_loop()
            budget = budget_seconds
            if budget is None and budget_attr:
                budget = _instance_setting(args, budget_attr, Timeouts.HTTP_REQUEST)
            deadline = loop.time() + budget if budget is not None else None

            for attempt in range(retries + 1):
                try:
                    return await func(*args, **kwargs)
                except (RateLimitError, TransientError) as e:
                    # Don't retry on last attempt
                    if attempt >= retries:
                        logger.error(
                            f"Max retries ({retries}) exceeded for {func.__name__}"
                        )
                        raise

                    if isinstance(e, RateLimitError) and e.retry_after:
                        # Respect Retry-After header
                        delay = min(e.retry_after, max_delay)
                    else:
                        delay = min(
                            delay_base * (exponential_base ** attempt),
                            max_delay
                        )

                    if deadline is not None and loop.time() + delay >= deadline:
                        logger.error(
                            f"Backoff of {delay:.1f}s in {func.__name__} exceeds the remaining "
                            "time budget, giving up"
                        )
                        raise

                    logger.warning(
                        f"Transient error in {func.__name__} (attempt {attempt + 1}/{retries}): "
                        f"{e}. Retrying in {delay:.1f}s..."
                    )

                    await asyncio.sleep(delay)

        return wrapper
    return decorator


def with_timeout(
    timeout_seconds: Optional[float] = None,
    system: str = "upstream"
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to add a hard timeout to async operations.

    When ``timeout_seconds`` is None the ceiling is read from the decorated
    instance (``self.timeout_seconds``), defaulting to 30 seconds.

    Example:
        @with_timeout(timeout_seconds=30, system="GitHub")
        async def fetch_commits(self, ...):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            timeout = timeout_seconds if timeout_seconds is not None else \
                _instance_setting(args, 'timeout_seconds', Timeouts.HTTP_REQUEST)
            try:
                return await asyncio.wait_for(
                    func(*args, **kwargs),
                    timeout=timeout
                )
            except asyncio.TimeoutError as e:
                logger.error(
                    f"Timeout after {timeout}s in {func.__name__}"
                )
                raise UpstreamTimeoutError(
                    system=system,
                    timeout_seconds=timeout,
                    original_error=e
                )

        return wrapper
    return decorator


def upstream_operation(
    system: str,
    timeout_seconds: Optional[float] = None,
    max_retries: Optional[int] = None,
    base_delay: Optional[float] = None
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Convenience decorator combining timeout, retry, and error handling.

    Applies decorators in the correct order:
    1. Timeout wrapper (outermost)
    2. Retry on transient errors
    3. Error handling (innermost)

    The timeout covers every attempt together; retry backoff never sleeps
    past it.

    Example:
        @upstream_operation("Azure DevOps")
        async def _list_builds(self, definition_id, branch_name=None, top=10):
            return await self.executor.run(self.build_client.get_builds, ...)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        decorated = func
        decorated = handle_upstream_error(system)(decorated)
        decorated = retry_on_transient_error(
            max_retries=max_retries,
            base_delay=base_delay,
            budget_seconds=timeout_seconds,
            budget_attr='timeout_seconds'
        )(decorated)
        decorated = with_timeout(timeout_seconds, system=system)(decorated)
        return decorated

    return decorator


class PerformanceMonitor:
    """
    Context manager and decorator for monitoring operation performance.

    Tracks execution time and logs slow operations.
    """

    def __init__(self, operation_name: str, warn_threshold_ms: float = Timeouts.SLOW_OPERATION_MS):
        self.operation_name = operation_name
        self.warn_threshold_ms = warn_threshold_ms
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.start_time is None or self.end_time is None:
            return None
        return (self.end_time - self.start_time) * 1000

    async def __aenter__(self):
        self.start_time = asyncio.get_running_loop().time()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.end_time = asyncio.get_running_loop().time()
        duration_ms = self.duration_ms

        if duration_ms > self.warn_threshold_ms:
            logger.warning(
                f"Slow operation: {self.operation_name} took {duration_ms:.1f}ms "
                f"(threshold: {self.warn_threshold_ms:.1f}ms)"
            )
        else:
            logger.debug(
                f"Operation {self.operation_name} completed in {duration_ms:.1f}ms"
            )

    def __call__(self, func: Callable[..., T]) -> Callable[..., T]:
        """Use as a decorator."""
        @wraps(func)
        async def wrapper(*args, **kwargs):
            async with PerformanceMonitor(
                operation_name=func.__name__,
                warn_threshold_ms=self.warn_threshold_ms
            ):
                return await func(*args, **kwargs)
        return wrapper
