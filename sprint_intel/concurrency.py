"""
Concurrent fan-out with per-task failure isolation.

``gather_settled`` starts every awaitable at once and waits for all of
them; a failure is recorded next to its label instead of cancelling the
siblings. Aggregation helpers (dedup, recency sort) run afterwards on the
settled values so concurrency and aggregation stay separate phases.
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Any, Awaitable, Callable, Hashable, Iterable, List, Optional, Tuple, TypeVar

from .log_sanitizer import safe_log_error

T = TypeVar('T')

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Settled:
    """Outcome of one concurrent task"""
    label: str
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class UpstreamExecutor:
    """
    Thread pool owned by one upstream system.

    The Jira, Azure DevOps and GitHub clients are synchronous. Their calls
    run here rather than in the loop's default executor, so threads stuck
    on one unresponsive system never delay requests to another.

    Example:
        executor = UpstreamExecutor("Jira", max_workers=4)
        page = await executor.run(client.sprints, board_id, startAt=0)
    """

    def __init__(self, system: str, max_workers: int):
        self.system = system
        self.max_workers = max_workers
        self._pool: Optional[ThreadPoolExecutor] = None

    async def run(self, func: Callable[..., T], *args, **kwargs) -> T:
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix=self.system.lower().replace(" ", "-")
            )
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._pool, partial(func, *args, **kwargs))

    def shutdown(self) -> None:
        """Drop queued calls; threads already blocked finish on their own"""
        if self._pool is not None:
            self._pool.shutdown(wait=False, cancel_futures=True)
            self._pool = None

    def __repr__(self) -> str:
        return f"UpstreamExecutor(system={self.system!r}, max_workers={self.max_workers})"


async def gather_settled(tasks: Iterable[Tuple[str, Awaitable[Any]]]) -> List[Settled]:
    """
    Run labelled awaitables concurrently and wait for all of them.

    Args:
        tasks: (label, awaitable) pairs

    Returns:
        One Settled per task, in input order
    """
    tasks = list(tasks)
    if not tasks:
        return []

    labels = [label for label, _ in tasks]
    results = await asyncio.gather(
        *(awaitable for _, awaitable in tasks),
        return_exceptions=True
    )

    settled = []
    for label, result in zip(labels, results):
        if isinstance(result, BaseException):
            settled.append(Settled(label=label, error=result))
        else:
            settled.append(Settled(label=label, value=result))
    return settled


def log_failures(settled: List[Settled], context: str) -> List[Settled]:
    """Log every failed outcome and return only the successful ones."""
    succeeded = []
    for outcome in settled:
        if outcome.ok:
            succeeded.append(outcome)
        else:
            logger.warning(safe_log_error(outcome.error, f"{context} '{outcome.label}' skipped"))
    return succeeded


def dedupe_by(items: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    """Keep the first item for each key, preserving order."""
    seen = set()
    unique = []
    for item in items:
        item_key = key(item)
        if item_key in seen:
            continue
        seen.add(item_key)
        unique.append(item)
    return unique


def most_recent(
    items: Iterable[T],
    timestamp: Callable[[T], Optional[datetime]],
    limit: Optional[int] = None
) -> List[T]:
    """
    Sort items newest first and truncate.

    The sort is stable: items with equal timestamps keep their input order.
    Items without a timestamp sort last.
    """
    def sort_key(item: T) -> datetime:
        value = timestamp(item)
        if value is None:
            return _OLDEST
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    ordered = sorted(items, key=sort_key, reverse=True)
    if limit is not None:
        return ordered[:limit]
    return ordered
