"""Bounded-concurrency runner for per-item gallery operations.

Uploading a gallery and assembling its archive both apply one coroutine to a
list of independent items. They share this runner so that concurrency, timeouts,
cancellation and the failure policy are chosen explicitly at each call site.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from enum import StrEnum
from functools import lru_cache
from typing import Any, Generic, TypeVar

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from artydrop.exceptions import BatchAbortedError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class FailurePolicy(StrEnum):
    # Record the failing item and keep going; the caller inspects the result
    CONTINUE_ON_ERROR = "continue"
    # Stop at the first failing item, cancel the rest and raise BatchAbortedError
    ABORT_ON_ERROR = "abort"


class ItemStatus(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"


class BatchSettings(BaseSettings):
    """Batch runner tuning, loaded from BATCH_* environment variables."""

    concurrency: int = Field(default=1, ge=1)
    item_timeout: float | None = Field(default=None, gt=0)

    model_config = SettingsConfigDict(env_prefix="BATCH_", env_file=".env", extra="ignore")


@lru_cache(maxsize=1)
def get_batch_settings() -> BatchSettings:
    return BatchSettings()


class ItemOutcome(Generic[T, R]):
    def __init__(self, index: int, item: T, status: ItemStatus, value: R | None = None, error: BaseException | None = None):
        self.index = index
        self.item = item
        self.status = status
        self.value = value
        self.error = error

    @property
    def ok(self) -> bool:
        return self.status is ItemStatus.SUCCESS


class BatchResult(Generic[T, R]):
    """Outcomes of a batch, kept in the order of the input items."""

    def __init__(self, outcomes: list[ItemOutcome[T, R]]):
        self.outcomes = outcomes

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def successful(self) -> int:
        return sum(1 for o in self.outcomes if o.status is ItemStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status is ItemStatus.ERROR)

    @property
    def cancelled(self) -> int:
        return sum(1 for o in self.outcomes if o.status is ItemStatus.CANCELLED)

    def values(self) -> list[R]:
        return [o.value for o in self.outcomes if o.ok]  # type: ignore[misc]

    def errors(self) -> list[ItemOutcome[T, R]]:
        return [o for o in self.outcomes if o.status is ItemStatus.ERROR]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "cancelled": self.cancelled,
        }


async def run_batch(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    *,
    policy: FailurePolicy,
    concurrency: int | None = None,
    item_timeout: float | None = None,
    cancel_event: asyncio.Event | None = None,
) -> BatchResult[T, R]:
    """Apply ``worker`` to every item with at most ``concurrency`` in flight.

    Items are started in input order. Once ``cancel_event`` is set, items that
    have not started yet are recorded as cancelled. With ``ABORT_ON_ERROR`` the
    first failure cancels the pending items and raises ``BatchAbortedError``.
    """
    items = list(items)
    settings = get_batch_settings()
    concurrency = concurrency or settings.concurrency
    if item_timeout is None:
        item_timeout = settings.item_timeout

    semaphore = asyncio.Semaphore(concurrency)
    outcomes: list[ItemOutcome[T, R] | None] = [None] * len(items)
    # Set by the first failure under ABORT_ON_ERROR, before the pending tasks get cancelled
    aborted = asyncio.Event()

    async def process(index: int, item: T) -> None:
        async with semaphore:
            if aborted.is_set() or (cancel_event is not None and cancel_event.is_set()):
                outcomes[index] = ItemOutcome(index, item, ItemStatus.CANCELLED)
                return
            try:
                if item_timeout:
                    value = await asyncio.wait_for(worker(item), timeout=item_timeout)
                else:
                    value = await worker(item)
            except Exception as e:
                outcomes[index] = ItemOutcome(index, item, ItemStatus.ERROR, error=e)
                if policy is FailurePolicy.ABORT_ON_ERROR:
                    aborted.set()
                    raise BatchAbortedError(index, e) from e
                logger.warning("Batch item %d failed, continuing: %s", index, e)
                return
            outcomes[index] = ItemOutcome(index, item, ItemStatus.SUCCESS, value=value)

    tasks = [asyncio.create_task(process(index, item)) for index, item in enumerate(items)]
    try:
        await asyncio.gather(*tasks)
    except BatchAbortedError as e:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.error("Batch aborted at item %d of %d", e.index, len(items))
        raise

    result = BatchResult([o for o in outcomes if o is not None])
    logger.info("Batch complete: %s", result.to_dict())
    return result
