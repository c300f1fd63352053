"""Streaming-to-blocking primitive used by the real generation providers.

A producer task drains an async iterator of text increments into a bounded
queue while the caller's task accumulates them in receipt order. Callers only
ever see the complete text or an error:

- a failure inside the source is re-raised in the caller;
- cancelling the caller's task cancels the producer and closes the source;
- setting ``cancel_event`` aborts both sides with GenerationCancelledError,
  including a producer blocked on a full queue.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable
from dataclasses import dataclass
from typing import Any, TypeVar

from ..exceptions import GenerationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_QUEUE_SIZE = 32

_DONE = object()


@dataclass
class _Failure:
    error: BaseException


class ChunkCollector:
    """Joins streamed text increments into one string.

    Args:
        maxsize: Queue bound between producer and consumer.
        cancel_event: Optional signal that aborts collection when set.
    """

    def __init__(
        self, maxsize: int = DEFAULT_QUEUE_SIZE, cancel_event: asyncio.Event | None = None
    ) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.maxsize = maxsize
        self.cancel_event = cancel_event

    async def collect(self, source: AsyncIterator[str]) -> str:
        queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=self.maxsize)
        producer = asyncio.create_task(self._produce(source, queue))
        parts: list[str] = []
        try:
            while True:
                item = await self._race(queue.get())
                if item is _DONE:
                    break
                if isinstance(item, _Failure):
                    raise item.error
                parts.append(item)
            await producer
        except BaseException:
            producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)
            raise

        logger.debug(f"Collected {len(parts)} chunks")
        return "".join(parts)

    async def _produce(self, source: AsyncIterator[str], queue: asyncio.Queue[Any]) -> None:
        outcome: Any = _DONE
        try:
            async for chunk in source:
                if chunk:
                    await self._race(queue.put(chunk))
        except Exception as e:
            # Forwarded to the consumer, which re-raises it
            outcome = _Failure(e)
        finally:
            aclose = getattr(source, "aclose", None)
            if aclose is not None:
                await aclose()

        # The consumer watches the same signal, so nothing is left to hand over
        if self._cancelled():
            return
        try:
            await self._race(queue.put(outcome))
        except GenerationCancelledError:
            return

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    async def _race(self, awaitable: Awaitable[T]) -> T:
        """Awaits ``awaitable`` unless the cancel signal fires first."""
        if self.cancel_event is None:
            return await awaitable

        operation = asyncio.ensure_future(awaitable)
        if self.cancel_event.is_set():
            operation.cancel()
            raise GenerationCancelledError("Generation cancelled")

        waiter = asyncio.ensure_future(self.cancel_event.wait())
        try:
            done, _ = await asyncio.wait({operation, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            operation.cancel()
            waiter.cancel()
            raise

        if operation in done:
            waiter.cancel()
            return operation.result()

        operation.cancel()
        raise GenerationCancelledError("Generation cancelled")
