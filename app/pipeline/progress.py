import asyncio
from collections.abc import AsyncIterator


class ProgressStream:
    """One-way stream of upload percentages for a single run.

    Values are published in non-decreasing order; consumers may miss
    intermediate values but always see 100 on a successful transfer. The
    stream ends when the run finishes, whether it succeeded or failed.
    """

    def __init__(self) -> None:
        # None marks the end of the stream.
        self._queue: asyncio.Queue[int | None] = asyncio.Queue()
        self._last = -1
        self._closed = False

    @property
    def last(self) -> int:
        return max(self._last, 0)

    def publish(self, percent: int) -> None:
        if self._closed or percent <= self._last:
            return
        self._last = min(percent, 100)
        self._queue.put_nowait(self._last)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[int]:
        while True:
            item = await self._queue.get()
            if item is None:
                return
            yield item
