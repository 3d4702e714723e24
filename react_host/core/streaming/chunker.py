"""
Paced re-emission of text so that model output and tool narration reach the
UI with the same rhythm.
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Optional


END_OF_UNIT = "\r"

SleepFn = Callable[[float], Awaitable[None]]


class ChunkStreamer:
    """
    Emits a text in small randomly sized pieces with random pauses in between.

    After the last piece the streamer waits `settle_delay_ms` and emits a
    single ``"\\r"`` so the consumer can reset its line-level state.
    """

    def __init__(
        self,
        *,
        rng: Optional[random.Random] = None,
        sleep: Optional[SleepFn] = None,
        min_chunk_size: int = 5,
        max_chunk_size: int = 10,
        min_delay_ms: int = 100,
        max_delay_ms: int = 200,
        settle_delay_ms: int = 200,
    ) -> None:
        if min_chunk_size < 1 or max_chunk_size < min_chunk_size:
            raise ValueError("Chunk size bounds must satisfy 1 <= min <= max.")
        if min_delay_ms < 0 or max_delay_ms < min_delay_ms:
            raise ValueError("Delay bounds must satisfy 0 <= min <= max.")
        self.rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep
        self.min_chunk_size = min_chunk_size
        self.max_chunk_size = max_chunk_size
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms
        self.settle_delay_ms = settle_delay_ms

    async def stream(self, text: str, on_chunk: Callable[[str], None]) -> None:
        index = 0
        while index < len(text):
            size = self.rng.randint(self.min_chunk_size, self.max_chunk_size)
            on_chunk(text[index:index + size])
            if index + size < len(text):
                delay_ms = self.rng.randint(self.min_delay_ms, self.max_delay_ms)
                await self._sleep(delay_ms / 1000)
            index += size
        await self._sleep(self.settle_delay_ms / 1000)
        on_chunk(END_OF_UNIT)
