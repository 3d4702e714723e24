"""Tests for paced chunk emission."""

import random

import pytest

from react_host.core.streaming.chunker import END_OF_UNIT, ChunkStreamer


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "text",
    ["", "a", "hello", "The quick brown fox jumps over the lazy dog.\nSecond line ✓", "x" * 257],
)
async def test_reassembles_text_and_ends_with_sentinel(text):
    chunks = []
    streamer = ChunkStreamer(rng=random.Random(3), sleep=SleepRecorder())

    await streamer.stream(text, chunks.append)

    assert chunks[-1] == END_OF_UNIT
    assert "".join(chunks[:-1]) == text


@pytest.mark.asyncio
async def test_chunk_sizes_and_delays_stay_in_range():
    sleep = SleepRecorder()
    chunks = []
    streamer = ChunkStreamer(rng=random.Random(11), sleep=sleep)
    text = "abcdefghij" * 30

    await streamer.stream(text, chunks.append)

    pieces = chunks[:-1]
    assert all(5 <= len(piece) <= 10 for piece in pieces[:-1])
    assert 1 <= len(pieces[-1]) <= 10
    inter_chunk = sleep.delays[:-1]
    assert len(inter_chunk) == len(pieces) - 1
    assert all(0.1 <= delay <= 0.2 for delay in inter_chunk)
    assert sleep.delays[-1] == pytest.approx(0.2)


@pytest.mark.asyncio
async def test_no_delay_after_last_chunk():
    sleep = SleepRecorder()
    chunks = []
    # Size always 5 so "abcde" is a single, final chunk.
    streamer = ChunkStreamer(rng=random.Random(0), sleep=sleep, min_chunk_size=5, max_chunk_size=5)

    await streamer.stream("abcde", chunks.append)

    assert chunks == ["abcde", END_OF_UNIT]
    assert sleep.delays == [pytest.approx(0.2)]


@pytest.mark.asyncio
async def test_seeded_random_source_is_deterministic():
    first, second = [], []
    await ChunkStreamer(rng=random.Random(5), sleep=SleepRecorder()).stream("deterministic text" * 4, first.append)
    await ChunkStreamer(rng=random.Random(5), sleep=SleepRecorder()).stream("deterministic text" * 4, second.append)
    assert first == second


def test_rejects_invalid_bounds():
    with pytest.raises(ValueError):
        ChunkStreamer(min_chunk_size=0)
    with pytest.raises(ValueError):
        ChunkStreamer(min_delay_ms=300, max_delay_ms=200)
