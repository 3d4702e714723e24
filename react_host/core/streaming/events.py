"""
Channel-based event plumbing between streaming producers and the ReAct loop.

`EventBus` is the transport: producers publish `StreamChunk` fragments on a
named channel and listeners receive them. `EventSubscriptionManager` sits on
top of it and keeps at most one subscription per channel, accumulating the
fragments until a terminal one resolves the pending completion.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from functools import partial
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from ..primitives.errors import SubscriptionError, SubscriptionTimeout


LOGGER = logging.getLogger(__name__)

CHAT_STREAM_CHANNEL = "chat_stream_chunk"
DEFAULT_COMPLETION_TIMEOUT = 5 * 60.0


@dataclass(frozen=True)
class StreamChunk:
    """One fragment pushed on a channel."""

    content: str = ""
    is_complete: bool = False
    error: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None
    request_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StreamChunk":
        return cls(
            content=data.get("content") or "",
            is_complete=bool(data.get("is_complete", False)),
            error=data.get("error"),
            status=data.get("status"),
            message=data.get("message") or data.get("status_message"),
            request_id=data.get("request_id"),
        )


ChunkHandler = Callable[[StreamChunk], None]
Unlisten = Callable[[], None]


class EventBus:
    """
    Minimal in-process pub/sub keyed by channel name.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[ChunkHandler]] = {}

    def listen(self, channel: str, handler: ChunkHandler) -> Unlisten:
        self._handlers.setdefault(channel, []).append(handler)

        def unlisten() -> None:
            handlers = self._handlers.get(channel, [])
            if handler in handlers:
                handlers.remove(handler)
            if not handlers:
                self._handlers.pop(channel, None)

        return unlisten

    def emit(self, channel: str, chunk: StreamChunk) -> None:
        handlers = list(self._handlers.get(channel, []))
        if not handlers:
            LOGGER.debug("Dropping chunk on '%s': no listener", channel)
            return
        for handler in handlers:
            handler(chunk)

    def listener_count(self, channel: str) -> int:
        return len(self._handlers.get(channel, []))

    def publisher(
        self,
        channel: str,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        request_id: Optional[str] = None,
    ) -> ChunkHandler:
        """
        Return a callable that publishes on `channel` from any thread.

        Fragments are handed to the event loop with `call_soon_threadsafe`,
        so they are delivered on the loop thread in publication order. With
        a `request_id` every fragment is tagged with it, which lets the
        subscriber drop output of a producer it already gave up on.
        """

        target_loop = loop or asyncio.get_running_loop()

        def publish(chunk: StreamChunk) -> None:
            if request_id is not None:
                chunk = replace(chunk, request_id=request_id)
            target_loop.call_soon_threadsafe(self.emit, channel, chunk)

        return publish


@dataclass
class StreamCallbacks:
    on_chunk: Optional[Callable[[str], None]] = None
    on_complete: Optional[Callable[[str], None]] = None
    on_error: Optional[Callable[[str], None]] = None
    on_status: Optional[Callable[[str, str], None]] = None


@dataclass
class SubscriptionState:
    is_active: bool = False
    accumulated_content: str = ""
    callbacks: Optional[StreamCallbacks] = None
    request_id: Optional[str] = None
    unlisten: Optional[Unlisten] = field(default=None, repr=False)


class EventSubscriptionManager:
    """
    Owns at most one active subscription per channel.

    Subscribing to a channel that is already active only swaps the callbacks
    and request id of the existing subscription; no second transport
    listener is registered.
    """

    def __init__(self, bus: Optional[EventBus] = None) -> None:
        self.bus = bus or EventBus()
        self._states: Dict[str, SubscriptionState] = {}
        self._logger = logging.getLogger(__name__)

    def subscribe(
        self,
        channel: str,
        callbacks: StreamCallbacks,
        request_id: Optional[str] = None,
    ) -> None:
        state = self._states.get(channel)
        if state is not None and state.is_active:
            state.callbacks = callbacks
            state.request_id = request_id
            self._logger.info("Subscription for %s already active, callbacks updated", channel)
            return

        state = SubscriptionState(is_active=True, callbacks=callbacks, request_id=request_id)
        self._states[channel] = state
        state.unlisten = self.bus.listen(channel, partial(self._handle_chunk, channel))
        self._logger.info("Subscription for %s started", channel)

    def update_callbacks(self, channel: str, callbacks: StreamCallbacks) -> None:
        state = self._states.get(channel)
        if state is None or not state.is_active:
            self._logger.warning("No active subscription found for channel: %s", channel)
            return
        state.callbacks = callbacks

    def unsubscribe(self, channel: str) -> None:
        state = self._states.get(channel)
        if state is None or not state.is_active:
            return
        if state.unlisten is not None:
            state.unlisten()
        state.is_active = False
        state.unlisten = None
        state.callbacks = None
        state.accumulated_content = ""
        state.request_id = None
        self._logger.info("Subscription for %s stopped", channel)

    def unsubscribe_all(self) -> None:
        for channel in list(self._states):
            self.unsubscribe(channel)

    def is_active(self, channel: str) -> bool:
        state = self._states.get(channel)
        return bool(state and state.is_active)

    def accumulated_content(self, channel: str) -> str:
        state = self._states.get(channel)
        return state.accumulated_content if state else ""

    def request_id(self, channel: str) -> Optional[str]:
        state = self._states.get(channel)
        return state.request_id if state else None

    def active_channels(self) -> List[str]:
        return [channel for channel, state in self._states.items() if state.is_active]

    async def await_completion(
        self,
        channel: str,
        start: Callable[[], Awaitable[Any]],
        *,
        timeout: float = DEFAULT_COMPLETION_TIMEOUT,
        on_chunk: Optional[Callable[[str], None]] = None,
        request_id: Optional[str] = None,
    ) -> str:
        """
        Subscribe to `channel`, run `start` to kick off the producer, and
        wait for the accumulated content of the terminal fragment.

        Raises `SubscriptionTimeout` when nothing terminal arrives within
        `timeout` seconds and `SubscriptionError` when the stream or the
        producer fails. The subscription is torn down in both cases.
        """

        loop = asyncio.get_running_loop()
        pending: asyncio.Future = loop.create_future()

        def resolve(content: str) -> None:
            if not pending.done():
                pending.set_result(content)

        def reject(error: str) -> None:
            if not pending.done():
                pending.set_exception(SubscriptionError(error))

        def log_status(status: str, message: str) -> None:
            self._logger.info("Streaming status for %s: %s - %s", channel, status, message)

        self.subscribe(
            channel,
            StreamCallbacks(
                on_chunk=on_chunk,
                on_complete=resolve,
                on_error=reject,
                on_status=log_status,
            ),
            request_id=request_id,
        )
        producer = asyncio.ensure_future(start())
        producer.add_done_callback(partial(self._on_producer_done, channel, pending))
        try:
            return await asyncio.wait_for(pending, timeout)
        except asyncio.TimeoutError as exc:
            self._logger.warning("Streaming timeout on %s after %.1fs", channel, timeout)
            producer.cancel()
            self.unsubscribe(channel)
            raise SubscriptionTimeout(f"Streaming timeout on '{channel}' after {timeout:g}s") from exc
        except SubscriptionError:
            self.unsubscribe(channel)
            raise
        except asyncio.CancelledError:
            producer.cancel()
            self.unsubscribe(channel)
            raise

    def _on_producer_done(self, channel: str, pending: asyncio.Future, producer: asyncio.Future) -> None:
        if producer.cancelled():
            return
        exc = producer.exception()
        if exc is None:
            return
        self._logger.error("Producer for %s failed: %s", channel, exc)
        if not pending.done():
            error = SubscriptionError(f"Failed to start stream on '{channel}': {exc}")
            error.__cause__ = exc
            pending.set_exception(error)

    def _handle_chunk(self, channel: str, chunk: StreamChunk) -> None:
        state = self._states.get(channel)
        if state is None or not state.is_active or state.callbacks is None:
            self._logger.warning("No callbacks found for channel: %s", channel)
            return
        if chunk.request_id is not None and chunk.request_id != state.request_id:
            # 旧请求（例如已超时）的残留输出
            self._logger.warning(
                "Dropping stale chunk on %s from request %s (active: %s)",
                channel,
                chunk.request_id,
                state.request_id,
            )
            return
        callbacks = state.callbacks

        if chunk.is_complete:
            content = state.accumulated_content
            self.unsubscribe(channel)
            if chunk.error:
                self._logger.error("Streaming error for %s: %s", channel, chunk.error)
                if callbacks.on_error:
                    callbacks.on_error(chunk.error)
            else:
                self._logger.info("Streaming completed for %s, content length: %d", channel, len(content))
                if callbacks.on_complete:
                    callbacks.on_complete(content)
            return

        if chunk.status and chunk.message and callbacks.on_status:
            callbacks.on_status(chunk.status, chunk.message)

        if chunk.content:
            state.accumulated_content += chunk.content
            if callbacks.on_chunk:
                callbacks.on_chunk(chunk.content)
