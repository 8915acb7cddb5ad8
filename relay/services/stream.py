"""
Streaming completion path.

The upstream run stream is re-framed for the caller as:
    padding comment, ready, delta*, end
with ": ping" comments on a fixed interval while the stream is open.

StreamSession holds everything that belongs to one connection (state,
accumulated text, last fragment) and is the only place that can emit
`ready` and `end`; the state table below makes `end` reachable once.
"""

import asyncio
import logging
from enum import Enum
from typing import AsyncIterator, Callable, Dict, FrozenSet, Optional

import anyio

from relay.providers.base import RunStream
from relay.services.sanitize import strip_citations
from relay.services.sse import (
    HEARTBEAT,
    EventKind,
    SSEDecoder,
    SSEEvent,
    classify,
    encode_event,
    extract_delta_text,
    padding,
)

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    AWAITING_READY = "awaiting_ready"
    STREAMING = "streaming"
    ENDED = "ended"


TRANSITIONS: Dict[StreamState, FrozenSet[StreamState]] = {
    StreamState.AWAITING_READY: frozenset({StreamState.STREAMING, StreamState.ENDED}),
    StreamState.STREAMING: frozenset({StreamState.ENDED}),
    StreamState.ENDED: frozenset(),
}


class StreamSession:
    def __init__(self, thread_id: str, on_end: Optional[Callable[[str], None]] = None) -> None:
        self.thread_id = thread_id
        self.state = StreamState.AWAITING_READY
        self.end_reason: Optional[str] = None
        self._text = ""
        self._last = ""
        self._on_end = on_end

    def _advance(self, target: StreamState) -> bool:
        if target not in TRANSITIONS[self.state]:
            return False
        self.state = target
        return True

    @property
    def ended(self) -> bool:
        return self.state is StreamState.ENDED

    @property
    def text(self) -> str:
        return self._text

    def ready(self) -> Optional[bytes]:
        if not self._advance(StreamState.STREAMING):
            return None
        return encode_event("ready", {"thread_id": self.thread_id})

    def push(self, fragment: str) -> Optional[bytes]:
        if self.state is not StreamState.STREAMING:
            return None
        piece = strip_citations(fragment, trim=False)
        if not piece:
            return None
        # upstream retransmissions: same chunk again, or a chunk we already ended with
        if piece == self._last or self._text.endswith(piece):
            return None
        self._text += piece
        self._last = piece
        return encode_event("delta", {"text": piece})

    def end(self, reason: str = "completed") -> Optional[bytes]:
        if not self._advance(StreamState.ENDED):
            return None
        self.end_reason = reason
        if self._on_end is not None:
            self._on_end(reason)
        return encode_event("end", {"thread_id": self.thread_id, "text": strip_citations(self._text)})

    def heartbeat(self) -> Optional[bytes]:
        return None if self.ended else HEARTBEAT

    def handle(self, event: SSEEvent) -> Optional[bytes]:
        kind = classify(event)
        if kind is EventKind.DELTA:
            fragment = extract_delta_text(event.data)
            return self.push(fragment) if fragment else None
        if kind in (EventKind.FAILED, EventKind.ERROR):
            logger.warning("upstream sent %s, ending stream with %d chars", event.event, len(self._text))
            return self.end(kind.value)
        if kind is EventKind.COMPLETED:
            return self.end("completed")
        return None


_EOF = object()


async def transcode(
    run_stream: RunStream,
    session: StreamSession,
    *,
    heartbeat_s: float,
    padding_bytes: int = 0,
) -> AsyncIterator[bytes]:
    queue: "asyncio.Queue[object]" = asyncio.Queue()

    async def _pump() -> None:
        decoder = SSEDecoder()
        try:
            async for chunk in run_stream.aiter_text():
                for event in decoder.feed(chunk):
                    await queue.put(event)
            for event in decoder.flush():
                await queue.put(event)
            await queue.put(_EOF)
        except Exception as e:
            await queue.put(e)

    reader: Optional["asyncio.Task[None]"] = None
    try:
        if padding_bytes:
            yield padding(padding_bytes)
        frame = session.ready()
        if frame:
            yield frame

        reader = asyncio.create_task(_pump())
        loop = asyncio.get_running_loop()
        next_beat = loop.time() + heartbeat_s

        while not session.ended:
            remaining = next_beat - loop.time()
            if remaining <= 0:
                beat = session.heartbeat()
                if beat:
                    yield beat
                next_beat += heartbeat_s
                continue
            try:
                item = await asyncio.wait_for(queue.get(), timeout=remaining)
            except asyncio.TimeoutError:
                continue

            if item is _EOF:
                frame = session.end("eof")
            elif isinstance(item, Exception):
                logger.warning("upstream stream for thread %s broke: %s", session.thread_id, item)
                frame = session.end("error")
            else:
                frame = session.handle(item)  # type: ignore[arg-type]
            if frame:
                yield frame
    finally:
        # nothing can be yielded from here; this only releases the connection.
        # shielded: on client disconnect the surrounding task group keeps cancelling
        session.end("closed")
        with anyio.CancelScope(shield=True):
            try:
                if reader is not None:
                    reader.cancel()
                    await asyncio.wait({reader})
            finally:
                await run_stream.aclose()


async def synthetic_stream(thread_id: Optional[str], text: str) -> AsyncIterator[bytes]:
    """ready, one delta, end: same framing as a real stream, no upstream involved."""
    yield encode_event("ready", {"thread_id": thread_id})
    yield encode_event("delta", {"text": text})
    yield encode_event("end", {"thread_id": thread_id, "text": text})
