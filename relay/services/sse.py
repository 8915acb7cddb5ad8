# event-stream framing, both directions:
# decoding the assistant API's run stream and encoding our own frames for the caller

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

HEARTBEAT = b": ping\n\n"


def encode_event(name: str, payload: Any) -> bytes:
    data = json.dumps(payload, ensure_ascii=False)
    return f"event: {name}\ndata: {data}\n\n".encode("utf-8")


def comment(text: str = "") -> bytes:
    return f": {text}\n\n".encode("utf-8")


def padding(size: int) -> bytes:
    # pushes past proxy/browser buffering thresholds before the first real frame
    return comment(" " * max(0, size))


@dataclass
class SSEEvent:
    event: str
    data: Any
    raw: str = ""


class SSEDecoder:
    """Incremental decoder: feed text chunks, get back complete frames."""

    def __init__(self) -> None:
        self._buffer = ""
        self._cr = ""

    def feed(self, chunk: str) -> List[SSEEvent]:
        chunk, self._cr = self._cr + chunk, ""
        if chunk.endswith("\r"):
            # its \n may arrive with the next chunk
            chunk, self._cr = chunk[:-1], "\r"
        self._buffer += chunk.replace("\r\n", "\n").replace("\r", "\n")
        events: List[SSEEvent] = []
        while "\n\n" in self._buffer:
            frame, self._buffer = self._buffer.split("\n\n", 1)
            event = self._parse(frame)
            if event is not None:
                events.append(event)
        return events

    def flush(self) -> List[SSEEvent]:
        frame, self._buffer, self._cr = self._buffer, "", ""
        event = self._parse(frame) if frame.strip() else None
        return [event] if event is not None else []

    def _parse(self, frame: str) -> Optional[SSEEvent]:
        name = "message"
        data_lines: List[str] = []
        for line in frame.split("\n"):
            if not line or line.startswith(":"):
                continue
            field, _, value = line.partition(":")
            if value.startswith(" "):
                value = value[1:]
            if field == "event":
                name = value.strip()
            elif field == "data":
                data_lines.append(value)
        if not data_lines:
            return None
        raw = "\n".join(data_lines)
        if raw.strip() == "[DONE]":
            return SSEEvent(event=name, data=None, raw=raw)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("skipping malformed upstream frame %r", raw[:200])
            return None
        return SSEEvent(event=name, data=data, raw=raw)


class EventKind(str, Enum):
    DELTA = "delta"
    COMPLETED = "completed"
    FAILED = "failed"
    ERROR = "error"
    OTHER = "other"


DELTA_EVENTS = frozenset({"thread.message.delta", "response.output_text.delta", "message.delta", "delta"})
COMPLETED_EVENTS = frozenset({"thread.run.completed", "response.completed", "done"})
FAILED_EVENTS = frozenset({
    "thread.run.failed",
    "thread.run.cancelled",
    "thread.run.expired",
    "thread.run.incomplete",
    "response.failed",
})


def classify(event: SSEEvent) -> EventKind:
    if event.event in DELTA_EVENTS:
        return EventKind.DELTA
    if event.event in COMPLETED_EVENTS:
        return EventKind.COMPLETED
    if event.event in FAILED_EVENTS:
        return EventKind.FAILED
    if event.event == "error":
        return EventKind.ERROR
    return EventKind.OTHER


# delta payload shapes, tried in order; each returns None when it does not apply

def _plain_delta(payload: Any) -> Optional[str]:
    delta = payload.get("delta")
    return delta if isinstance(delta, str) and delta else None


def _content_parts(payload: Any) -> Optional[str]:
    delta = payload.get("delta")
    parts = delta.get("content") if isinstance(delta, dict) else None
    if not isinstance(parts, list):
        return None
    texts: List[str] = []
    for part in parts:
        if not isinstance(part, dict) or part.get("type") != "text":
            continue
        text = part.get("text")
        value = text.get("value") if isinstance(text, dict) else text
        if isinstance(value, str):
            texts.append(value)
    joined = "".join(texts)
    return joined or None


def _output_text(payload: Any) -> Optional[str]:
    value = payload.get("output_text")
    if isinstance(value, str) and value:
        return value
    text = payload.get("text")
    value = text.get("value") if isinstance(text, dict) else None
    return value if isinstance(value, str) and value else None


DELTA_SHAPES: Sequence[Callable[[Any], Optional[str]]] = (_plain_delta, _content_parts, _output_text)


def extract_delta_text(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    for shape in DELTA_SHAPES:
        text = shape(payload)
        if text is not None:
            return text
    return None
