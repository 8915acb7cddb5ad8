# shared builders for fake upstream traffic
import asyncio
import json
from typing import AsyncIterator, Iterable, List, Optional

OPENAI_HOST = "api.openai.test"
STORE_HOST = "store.test"


def sse_frames(body: str) -> List[dict]:
    """Named frames of an event-stream body; comment lines are dropped."""
    frames = []
    for block in body.replace("\r\n", "\n").split("\n\n"):
        lines = [l for l in block.split("\n") if l and not l.startswith(":")]
        if not lines:
            continue
        name = next((l[len("event: "):] for l in lines if l.startswith("event: ")), "message")
        data = "\n".join(l[len("data: "):] for l in lines if l.startswith("data: "))
        frames.append({"event": name, "data": json.loads(data) if data else None})
    return frames


def upstream_sse(*events) -> bytes:
    out = []
    for name, data in events:
        payload = data if isinstance(data, str) else json.dumps(data)
        out.append(f"event: {name}\ndata: {payload}\n\n")
    return "".join(out).encode("utf-8")


def message_delta(text: str) -> dict:
    return {"id": "msg_1", "object": "thread.message.delta",
            "delta": {"content": [{"index": 0, "type": "text", "text": {"value": text}}]}}


def bot_row(**overrides) -> dict:
    row = {
        "id": "b1",
        "name": "Helper",
        "status": "ready",
        "openai_assistant_id": "asst_1",
        "fallback_message": None,
    }
    row.update(overrides)
    return row


class FakeRunStream:
    def __init__(self, chunks: Iterable[str], error: Optional[Exception] = None, delay: float = 0.0) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.delay = delay
        self.close_calls = 0

    async def aiter_text(self) -> AsyncIterator[str]:
        for chunk in self.chunks:
            if self.delay:
                await asyncio.sleep(self.delay)
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.close_calls += 1


class SlowRunStream:
    """Sends one chunk, then stays silent; records whether closing ran to completion."""

    def __init__(self, first_chunk: str) -> None:
        self.first_chunk = first_chunk
        self.close_started = False
        self.close_finished = False

    async def aiter_text(self) -> AsyncIterator[str]:
        yield self.first_chunk
        await asyncio.sleep(30)

    async def aclose(self) -> None:
        self.close_started = True
        await asyncio.sleep(0)
        self.close_finished = True


class FakeBots:
    def __init__(self, bot) -> None:
        self.bot = bot

    async def get_bot(self, bot_id):
        return self.bot


class FakeAssistants:
    def __init__(self, run_stream=None, run_status: str = "in_progress") -> None:
        self.run_stream = run_stream
        self.run_status = run_status
        self.cancelled: List[str] = []

    async def create_thread(self) -> str:
        return "thread_1"

    async def add_message(self, thread_id, text, user_id=None) -> None:
        return None

    async def create_run(self, thread_id, assistant_id, instructions) -> str:
        return "run_1"

    async def get_run(self, thread_id, run_id) -> dict:
        return {"id": run_id, "status": self.run_status}

    async def cancel_run(self, thread_id, run_id) -> None:
        self.cancelled.append(run_id)

    async def list_messages(self, thread_id, limit=20) -> list:
        return []

    async def open_run_stream(self, thread_id, assistant_id, instructions):
        return self.run_stream


async def call_asgi(app, body: dict, disconnect_after: float) -> List[dict]:
    """Drive the app with a bare ASGI call; the client hangs up after `disconnect_after` seconds."""
    payload = json.dumps(body).encode("utf-8")
    sent: List[dict] = []
    delivered = False

    async def receive():
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": payload, "more_body": False}
        if disconnect_after:
            await asyncio.sleep(disconnect_after)
        return {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/chat",
        "raw_path": b"/chat",
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"test"), (b"content-type", b"application/json")],
        "client": ("127.0.0.1", 50000),
        "server": ("test", 80),
    }
    await asyncio.wait_for(app(scope, receive, send), timeout=5)
    return sent
