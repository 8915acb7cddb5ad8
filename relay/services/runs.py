import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional
from relay.core.errors import ClientDisconnected, UpstreamError
from relay.providers.openai_assistants import AssistantsClient

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"completed", "failed", "cancelled", "expired"})
TIMEOUT = "timeout"

DisconnectCheck = Callable[[], Awaitable[bool]]


async def wait_for_run(
    client: AssistantsClient,
    thread_id: str,
    run_id: str,
    *,
    interval: float,
    timeout: float,
    is_disconnected: Optional[DisconnectCheck] = None,
    cancel_on_disconnect: bool = True,
) -> str:
    """Poll a run until it reaches any terminal status.

    Returns the terminal status, or "timeout" once the deadline passes.
    Raises ClientDisconnected when the caller goes away mid-poll.
    """

    async def _poll() -> str:
        while True:
            if is_disconnected is not None and await is_disconnected():
                raise ClientDisconnected()
            run = await client.get_run(thread_id, run_id)
            status = str(run.get("status") or "")
            if status in TERMINAL_STATUSES:
                return status
            await asyncio.sleep(interval)

    try:
        status = await asyncio.wait_for(_poll(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("run %s on thread %s still pending after %.1fs", run_id, thread_id, timeout)
        return TIMEOUT
    except ClientDisconnected:
        logger.info("client disconnected while polling run %s", run_id)
        if cancel_on_disconnect:
            try:
                await client.cancel_run(thread_id, run_id)
            except UpstreamError as e:
                logger.warning("could not cancel run %s: %s", run_id, e)
        raise

    if status != "completed":
        # failed/cancelled/expired still fall through to the message scan
        logger.warning("run %s on thread %s ended with status %s", run_id, thread_id, status)
    return status


def latest_assistant_text(messages: Iterable[Dict[str, Any]], run_id: Optional[str] = None) -> Optional[str]:
    # messages arrive newest first; with run_id, earlier turns of a reused thread are skipped
    for m in messages:
        if m.get("role") != "assistant" or not isinstance(m.get("content"), list):
            continue
        if run_id is not None and m.get("run_id") != run_id:
            continue
        for part in m["content"]:
            if not isinstance(part, dict) or part.get("type") != "text":
                continue
            text = part.get("text")
            value = text.get("value") if isinstance(text, dict) else text
            if value:
                return str(value)
    return None
