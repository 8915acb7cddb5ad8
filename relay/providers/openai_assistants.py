import logging
import httpx
from typing import Optional, Dict, Any, List, AsyncIterator
from relay.core import config
from relay.core.errors import UpstreamError

logger = logging.getLogger(__name__)


class HttpxRunStream:
    """An open `POST /threads/{id}/runs` event stream.

    Owns its AsyncClient; `aclose()` releases both exactly once.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self._client = client
        self._response = response
        self._closed = False

    async def aiter_text(self) -> AsyncIterator[str]:
        async for chunk in self._response.aiter_text():
            if chunk:
                yield chunk

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()


class AssistantsClient:
    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        beta: Optional[str] = None,
        timeout: float = 60.0,
    ) -> None:
        self.api_key = api_key if api_key is not None else config.OPENAI_API_KEY
        self.base_url = (base_url or config.OPENAI_BASE_URL).rstrip("/")
        self.beta = beta or config.OPENAI_BETA
        self._timeout = httpx.Timeout(timeout, connect=10.0)

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "OpenAI-Beta": self.beta,
        }
        headers.update(extra or {})
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                r = await client.request(
                    method, f"{self.base_url}{path}", json=json, params=params, headers=self._headers()
                )
        except httpx.HTTPError as e:
            raise UpstreamError(path, 0, str(e)) from e
        if r.is_error:
            raise UpstreamError(path, r.status_code, r.text)
        if not r.content:
            return {}
        try:
            data = r.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def create_thread(self) -> str:
        data = await self._request("POST", "/threads", json={})
        return str(data.get("id"))

    async def add_message(self, thread_id: str, text: str, user_id: Optional[str] = None) -> None:
        body: Dict[str, Any] = {
            "role": "user",
            "content": [{"type": "text", "text": text}],
        }
        if user_id:
            body["metadata"] = {"user_id": user_id}
        await self._request("POST", f"/threads/{thread_id}/messages", json=body)

    async def create_run(self, thread_id: str, assistant_id: str, instructions: str) -> str:
        data = await self._request(
            "POST",
            f"/threads/{thread_id}/runs",
            json={"assistant_id": assistant_id, "instructions": instructions},
        )
        return str(data.get("id"))

    async def get_run(self, thread_id: str, run_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/threads/{thread_id}/runs/{run_id}")

    async def cancel_run(self, thread_id: str, run_id: str) -> None:
        await self._request("POST", f"/threads/{thread_id}/runs/{run_id}/cancel")

    async def list_messages(self, thread_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        data = await self._request("GET", f"/threads/{thread_id}/messages", params={"limit": limit})
        items = data.get("data") or []
        return [m for m in items if isinstance(m, dict)]

    async def open_run_stream(self, thread_id: str, assistant_id: str, instructions: str) -> HttpxRunStream:
        path = f"/threads/{thread_id}/runs"
        # no read timeout: the heartbeat keeps our side alive, upstream decides when it is done
        client = httpx.AsyncClient(timeout=httpx.Timeout(None, connect=10.0))
        request = client.build_request(
            "POST",
            f"{self.base_url}{path}",
            json={"assistant_id": assistant_id, "instructions": instructions, "stream": True},
            headers=self._headers({"Accept": "text/event-stream"}),
        )
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise UpstreamError(path, 0, str(e), status_code=502) from e
        if response.is_error:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            finally:
                await response.aclose()
                await client.aclose()
            raise UpstreamError(path, response.status_code, body, status_code=502)
        logger.debug("run stream opened for thread %s", thread_id)
        return HttpxRunStream(client, response)
