import logging
import httpx
from typing import Optional
from relay.core import config
from relay.core.errors import StoreError
from relay.schemas.bot import BotConfig

logger = logging.getLogger(__name__)

BOT_COLUMNS = "id,name,status,openai_assistant_id,fallback_message"


class BotStore:
    """Single-row chatbot lookup against the PostgREST endpoint of the configuration store.

    Nothing is cached, so status or assistant changes apply to the very next request.
    """

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        service_key: Optional[str] = None,
        table: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self.url = (url if url is not None else config.SUPABASE_URL).rstrip("/")
        self.service_key = service_key if service_key is not None else config.SUPABASE_SERVICE_ROLE_KEY
        self.table = table or config.BOTS_TABLE
        self._timeout = httpx.Timeout(timeout)

    async def get_bot(self, bot_id: str) -> Optional[BotConfig]:
        params = {"id": f"eq.{bot_id}", "select": BOT_COLUMNS, "limit": 1}
        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                r = await client.get(f"{self.url}/rest/v1/{self.table}", params=params, headers=headers)
        except httpx.HTTPError as e:
            raise StoreError(f"Configuration store error: {e}") from e
        if r.is_error:
            raise StoreError(f"Configuration store error: {r.status_code} {r.text}")

        try:
            rows = r.json()
        except ValueError as e:
            raise StoreError("Configuration store returned invalid JSON") from e
        if not isinstance(rows, list) or not rows:
            return None
        row = dict(rows[0])
        row["id"] = str(row.get("id", bot_id))
        return BotConfig.model_validate(row)
