from pydantic import BaseModel
from typing import Optional


class BotConfig(BaseModel):
    """Read-only snapshot of a chatbot row, re-read on every request."""

    id: str
    name: Optional[str] = None
    status: Optional[str] = None
    openai_assistant_id: Optional[str] = None
    fallback_message: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or "AI assistant"

    @property
    def normalized_status(self) -> str:
        return str(self.status or "ready").strip().lower()

    @property
    def is_inactive(self) -> bool:
        return self.normalized_status == "inactive"

    def fallback_text(self, default: str) -> str:
        text = (self.fallback_message or "").strip()
        return text or default
