from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing import Any, Optional


class ChatRequest(BaseModel):
    # clients send either snake_case or the older camelCase names
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    chatbot_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("chatbot_id", "botId"))
    message: Optional[str] = None
    thread_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("thread_id", "threadId"))
    user_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("user_id", "userId"))
    stream: bool = False

    @field_validator("stream", mode="before")
    @classmethod
    def _truthy(cls, v: Any) -> bool:
        return bool(v)


class ChatResponse(BaseModel):
    ok: bool
    text: Optional[str] = None
    thread_id: Optional[str] = None
    error: Optional[str] = None
