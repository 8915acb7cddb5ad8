# relay/main.py
import logging
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relay.core import config
from relay.core.logging import configure_logging
from relay.api.routers.health import router as health_router
from relay.api.routers.chat import router as chat_router
from relay.providers.openai_assistants import AssistantsClient
from relay.services.bot_store import BotStore
from relay.services.chat_service import ChatRelay

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def create_app(relay: Optional[ChatRelay] = None) -> FastAPI:
    configure_logging(config.LOG_LEVEL)
    for name in config.missing_settings():
        logger.error("ENV MISSING: %s", name)

    app = FastAPI(title="Chat Relay", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    # the relay keeps no per-request state, so one instance serves every request
    app.state.relay = relay or ChatRelay(AssistantsClient(), BotStore())

    # Routers
    app.include_router(health_router)
    app.include_router(chat_router)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("relay.main:app", host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())
