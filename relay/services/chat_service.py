import logging
from typing import AsyncIterator, Optional
from relay.core import config
from relay.core.errors import BotNotFound, BotNotLinked
from relay.providers.openai_assistants import AssistantsClient
from relay.schemas.bot import BotConfig
from relay.schemas.chat import ChatRequest, ChatResponse
from relay.services.bot_store import BotStore
from relay.services.prompt import build_instructions
from relay.services.runs import DisconnectCheck, latest_assistant_text, wait_for_run
from relay.services.sanitize import strip_citations
from relay.services.stream import StreamSession, synthetic_stream, transcode

logger = logging.getLogger(__name__)


class ChatRelay:
    """Bridges one chat request to the assistant API.

    Holds only settings and the two upstream clients; all per-request
    state lives in the call (or in the StreamSession for streams).
    """

    def __init__(
        self,
        assistants: AssistantsClient,
        bots: BotStore,
        *,
        poll_interval: float = config.RUN_POLL_INTERVAL_MS / 1000,
        run_timeout: float = config.RUN_TIMEOUT_S,
        heartbeat_s: float = config.HEARTBEAT_S,
        padding_bytes: int = config.SSE_PADDING_BYTES,
        messages_limit: int = config.MESSAGES_LIMIT,
        default_fallback: str = config.DEFAULT_FALLBACK,
        cancel_on_disconnect: bool = config.CANCEL_RUN_ON_DISCONNECT,
    ) -> None:
        self.assistants = assistants
        self.bots = bots
        self.poll_interval = poll_interval
        self.run_timeout = run_timeout
        self.heartbeat_s = heartbeat_s
        self.padding_bytes = padding_bytes
        self.messages_limit = messages_limit
        self.default_fallback = default_fallback
        self.cancel_on_disconnect = cancel_on_disconnect

    async def resolve(self, bot_id: str) -> BotConfig:
        bot = await self.bots.get_bot(bot_id)
        if bot is None:
            raise BotNotFound()
        return bot

    async def ensure_thread(self, thread_id: Optional[str]) -> str:
        # caller-supplied ids are used as-is, upstream rejects unknown ones
        if thread_id:
            return thread_id
        thread_id = await self.assistants.create_thread()
        logger.info("created thread %s", thread_id)
        return thread_id

    async def _start_turn(self, req: ChatRequest, bot: BotConfig) -> tuple[str, str, str]:
        if not bot.openai_assistant_id:
            raise BotNotLinked(bot.id)
        fallback = bot.fallback_text(self.default_fallback)
        thread_id = await self.ensure_thread(req.thread_id)
        await self.assistants.add_message(thread_id, req.message or "", user_id=req.user_id)
        instructions = build_instructions(bot.display_name, fallback)
        return thread_id, fallback, instructions

    async def reply(self, req: ChatRequest, is_disconnected: Optional[DisconnectCheck] = None) -> ChatResponse:
        bot = await self.resolve(req.chatbot_id or "")
        if bot.is_inactive:
            logger.info("bot %s is inactive, answering with fallback", bot.id)
            return ChatResponse(ok=True, text=bot.fallback_text(self.default_fallback), thread_id=req.thread_id)

        thread_id, fallback, instructions = await self._start_turn(req, bot)
        run_id = await self.assistants.create_run(thread_id, bot.openai_assistant_id or "", instructions)
        logger.info("run %s started on thread %s for bot %s", run_id, thread_id, bot.id)

        await wait_for_run(
            self.assistants,
            thread_id,
            run_id,
            interval=self.poll_interval,
            timeout=self.run_timeout,
            is_disconnected=is_disconnected,
            cancel_on_disconnect=self.cancel_on_disconnect,
        )
        messages = await self.assistants.list_messages(thread_id, limit=self.messages_limit)
        text = strip_citations(latest_assistant_text(messages, run_id=run_id) or "")
        return ChatResponse(ok=True, text=text or fallback, thread_id=thread_id)

    async def open_stream(self, req: ChatRequest) -> AsyncIterator[bytes]:
        """Do every upstream setup step, then hand back the frame iterator.

        Setup failures raise here, before any byte has been sent.
        """
        bot = await self.resolve(req.chatbot_id or "")
        if bot.is_inactive:
            logger.info("bot %s is inactive, streaming fallback", bot.id)
            return synthetic_stream(req.thread_id, bot.fallback_text(self.default_fallback))

        thread_id, _fallback, instructions = await self._start_turn(req, bot)
        run_stream = await self.assistants.open_run_stream(thread_id, bot.openai_assistant_id or "", instructions)
        logger.info("streaming run on thread %s for bot %s", thread_id, bot.id)
        session = StreamSession(thread_id, on_end=lambda reason: logger.info(
            "stream for thread %s ended (%s, %d chars)", thread_id, reason, len(session.text)
        ))
        return transcode(run_stream, session, heartbeat_s=self.heartbeat_s, padding_bytes=self.padding_bytes)
