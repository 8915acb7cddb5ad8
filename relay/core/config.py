# centralized configuration loader
# runs load_dotenv() to read .env
# upstream hosts, credentials and relay timings can change without touching code

import os
from typing import List
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "y"}


# Assistant API
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")
OPENAI_BETA = os.getenv("OPENAI_BETA", "assistants=v2")

# Configuration store
SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
BOTS_TABLE = os.getenv("BOTS_TABLE", "chatbots")

# Run polling
RUN_POLL_INTERVAL_MS = int(os.getenv("RUN_POLL_INTERVAL_MS", "350"))
RUN_TIMEOUT_S = float(os.getenv("RUN_TIMEOUT_S", "45"))
MESSAGES_LIMIT = int(os.getenv("MESSAGES_LIMIT", "20"))
CANCEL_RUN_ON_DISCONNECT = _flag("CANCEL_RUN_ON_DISCONNECT", "true")

# Streaming
HEARTBEAT_S = float(os.getenv("HEARTBEAT_S", "15"))
SSE_PADDING_BYTES = int(os.getenv("SSE_PADDING_BYTES", "2048"))

DEFAULT_FALLBACK = os.getenv("DEFAULT_FALLBACK", "I don’t have that information yet.")

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def missing_settings() -> List[str]:
    required = {
        "OPENAI_API_KEY": OPENAI_API_KEY,
        "SUPABASE_URL": SUPABASE_URL,
        "SUPABASE_SERVICE_ROLE_KEY": SUPABASE_SERVICE_ROLE_KEY,
    }
    return [name for name, value in required.items() if not value]
