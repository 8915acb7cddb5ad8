# tests/conftest.py
import os
import logging
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Ensure test-friendly env (fake upstream hosts, fast polling)
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("OPENAI_BASE_URL", "https://api.openai.test/v1")
os.environ.setdefault("SUPABASE_URL", "https://store.test")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-key")
os.environ.setdefault("RUN_POLL_INTERVAL_MS", "10")  # fast polling
os.environ.setdefault("RUN_TIMEOUT_S", "2")
os.environ.setdefault("SSE_PADDING_BYTES", "16")

# IMPORTANT: import the app after envs are set
from relay import main as main_module


@pytest_asyncio.fixture
async def app():
    return main_module.app

@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

@pytest.fixture
def caplog_info(caplog):
    caplog.set_level(logging.INFO)
    return caplog
