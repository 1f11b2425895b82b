"""Shared test fixtures and configuration."""
import os
import random
import time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app.
# Credentials are blanked so no test can reach a real vendor.
os.environ["OPENAI_API_KEY"] = ""
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["TWILIO_AUTH_TOKEN"] = ""
os.environ["DEEPGRAM_API_KEY"] = ""
os.environ["SKIP_TWILIO"] = "true"
os.environ["REALTIME_MODE"] = "false"
os.environ["BASE_URL"] = ""
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from receptionist.main import app
from receptionist.db.models import Base
from receptionist.services.agent.responder import ResponderService
from receptionist.services.call_session.manager import CallSessionManager
from receptionist.services.call_session.store import SessionStore
from receptionist.services.media_stream.bridge import MediaStreamBridge
from receptionist.services.persistence.interactions import InteractionLogger
from receptionist.services.speech.tts import DeepgramTTSService
from receptionist.services.telephony.client import TelephonyService


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def test_session_factory(test_db_engine):
    """Session factory bound to the test database."""
    return async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    """Create test database session."""
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def interaction_logger(tmp_path):
    """Interaction logger writing under a temporary directory."""
    return InteractionLogger(
        log_file=str(tmp_path / "interactions.jsonl"),
        flagged_log_file=str(tmp_path / "funny-interactions.log"),
    )


@pytest.fixture
def session_store():
    """Session store that forgets statuses immediately."""
    store = SessionStore(status_cleanup_delay=0)
    yield store
    store.close()


@pytest.fixture
def responder():
    """Template-only responder with a fixed seed."""
    return ResponderService(client=None, rng=random.Random(7), template_probability=0.7)


@pytest.fixture
def call_manager(session_store, responder, interaction_logger):
    """Call manager with every random extra switched off and no database."""
    return CallSessionManager(
        session_store,
        responder,
        interaction_logger,
        session_factory=None,
        rng=random.Random(7),
        interruption_probability=0,
        hold_probability=0,
        follow_up_probability=0,
    )


@pytest.fixture
def telephony():
    """Telephony service with no Twilio client."""
    return TelephonyService(client=None)


@pytest.fixture
def tts():
    """TTS service with no Deepgram key."""
    return DeepgramTTSService(api_key="")


@pytest.fixture
def install_app_state(session_store, responder, interaction_logger, call_manager, telephony, tts):
    """Put test services where the dependencies look for them."""
    def _install(**overrides):
        state = {
            "started_at": time.monotonic(),
            "session_store": session_store,
            "responder": responder,
            "interaction_logger": interaction_logger,
            "call_manager": call_manager,
            "telephony": telephony,
            "tts": tts,
        }
        state.update(overrides)
        if "media_bridge" not in state:
            state["media_bridge"] = MediaStreamBridge(
                state["call_manager"], state["tts"], telephony=state["telephony"], greeting_delay=0
            )
        for name, value in state.items():
            setattr(app.state, name, value)
        return state
    return _install


@pytest.fixture
def test_client(install_app_state):
    """Create FastAPI test client with test services installed."""
    install_app_state()

    client = TestClient(app)

    yield client

    # Clear overrides
    app.dependency_overrides.clear()


@pytest.fixture
def override_get_db(test_db):
    """Override get_db dependency with test database."""
    async def _override_get_db():
        yield test_db
    return _override_get_db
