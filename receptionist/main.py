"""Main FastAPI application."""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from receptionist.api import calls, health, interactions
from receptionist.api.webhooks import media_stream, voice
from receptionist.core.config import settings
from receptionist.core.logging import setup_logging
from receptionist.db.database import AsyncSessionLocal, close_db, init_db
from receptionist.services.agent.responder import ResponderService
from receptionist.services.call_session.manager import CallSessionManager
from receptionist.services.call_session.store import SessionStore
from receptionist.services.media_stream.bridge import MediaStreamBridge
from receptionist.services.persistence.interactions import InteractionLogger
from receptionist.services.persona.moods import get_current_mood
from receptionist.services.speech.tts import DeepgramTTSService
from receptionist.services.telephony.client import TelephonyService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    await init_db()

    store = SessionStore(status_cleanup_delay=settings.status_cleanup_delay_seconds)
    responder = ResponderService()
    interaction_logger = InteractionLogger(settings.interaction_log_path, settings.flagged_log_path)
    call_manager = CallSessionManager(
        store, responder, interaction_logger, session_factory=AsyncSessionLocal
    )
    telephony = TelephonyService()
    tts = DeepgramTTSService()

    app.state.started_at = time.monotonic()
    app.state.session_store = store
    app.state.responder = responder
    app.state.interaction_logger = interaction_logger
    app.state.call_manager = call_manager
    app.state.telephony = telephony
    app.state.tts = tts
    app.state.media_bridge = MediaStreamBridge(call_manager, tts, telephony=telephony)

    logger.info(
        f"[STARTUP] Receptionist ready - Mood: {get_current_mood().name}, "
        f"OpenAI: {responder.is_ai_enabled}, Twilio: {telephony.is_available}, "
        f"Deepgram: {tts.is_available}, Real-time: {settings.realtime_mode}"
    )
    yield
    # Shutdown
    await app.state.media_bridge.close()
    store.close()
    await close_db()


app = FastAPI(
    title="Sarcastic Receptionist",
    description="A reluctant AI receptionist that answers Twilio phone calls",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(voice.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(media_stream.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(calls.router, tags=["calls"])
app.include_router(interactions.router, tags=["interactions"])


@app.get("/")
async def root(request: Request):
    """Service summary."""
    mood = get_current_mood()
    return {
        "message": "Sarcastic Receptionist API",
        "version": "0.1.0",
        "mood": mood.name,
        "activeCalls": request.app.state.session_store.active_count(),
        "endpoints": {
            "incomingCall": "POST /webhooks/voice/incoming",
            "speech": "POST /webhooks/voice/gather",
            "status": "POST /webhooks/voice/status",
            "mediaStream": "WS /webhooks/voice/media-stream/{call_sid}",
            "webCall": "POST /api/calls",
            "callStatus": "GET /api/calls/{call_sid}/status",
            "callHistory": "GET /api/calls/history",
            "interactions": "GET /api/interactions/recent",
            "health": "GET /health",
        },
    }
