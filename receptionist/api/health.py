"""Health check endpoint."""
import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from receptionist.core.config import settings
from receptionist.services.persona.moods import get_current_mood

router = APIRouter()
logger = logging.getLogger(__name__)


def get_mode() -> str:
    """Which voice pipeline incoming calls use."""
    if settings.realtime_mode and settings.deepgram_api_key:
        return "real-time voice (Deepgram Aura)"
    return "gather (Twilio speech recognition)"


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    logger.debug(
        f"[HEALTH] Health check requested - Client: {request.client.host if request.client else 'unknown'}"
    )
    state = request.app.state
    mood = get_current_mood()

    return {
        "status": "unfortunately operational",
        "mode": get_mode(),
        "mood": mood.name,
        "moodTraits": mood.traits,
        "activeConversations": state.session_store.active_count(),
        "activeStreams": state.media_bridge.active_count(),
        "serverUptime": time.monotonic() - state.started_at,
        "currentTime": datetime.now(timezone.utc).isoformat(),
        "sarcasmLevel": "maximum",
        "willToLive": "depleting",
        "openai": "connected" if state.responder.is_ai_enabled else "templates only",
        "twilio": "connected" if state.telephony.is_available else "unavailable",
        "deepgram": "connected" if state.tts.is_available else "unavailable",
        "message": "Yes, it's working. No, I'm not happy about it.",
    }
