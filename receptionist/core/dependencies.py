"""FastAPI dependencies.

Long-lived services are built once in the application lifespan and kept on
``app.state``; these accessors hand them to HTTP and WebSocket handlers alike.
"""
from fastapi.requests import HTTPConnection

from receptionist.services.call_session.manager import CallSessionManager
from receptionist.services.call_session.store import SessionStore
from receptionist.services.media_stream.bridge import MediaStreamBridge
from receptionist.services.persistence.interactions import InteractionLogger
from receptionist.services.speech.tts import DeepgramTTSService
from receptionist.services.telephony.client import TelephonyService
from receptionist.services.telephony.twiml import TwimlService


def get_session_store(connection: HTTPConnection) -> SessionStore:
    """Get the call session store."""
    return connection.app.state.session_store


def get_call_manager(connection: HTTPConnection) -> CallSessionManager:
    """Get the call session manager."""
    return connection.app.state.call_manager


def get_media_bridge(connection: HTTPConnection) -> MediaStreamBridge:
    """Get the media stream bridge."""
    return connection.app.state.media_bridge


def get_telephony(connection: HTTPConnection) -> TelephonyService:
    """Get the Twilio client wrapper."""
    return connection.app.state.telephony


def get_tts(connection: HTTPConnection) -> DeepgramTTSService:
    """Get the Deepgram TTS service."""
    return connection.app.state.tts


def get_interaction_logger(connection: HTTPConnection) -> InteractionLogger:
    """Get the interaction logger."""
    return connection.app.state.interaction_logger


def get_twiml_service() -> TwimlService:
    """Get a TwiML builder."""
    return TwimlService()
