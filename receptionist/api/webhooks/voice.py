"""Twilio voice webhook endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import Response

from receptionist.core.config import settings
from receptionist.core.dependencies import get_call_manager, get_tts, get_twiml_service
from receptionist.services.call_session.manager import CallSessionManager
from receptionist.services.persona.phrases import (
    GATHER_APOLOGY,
    TECHNICAL_DIFFICULTIES,
    TEST_CALL,
)
from receptionist.services.persona.voices import DEFAULT_VOICE, SpokenResponse
from receptionist.services.speech.tts import DeepgramTTSService
from receptionist.services.telephony.twiml import TwimlService

router = APIRouter()
logger = logging.getLogger(__name__)


def get_base_url(request: Request) -> str:
    """
    Get the base URL for constructing absolute URLs.

    Uses BASE_URL environment variable if set (e.g., behind a tunnel),
    otherwise constructs from request.
    """
    if settings.base_url:
        return settings.base_url.rstrip("/")
    return str(request.base_url).rstrip("/")


def get_websocket_base_url(request: Request) -> str:
    """Base URL with the scheme switched to ws:// or wss://."""
    base_url = get_base_url(request)
    if base_url.startswith("https://"):
        return "wss://" + base_url[len("https://"):]
    if base_url.startswith("http://"):
        return "ws://" + base_url[len("http://"):]
    return base_url


def _twiml(content: str) -> Response:
    return Response(content=content, media_type="application/xml")


@router.post("/voice/incoming")
async def handle_incoming_call(
    request: Request,
    CallSid: str = Form(...),
    From: Optional[str] = Form(None),
    Direction: Optional[str] = Form(None),
    call_manager: CallSessionManager = Depends(get_call_manager),
    tts: DeepgramTTSService = Depends(get_tts),
    twiml: TwimlService = Depends(get_twiml_service),
):
    """
    Handle incoming call from Twilio.

    Greets the caller inside a speech Gather, or in real-time mode connects
    the call to the media stream socket.
    """
    logger.info(
        f"[INCOMING CALL] Received incoming call webhook - CallSid: {CallSid}, "
        f"From: {From}, Client: {request.client.host if request.client else 'unknown'}"
    )

    try:
        if settings.realtime_mode and tts.is_available:
            stream_url = f"{get_websocket_base_url(request)}/webhooks/voice/media-stream/{CallSid}"
            logger.info(f"[INCOMING CALL] Connecting to media stream {stream_url} - CallSid: {CallSid}")
            return _twiml(twiml.stream(stream_url, {"From": From}))

        direction = "outbound" if (Direction or "").startswith("outbound") else "inbound"
        greeting = await call_manager.start_call(CallSid, From, direction)
        gather_url = f"{get_base_url(request)}/webhooks/voice/gather"
        content = twiml.greeting(greeting.spoken, gather_url)

        logger.info(
            f"[INCOMING CALL] Greeting sent with voice {greeting.spoken.voice} - CallSid: {CallSid}, "
            f"TwiML length: {len(content)} bytes"
        )
        return _twiml(content)

    except Exception as e:
        logger.error(
            f"[INCOMING CALL] Error processing incoming call - CallSid: {CallSid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        return _twiml(twiml.say(TECHNICAL_DIFFICULTIES, voice=DEFAULT_VOICE))


@router.post("/voice/gather")
async def handle_gather(
    request: Request,
    CallSid: str = Form(...),
    SpeechResult: Optional[str] = Form(None),
    call_manager: CallSessionManager = Depends(get_call_manager),
    twiml: TwimlService = Depends(get_twiml_service),
):
    """
    Handle gathered speech from Twilio.

    This endpoint is called after Twilio collects user speech.
    """
    logger.info(
        f"[GATHER] Received speech input - CallSid: {CallSid}, "
        f"SpeechResult length: {len(SpeechResult) if SpeechResult else 0}"
    )
    if SpeechResult:
        logger.debug(f"[GATHER] Speech text: '{SpeechResult[:200]}' - CallSid: {CallSid}")
    else:
        logger.warning(f"[GATHER] No speech result provided - CallSid: {CallSid}")

    gather_url = f"{get_base_url(request)}/webhooks/voice/gather"

    try:
        reply = await call_manager.handle_speech(CallSid, SpeechResult)

        if reply.is_farewell:
            logger.info(f"[GATHER] Farewell, hanging up - CallSid: {CallSid}")
            return _twiml(twiml.farewell(reply.spoken.text, reply.voice.voice))

        return _twiml(
            twiml.reply(
                reply.spoken,
                gather_url,
                voice=reply.voice.voice,
                hold_music_url=reply.hold_music_url,
                follow_up=reply.follow_up,
            )
        )

    except Exception as e:
        logger.error(
            f"[GATHER] Error processing speech input - CallSid: {CallSid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        apology = SpokenResponse(text=GATHER_APOLOGY, voice=DEFAULT_VOICE, rate="105%")
        return _twiml(twiml.reply(apology, gather_url, voice=DEFAULT_VOICE))


@router.post("/voice/status")
async def handle_call_status(
    CallSid: str = Form(...),
    CallStatus: str = Form(...),
    call_manager: CallSessionManager = Depends(get_call_manager),
):
    """
    Handle call status updates from Twilio.

    Terminal statuses end the session.
    """
    logger.info(f"[CALL STATUS] Received status update - CallSid: {CallSid}, CallStatus: {CallStatus}")

    try:
        await call_manager.update_status(CallSid, CallStatus)
    except Exception as e:
        logger.error(
            f"[CALL STATUS] Error handling call status update - CallSid: {CallSid}, "
            f"CallStatus: {CallStatus}, Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )

    # Always OK so Twilio does not retry
    return Response(content="OK", media_type="text/plain")


@router.post("/voice/test")
async def handle_test_call(twiml: TwimlService = Depends(get_twiml_service)):
    """Static TwiML for checking the Twilio wiring."""
    logger.info("[TEST CALL] Test endpoint hit")
    return _twiml(twiml.say(TEST_CALL, voice=DEFAULT_VOICE, rate="95%", volume="soft"))
