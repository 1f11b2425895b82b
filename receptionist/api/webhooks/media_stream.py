"""Twilio Media Streams WebSocket endpoint."""
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from receptionist.core.dependencies import get_media_bridge
from receptionist.services.call_session.models import CallStatus
from receptionist.services.media_stream.bridge import MediaStreamBridge

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/voice/media-stream/{call_sid}")
async def handle_media_stream(
    websocket: WebSocket,
    call_sid: str,
    bridge: MediaStreamBridge = Depends(get_media_bridge),
):
    """Bridge one call's audio to speech recognition and synthesis."""
    await websocket.accept()
    logger.info(f"[MEDIA STREAM] WebSocket connected - CallSid: {call_sid}")
    bridge.open(call_sid, websocket)

    status = CallStatus.COMPLETED.value
    try:
        while True:
            message = await websocket.receive_text()
            await bridge.handle_message(call_sid, message)
    except WebSocketDisconnect:
        logger.info(f"[MEDIA STREAM] WebSocket closed - CallSid: {call_sid}")
    except Exception as e:
        logger.error(
            f"[MEDIA STREAM] Stream error - CallSid: {call_sid}, Error: {type(e).__name__}: {str(e)}"
        )
        status = CallStatus.FAILED.value
        raise
    finally:
        await bridge.close_stream(call_sid, status)
