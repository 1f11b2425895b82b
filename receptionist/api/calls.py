"""Outbound call and call history API endpoints."""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from receptionist.api.webhooks.voice import get_base_url
from receptionist.core.dependencies import get_call_manager, get_session_store, get_telephony
from receptionist.db.database import get_db
from receptionist.services.call_session.manager import CallSessionManager
from receptionist.services.call_session.store import SessionStore
from receptionist.services.persistence.calls import CallPersistenceService
from receptionist.services.telephony.client import TelephonyService

router = APIRouter()
logger = logging.getLogger(__name__)


class WebCallRequest(BaseModel):
    """Outbound call request."""
    phone_number: Optional[str] = Field(None, alias="phoneNumber")


class CallStatusResponse(BaseModel):
    """Last known status of a call."""
    status: str
    timestamp: datetime


class CallResponse(BaseModel):
    """Call record response model."""
    id: int
    call_sid: str
    from_number: str | None = None
    direction: str
    mood: str | None = None
    voice: str | None = None
    status: str
    turn_count: int
    started_at: str
    ended_at: str | None = None
    transcript: str | None = None

    class Config:
        from_attributes = True


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@router.post("/api/calls")
async def create_web_call(
    request: Request,
    body: WebCallRequest,
    telephony: TelephonyService = Depends(get_telephony),
    call_manager: CallSessionManager = Depends(get_call_manager),
):
    """Have the receptionist call a phone number."""
    if not body.phone_number:
        return _error(400, "Phone number is required")

    logger.info(f"[WEB CALL] Call requested to {body.phone_number}")

    if not telephony.is_available:
        logger.warning("[WEB CALL] Twilio is not configured")
        return _error(503, "Twilio is not configured. Web calling is unavailable.")

    try:
        call_sid = await telephony.initiate_call(body.phone_number, get_base_url(request))
    except Exception as e:
        logger.error(
            f"[WEB CALL] Failed to initiate call - To: {body.phone_number}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        return _error(500, "Failed to initiate call. Please try again.")

    logger.info(f"[WEB CALL] Call initiated - CallSid: {call_sid}")
    await call_manager.register_outbound_call(call_sid)

    return {"success": True, "callSid": call_sid, "message": "Call initiated successfully"}


@router.get("/api/calls/history", response_model=List[CallResponse])
async def get_call_history(
    request: Request,
    limit: int = 100,
    db: AsyncSession = Depends(get_db),
):
    """Get persisted call records, newest first."""
    logger.info(
        f"[CALL HISTORY] Request received - limit: {limit}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )

    try:
        calls = await CallPersistenceService(db).list_calls(limit=limit)
        logger.info(f"[CALL HISTORY] Found {len(calls)} calls in database")

        return [
            CallResponse(
                id=call.id,
                call_sid=call.call_sid,
                from_number=call.from_number,
                direction=call.direction,
                mood=call.mood,
                voice=call.voice,
                status=call.status,
                turn_count=call.turn_count,
                started_at=call.started_at.isoformat() if call.started_at else "",
                ended_at=call.ended_at.isoformat() if call.ended_at else None,
                transcript=call.transcript,
            )
            for call in calls
        ]

    except Exception as e:
        logger.error(
            f"[CALL HISTORY] Error fetching call history - "
            f"limit: {limit}, Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail=f"Error fetching call history: {str(e)}")


@router.get("/api/calls/{call_sid}/status", response_model=CallStatusResponse)
async def get_call_status(call_sid: str, store: SessionStore = Depends(get_session_store)):
    """Get the last status Twilio reported for a call."""
    record = store.get_status(call_sid)
    return CallStatusResponse(status=record.status, timestamp=record.timestamp)
