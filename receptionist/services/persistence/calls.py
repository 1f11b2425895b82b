"""Call record persistence service."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from receptionist.db.models import Call


class CallPersistenceService:
    """Service for persisting call records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_call(
        self,
        call_sid: str,
        from_number: Optional[str] = None,
        direction: str = "inbound",
        mood: Optional[str] = None,
        voice: Optional[str] = None,
    ) -> Call:
        """Create a new call record or return existing one."""
        existing_call = await self.get_call_by_sid(call_sid)
        if existing_call:
            return existing_call

        call = Call(
            call_sid=call_sid,
            from_number=from_number,
            direction=direction,
            mood=mood,
            voice=voice,
            status="in-progress",
        )
        self.db.add(call)
        await self.db.commit()
        await self.db.refresh(call)
        return call

    async def get_call_by_sid(self, call_sid: str) -> Optional[Call]:
        """Get call by Twilio call SID."""
        result = await self.db.execute(select(Call).where(Call.call_sid == call_sid))
        return result.scalar_one_or_none()

    async def update_call_status(
        self, call_sid: str, status: str, ended_at: Optional[datetime] = None
    ) -> Optional[Call]:
        """Update call status."""
        call = await self.get_call_by_sid(call_sid)
        if call:
            call.status = status
            if ended_at:
                call.ended_at = ended_at
            await self.db.commit()
            await self.db.refresh(call)
        return call

    async def update_call_transcript(
        self, call_sid: str, transcript: str, turn_count: Optional[int] = None
    ) -> Optional[Call]:
        """Update call transcript and turn count."""
        call = await self.get_call_by_sid(call_sid)
        if call:
            call.transcript = transcript
            if turn_count is not None:
                call.turn_count = turn_count
            await self.db.commit()
            await self.db.refresh(call)
        return call

    async def list_calls(self, limit: int = 100) -> List[Call]:
        """Most recent calls first."""
        result = await self.db.execute(
            select(Call).order_by(desc(Call.started_at), desc(Call.id)).limit(limit)
        )
        return list(result.scalars().all())
