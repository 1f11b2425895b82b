"""In-memory call session store."""
import asyncio
import logging
from typing import Dict, Optional

from receptionist.services.call_session.models import (
    CallSession,
    CallStatusRecord,
    ConversationTurn,
)
from receptionist.services.persona.voices import VoiceSelection

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Call sessions and statuses keyed by call SID.

    One store lives for the lifetime of the application. Sessions are removed
    as soon as a call ends; statuses stay readable for ``status_cleanup_delay``
    seconds afterwards so callers polling an outbound call still see how it
    ended.
    """

    def __init__(self, status_cleanup_delay: float = 60.0):
        self.status_cleanup_delay = status_cleanup_delay
        self._sessions: Dict[str, CallSession] = {}
        self._statuses: Dict[str, CallStatusRecord] = {}
        self._status_timers: Dict[str, asyncio.TimerHandle] = {}

    def create(self, call_sid: str, from_number: Optional[str] = None) -> CallSession:
        """Create (or replace) the session for a call."""
        session = CallSession(call_sid=call_sid, from_number=from_number)
        self._sessions[call_sid] = session
        return session

    def get(self, call_sid: str) -> CallSession:
        """Get a session, or a default record for calls we have never seen."""
        session = self._sessions.get(call_sid)
        if session is None:
            return CallSession(call_sid=call_sid)
        return session

    def exists(self, call_sid: str) -> bool:
        return call_sid in self._sessions

    def _get_or_create(self, call_sid: str) -> CallSession:
        session = self._sessions.get(call_sid)
        if session is None:
            session = self.create(call_sid)
        return session

    def record_turn(self, call_sid: str, user_input: str, response: str) -> CallSession:
        """Append one user/assistant exchange to the history."""
        session = self._get_or_create(call_sid)
        session.history.append(ConversationTurn(role="user", content=user_input))
        session.history.append(ConversationTurn(role="assistant", content=response))
        return session

    def increment_turn_count(self, call_sid: str) -> CallSession:
        session = self._get_or_create(call_sid)
        session.turn_count += 1
        return session

    def set_voice(self, call_sid: str, voice: str, style: str) -> None:
        session = self._get_or_create(call_sid)
        session.voice = voice
        session.style = style

    def get_voice(self, call_sid: str) -> VoiceSelection:
        session = self.get(call_sid)
        return VoiceSelection(voice=session.voice, style=session.style)

    def set_status(self, call_sid: str, status: str) -> CallStatusRecord:
        """Record the latest status of a call."""
        record = CallStatusRecord(status=status)
        self._statuses[call_sid] = record
        session = self._sessions.get(call_sid)
        if session is not None:
            session.status = status
        return record

    def get_status(self, call_sid: str) -> CallStatusRecord:
        """Latest status, or "unknown" for calls we have no record of."""
        return self._statuses.get(call_sid) or CallStatusRecord()

    def cleanup(self, call_sid: str, delay: Optional[float] = None) -> None:
        """
        Forget a call.

        The session goes immediately. The status goes after ``delay`` seconds
        (the store default when None); a delay of 0 drops it immediately.
        """
        self._sessions.pop(call_sid, None)
        logger.info(f"[SESSION STORE] Cleaned up data for call {call_sid}")

        delay = self.status_cleanup_delay if delay is None else delay
        if delay <= 0:
            self._drop_status(call_sid)
            return

        if call_sid in self._status_timers:
            return

        loop = asyncio.get_running_loop()
        self._status_timers[call_sid] = loop.call_later(delay, self._drop_status, call_sid)

    def _drop_status(self, call_sid: str) -> None:
        self._statuses.pop(call_sid, None)
        timer = self._status_timers.pop(call_sid, None)
        if timer is not None:
            timer.cancel()

    def active_count(self) -> int:
        """Number of calls with a live session."""
        return len(self._sessions)

    def close(self) -> None:
        """Cancel pending status cleanups. Called at shutdown."""
        for timer in self._status_timers.values():
            timer.cancel()
        self._status_timers.clear()
