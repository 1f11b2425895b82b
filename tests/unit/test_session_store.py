"""Unit tests for the in-memory call session store."""
import asyncio

import pytest

from receptionist.services.call_session.models import CallSession, ConversationTurn, is_terminal_status
from receptionist.services.call_session.store import SessionStore


class TestSessionStore:
    """Test session and status bookkeeping."""

    def test_get_unknown_call_returns_empty_session(self, session_store):
        """Test reading an unknown call does not create it."""
        session = session_store.get("CA_unknown")

        assert session.history == []
        assert session.turn_count == 0
        assert not session_store.exists("CA_unknown")
        assert session_store.active_count() == 0

    def test_record_turn_appends_pair(self, session_store):
        """Test each turn stores the caller line then the reply."""
        session_store.create("CA1", "+15550001111")
        session_store.record_turn("CA1", "Hi", "What now?")

        history = session_store.get("CA1").history
        assert [t.role for t in history] == ["user", "assistant"]
        assert history[1].content == "What now?"

    def test_increment_turn_count(self, session_store):
        """Test the turn counter."""
        session_store.increment_turn_count("CA1")
        session = session_store.increment_turn_count("CA1")
        assert session.turn_count == 2

    def test_voice_defaults_and_updates(self, session_store):
        """Test calls without a chosen voice get the default one."""
        assert session_store.get_voice("CA1").voice == "Polly.Amy-Neural"

        session_store.set_voice("CA1", "Polly.Brian-Neural", "exhausted")
        selection = session_store.get_voice("CA1")
        assert selection.voice == "Polly.Brian-Neural"
        assert selection.style == "exhausted"

    def test_status_unknown_by_default(self, session_store):
        """Test unknown calls report status unknown."""
        assert session_store.get_status("CA404").status == "unknown"

    def test_set_status_updates_session(self, session_store):
        """Test status changes are mirrored on a live session."""
        session_store.create("CA1")
        record = session_store.set_status("CA1", "ringing")

        assert record.status == "ringing"
        assert session_store.get_status("CA1").status == "ringing"
        assert session_store.get("CA1").status == "ringing"

    def test_cleanup_immediate(self, session_store):
        """Test a zero delay drops both session and status."""
        session_store.create("CA1")
        session_store.set_status("CA1", "completed")

        session_store.cleanup("CA1")

        assert not session_store.exists("CA1")
        assert session_store.get_status("CA1").status == "unknown"

    def test_cleanup_is_idempotent(self, session_store):
        """Test cleaning up twice is harmless."""
        session_store.create("CA1")
        session_store.cleanup("CA1")
        session_store.cleanup("CA1")
        assert session_store.active_count() == 0

    @pytest.mark.asyncio
    async def test_cleanup_delays_status_removal(self):
        """Test the status stays readable until the delay has passed."""
        store = SessionStore(status_cleanup_delay=0.05)
        store.create("CA1")
        store.set_status("CA1", "completed")

        store.cleanup("CA1")

        assert not store.exists("CA1")
        assert store.get_status("CA1").status == "completed"

        await asyncio.sleep(0.1)
        assert store.get_status("CA1").status == "unknown"
        store.close()

    @pytest.mark.asyncio
    async def test_close_cancels_pending_removals(self):
        """Test closing the store stops scheduled status removals."""
        store = SessionStore(status_cleanup_delay=0.05)
        store.set_status("CA1", "busy")
        store.cleanup("CA1")

        store.close()
        await asyncio.sleep(0.1)

        assert store.get_status("CA1").status == "busy"


class TestCallSessionModel:
    """Test call session helpers."""

    def test_transcript_text(self):
        """Test transcripts label both speakers."""
        session = CallSession(
            call_sid="CA1",
            history=[
                ConversationTurn(role="user", content="Hello"),
                ConversationTurn(role="assistant", content="Ugh."),
            ],
        )
        assert session.get_transcript_text() == "Caller: Hello\nReceptionist: Ugh."

    def test_history_messages(self):
        """Test history converts to chat messages."""
        session = CallSession(call_sid="CA1", history=[ConversationTurn(role="user", content="Hi")])
        assert session.history_messages() == [{"role": "user", "content": "Hi"}]

    def test_terminal_statuses(self):
        """Test which statuses end a call."""
        for status in ("completed", "failed", "busy", "no-answer", "canceled"):
            assert is_terminal_status(status)
        for status in ("initiated", "ringing", "in-progress", "unknown"):
            assert not is_terminal_status(status)
