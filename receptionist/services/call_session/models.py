"""Call session models."""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from receptionist.services.persona.voices import DEFAULT_STYLE, DEFAULT_VOICE


class CallStatus(str, Enum):
    """Twilio call statuses, plus "unknown" for calls we have never heard of."""

    INITIATED = "initiated"
    QUEUED = "queued"
    RINGING = "ringing"
    ANSWERED = "answered"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    BUSY = "busy"
    NO_ANSWER = "no-answer"
    CANCELED = "canceled"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


TERMINAL_STATUSES = frozenset(
    {
        CallStatus.COMPLETED.value,
        CallStatus.FAILED.value,
        CallStatus.BUSY.value,
        CallStatus.NO_ANSWER.value,
        CallStatus.CANCELED.value,
    }
)


def is_terminal_status(status: str) -> bool:
    """Whether a status means the call is over."""
    return status in TERMINAL_STATUSES


class ConversationTurn(BaseModel):
    """One message in the conversation history."""

    role: str  # user | assistant
    content: str


class CallSession(BaseModel):
    """Per-call conversation state."""

    call_sid: str
    from_number: Optional[str] = None
    history: List[ConversationTurn] = []
    turn_count: int = 0
    voice: str = DEFAULT_VOICE
    style: str = DEFAULT_STYLE
    status: str = CallStatus.IN_PROGRESS.value
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def history_messages(self) -> List[Dict[str, str]]:
        """History in chat-completion message format."""
        return [{"role": turn.role, "content": turn.content} for turn in self.history]

    def get_transcript_text(self) -> str:
        """Full transcript as text."""
        labels = {"user": "Caller", "assistant": "Receptionist"}
        return "\n".join(
            f"{labels.get(turn.role, turn.role)}: {turn.content}" for turn in self.history
        )


class CallStatusRecord(BaseModel):
    """Last known status of a call. Outlives the session for a while."""

    status: str = CallStatus.UNKNOWN.value
    timestamp: datetime = Field(default_factory=datetime.utcnow)
