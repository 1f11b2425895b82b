"""Call session manager."""
import logging
import random
from datetime import datetime
from typing import Callable, Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import async_sessionmaker

from receptionist.core.config import settings
from receptionist.services.agent.responder import ResponderService
from receptionist.services.call_session.models import CallStatus, is_terminal_status
from receptionist.services.call_session.store import SessionStore
from receptionist.services.persistence.calls import CallPersistenceService
from receptionist.services.persistence.interactions import InteractionLogger
from receptionist.services.persona.intent import analyze_intent
from receptionist.services.persona.moods import Mood, get_current_mood, get_time_modifier
from receptionist.services.persona.phrases import (
    get_random_greeting,
    get_random_hold_music,
    get_random_interruption,
    should_interrupt,
)
from receptionist.services.persona.templates import TemplateResolver
from receptionist.services.persona.voices import (
    SpokenResponse,
    VoiceSelection,
    enhance_response,
    goodbye,
    normalize_voice_name,
    select_voice_for_call,
    voice_style_for,
)

logger = logging.getLogger(__name__)


def _or_default(value: Optional[float], default: float) -> float:
    return default if value is None else value


class CallGreeting(BaseModel):
    """Opening line for a new call."""

    text: str
    spoken: SpokenResponse
    voice: VoiceSelection
    mood: Mood


class CallReply(BaseModel):
    """What to say back after one caller utterance."""

    text: str
    spoken: SpokenResponse
    voice: VoiceSelection
    style: str
    intent: str
    is_farewell: bool = False
    hold_music_url: Optional[str] = None
    follow_up: bool = False


class CallSessionManager:
    """Runs a call: greeting, each turn, status changes and cleanup."""

    def __init__(
        self,
        store: SessionStore,
        responder: ResponderService,
        interaction_logger: InteractionLogger,
        session_factory: Optional[async_sessionmaker] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
        interruption_probability: Optional[float] = None,
        hold_probability: Optional[float] = None,
        follow_up_probability: Optional[float] = None,
    ):
        self.store = store
        self.responder = responder
        self.interaction_logger = interaction_logger
        self.session_factory = session_factory
        self.rng = rng or random.Random()
        self.clock = clock
        self.interruption_probability = _or_default(
            interruption_probability, settings.interruption_probability
        )
        self.hold_probability = _or_default(hold_probability, settings.hold_probability)
        self.follow_up_probability = _or_default(
            follow_up_probability, settings.follow_up_probability
        )
        self.resolver = TemplateResolver(rng=self.rng)

    async def start_call(
        self,
        call_sid: str,
        from_number: Optional[str] = None,
        direction: str = "inbound",
    ) -> CallGreeting:
        """Create the session, fix the call's voice and pick an opening line."""
        now = self.clock()
        self.store.create(call_sid, from_number)

        mood = get_current_mood(now)
        selection = select_voice_for_call(mood)
        self.store.set_voice(call_sid, selection.voice, selection.style)
        logger.info(
            f"[SESSION MANAGER] Call {call_sid} assigned voice: {selection.voice} "
            f"({selection.style})"
        )

        greeting = get_random_greeting(now, self.rng)
        spoken = self._speak_as(greeting, selection.style, selection, add_breathing=False)

        await self.interaction_logger.log_interaction(
            call_sid, "[New Call]", greeting, {"mood": mood.name}
        )
        await self._persist_call_start(call_sid, from_number, direction, mood, selection)

        return CallGreeting(text=greeting, spoken=spoken, voice=selection, mood=mood)

    async def handle_speech(self, call_sid: str, speech_result: Optional[str]) -> CallReply:
        """
        Answer one caller utterance.

        Args:
            call_sid: Twilio call SID
            speech_result: Transcribed speech (may be empty when Twilio heard nothing)

        Returns:
            CallReply describing what to say and whether to hang up
        """
        voice = self.store.get_voice(call_sid)
        speech = (speech_result or "").strip()

        if not speech:
            text = self.resolver.response_for_intent("confusion").text
            logger.info(f"[SESSION MANAGER] Empty speech, asking caller to repeat - CallSid: {call_sid}")
            return CallReply(
                text=text,
                spoken=self._speak_as(text, voice.style, voice, add_breathing=False),
                voice=voice,
                style=voice.style,
                intent="confusion",
            )

        history = self.store.get(call_sid).history_messages()
        turn_count = self.store.increment_turn_count(call_sid).turn_count

        now = self.clock()
        mood = get_current_mood(now)
        response = await self.responder.generate_response(
            speech, history, mood, get_time_modifier(now)
        )

        if should_interrupt(turn_count, self.interruption_probability, self.rng):
            response = get_random_interruption(self.rng) + " " + response

        self.store.record_turn(call_sid, speech, response)

        intent = analyze_intent(speech)
        await self.interaction_logger.log_interaction(
            call_sid,
            speech,
            response,
            {
                "mood": mood.name,
                "interactionNumber": turn_count,
                "wasHilarious": "*" in response or len(response) > 100,
            },
        )

        if intent == "farewells":
            farewell = goodbye(self.resolver.response_for_intent("farewells").text)
            await self.end_call(call_sid, CallStatus.COMPLETED.value)
            logger.info(f"[SESSION MANAGER] Call {call_sid} ended by farewell")
            return CallReply(
                text=farewell,
                spoken=SpokenResponse(text=farewell, voice=voice.voice, rate="105%"),
                voice=voice,
                style=voice.style,
                intent=intent,
                is_farewell=True,
            )

        hold_music_url = None
        if turn_count > 1 and self.rng.random() > (1 - self.hold_probability):
            hold_music_url = get_random_hold_music(self.rng)

        style = voice_style_for(intent, voice.style, turn_count)
        spoken = self._speak_as(response, style, voice, add_breathing=turn_count > 3)

        return CallReply(
            text=response,
            spoken=spoken,
            voice=voice,
            style=style,
            intent=intent,
            hold_music_url=hold_music_url,
            follow_up=self.rng.random() > (1 - self.follow_up_probability),
        )

    @staticmethod
    def _speak_as(
        text: str, style: str, voice: VoiceSelection, add_breathing: bool
    ) -> SpokenResponse:
        """Style the text but keep the voice fixed for the call."""
        spoken = enhance_response(
            text, style=style, voice=normalize_voice_name(voice.voice), add_breathing=add_breathing
        )
        return spoken.model_copy(update={"voice": voice.voice})

    async def update_status(self, call_sid: str, status: str) -> None:
        """Record a Twilio status callback and end the call on a terminal status."""
        self.store.set_status(call_sid, status)
        if is_terminal_status(status):
            await self.end_call(call_sid, status)

    async def register_outbound_call(self, call_sid: str) -> None:
        """Track a call we just placed so its status can be polled."""
        self.store.set_status(call_sid, CallStatus.INITIATED.value)
        await self._persist_call_start(call_sid, None, "outbound", None, None)

    async def end_call(self, call_sid: str, status: str = CallStatus.COMPLETED.value) -> None:
        """
        Forget the call and close its record.

        The session is removed at once; its status stays visible for the
        store's cleanup delay.
        """
        session = self.store.get(call_sid)
        self.store.cleanup(call_sid)

        if self.session_factory is None:
            return
        try:
            async with self.session_factory() as db:
                persistence = CallPersistenceService(db)
                if session.history:
                    await persistence.update_call_transcript(
                        call_sid, session.get_transcript_text(), turn_count=session.turn_count
                    )
                await persistence.update_call_status(call_sid, status, ended_at=datetime.utcnow())
        except Exception as e:
            logger.error(
                f"[SESSION MANAGER] Failed to close call record - CallSid: {call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )

    async def _persist_call_start(
        self,
        call_sid: str,
        from_number: Optional[str],
        direction: str,
        mood: Optional[Mood],
        selection: Optional[VoiceSelection],
    ) -> None:
        if self.session_factory is None:
            return
        try:
            async with self.session_factory() as db:
                await CallPersistenceService(db).create_call(
                    call_sid,
                    from_number=from_number,
                    direction=direction,
                    mood=mood.name if mood else None,
                    voice=selection.voice if selection else None,
                )
        except Exception as e:
            logger.error(
                f"[SESSION MANAGER] Failed to record call - CallSid: {call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
