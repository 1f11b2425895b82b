"""TwiML generation."""
from typing import Any, Dict, Optional

from twilio.twiml.voice_response import Connect, Gather, VoiceResponse

from receptionist.services.persona.phrases import FOLLOW_UP, HOLD_END, HOLD_START
from receptionist.services.persona.voices import DEFAULT_VOICE, SpokenResponse

GATHER_DEFAULTS: Dict[str, Any] = {
    "input": "speech",
    "speech_timeout": "auto",
    "method": "POST",
    "language": "en-US",
    "speech_model": "phone_call",
    "enhanced": True,
    "profanity_filter": False,
}


class TwimlService:
    """Builds the TwiML documents returned to Twilio's voice webhooks."""

    def _gather(self, response: VoiceResponse, action_url: str) -> Gather:
        return response.gather(action=action_url, **GATHER_DEFAULTS)

    @staticmethod
    def _say(element, spoken: SpokenResponse) -> None:
        element.say(spoken.text, voice=spoken.voice, rate=spoken.rate, volume=spoken.volume)

    def greeting(self, spoken: SpokenResponse, action_url: str) -> str:
        """Opening line inside a speech Gather."""
        response = VoiceResponse()
        response.pause(length=1)
        gather = self._gather(response, action_url)
        self._say(gather, spoken)
        return str(response)

    def reply(
        self,
        spoken: SpokenResponse,
        action_url: str,
        voice: str,
        hold_music_url: Optional[str] = None,
        follow_up: bool = False,
    ) -> str:
        """
        Conversational reply that keeps listening.

        Args:
            spoken: Styled reply
            action_url: Where Twilio posts the next utterance
            voice: The call's voice, used for the hold and follow-up lines
            hold_music_url: Put the caller on hold with this music first
            follow_up: Append an "anything else?" prompt inside the Gather
        """
        response = VoiceResponse()

        if hold_music_url:
            response.say(HOLD_START, voice=voice, rate="105%", volume="soft")
            response.play(hold_music_url, loop=1)
            response.say(HOLD_END, voice=voice, rate="105%")

        gather = self._gather(response, action_url)
        self._say(gather, spoken)

        if follow_up:
            gather.pause(length=1)
            gather.say(FOLLOW_UP, voice=voice, rate="105%")

        return str(response)

    def farewell(self, text: str, voice: str) -> str:
        """Last words, then hang up."""
        response = VoiceResponse()
        response.say(text, voice=voice, rate="105%")
        response.hangup()
        return str(response)

    def stream(self, stream_url: str, parameters: Optional[Dict[str, str]] = None) -> str:
        """Hand the call's audio to a bidirectional media stream."""
        response = VoiceResponse()
        connect = Connect()
        stream = connect.stream(url=stream_url)
        for name, value in (parameters or {}).items():
            if value:
                stream.parameter(name=name, value=value)
        response.append(connect)
        return str(response)

    def say(
        self,
        text: str,
        voice: str = DEFAULT_VOICE,
        rate: Optional[str] = None,
        volume: Optional[str] = None,
    ) -> str:
        """A single <Say>, used for fallbacks and test calls."""
        response = VoiceResponse()
        response.say(text, voice=voice, rate=rate, volume=volume)
        return str(response)
