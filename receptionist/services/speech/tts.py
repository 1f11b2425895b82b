"""Text-to-speech service."""
import base64
import logging
from typing import Optional

import httpx

from receptionist.core.config import settings
from receptionist.core.exceptions import SpeechUnavailableError
from receptionist.services.persona.voices import aura_voice_for_style

logger = logging.getLogger(__name__)

DEEPGRAM_SPEAK_URL = "https://api.deepgram.com/v1/speak"


class DeepgramTTSService:
    """Synthesizes speech with Deepgram Aura as 8 kHz mu-law, the format Twilio streams."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.deepgram_api_key
        self._http_client = http_client

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    def voice_for_style(self, style: Optional[str]) -> str:
        return aura_voice_for_style(style)

    async def synthesize(
        self,
        text: str,
        style: Optional[str] = None,
        voice: Optional[str] = None,
    ) -> bytes:
        """
        Synthesize speech from text.

        Args:
            text: Text to speak
            style: Delivery style used to pick the Aura voice
            voice: Explicit Aura model, overrides style

        Returns:
            Raw mu-law audio bytes (no container)
        """
        if not self.is_available:
            raise SpeechUnavailableError("Deepgram TTS not available")

        params = {
            "model": voice or self.voice_for_style(style),
            "encoding": "mulaw",
            "sample_rate": 8000,
            "container": "none",
        }
        headers = {"Authorization": f"Token {self.api_key}"}

        if self._http_client is not None:
            response = await self._http_client.post(
                DEEPGRAM_SPEAK_URL, params=params, headers=headers, json={"text": text}
            )
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    DEEPGRAM_SPEAK_URL, params=params, headers=headers, json={"text": text}
                )
        response.raise_for_status()
        logger.debug(f"[TTS] Synthesized {len(response.content)} bytes with {params['model']}")
        return response.content

    async def synthesize_for_twilio(self, text: str, style: Optional[str] = None) -> str:
        """Synthesize speech as a base64 payload for Twilio media messages."""
        audio = await self.synthesize(text, style=style)
        return base64.b64encode(audio).decode("ascii")
