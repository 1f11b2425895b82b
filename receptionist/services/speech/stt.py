"""Speech-to-text service."""
import asyncio
import json
import logging
from typing import AsyncIterator, Optional
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from receptionist.core.config import settings
from receptionist.core.exceptions import SpeechUnavailableError

logger = logging.getLogger(__name__)

DEEPGRAM_LISTEN_URL = "wss://api.deepgram.com/v1/listen"

LIVE_OPTIONS = {
    "model": "nova-2",
    "language": "en-US",
    "smart_format": "true",
    "encoding": "mulaw",
    "sample_rate": 8000,
    "channels": 1,
    "interim_results": "true",
    "utterance_end_ms": 1000,
    "vad_events": "true",
    "endpointing": 300,
}

_END_OF_STREAM = None


class DeepgramTranscriber:
    """
    Live transcription of one call's audio.

    Audio goes in through ``send_audio``; final transcripts come out of
    ``transcripts()``. A sender task and a receiver task own the Deepgram
    socket between ``start()`` and ``finish()``.
    """

    def __init__(self, api_key: Optional[str] = None, call_sid: str = ""):
        self.api_key = api_key if api_key is not None else settings.deepgram_api_key
        self.call_sid = call_sid
        self._audio: "asyncio.Queue[Optional[bytes]]" = asyncio.Queue()
        self._transcripts: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._ws: Optional[ClientConnection] = None
        self._sender: Optional[asyncio.Task] = None
        self._receiver: Optional[asyncio.Task] = None

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    @property
    def url(self) -> str:
        return f"{DEEPGRAM_LISTEN_URL}?{urlencode(LIVE_OPTIONS)}"

    async def start(self) -> None:
        """Open the Deepgram socket and start pumping audio."""
        if not self.is_available:
            raise SpeechUnavailableError("Deepgram STT not available")

        self._ws = await connect(
            self.url,
            additional_headers={"Authorization": f"Token {self.api_key}"},
            max_size=2**20,
        )
        logger.info(f"[STT] Deepgram connection opened - CallSid: {self.call_sid}")
        self._sender = asyncio.create_task(self._send_loop())
        self._receiver = asyncio.create_task(self._receive_loop())

    def send_audio(self, audio: bytes) -> None:
        """Queue a chunk of caller audio."""
        if self._ws is not None:
            self._audio.put_nowait(audio)

    async def transcripts(self) -> AsyncIterator[str]:
        """Final transcripts, until the stream ends."""
        while True:
            transcript = await self._transcripts.get()
            if transcript is _END_OF_STREAM:
                return
            yield transcript

    async def finish(self) -> None:
        """Flush remaining audio, close the socket and stop both tasks."""
        if self._ws is None:
            return

        self._audio.put_nowait(_END_OF_STREAM)
        if self._sender is not None:
            try:
                await asyncio.wait_for(self._sender, timeout=2)
            except asyncio.TimeoutError:
                logger.warning(f"[STT] Timed out flushing audio - CallSid: {self.call_sid}")

        await self._ws.close()
        if self._receiver is not None:
            try:
                await asyncio.wait_for(self._receiver, timeout=2)
            except asyncio.TimeoutError:
                logger.warning(f"[STT] Timed out waiting for Deepgram to close - CallSid: {self.call_sid}")

        self._ws = None
        logger.info(f"[STT] Deepgram connection closed - CallSid: {self.call_sid}")

    async def _send_loop(self) -> None:
        try:
            while True:
                chunk = await self._audio.get()
                if chunk is _END_OF_STREAM:
                    await self._ws.send(json.dumps({"type": "CloseStream"}))
                    return
                await self._ws.send(chunk)
        except ConnectionClosed:
            logger.warning(f"[STT] Deepgram closed while sending audio - CallSid: {self.call_sid}")
        except Exception as e:
            logger.error(
                f"[STT] Deepgram send error - CallSid: {self.call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}"
            )

    async def _receive_loop(self) -> None:
        try:
            async for message in self._ws:
                transcript = self.parse_final_transcript(message)
                if transcript:
                    logger.info(f"[STT] Final transcript: '{transcript}' - CallSid: {self.call_sid}")
                    self._transcripts.put_nowait(transcript)
        except ConnectionClosed:
            pass
        except Exception as e:
            logger.error(
                f"[STT] Deepgram receive error - CallSid: {self.call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}"
            )
        finally:
            self._transcripts.put_nowait(_END_OF_STREAM)

    @staticmethod
    def parse_final_transcript(message) -> Optional[str]:
        """Extract the transcript from a final Deepgram Results message."""
        if isinstance(message, bytes):
            return None
        try:
            data = json.loads(message)
        except ValueError:
            return None

        if data.get("type") == "UtteranceEnd":
            logger.debug("[STT] Utterance ended")
            return None
        if data.get("type") != "Results" or not data.get("is_final"):
            return None

        alternatives = (data.get("channel") or {}).get("alternatives") or []
        if not alternatives:
            return None
        transcript = (alternatives[0].get("transcript") or "").strip()
        return transcript or None
