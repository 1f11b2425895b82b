"""Twilio Media Streams bridge to Deepgram speech recognition and synthesis."""
import asyncio
import base64
import json
import logging
from typing import Any, Callable, Dict, Optional, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from receptionist.core.exceptions import TelephonyUnavailableError
from receptionist.services.call_session.manager import CallSessionManager
from receptionist.services.call_session.models import CallStatus
from receptionist.services.persona.voices import clean_spoken_text
from receptionist.services.speech.stt import DeepgramTranscriber
from receptionist.services.speech.tts import DeepgramTTSService
from receptionist.services.telephony.client import TelephonyService

logger = logging.getLogger(__name__)

# Raw mu-law bytes per outbound media message (8000 base64 characters)
AUDIO_CHUNK_BYTES = 6000
SPEECH_DONE_MARK = "speech_done"
GOODBYE_MARK = "goodbye"


class StreamSession:
    """One live media stream."""

    def __init__(self, call_sid: str, websocket: WebSocket):
        self.call_sid = call_sid
        self.websocket = websocket
        self.stream_sid: Optional[str] = None
        self.style: Optional[str] = None
        self.transcriber: Optional[DeepgramTranscriber] = None
        self.has_greeted = False
        self.tasks: Set[asyncio.Task] = set()

    @property
    def is_started(self) -> bool:
        return self.stream_sid is not None

    def spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task


class MediaStreamBridge:
    """
    Relays audio between Twilio and Deepgram for real-time calls.

    Caller audio from Twilio ``media`` events is forwarded to a live
    transcriber; each final transcript is answered through the call session
    manager and the reply is synthesized back onto the same socket.
    """

    def __init__(
        self,
        call_manager: CallSessionManager,
        tts: DeepgramTTSService,
        telephony: Optional[TelephonyService] = None,
        transcriber_factory: Optional[Callable[[str], DeepgramTranscriber]] = None,
        greeting_delay: float = 0.5,
    ):
        self.call_manager = call_manager
        self.tts = tts
        self.telephony = telephony
        self.transcriber_factory = transcriber_factory or (
            lambda call_sid: DeepgramTranscriber(call_sid=call_sid)
        )
        self.greeting_delay = greeting_delay
        self._streams: Dict[str, StreamSession] = {}

    def open(self, call_sid: str, websocket: WebSocket) -> StreamSession:
        """Register a newly accepted Twilio socket."""
        stream = StreamSession(call_sid, websocket)
        self._streams[call_sid] = stream
        return stream

    def get(self, call_sid: str) -> Optional[StreamSession]:
        return self._streams.get(call_sid)

    def active_count(self) -> int:
        return len(self._streams)

    async def handle_message(self, call_sid: str, message: str) -> None:
        """Dispatch one Twilio Media Streams message."""
        stream = self._streams.get(call_sid)
        if stream is None:
            return

        try:
            data: Dict[str, Any] = json.loads(message)
        except ValueError:
            logger.error(f"[MEDIA STREAM] Unparseable message - CallSid: {call_sid}")
            return

        event = data.get("event")
        if event == "connected":
            logger.info(f"[MEDIA STREAM] Twilio stream connected - CallSid: {call_sid}")
        elif event == "start":
            await self._on_start(stream, data.get("start") or {})
        elif event == "media":
            self._on_media(stream, data.get("media") or {})
        elif event == "mark":
            await self._on_mark(stream, (data.get("mark") or {}).get("name"))
        elif event == "stop":
            logger.info(f"[MEDIA STREAM] Twilio stream stopped - CallSid: {call_sid}")
            await self.close_stream(call_sid)

    async def _on_start(self, stream: StreamSession, start: Dict[str, Any]) -> None:
        stream.stream_sid = start.get("streamSid")
        logger.info(
            f"[MEDIA STREAM] Stream started - CallSid: {stream.call_sid}, "
            f"StreamSid: {stream.stream_sid}"
        )

        transcriber = self.transcriber_factory(stream.call_sid)
        if transcriber.is_available:
            try:
                await transcriber.start()
                stream.transcriber = transcriber
                stream.spawn(self._consume_transcripts(stream))
            except Exception as e:
                logger.error(
                    f"[MEDIA STREAM] Could not start transcription - CallSid: {stream.call_sid}, "
                    f"Error: {type(e).__name__}: {str(e)}"
                )
        else:
            logger.warning(
                f"[MEDIA STREAM] Deepgram not configured, caller audio is ignored - "
                f"CallSid: {stream.call_sid}"
            )

        if not stream.has_greeted:
            stream.has_greeted = True
            from_number = (start.get("customParameters") or {}).get("From")
            greeting = await self.call_manager.start_call(stream.call_sid, from_number)
            stream.style = greeting.voice.style
            stream.spawn(self._greet(stream, greeting.text))

    def _on_media(self, stream: StreamSession, media: Dict[str, Any]) -> None:
        if stream.transcriber is None:
            return
        if media.get("track", "inbound") != "inbound":
            return
        payload = media.get("payload")
        if payload:
            stream.transcriber.send_audio(base64.b64decode(payload))

    async def _on_mark(self, stream: StreamSession, name: Optional[str]) -> None:
        logger.debug(f"[MEDIA STREAM] Mark played: {name} - CallSid: {stream.call_sid}")
        if name != GOODBYE_MARK:
            return
        if self.telephony is None:
            return
        try:
            await self.telephony.hangup(stream.call_sid)
        except TelephonyUnavailableError:
            logger.info(
                f"[MEDIA STREAM] Farewell played but Twilio is not configured to hang up - "
                f"CallSid: {stream.call_sid}"
            )
        except Exception as e:
            logger.error(
                f"[MEDIA STREAM] Hangup failed - CallSid: {stream.call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}"
            )

    async def _greet(self, stream: StreamSession, text: str) -> None:
        await asyncio.sleep(self.greeting_delay)
        await self.speak(stream.call_sid, text)

    async def _consume_transcripts(self, stream: StreamSession) -> None:
        async for transcript in stream.transcriber.transcripts():
            try:
                reply = await self.call_manager.handle_speech(stream.call_sid, transcript)
                await self.speak(
                    stream.call_sid,
                    reply.text,
                    style=reply.style,
                    mark=GOODBYE_MARK if reply.is_farewell else SPEECH_DONE_MARK,
                )
                if reply.is_farewell:
                    return
            except Exception as e:
                logger.error(
                    f"[MEDIA STREAM] Failed to answer transcript - CallSid: {stream.call_sid}, "
                    f"Error: {type(e).__name__}: {str(e)}",
                    exc_info=True,
                )

    async def speak(
        self,
        call_sid: str,
        text: str,
        style: Optional[str] = None,
        mark: str = SPEECH_DONE_MARK,
    ) -> None:
        """Synthesize text and play it into the call."""
        stream = self._streams.get(call_sid)
        if stream is None or not stream.is_started:
            logger.warning(f"[MEDIA STREAM] Cannot speak, stream not ready - CallSid: {call_sid}")
            return
        if not self.tts.is_available:
            logger.warning(f"[MEDIA STREAM] Cannot speak, Deepgram TTS not configured - CallSid: {call_sid}")
            return

        try:
            audio = await self.tts.synthesize(clean_spoken_text(text), style=style or stream.style)
        except Exception as e:
            logger.error(
                f"[MEDIA STREAM] TTS error - CallSid: {call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}"
            )
            return

        for offset in range(0, len(audio), AUDIO_CHUNK_BYTES):
            payload = base64.b64encode(audio[offset:offset + AUDIO_CHUNK_BYTES]).decode("ascii")
            await self._send(stream, {"event": "media", "media": {"payload": payload}})

        await self.send_mark(call_sid, mark)

    async def send_mark(self, call_sid: str, name: str) -> None:
        """Ask Twilio to tell us when playback reaches this point."""
        stream = self._streams.get(call_sid)
        if stream is None or not stream.is_started:
            return
        await self._send(stream, {"event": "mark", "mark": {"name": name}})

    async def clear_audio(self, call_sid: str) -> None:
        """Drop any audio Twilio has buffered but not yet played."""
        stream = self._streams.get(call_sid)
        if stream is None or not stream.is_started:
            return
        await self._send(stream, {"event": "clear"})

    async def _send(self, stream: StreamSession, message: Dict[str, Any]) -> None:
        if stream.websocket.client_state != WebSocketState.CONNECTED:
            return
        message["streamSid"] = stream.stream_sid
        try:
            await stream.websocket.send_text(json.dumps(message))
        except (RuntimeError, OSError) as e:
            logger.warning(f"[MEDIA STREAM] Send failed - CallSid: {stream.call_sid}, Error: {e}")

    async def close_stream(self, call_sid: str, status: str = CallStatus.COMPLETED.value) -> None:
        """Stop transcription, cancel the stream's tasks and end the call session if still open."""
        stream = self._streams.pop(call_sid, None)
        if stream is None:
            return

        if stream.transcriber is not None:
            try:
                await stream.transcriber.finish()
            except Exception as e:
                logger.warning(
                    f"[MEDIA STREAM] Error closing transcription - CallSid: {call_sid}, Error: {e}"
                )

        current = asyncio.current_task()
        for task in list(stream.tasks):
            if task is not current:
                task.cancel()

        if self.call_manager.store.exists(call_sid):
            await self.call_manager.end_call(call_sid, status)

    async def close(self) -> None:
        """Close every stream. Called at shutdown."""
        for call_sid in list(self._streams):
            await self.close_stream(call_sid)
