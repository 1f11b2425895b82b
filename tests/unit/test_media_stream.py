"""Unit tests for the real-time media stream bridge."""
import asyncio
import base64
import json
from unittest.mock import AsyncMock, Mock

import pytest
from starlette.websockets import WebSocketState

from receptionist.core.exceptions import TelephonyUnavailableError
from receptionist.services.media_stream.bridge import MediaStreamBridge


class FakeWebSocket:
    """Collects what the bridge sends to Twilio."""

    def __init__(self):
        self.client_state = WebSocketState.CONNECTED
        self.sent = []

    async def send_text(self, data):
        self.sent.append(json.loads(data))

    def events(self, name):
        return [message for message in self.sent if message["event"] == name]

    def marks(self):
        return [message["mark"]["name"] for message in self.events("mark")]


class FakeTTS:
    """Returns a fixed amount of silence for any text."""

    is_available = True

    def __init__(self, size=10):
        self.size = size
        self.calls = []

    async def synthesize(self, text, style=None, voice=None):
        self.calls.append((text, style))
        return b"\xff" * self.size


class FakeTranscriber:
    """Transcriber fed by the test instead of Deepgram."""

    is_available = True

    def __init__(self):
        self.audio = []
        self.started = False
        self.finished = False
        self._queue = asyncio.Queue()

    async def start(self):
        self.started = True

    def send_audio(self, audio):
        self.audio.append(audio)

    def push(self, transcript):
        self._queue.put_nowait(transcript)

    async def transcripts(self):
        while True:
            transcript = await self._queue.get()
            if transcript is None:
                return
            yield transcript

    async def finish(self):
        self.finished = True
        self._queue.put_nowait(None)


async def wait_for(predicate, timeout=1.0):
    """Let background tasks run until predicate holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def start_message(stream_sid="MZ1", from_number="+15550001111"):
    return json.dumps(
        {
            "event": "start",
            "start": {"streamSid": stream_sid, "customParameters": {"From": from_number}},
        }
    )


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def hangup_telephony():
    telephony = Mock()
    telephony.hangup = AsyncMock()
    return telephony


@pytest.fixture
def bridge(call_manager, transcriber, hangup_telephony):
    return MediaStreamBridge(
        call_manager,
        FakeTTS(),
        telephony=hangup_telephony,
        transcriber_factory=lambda call_sid: transcriber,
        greeting_delay=0,
    )


class TestMediaStreamBridge:
    """Test the Twilio media stream protocol handling."""

    @pytest.mark.asyncio
    async def test_start_greets_caller(self, bridge, session_store, transcriber):
        """Test the start event opens transcription and plays a greeting."""
        ws = FakeWebSocket()
        bridge.open("CA1", ws)

        await bridge.handle_message("CA1", start_message())
        await wait_for(lambda: ws.marks())

        assert transcriber.started
        assert session_store.exists("CA1")
        assert session_store.get("CA1").from_number == "+15550001111"
        assert ws.marks() == ["speech_done"]
        media = ws.events("media")
        assert len(media) == 1
        assert media[0]["streamSid"] == "MZ1"
        assert base64.b64decode(media[0]["media"]["payload"]) == b"\xff" * 10

        await bridge.close()

    @pytest.mark.asyncio
    async def test_audio_is_chunked(self, call_manager, transcriber):
        """Test long audio is split into several media messages."""
        bridge = MediaStreamBridge(
            call_manager, FakeTTS(size=7000), transcriber_factory=lambda sid: transcriber,
            greeting_delay=0,
        )
        ws = FakeWebSocket()
        bridge.open("CA1", ws)

        await bridge.handle_message("CA1", start_message())
        await wait_for(lambda: ws.marks())

        sizes = [len(base64.b64decode(m["media"]["payload"])) for m in ws.events("media")]
        assert sizes == [6000, 1000]

        await bridge.close()

    @pytest.mark.asyncio
    async def test_inbound_audio_forwarded(self, bridge, transcriber):
        """Test caller audio reaches the transcriber and our own audio does not."""
        bridge.open("CA1", FakeWebSocket())
        await bridge.handle_message("CA1", start_message())

        payload = base64.b64encode(b"\x01\x02").decode()
        await bridge.handle_message(
            "CA1", json.dumps({"event": "media", "media": {"track": "inbound", "payload": payload}})
        )
        await bridge.handle_message(
            "CA1", json.dumps({"event": "media", "media": {"track": "outbound", "payload": payload}})
        )

        assert transcriber.audio == [b"\x01\x02"]

        await bridge.close()

    @pytest.mark.asyncio
    async def test_transcript_is_answered(self, bridge, session_store, transcriber):
        """Test a final transcript gets a spoken reply."""
        ws = FakeWebSocket()
        bridge.open("CA1", ws)
        await bridge.handle_message("CA1", start_message())
        await wait_for(lambda: len(ws.marks()) == 1)

        transcriber.push("Tell me about the weather")
        await wait_for(lambda: len(ws.marks()) == 2)

        assert session_store.get("CA1").turn_count == 1
        assert bridge.tts.calls[-1][0]

        await bridge.close()

    @pytest.mark.asyncio
    async def test_farewell_hangs_up_after_playback(self, bridge, transcriber, hangup_telephony):
        """Test goodbyes are marked and the call is hung up once Twilio plays them."""
        ws = FakeWebSocket()
        bridge.open("CA1", ws)
        await bridge.handle_message("CA1", start_message())
        await wait_for(lambda: len(ws.marks()) == 1)

        transcriber.push("Okay, goodbye")
        await wait_for(lambda: len(ws.marks()) == 2)
        assert ws.marks()[-1] == "goodbye"
        hangup_telephony.hangup.assert_not_awaited()

        await bridge.handle_message("CA1", json.dumps({"event": "mark", "mark": {"name": "goodbye"}}))

        hangup_telephony.hangup.assert_awaited_once_with("CA1")

        await bridge.close()

    @pytest.mark.asyncio
    async def test_hangup_without_twilio_is_quiet(self, call_manager, transcriber):
        """Test a goodbye mark without Twilio credentials is only logged."""
        telephony = Mock()
        telephony.hangup = AsyncMock(side_effect=TelephonyUnavailableError("no twilio"))
        bridge = MediaStreamBridge(
            call_manager, FakeTTS(), telephony=telephony,
            transcriber_factory=lambda sid: transcriber, greeting_delay=0,
        )
        bridge.open("CA1", FakeWebSocket())
        await bridge.handle_message("CA1", start_message())

        await bridge.handle_message("CA1", json.dumps({"event": "mark", "mark": {"name": "goodbye"}}))

        telephony.hangup.assert_awaited_once()
        await bridge.close()

    @pytest.mark.asyncio
    async def test_stop_closes_stream(self, bridge, session_store, transcriber):
        """Test the stop event ends transcription and the call session."""
        bridge.open("CA1", FakeWebSocket())
        await bridge.handle_message("CA1", start_message())

        await bridge.handle_message("CA1", json.dumps({"event": "stop"}))

        assert transcriber.finished
        assert bridge.active_count() == 0
        assert not session_store.exists("CA1")

    @pytest.mark.asyncio
    async def test_stop_ends_call_once(self, bridge, call_manager, transcriber, monkeypatch):
        """Test the stop event ends the call with a completed status."""
        end_call = AsyncMock(wraps=call_manager.end_call)
        monkeypatch.setattr(call_manager, "end_call", end_call)
        bridge.open("CA1", FakeWebSocket())
        await bridge.handle_message("CA1", start_message())

        await bridge.handle_message("CA1", json.dumps({"event": "stop"}))

        end_call.assert_awaited_once_with("CA1", "completed")

    @pytest.mark.asyncio
    async def test_stop_after_farewell_keeps_call_closed(
        self, bridge, call_manager, transcriber, monkeypatch
    ):
        """Test a call already ended by a goodbye is not ended again when the stream stops."""
        end_call = AsyncMock(wraps=call_manager.end_call)
        monkeypatch.setattr(call_manager, "end_call", end_call)
        ws = FakeWebSocket()
        bridge.open("CA1", ws)
        await bridge.handle_message("CA1", start_message())
        await wait_for(lambda: len(ws.marks()) == 1)

        transcriber.push("Okay, goodbye")
        await wait_for(lambda: len(ws.marks()) == 2)
        await bridge.handle_message("CA1", json.dumps({"event": "stop"}))

        assert end_call.await_count == 1
        assert bridge.active_count() == 0

    @pytest.mark.asyncio
    async def test_speak_before_start_is_noop(self, bridge):
        """Test nothing is sent until Twilio names the stream."""
        ws = FakeWebSocket()
        bridge.open("CA1", ws)

        await bridge.speak("CA1", "Hello?")

        assert ws.sent == []
        assert bridge.tts.calls == []

    @pytest.mark.asyncio
    async def test_speak_without_tts_is_noop(self, call_manager, tts):
        """Test a missing Deepgram key means silence, not an error."""
        bridge = MediaStreamBridge(call_manager, tts, greeting_delay=0)
        ws = FakeWebSocket()
        bridge.open("CA1", ws)
        await bridge.handle_message("CA1", start_message())

        await bridge.speak("CA1", "Hello?")

        assert ws.sent == []
        await bridge.close()

    @pytest.mark.asyncio
    async def test_clear_audio(self, bridge):
        """Test buffered audio can be cleared."""
        ws = FakeWebSocket()
        bridge.open("CA1", ws)
        await bridge.handle_message("CA1", start_message())

        await bridge.clear_audio("CA1")

        assert {"event": "clear", "streamSid": "MZ1"} in ws.sent
        await bridge.close()

    @pytest.mark.asyncio
    async def test_bad_messages_ignored(self, bridge):
        """Test junk and unknown calls are ignored."""
        ws = FakeWebSocket()
        bridge.open("CA1", ws)

        await bridge.handle_message("CA1", "not json")
        await bridge.handle_message("CA_unknown", start_message())

        assert ws.sent == []
        assert bridge.get("CA_unknown") is None


class TestMediaStreamEndpoint:
    """Test the WebSocket route."""

    def test_websocket_greets_over_stream(self, install_app_state):
        """Test a connected stream hears the greeting."""
        from fastapi.testclient import TestClient
        from receptionist.main import app

        install_app_state(tts=FakeTTS())
        client = TestClient(app)

        with client.websocket_connect("/webhooks/voice/media-stream/CA_ws") as ws:
            ws.send_text(json.dumps({"event": "connected", "protocol": "Call"}))
            ws.send_text(start_message(stream_sid="MZ_ws"))

            media = ws.receive_json()
            mark = ws.receive_json()

            assert media["event"] == "media"
            assert media["streamSid"] == "MZ_ws"
            assert mark == {"event": "mark", "mark": {"name": "speech_done"}, "streamSid": "MZ_ws"}

            ws.send_text(json.dumps({"event": "stop"}))

        assert app.state.media_bridge.active_count() == 0
