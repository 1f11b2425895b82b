"""Twilio REST client wrapper."""
import asyncio
import logging
from typing import Optional

from twilio.rest import Client

from receptionist.core.config import settings
from receptionist.core.exceptions import TelephonyUnavailableError

logger = logging.getLogger(__name__)

STATUS_CALLBACK_EVENTS = ["initiated", "ringing", "answered", "completed"]


class TelephonyService:
    """Places outbound calls through Twilio."""

    def __init__(self, client: Optional[Client] = None):
        self.client = client
        if self.client is None:
            self.client = self._build_client()

    @staticmethod
    def _build_client() -> Optional[Client]:
        sid = settings.twilio_account_sid or ""
        if settings.skip_twilio or not sid.startswith("AC") or not settings.twilio_auth_token:
            logger.info(
                "[TELEPHONY] Running without Twilio (SKIP_TWILIO=true or invalid credentials)"
            )
            return None
        try:
            return Client(sid, settings.twilio_auth_token)
        except Exception as e:
            logger.warning(f"[TELEPHONY] Failed to initialize Twilio client: {e}")
            return None

    @property
    def is_available(self) -> bool:
        return self.client is not None

    async def initiate_call(self, phone_number: str, webhook_base_url: str) -> str:
        """
        Call a phone number and connect it to the receptionist.

        Args:
            phone_number: Number to dial (E.164)
            webhook_base_url: Public base URL of this service

        Returns:
            The new call's SID
        """
        if not self.client:
            raise TelephonyUnavailableError("Twilio client not available")

        base_url = webhook_base_url.rstrip("/")
        call = await asyncio.to_thread(
            self.client.calls.create,
            to=phone_number,
            from_=settings.twilio_phone_number,
            url=f"{base_url}/webhooks/voice/incoming",
            status_callback=f"{base_url}/webhooks/voice/status",
            status_callback_event=STATUS_CALLBACK_EVENTS,
            status_callback_method="POST",
        )
        logger.info(f"[TELEPHONY] Outbound call created - CallSid: {call.sid}, To: {phone_number}")
        return call.sid

    async def hangup(self, call_sid: str) -> None:
        """End a live call."""
        if not self.client:
            raise TelephonyUnavailableError("Twilio client not available")

        await asyncio.to_thread(self.client.calls(call_sid).update, status="completed")
        logger.info(f"[TELEPHONY] Hung up call - CallSid: {call_sid}")
