"""Errors raised when an optional vendor integration is not configured."""


class TelephonyUnavailableError(RuntimeError):
    """Twilio credentials are missing or Twilio is switched off."""


class SpeechUnavailableError(RuntimeError):
    """Deepgram is not configured."""
