"""Application configuration."""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every integration is optional: a missing credential disables the
    feature that depends on it instead of failing startup.
    """

    # OpenAI (templates-only mode when unset)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4"

    # Twilio
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: str = "+1234567890"
    skip_twilio: bool = False

    # Deepgram (real-time voice)
    deepgram_api_key: Optional[str] = None
    realtime_mode: bool = False

    # Public URL Twilio uses to reach the webhooks
    base_url: Optional[str] = None

    # Database
    database_url: str = "sqlite+aiosqlite:///./receptionist.db"

    # Interaction logs
    interaction_log_path: str = "interactions.jsonl"
    flagged_log_path: str = "funny-interactions.log"

    # Call state
    status_cleanup_delay_seconds: float = 60.0

    # Persona dice rolls
    template_probability: float = 0.7
    interruption_probability: float = 0.15
    hold_probability: float = 0.1
    follow_up_probability: float = 0.2

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
