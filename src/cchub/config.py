"""Bot configuration."""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class BotSettings(BaseSettings):
    """Configuration for the CCHub WhatsApp bot."""

    model_config = SettingsConfigDict(
        env_prefix="CCHUB_",
        env_file=".env",
        extra="ignore",  # Ignore extra fields from .env
    )

    # Web server
    host: str = "0.0.0.0"
    port: int = 3000

    # WhatsApp Cloud API
    whatsapp_api_url: str = "https://graph.facebook.com"
    whatsapp_api_version: str = "v17.0"
    whatsapp_phone_number_id: str = ""
    whatsapp_access_token: str = ""
    verify_token: str = ""
    send_timeout: float = 10.0

    # PayCode resolution service
    resolver_mode: str = "http"  # "http" or "fixture"
    resolver_base_url: str = "https://cchub.co.zw"
    resolver_token: str = ""
    resolver_timeout: float = 10.0

    # PayCode format
    code_prefix: str = "CCH"
    code_digits: int = 6
    max_raw_code_length: int = 64

    # PayCode rate limiting
    max_code_attempts: int = 3
    rate_window_minutes: int = 5
    lockout_minutes: int = 15
    rate_record_idle_minutes: int = 60
    rate_sweep_interval_seconds: float = 300.0

    # Sessions
    session_ttl_minutes: int = 10
    session_sweep_interval_seconds: float = 60.0
    max_step_retries: int = 3

    # Conversation
    reset_keywords: List[str] = ["hi", "hello", "menu", "start"]
    reset_match: str = "exact"  # "exact" or "word"

    # Simulated settlement
    payment_failure_rate: float = 0.0
