"""
Configuration module for the tour & rental booking backend.
Loads environment variables into a typed settings object that is
constructed once at startup and injected into each component.
"""

from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

env_path = Path(__file__).parent / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Booking store
    store_backend: str = "supabase"  # supabase, memory
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    # Stripe (optional integration)
    payments_enabled: bool = True
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_currency: str = "usd"
    app_base_url: str = "http://localhost:4200"

    # Owner notification: email channel (Resend-compatible HTTP API)
    resend_api_key: Optional[str] = None
    notify_email_from: Optional[str] = None
    notify_email_to: Optional[str] = None
    notify_email_endpoint: str = "https://api.resend.com/emails"

    # Owner notification: Telegram chat channel
    telegram_bot_token: Optional[str] = None
    telegram_owner_chat_id: Optional[str] = None

    # Owner notification: generic chat webhook channel
    chat_webhook_url: Optional[str] = None
    chat_webhook_token: Optional[str] = None

    notification_timeout_seconds: float = 10.0

    # Privileged uid lists (comma-separated)
    super_admin_uids: str = ""
    emergency_response_team: str = ""
    emergency_max_calls_per_hour: int = 5
    emergency_max_calls_per_day: int = 20

    # Claude AI travel assistant (optional)
    claude_api_key: Optional[str] = None
    claude_model: str = "claude-sonnet-4-20250514"

    # Redelivery of booking-created events
    redelivery_interval_minutes: int = 15
    redelivery_max_age_hours: int = 24

    # Payment success rate monitor
    monitor_interval_minutes: int = 5
    monitor_window_hours: int = 1
    payment_success_alert_percent: float = 95.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    environment: str = "development"  # development, staging, production
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _split_ids(raw: str) -> List[str]:
        return [uid.strip() for uid in raw.split(",") if uid.strip()]

    @property
    def super_admin_uid_list(self) -> List[str]:
        return self._split_ids(self.super_admin_uids)

    @property
    def emergency_team_uid_list(self) -> List[str]:
        return self._split_ids(self.emergency_response_team)

    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def has_stripe(self) -> bool:
        """Stripe is usable only with both the API key and the webhook secret."""
        return bool(self.stripe_secret_key and self.stripe_webhook_secret)

    def has_email_channel(self) -> bool:
        return bool(
            self.resend_api_key and self.notify_email_from and self.notify_email_to
        )

    def has_telegram_channel(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_owner_chat_id)

    def has_chat_webhook_channel(self) -> bool:
        return bool(self.chat_webhook_url)

    def validate_all_required(self) -> None:
        """
        Validate that the settings needed to start the server are present.

        Optional integrations (payments, notification channels, assistant)
        are not checked here; their absence degrades gracefully.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        if self.store_backend not in ("supabase", "memory"):
            raise ValueError(
                f"Invalid STORE_BACKEND '{self.store_backend}'. "
                f"Use 'supabase' or 'memory'."
            )

        missing = []
        if self.store_backend == "supabase":
            for field in ("supabase_url", "supabase_key"):
                value = getattr(self, field, None)
                if not value or str(value).lower().startswith("your_"):
                    missing.append(field)

        if self.environment == "production" and self.store_backend == "memory":
            missing.append("store_backend (memory store is not allowed in production)")

        if missing:
            raise ValueError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )


def load_settings(**overrides) -> Settings:
    """Load the .env file (if any) and build a Settings instance."""
    load_dotenv(dotenv_path=env_path)
    return Settings(**overrides)
