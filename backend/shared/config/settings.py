"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SESSION_SECRET = "dev-session-secret-change-me"


class Settings(BaseSettings):
    """Application settings with defaults for development."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service
    app_name: str = "Chat Relay Gateway"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = True

    # Server
    ws_gateway_host: str = "0.0.0.0"
    ws_gateway_port: int = 8080

    # Comma-separated list of allowed origins (empty uses default localhost list)
    allowed_origins: str = ""

    # Message store
    # "sql" persists through SQLAlchemy, "memory" keeps history in-process only
    message_store: str = "sql"
    database_url: str = "sqlite:///./chat.db"
    store_timeout: float = 5.0  # Seconds before a store call is reported as failed

    # History replayed to newly joined sessions (hard upper bound of 100)
    history_limit: int = Field(default=100, ge=1, le=100)

    # Display names
    display_name_max_length: int = 24
    fallback_display_name: str = "Guest"

    # Guest name generation (anonymous endpoint)
    guest_name_prefix: str = "Guest"
    guest_name_suffix_length: int = Field(default=4, ge=1)
    guest_name_charset: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    guest_name_max_attempts: int = Field(default=32, ge=1)

    greeting_text: str = "Connected to chat server."

    # Session tokens (authenticated endpoint)
    session_secret: str = DEFAULT_SESSION_SECRET
    session_issuer: str = "chat-relay"
    session_audience: str = "chat-relay-users"
    session_cookie_name: str = "chat_session"
    session_token_expire_minutes: int = 60 * 24

    # WebSocket
    ws_max_message_size: int = 16 * 1024  # 16 KB per inbound frame
    ws_send_timeout: float = 5.0  # Per-peer bound on a single send during fan-out
    ws_accept_timeout: float = 5.0

    def validate_production_secrets(self) -> list[str]:
        """
        Validate that secrets are properly configured for production.
        Returns a list of validation errors. Empty list means all checks pass.
        """
        errors = []

        weak_secrets = {
            DEFAULT_SESSION_SECRET,
            "secret",
            "password",
            "changeme",
            "default",
        }

        if self.environment == "production":
            if self.session_secret in weak_secrets or len(self.session_secret) < 32:
                errors.append(
                    "SESSION_SECRET must be at least 32 characters and not a default value in production"
                )

            if self.debug:
                errors.append("DEBUG must be False in production")

            if not self.allowed_origins:
                errors.append(
                    "ALLOWED_ORIGINS must be set in production (comma-separated list of allowed domains)"
                )

            if self.message_store == "memory":
                errors.append(
                    "MESSAGE_STORE=memory loses chat history on restart; use sql in production"
                )

        if self.message_store not in ("sql", "memory"):
            errors.append(f"MESSAGE_STORE must be 'sql' or 'memory', got {self.message_store!r}")

        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()
