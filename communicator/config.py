# communicator/config.py
"""Application configuration using pydantic-settings.

Provides a centralized Settings class for all configuration values.
Values come from init arguments, environment variables, a .env file and
an optional config.yaml, in that order of precedence.
Supports both GOOGLE_API_KEY and GEMINI_API_KEY for the generation service.
"""

from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

CONFIG_YAML_PATH = "config.yaml"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and config.yaml.

    Environment variables take precedence over .env file values, which take
    precedence over config.yaml.
    """

    # Slack Integration
    slack_bot_token: str = ""
    slack_user_token: str = ""  # Needed for search.messages (search:read)
    slack_signing_secret: str = ""
    slack_bot_user_id: str = ""  # Resolved via auth.test when empty

    # Google Gemini API (supports both GOOGLE_API_KEY and GEMINI_API_KEY)
    google_api_key: str = ""
    gemini_api_key: str = ""
    gemini_model: str = "gemini/gemini-2.0-flash"

    # Session behavior
    history_limit: int = 10  # 5 request/response pairs
    max_summary_channels: int = 30
    mention_display_limit: int = 5

    # Inbound request handling
    verify_event_signatures: bool = True

    # Outbound relay API security
    api_auth_key: str = ""  # Required for /send (X-API-Key header)
    api_rate_limit: int = 60  # Requests per minute

    # HTTP listener
    host: str = "0.0.0.0"
    port: int = 8080

    # Logging / Observability
    log_level: str = "INFO"
    log_json: bool = True
    logfire_token: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file=CONFIG_YAML_PATH,
        extra="ignore",  # Ignore unknown env vars
        case_sensitive=False,  # Allow case-insensitive env var names
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Add config.yaml as the lowest-priority source."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @property
    def api_key(self) -> str:
        """Get the generation API key with fallback support.

        Returns GOOGLE_API_KEY if set, otherwise falls back to GEMINI_API_KEY.

        Returns:
            The API key string, or empty string if neither is set.
        """
        return self.google_api_key or self.gemini_api_key


# Singleton instance - import this in your code
settings = Settings()
