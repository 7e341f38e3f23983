import logging
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from functools import lru_cache

from thunderbird_bridge import __version__

class Settings(BaseSettings):
    """
    Centralized Configuration Management.
    Reads from environment variables (e.g., THUNDERBIRD_BRIDGE_BACKEND_URL overrides backend_url).
    """
    # Metadata
    app_name: str = "Thunderbird MCP Bridge"
    log_level: str = "INFO"

    # Back-end target (the Thunderbird API extension)
    backend_url: str = "http://localhost:8766/"
    # Total time budget for one outbound call, in seconds
    request_timeout: float = 30.0

    # Identity advertised to the MCP client on initialize
    protocol_version: str = "2024-11-05"
    server_name: str = "thunderbird-bridge"
    server_version: str = __version__

    @field_validator("backend_url")
    @classmethod
    def check_backend_url(cls, v: str) -> str:
        """Only plain http(s) targets are supported."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"backend_url must be an http(s) URL, got {v!r}")
        return v

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v!r}")
        return level

    @field_validator("request_timeout")
    @classmethod
    def check_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request_timeout must be positive")
        return v

    model_config = SettingsConfigDict(
        env_prefix="THUNDERBIRD_BRIDGE_",
        env_file=".env",
        env_file_encoding='utf-8',
        extra="ignore",
    )

@lru_cache()
def get_settings() -> Settings:
    """Singleton pattern for settings to avoid re-reading env vars."""
    return Settings()
