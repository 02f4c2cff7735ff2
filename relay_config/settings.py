"""
Client Settings (Pydantic Settings).

Loads configuration from environment variables (.env file or system env).
Every variable is prefixed with TOOLRELAY_, e.g. TOOLRELAY_API_SECRET.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Client settings loaded from environment variables.

    Constructor keyword arguments take precedence over the environment.
    """

    model_config = SettingsConfigDict(
        env_prefix="TOOLRELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # ========================================================================
    # CONTROL PLANE
    # ========================================================================
    API_SECRET: str = Field(default="", description="Cluster API secret (sk_...)")
    API_ENDPOINT: str = Field(default="https://api.inferable.ai")
    MACHINE_ID: str = Field(
        default="",
        description="Explicit machine id. Derived from host, endpoint and secret when empty",
    )
    REQUEST_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)

    # ========================================================================
    # POLLING AGENT
    # ========================================================================
    POLL_LIMIT: int = Field(default=10, ge=1, description="Max jobs fetched per poll cycle")
    MAX_CONSECUTIVE_POLL_FAILURES: int = Field(
        default=50,
        ge=0,
        description="The agent stops itself once consecutive failures exceed this",
    )

    # ========================================================================
    # RUNS
    # ========================================================================
    RUN_POLL_MAX_WAIT_SECONDS: float = Field(default=60.0, gt=0)
    RUN_POLL_INTERVAL_SECONDS: float = Field(default=0.5, gt=0)

    # ========================================================================
    # LOGGING
    # ========================================================================
    LOG_LEVEL: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    LOG_FORMAT: str = Field(default="json", pattern="^(json|text)$")
