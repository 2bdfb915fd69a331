# TimeAudit - Configuration
# Application settings loaded from environment variables

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Create a .env file in the project root for local development:

        # .env
        TIMEAUDIT_DATABASE_URL=sqlite:///./timeaudit.db
        TIMEAUDIT_REMOTE_URL=https://your-project.supabase.co
        TIMEAUDIT_REMOTE_KEY=your-anon-key

    Leave the remote settings empty to run in local-only mode.
    """

    model_config = SettingsConfigDict(
        env_prefix="TIMEAUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "TimeAudit"
    debug: bool = False
    log_level: str = "INFO"

    # Timezone used to decide which week is "current"
    timezone: str = "UTC"

    # Local cache - always available
    database_url: str = "sqlite:///./timeaudit.db"

    # Remote store - optional, best-effort mirror
    remote_url: Optional[str] = None
    remote_key: Optional[str] = None
    remote_timeout: float = 10.0

    # Identity check must resolve within this many seconds
    auth_timeout_seconds: float = 4.0

    # How many sync warnings to keep in memory for /sync
    max_sync_warnings: int = 50

    @property
    def remote_configured(self) -> bool:
        """True when both the remote URL and key are set."""
        return bool(self.remote_url) and bool(self.remote_key)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only load settings once.
    """
    return Settings()
