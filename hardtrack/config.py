from pydantic_settings import BaseSettings
from typing import Optional
from pydantic import Field

class Settings(BaseSettings):
    # Tokens are issued by the external auth service; we only verify them.
    SECRET_KEY: str = Field("change-me-in-production")
    ALGORITHM: str = Field("HS256")

    DATABASE_URL: str
    SQLALCHEMY_DATABASE_URL: Optional[str] = None
    SQL_ECHO: bool = False

    LOG_LEVEL: str = "INFO"
    APP_URL: str = "http://localhost:3000"
    DEFAULT_TIMEZONE: str = "America/New_York"

    # Bearer secret for cron-invoked job endpoints. Empty → no check.
    CRON_SECRET: Optional[str] = None

    HTTP_TIMEOUT_SECONDS: float = 10.0

    STRAVA_CLIENT_ID: Optional[str] = None
    STRAVA_CLIENT_SECRET: Optional[str] = None
    STRAVA_REDIRECT_URI: Optional[str] = None
    STRAVA_AUTH_URL: str = "https://www.strava.com/oauth/authorize"
    STRAVA_TOKEN_URL: str = "https://www.strava.com/oauth/token"
    STRAVA_API_BASE: str = "https://www.strava.com/api/v3"
    STRAVA_SYNC_DAYS: int = 30

    RESEND_API_KEY: Optional[str] = None
    RESEND_API_URL: str = "https://api.resend.com/emails"
    REMINDER_FROM_EMAIL: str = "75 Hard Challenge <noreply@yourdomain.com>"
    REMINDER_WINDOW_MINUTES: int = 5

    STORAGE_URL: Optional[str] = None
    STORAGE_BUCKET: str = "progress-photos"
    STORAGE_API_KEY: Optional[str] = None

    model_config = {
        "env_file": ".env",
        "extra": "allow",
    }

    @property
    def effective_database_url(self) -> str:
        url = self.SQLALCHEMY_DATABASE_URL or self.DATABASE_URL or "sqlite+aiosqlite:///./hardtrack.db"
        # Ensure asyncpg is used
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    @property
    def strava_configured(self) -> bool:
        return bool(self.STRAVA_CLIENT_ID and self.STRAVA_CLIENT_SECRET and self.STRAVA_REDIRECT_URI)

    @property
    def email_configured(self) -> bool:
        return bool(self.RESEND_API_KEY)

    @property
    def storage_configured(self) -> bool:
        return bool(self.STORAGE_URL)

settings = Settings()
