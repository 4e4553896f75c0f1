from typing import Literal, Optional
from pathlib import Path
from loguru import logger
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    ENV: Literal["development", "staging", "production", "test"] = Field("development")
    PORT: int = Field(8000)
    APP_URL: str = Field(default="http://localhost:3000")
    DATABASE_URL: str = Field(default="sqlite:///./edureach.db")
    LOG_LEVEL: str = Field(default="INFO")

    # AI counselor
    OPENAI_API_KEY: str = Field("dummy")
    OPENAI_MODEL: str = Field(default="gpt-4-turbo-preview")

    # SMTP Email Configuration
    SMTP_HOST: Optional[str] = Field(default="smtp.gmail.com")
    SMTP_PORT: Optional[int] = Field(default=587)
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: Optional[str] = Field(default="noreply@edureach360.com")
    SMTP_FROM_NAME: Optional[str] = Field(default="EduReach 360")
    SMTP_USE_TLS: bool = Field(default=True)
    ADMIN_EMAIL: str = Field(default="dmdm@iitgroup.in")
    EMAIL_RETRIES: int = Field(default=3, ge=0)
    EMAIL_RETRY_BASE_DELAY: float = Field(default=1.0, ge=0)

    # Razorpay
    RAZORPAY_KEY_ID: Optional[str] = None
    RAZORPAY_KEY_SECRET: Optional[str] = None
    RAZORPAY_API_URL: str = Field(default="https://api.razorpay.com/v1")
    DEFAULT_CURRENCY: str = Field(default="INR")

    # Lead scoring
    SCORE_HYSTERESIS: int = Field(default=5, ge=0)
    QUALIFIED_SCORE: int = Field(default=80)
    CONTACTED_SCORE: int = Field(default=50)
    NEW_SCORE: int = Field(default=30)
    STATUS_ALLOW_DOWNGRADE: bool = Field(default=False)
    RECENT_INTERACTION_DAYS: int = Field(default=7)
    SCORING_INTERACTION_LIMIT: int = Field(default=10)

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def resolve_sqlite_path(cls, v):
        """Anchor relative SQLite files to the backend folder"""
        prefix = "sqlite:///./"
        if v.startswith(prefix):
            return f"sqlite:///{BASE_DIR / v[len(prefix):]}"
        return v

try:
    settings = Settings()
except ValidationError as e:
    logger.error("Env validation failed:\n{}", e.json(indent=2))
    raise
