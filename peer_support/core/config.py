from typing import Any, List
from pydantic import AnyHttpUrl, field_validator, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Application configuration settings.

    Loads values from environment variables or .env file.
    """
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "ESN Peer Support"

    # SECURITY
    SECRET_KEY: str = Field(description="Secret key for JWT encoding")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # DATABASE
    DATABASE_URL: str = Field(description="SQLAlchemy async connection URL")

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    # Registration is restricted to campus addresses when set, e.g. "@my.fisk.edu"
    ALLOWED_EMAIL_DOMAIN: str | None = None
    VERIFY_EMAIL_URL: str = "https://esn.app/verify-email"

    # EMAIL
    SMTP_TLS: bool = True
    SMTP_PORT: int | None = 587
    SMTP_HOST: str | None = None
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    EMAILS_FROM_EMAIL: str | None = "info@esn.app"
    EMAILS_FROM_NAME: str | None = "ESN"

    # CELERY
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"

    # RATE LIMITING
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Any) -> Any:
        """
        Parses comma-separated string of CORS origins into a list.
        """
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    @field_validator("ALLOWED_EMAIL_DOMAIN")
    @classmethod
    def normalize_email_domain(cls, v: str | None) -> str | None:
        if not v:
            return None
        v = v.strip().lower()
        return v if v.startswith("@") else f"@{v}"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

settings = Settings()
