import os
from pathlib import Path

from decouple import Config, RepositoryEnv
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = next(
    (p for p in Path(__file__).resolve().parents if (p / "main.py").exists()), Path.cwd()
)
BASE_DIR = PROJECT_ROOT

# Determine which env file to load
env_file = os.getenv("ENV_FILE", ".env")
env_path = PROJECT_ROOT / env_file

# Only use RepositoryEnv if the env file exists
if env_path.exists():
    config = Config(RepositoryEnv(env_path))
else:
    # fallback: read directly from os.environ using decouple's AutoConfig
    from decouple import AutoConfig

    config = AutoConfig(search_path=None)


class Settings(BaseSettings):
    # App general
    DEBUG: bool = config("DEBUG", default=False, cast=bool)
    APP_NAME: str = config("APP_NAME", default="CARE LOG")
    APP_VERSION: str = config("APP_VERSION", default="1.0.0")
    ENVIRONMENT: str = config("ENVIRONMENT", default="dev")
    APP_PORT: int = config("APP_PORT", default=8000, cast=int)
    APP_URL: str = config("APP_URL", default="http://localhost:3000")
    LOG_LEVEL: str = config("LOG_LEVEL", default="INFO")

    # Database
    DB_TYPE: str = config("DB_TYPE", default="postgresql")
    DB_HOST: str = config("DB_HOST", default="localhost")
    DB_PORT: int = config("DB_PORT", default=5432, cast=int)
    DB_USER: str = config("DB_USER", default="user")
    DB_PASS: str = config("DB_PASS", default="password")
    DB_NAME: str = config("DB_NAME", default="carelog")
    DB_ECHO: bool = config("DB_ECHO", default=False, cast=bool)

    # Redis / Celery broker
    REDIS_URL: str = config("REDIS_URL", default="redis://localhost:6379/0")

    # JWT Authentication
    JWT_SECRET: str = config("JWT_SECRET", default="your-super-secret-jwt-key-change-in-production")
    JWT_ALGORITHM: str = config("JWT_ALGORITHM", default="HS256")
    JWT_EXPIRY_HOURS: int = config("JWT_EXPIRY_HOURS", default=24, cast=int)

    # Mail (Mailgun SMTP relay)
    MAILGUN_DOMAIN: str = config("MAILGUN_DOMAIN", default="")
    MAILGUN_SMTP_PASSWORD: str = config("MAILGUN_SMTP_PASSWORD", default="")
    MAILGUN_API_KEY: str = config("MAILGUN_API_KEY", default="")
    MAIL_FROM: str = config("MAIL_FROM", default="")
    SMTP_SERVER: str = config("SMTP_SERVER", default="smtp.mailgun.org")
    SMTP_PORT: int = config("SMTP_PORT", default=587, cast=int)

    # Inbound webhooks
    WEBHOOK_MAX_AGE_SECONDS: int = config("WEBHOOK_MAX_AGE_SECONDS", default=900, cast=int)

    # Closing summaries (Gemini)
    LLM_API_KEY: str = config("LLM_API_KEY", default="")
    SUMMARY_MODELS: str = config(
        "SUMMARY_MODELS", default="gemini-2.5-pro,gemini-2.5-flash,gemini-2.0-flash"
    )
    SUMMARY_MAX_TOKENS: int = config("SUMMARY_MAX_TOKENS", default=300, cast=int)
    SUMMARY_TEMPERATURE: float = config("SUMMARY_TEMPERATURE", default=0.5, cast=float)
    SUMMARY_TIMEOUT_SECONDS: float = config("SUMMARY_TIMEOUT_SECONDS", default=30, cast=float)

    # Hardware CSV import
    HARDWARE_CSV_MAX_BYTES: int = config(
        "HARDWARE_CSV_MAX_BYTES", default=5 * 1024 * 1024, cast=int
    )
    HARDWARE_CSV_MAX_ROWS: int = config("HARDWARE_CSV_MAX_ROWS", default=500, cast=int)

    @property
    def SUMMARY_MODEL_LIST(self) -> list[str]:
        """Return the ordered list of candidate summary models.

        Examples:
            >>> settings.SUMMARY_MODEL_LIST[0]
            'gemini-2.5-pro'
        """

        return [m.strip() for m in self.SUMMARY_MODELS.split(",") if m.strip()]

    @property
    def SMTP_USERNAME(self) -> str:
        return f"postmaster@{self.MAILGUN_DOMAIN}"

    @property
    def MAIL_CONFIGURED(self) -> bool:
        return bool(self.MAILGUN_SMTP_PASSWORD and self.MAILGUN_DOMAIN)

    @property
    def MAIL_SENDER(self) -> str:
        return self.MAIL_FROM or f"{self.APP_NAME.title()} <support@{self.MAILGUN_DOMAIN}>"

    model_config = SettingsConfigDict(extra="allow")


settings = Settings()
