"""Application configuration."""

import secrets
import warnings
from typing import Any, Literal, Self

from pydantic import EmailStr, computed_field, field_validator, model_validator
from pydantic_core import MultiHostUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GUARDS: dict[str, dict[str, Any]] = {
    "web": {
        "provider": "users",
        "link_expiration": None,
        "redirect_on_success": "/dashboard",
    },
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "Magic Link Auth"
    SERVER_PORT: int = 8000
    ROOTPATH: str = ""
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8  # 8 days
    FRONTEND_HOST: str = "http://localhost:3000"
    BACKEND_HOST: str = "http://localhost:8000"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    JWT_ALGORITHM: str = "HS256"

    # Magic link
    MAGIC_LINK_EXPIRE_MINUTES: int = 15  # 默认有效期（分钟）
    MAGIC_AUTH_GUARDS: dict[str, dict[str, Any]] = DEFAULT_GUARDS
    MAGIC_AUTH_THROTTLE_MAX_ATTEMPTS: int = 5
    MAGIC_AUTH_THROTTLE_DECAY_MINUTES: int = 10
    MAGIC_AUTH_RATE_LIMIT_BACKEND: Literal["redis", "memory"] = "redis"
    MAGIC_AUTH_CHANNELS_DEFAULT: list[str] = ["mail"]
    MAGIC_AUTH_CHANNELS_AVAILABLE: list[str] = ["mail", "whatsapp", "sms"]
    MAGIC_AUTH_MAIL_SUBJECT: str = "Your Magic Login Link"
    MAGIC_AUTH_SMS_MESSAGE: str = (
        "Your :app login link: :url (expires in :minutes minutes)"
    )
    MAGIC_AUTH_WHATSAPP_MESSAGE: str = (
        "Your login link for :app\n\n"
        "Click here to login: :url\n\n"
        "This link will expire in :minutes minutes."
    )
    MAGIC_AUTH_VERIFY_PATH: str = "/auth/verify"
    # 验证失败时跳转的页面，未设置则返回 400
    MAGIC_AUTH_FAILURE_REDIRECT: str | None = None
    # 未配置外部投递通道时仅打印链接（本地开发）
    MAGIC_AUTH_LOG_ONLY_DELIVERY: bool = False
    ACCESS_TOKEN_COOKIE_NAME: str = "access_token"
    ACCESS_TOKEN_COOKIE_SECURE: bool = False

    @field_validator("MAGIC_AUTH_CHANNELS_DEFAULT", "MAGIC_AUTH_CHANNELS_AVAILABLE")
    @classmethod
    def _normalize_channels(cls, value: list[str]) -> list[str]:
        return [channel.strip().lower() for channel in value if channel.strip()]

    @computed_field
    @property
    def magic_link_verify_url(self) -> str:
        return f"{self.BACKEND_HOST.rstrip('/')}{self.API_V1_STR}{self.MAGIC_AUTH_VERIFY_PATH}"

    # PostgreSQL
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "magic_auth"

    @computed_field
    @property
    def database_url_object(self) -> MultiHostUrl:
        return MultiHostUrl.build(
            scheme="postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        return str(self.database_url_object)

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # SMTP
    SMTP_TLS: bool = True
    SMTP_SSL: bool = False
    SMTP_PORT: int = 587
    SMTP_HOST: str | None = None
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    EMAILS_FROM_EMAIL: EmailStr | None = None
    EMAILS_FROM_NAME: str | None = None

    @model_validator(mode="after")
    def _set_default_emails_from(self) -> Self:
        if not self.EMAILS_FROM_NAME:
            self.EMAILS_FROM_NAME = self.PROJECT_NAME
        return self

    @computed_field
    @property
    def emails_enabled(self) -> bool:
        return bool(self.SMTP_HOST and self.EMAILS_FROM_EMAIL)

    # Twilio（短信 / WhatsApp）
    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_SMS_FROM: str | None = None
    TWILIO_WHATSAPP_FROM: str | None = None
    TWILIO_API_BASE: str = "https://api.twilio.com/2010-04-01"
    TWILIO_TIMEOUT_SECONDS: float = 10.0

    @computed_field
    @property
    def twilio_enabled(self) -> bool:
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN)

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("SECRET_KEY", self.SECRET_KEY)
        return self


settings = Settings()
