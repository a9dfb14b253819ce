from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseSettings):
    # App
    app_env: Literal["production", "development"] = "production"
    log_level: str = "INFO"
    port: int = 3000

    # Callers
    api_keys: str = ""
    trusted_origins: str = ""
    trust_proxy: bool = False

    # Rate limiting
    rate_limit_window_ms: int = 15 * 60 * 1000
    rate_limit_max: int = 100
    rate_limit_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://redis:6379/0"

    # Delivery
    mail_transport: Literal["auto", "smtp", "console"] = "auto"
    smtp_host: str = "localhost"
    smtp_port: int = 465
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_start_tls: bool = False
    smtp_timeout_seconds: float = 30.0
    attachment_fetch_timeout_seconds: float = 10.0
    attachment_max_bytes: int = 10 * 1024 * 1024

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def api_key_list(self) -> list[str]:
        return _split_csv(self.api_keys)

    @property
    def trusted_origin_list(self) -> list[str]:
        return _split_csv(self.trusted_origins)

    @property
    def resolved_mail_transport(self) -> Literal["smtp", "console"]:
        if self.mail_transport == "auto":
            return "console" if self.is_development else "smtp"
        return self.mail_transport


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
