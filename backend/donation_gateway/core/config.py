from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""  # empty: webhook runs unverified
    stripe_webhook_tolerance: int = 300

    forward_hook_url: str = ""
    forward_hmac_secret: str = ""
    forward_timeout: float = 10.0
    forward_invoice_paid: bool = True

    exclude_emails: str = ""
    feed_bypass_consent: bool = False  # staging only
    feed_fetch_limit: int = 100
    feed_cache_seconds: int = 30

    allowed_origins: str = "http://localhost:3000,https://hyeoks-site.webflow.io"
    checkout_success_url: str = "https://hyeoks-site.webflow.io/donate/success"
    checkout_cancel_url: str = "https://hyeoks-site.webflow.io/donate/cancel"

    redis_url: str = "redis://localhost:6379/0"
    celery_task_always_eager: bool = False
    rate_limit_enabled: bool = True
    rate_limit_times: int = 60
    rate_limit_seconds: int = 60

    max_body_bytes: int = 1_048_576
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    @property
    def excluded_emails(self) -> frozenset[str]:
        return frozenset(
            e.strip().lower() for e in self.exclude_emails.split(",") if e.strip()
        )

    @property
    def origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
