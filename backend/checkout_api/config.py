from __future__ import annotations

from dataclasses import dataclass

from pydantic import AliasChoices, AnyUrl, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import CheckoutConfigError
from .utils.site_url import build_site_url

TAX_RATE_ENV_VAR = "STRIPE_TAX_RATE_ID"
STRIPE_SECRET_ENV_VAR = "STRIPE_SECRET_KEY"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"), extra="ignore", populate_by_name=True
    )

    supabase_url: AnyUrl | None = None
    supabase_jwks_url: AnyUrl | None = Field(
        default=None, validation_alias=AliasChoices("SUPABASE_JWKS_URL")
    )
    supabase_jwt_issuer: str | None = Field(
        default=None, validation_alias=AliasChoices("SUPABASE_JWT_ISSUER")
    )
    supabase_jwt_secret: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_JWT_SECRET", "JWT_SECRET"),
    )
    supabase_db_url: AnyUrl | None = None
    database_url: AnyUrl | None = None
    stripe_secret_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "STRIPE_SECRET_KEY",
            "STRIPE_TEST_SECRET_KEY",
            "STRIPE_LIVE_SECRET_KEY",
        ),
    )
    stripe_tax_rate_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            TAX_RATE_ENV_VAR,
            "NEXT_PUBLIC_FRANCE_TAX_RATE_ID",
        ),
    )
    site_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SITE_URL", "NEXT_PUBLIC_SITE_URL"),
    )
    vercel_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("VERCEL_URL", "NEXT_PUBLIC_VERCEL_URL"),
    )
    cors_allow_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    sentry_dsn: str | None = Field(
        default=None, validation_alias=AliasChoices("SENTRY_DSN", "BACKEND_SENTRY_DSN")
    )
    sentry_traces_sample_rate: float = Field(
        default=0.0,
        validation_alias=AliasChoices(
            "SENTRY_TRACES_SAMPLE_RATE",
            "BACKEND_SENTRY_TRACES_SAMPLE_RATE",
        ),
    )
    sentry_environment: str | None = Field(
        default=None, validation_alias=AliasChoices("SENTRY_ENVIRONMENT")
    )

    @model_validator(mode="after")
    def _populate_database_url(self):
        if self.database_url is None:
            if self.supabase_db_url is None:
                raise ValueError("DATABASE_URL or SUPABASE_DB_URL is required")
            self.database_url = self.supabase_db_url
        return self

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("stripe_tax_rate_id", "stripe_secret_key", "site_url", "vercel_url")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None


@dataclass(frozen=True)
class CheckoutConfig:
    """Values the checkout handler needs, resolved once when the app starts."""

    tax_rate_id: str
    site_url: str

    @classmethod
    def from_settings(cls, source: Settings) -> "CheckoutConfig":
        if not source.stripe_tax_rate_id:
            raise CheckoutConfigError(f"Env variable {TAX_RATE_ENV_VAR} needs to be set.")
        return cls(
            tax_rate_id=source.stripe_tax_rate_id,
            site_url=build_site_url(source.site_url, source.vercel_url),
        )


settings = Settings()
