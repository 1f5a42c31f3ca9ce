from typing import Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PostgresSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    host: str = Field(default="localhost", alias="POSTGRES_HOST")
    port: int = Field(default=5432, alias="POSTGRES_DB_PORT")
    db_name: str = Field(default="flashcards", alias="POSTGRES_DB_NAME")
    user: str = Field(default="postgres", alias="POSTGRES_DB_USER")
    password: str = Field(default="postgres", alias="POSTGRES_DB_PASSWORD")
    # Full SQLAlchemy URL; wins over the individual fields when set
    url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    @computed_field
    def connection_string(self) -> str:
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db_name}"


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    name: str = Field(default="study-cards", alias="APP_NAME")
    version: str = Field(default="v1", alias="API_VERSION")
    port: int = Field(default=9000, alias="APP_PORT")
    mode: str = Field(default="prod", alias="MODE")
    jwt_secret: str = Field(alias="JWT_SECRET")
    token_lifetime_seconds: int = Field(
        default=3600, alias="JWT_TOKEN_LIFETIME_SECONDS"
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"], alias="CORS_ORIGINS"
    )

    @computed_field
    def is_production(self) -> bool:
        return self.mode != "dev"

    @computed_field
    def is_testing(self) -> bool:
        return self.mode == "test"


class GenerationSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    max_notes_chars: int = Field(default=20000, alias="GENERATION_MAX_NOTES_CHARS")
    max_cards: int = Field(default=50, alias="GENERATION_MAX_CARDS")
    # Per provider attempt, not for the whole retried call
    timeout_seconds: float = Field(default=60.0, alias="GENERATION_TIMEOUT_SECONDS")
    retry_attempts: int = Field(default=3, alias="GENERATION_RETRY_ATTEMPTS")
    retry_max_wait: float = Field(default=10.0, alias="GENERATION_RETRY_MAX_WAIT")
    default_confidence: float = Field(
        default=0.7, ge=0.0, le=1.0, alias="GENERATION_DEFAULT_CONFIDENCE"
    )

    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    openrouter_api_key: Optional[str] = Field(default=None, alias="OPENROUTER_API_KEY")

    # Model provider selection: "google" or "openrouter"
    model_provider: str = Field(default="google", alias="MODEL_PROVIDER")
    gemini_model: str = Field(default="gemini-2.0-flash", alias="GEMINI_MODEL")
    openrouter_model: str = Field(
        default="x-ai/grok-code-fast-1", alias="OPENROUTER_MODEL"
    )


class BillingSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    stripe_api_key: Optional[str] = Field(default=None, alias="STRIPE_API_KEY")
    stripe_webhook_secret: Optional[str] = Field(
        default=None, alias="STRIPE_WEBHOOK_SECRET"
    )
    stripe_pro_price_id: Optional[str] = Field(
        default=None, alias="STRIPE_PRO_PRICE_ID"
    )
    success_url: str = Field(
        default="http://localhost:3000/billing/success?session_id={CHECKOUT_SESSION_ID}",
        alias="BILLING_SUCCESS_URL",
    )
    cancel_url: str = Field(
        default="http://localhost:3000/billing/cancel", alias="BILLING_CANCEL_URL"
    )
    free_max_cards: int = Field(default=10, alias="PLAN_FREE_MAX_CARDS")
    pro_max_cards: int = Field(default=50, alias="PLAN_PRO_MAX_CARDS")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=lambda: AppSettings())
    postgres: PostgresSettings = Field(default_factory=lambda: PostgresSettings())
    generation: GenerationSettings = Field(default_factory=lambda: GenerationSettings())
    billing: BillingSettings = Field(default_factory=lambda: BillingSettings())


settings = Settings()
