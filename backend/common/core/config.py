from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.core.constants import Environment


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Environment Profile
    environment: Environment = Environment.LOCAL

    # API Settings
    app_name: str = "production-portal-billing"
    api_version: str = "v1"
    debug: bool = False

    # Database Components
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "production_portal"
    db_use_nullpool: bool = False  # True behind an external pooler
    db_pool_size: int = 10
    db_pool_overflow: int = 5

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Rate limiting storage ("memory://" or a redis:// URI)
    rate_limit_storage_uri: str = "memory://"

    # OpenTelemetry
    otel_service_name: str = "production-portal-billing"
    otel_service_version: str = "0.1.0"

    # Axiom (exporters are only attached when a token is configured)
    axiom_token: Optional[str] = None
    axiom_dataset: str = "production-portal"

    # Auth - JWTs issued by the hosted auth service
    supabase_jwt_secret: str = ""
    supabase_jwt_audience: str = "authenticated"

    # Frontend used for checkout redirects and e-mail links
    app_url: str = "https://production-portal.lovable.app"

    @property
    def cors_allowed_origins(self) -> List[str]:
        """Auto-select CORS origins based on environment."""
        if self.environment == Environment.LOCAL:
            return [
                "http://localhost:3000",
                "http://localhost:5173",
                "http://localhost:8080",
            ]
        return [self.app_url]

    # Billing - Stripe (payments)
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    # Stripe price IDs per tier and billing interval
    stripe_price_id_starter_monthly: str = "price_starter_monthly"
    stripe_price_id_starter_yearly: str = "price_starter_yearly"
    stripe_price_id_growth_monthly: str = "price_growth_monthly"
    stripe_price_id_growth_yearly: str = "price_growth_yearly"
    stripe_price_id_scale_monthly: str = "price_scale_monthly"
    stripe_price_id_scale_yearly: str = "price_scale_yearly"
    # Stripe product IDs per tier
    stripe_product_id_starter: str = "prod_starter"
    stripe_product_id_growth: str = "prod_growth"
    stripe_product_id_scale: str = "prod_scale"

    # Days a past_due factory keeps access after the first failed payment
    payment_grace_period_days: int = 7

    # Notifications - Resend
    resend_api_key: Optional[str] = None
    notification_from_email: str = "ProductionPortal <notifications@resend.dev>"


settings = Settings()
