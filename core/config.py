# ==================================================================================
# core/config.py — Orbita Capital configuration (Resend + Stripe + MercadoPago)
# ==================================================================================
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import ValidationError
import sys


class Settings(BaseSettings):
    # ------------------------
    # DATABASE CONFIG
    # ------------------------
    DATABASE_URL: str = "sqlite:///./orbita.db"

    # ------------------------
    # SECURITY CONFIG
    # ------------------------
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    EMAIL_TOKEN_EXPIRE_MINUTES: int = 60
    REQUIRE_EMAIL_CONFIRMATION: bool = True

    # ------------------------
    # RESEND EMAIL CONFIG
    # ------------------------
    RESEND_API_KEY: str | None = None
    MAIL_FROM: str | None = None  # Example: "Orbita Capital <hola@orbitacapital.io>"

    # ------------------------
    # SITE CONFIG
    # ------------------------
    SITE_URL: str = "https://binaryedgeacademy.com"
    INSTAGRAM_URL: str = "https://instagram.com/orbitacapital.io"
    BACKEND_URL: str = "http://localhost:8000"
    CORS_ORIGINS: List[str] = ["*"]

    # ------------------------
    # STRIPE / PAYMENT CONFIG
    # ------------------------
    STRIPE_SECRET_KEY: str | None = None
    STRIPE_PUBLISHABLE_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None

    # ------------------------
    # MERCADOPAGO CONFIG
    # ------------------------
    MERCADOPAGO_ACCESS_TOKEN: str | None = None
    MERCADOPAGO_PUBLIC_KEY: str | None = None
    MERCADOPAGO_STATEMENT_DESCRIPTOR: str = "ORBITA CAPITAL"

    @property
    def DASHBOARD_URL(self) -> str:
        return f"{self.SITE_URL}/dashboard.html"

    @property
    def LOGIN_URL(self) -> str:
        return f"{self.SITE_URL}/iniciar-sesion.html"

    def payment_result_url(self, status: str, provider: str, producto_id: str | None = None) -> str:
        """
        Landing page the providers send the buyer back to.
        Stripe keeps its own {CHECKOUT_SESSION_ID} placeholder.
        """
        url = f"{self.SITE_URL}/pago-resultado.html?status={status}&provider={provider}"
        if producto_id:
            url += f"&producto={producto_id}"
        if provider == "stripe" and status == "success":
            url += "&session_id={CHECKOUT_SESSION_ID}"
        return url

    @property
    def MERCADOPAGO_NOTIFICATION_URL(self) -> str:
        return f"{self.BACKEND_URL}/api/mercadopago-webhook"

    # ------------------------
    # ENVIRONMENT SETTINGS
    # ------------------------
    ENVIRONMENT: str = "development"  # 'development' | 'production'
    DEBUG: bool = True

    # ------------------------
    # Pydantic v2 Settings
    # ------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignores unknown env vars (Netlify/Render defaults)
    )


# ------------------------
# Global Settings Loader
# ------------------------
try:
    settings = Settings()
    print("✅ Environment variables loaded successfully.")
    print(f"🌍 Environment: {settings.ENVIRONMENT}, Debug: {settings.DEBUG}")
except ValidationError as e:
    print("❌ Environment configuration error — missing or invalid settings!")
    print(e)
    sys.exit(1)


def get_settings() -> Settings:
    """FastAPI dependency; tests override it with their own Settings."""
    return settings
