# ================================================================
# services/catalog.py — the one product table both providers read
# ================================================================
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from models.models import Phase
from services import email_templates


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    description: str
    # Stripe charges in USD cents
    price_usd_cents: int
    # MercadoPago Checkout Pro charges in ARS
    price_ars: float
    notification_message: str
    email_subject: str
    email_template: Callable[[str], str]
    grants_phase: Optional[Phase] = None
    grants_bot: bool = False

    @property
    def price_usd(self) -> float:
        return self.price_usd_cents / 100

    def price_for(self, provider: str) -> float:
        """List price in the currency ``provider`` charges (USD for Stripe, ARS for MercadoPago)."""
        return self.price_usd if provider == "stripe" else self.price_ars

    def concept(self, provider_label: str) -> str:
        """Payment concept label stored with every payment row."""
        return f"{self.short_name} ({provider_label})"

    @property
    def short_name(self) -> str:
        return "Curso Fase 1" if self.grants_phase else "Bot de Trading"


PHASE_1 = "fase1"
BOT = "bot"

PRODUCTS: Dict[str, Product] = {
    PHASE_1: Product(
        id=PHASE_1,
        name="Curso de Trading — Fase 1",
        description="Acceso completo: 2 sistemas de trading, preparacion del grafico, glosario y consejos",
        price_usd_cents=1000,
        price_ars=9999,
        notification_message="Tu acceso está activo. Empezá por el módulo de Preparación del Gráfico en tu dashboard.",
        email_subject="¡Tu acceso está activo! — Orbita Capital",
        email_template=email_templates.welcome_phase1_email,
        grants_phase=Phase.PHASE_1,
    ),
    BOT: Product(
        id=BOT,
        name="Bot de Trading — Suscripcion Mensual",
        description="Bot automatizado configurado por Orbita Capital, opera 24/7",
        price_usd_cents=500,
        price_ars=7500,
        notification_message="Tu bot de trading está activo. Descargalo desde la sección Bot en tu dashboard.",
        email_subject="¡Tu bot está listo! — Orbita Capital",
        email_template=email_templates.welcome_bot_email,
        grants_bot=True,
    ),
}

WELCOME_NOTIFICATION_TITLE = "¡Bienvenido a Orbita Capital!"


def get_product(product_id: Optional[str]) -> Optional[Product]:
    if not product_id:
        return None
    return PRODUCTS.get(product_id)
