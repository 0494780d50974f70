# ================================================================
# services/payment_service.py — Stripe Checkout + PaymentIntents
# ================================================================
import json
import logging
from typing import Any, Dict, Optional

import stripe
from fastapi import Depends

from core.config import Settings, get_settings
from services.catalog import Product

logger = logging.getLogger(__name__)


class PaymentProviderError(Exception):
    """A payment provider call failed or answered with an error."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class StripeGateway:
    """Thin wrapper over the Stripe SDK used by the checkout and webhook routes."""

    provider = "stripe"

    def __init__(self, settings: Settings):
        self.settings = settings
        self.webhook_secret = settings.STRIPE_WEBHOOK_SECRET
        stripe.api_key = settings.STRIPE_SECRET_KEY

    @staticmethod
    def _metadata(product: Product, user_id: str, user_email: str, user_nombre: Optional[str]) -> Dict[str, str]:
        return {
            "user_id": user_id,
            "producto_id": product.id,
            "user_email": user_email,
            "user_nombre": user_nombre or "",
        }

    # ------------------------
    # Hosted Checkout
    # ------------------------
    def create_checkout_session(
        self,
        product: Product,
        user_id: str,
        user_email: str,
        user_nombre: Optional[str] = None,
    ) -> Dict[str, Any]:
        site_url = self.settings.SITE_URL
        try:
            session = stripe.checkout.Session.create(
                payment_method_types=["card"],
                mode="payment",
                customer_email=user_email,
                line_items=[{
                    "price_data": {
                        "currency": "usd",
                        "product_data": {
                            "name": product.name,
                            "description": product.description,
                            "images": [f"{site_url}/assets/img/branding/logo.png"],
                        },
                        "unit_amount": product.price_usd_cents,
                    },
                    "quantity": 1,
                }],
                metadata=self._metadata(product, user_id, user_email, user_nombre),
                success_url=self.settings.payment_result_url("success", "stripe", product.id),
                cancel_url=self.settings.payment_result_url("failure", "stripe"),
            )
        except stripe.StripeError as e:
            raise PaymentProviderError(self.provider, str(e)) from e

        logger.info(f"✅ Stripe checkout session {session.id} created for product {product.id}")
        return {"sessionId": session.id, "url": session.url}

    # ------------------------
    # Embedded Payment Element
    # ------------------------
    def create_payment_intent(
        self,
        product: Product,
        user_id: str,
        user_email: str,
        user_nombre: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            intent = stripe.PaymentIntent.create(
                amount=product.price_usd_cents,
                currency="usd",
                description=product.name,
                receipt_email=user_email,
                metadata=self._metadata(product, user_id, user_email, user_nombre),
                automatic_payment_methods={"enabled": True},
            )
        except stripe.StripeError as e:
            raise PaymentProviderError(self.provider, str(e)) from e

        logger.info(f"✅ Stripe PaymentIntent {intent.id} created for product {product.id}")
        return {"clientSecret": intent.client_secret}

    # ------------------------
    # Webhooks
    # ------------------------
    def construct_event(self, payload: bytes, sig_header: str) -> Dict[str, Any]:
        """
        Verify the Stripe-Signature header and parse the event into a plain dict.
        Raises ValueError (bad payload) or stripe.SignatureVerificationError.
        """
        stripe.Webhook.construct_event(
            payload=payload,
            sig_header=sig_header,
            secret=self.webhook_secret,
        )
        return json.loads(payload)


def get_stripe_gateway(settings: Settings = Depends(get_settings)) -> StripeGateway:
    return StripeGateway(settings)
