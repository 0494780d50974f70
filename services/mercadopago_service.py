# ================================================================
# services/mercadopago_service.py — Checkout Pro, Bricks, Payments API
# ================================================================
import json
import logging
from typing import Any, Dict, Generator, Optional
from uuid import uuid4

import httpx
from fastapi import Depends

from core.config import Settings, get_settings
from services.catalog import Product
from services.payment_service import PaymentProviderError

logger = logging.getLogger(__name__)

MERCADOPAGO_API_URL = "https://api.mercadopago.com"


class MercadoPagoGateway:
    """Client for the MercadoPago REST API, authenticated with the access token."""

    provider = "mercadopago"

    def __init__(self, settings: Settings, http: Optional[httpx.Client] = None):
        self.settings = settings
        self.configured = bool(settings.MERCADOPAGO_ACCESS_TOKEN)
        # A client passed in belongs to the caller
        self._owns_http = http is None and self.configured
        if self._owns_http:
            http = httpx.Client(
                base_url=MERCADOPAGO_API_URL,
                headers={"Authorization": f"Bearer {settings.MERCADOPAGO_ACCESS_TOKEN}"},
                timeout=15.0,
            )
        self.http = http

    def close(self) -> None:
        if self._owns_http and self.http is not None:
            self.http.close()

    def _request(self, method: str, path: str, action: str, **kwargs) -> httpx.Response:
        if not self.configured or self.http is None:
            raise PaymentProviderError(self.provider, "MERCADOPAGO_ACCESS_TOKEN is not configured")
        try:
            return self.http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise PaymentProviderError(self.provider, f"{action} failed: {e}") from e

    def _unwrap(self, response: httpx.Response, action: str) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 400:
            message = body.get("message") if isinstance(body, dict) else None
            raise PaymentProviderError(self.provider, f"{action} failed ({response.status_code}): {message}")
        return body

    # ------------------------
    # Checkout Pro preference
    # ------------------------
    def create_preference(
        self,
        product: Product,
        user_id: str,
        user_email: str,
        user_nombre: Optional[str] = None,
    ) -> Dict[str, Any]:
        preference_data = {
            "items": [{
                "id": product.id,
                "title": product.name,
                "description": product.description,
                "quantity": 1,
                "unit_price": product.price_ars,
                "currency_id": "ARS",
            }],
            "payer": {"email": user_email, "name": user_nombre or ""},
            "back_urls": {
                "success": self.settings.payment_result_url("success", self.provider, product.id),
                "failure": self.settings.payment_result_url("failure", self.provider),
                "pending": self.settings.payment_result_url("pending", self.provider),
            },
            "auto_return": "approved",
            "notification_url": self.settings.MERCADOPAGO_NOTIFICATION_URL,
            # Only link between this checkout and the later webhook
            "external_reference": json.dumps({"user_id": user_id, "producto_id": product.id}),
            "metadata": {"user_id": user_id, "producto_id": product.id, "user_email": user_email},
            "statement_descriptor": self.settings.MERCADOPAGO_STATEMENT_DESCRIPTOR,
        }
        response = self._request("POST", "/checkout/preferences", "preference", json=preference_data)
        preference = self._unwrap(response, "preference")

        logger.info(f"✅ MercadoPago preference {preference.get('id')} created for product {product.id}")
        return {
            "id": preference.get("id"),
            "init_point": preference.get("init_point"),
            "sandbox_init_point": preference.get("sandbox_init_point"),
        }

    # ------------------------
    # Checkout Bricks (tokenized card)
    # ------------------------
    def process_card_payment(self, product: Product, data: Dict[str, Any]) -> Dict[str, Any]:
        """Charge the catalog price of ``product``; the amount posted by the browser is not used."""
        payer = data["payer"]

        body = {
            "token": data["token"],
            "payment_method_id": data["payment_method_id"],
            "transaction_amount": float(product.price_ars),
            "installments": int(data.get("installments") or 1),
            "payer": {"email": payer["email"]},
            "description": product.name,
            "statement_descriptor": self.settings.MERCADOPAGO_STATEMENT_DESCRIPTOR,
            "metadata": {"user_id": data.get("user_id") or "", "producto_id": product.id},
        }
        if data.get("issuer_id"):
            body["issuer_id"] = data["issuer_id"]
        if payer.get("identification"):
            body["payer"]["identification"] = payer["identification"]

        response = self._request(
            "POST",
            "/v1/payments",
            "payment",
            json=body,
            headers={"X-Idempotency-Key": str(uuid4())},
        )
        payment = self._unwrap(response, "payment")

        logger.info(f"💳 MercadoPago payment {payment.get('id')} created: {payment.get('status')}")
        return {
            "status": payment.get("status"),
            "status_detail": payment.get("status_detail"),
            "id": payment.get("id"),
        }

    # ------------------------
    # Canonical payment state
    # ------------------------
    def get_payment(self, payment_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a payment by id; None when MercadoPago does not know it."""
        response = self._request("GET", f"/v1/payments/{payment_id}", "payment lookup")
        if response.status_code == 404:
            return None
        return self._unwrap(response, "payment lookup")


def get_mercadopago_gateway(settings: Settings = Depends(get_settings)) -> Generator[MercadoPagoGateway, None, None]:
    """One gateway per request, built from the injected settings; its HTTP client is closed afterwards."""
    gateway = MercadoPagoGateway(settings)
    try:
        yield gateway
    finally:
        gateway.close()
