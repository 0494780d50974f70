# routes/payment.py — checkout initiators, public config and payment webhooks
import json
import logging
from typing import Any, Dict, Optional

import stripe
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlmodel import Session

from core.config import Settings, get_settings
from core.database import get_session
from schemas.payment_schema import (
    CardPaymentRequest, CardPaymentResponse, CheckoutRequest, CheckoutSessionResponse,
    PaymentConfigResponse, PaymentIntentResponse, PreferenceResponse,
)
from services.catalog import Product, get_product
from services.email_service import EmailService, get_email_service
from services.mercadopago_service import MercadoPagoGateway, get_mercadopago_gateway
from services.payment_service import PaymentProviderError, StripeGateway, get_stripe_gateway
from services.reconciliation import ReconciliationResult, reconcile_payment

router = APIRouter(prefix="/api", tags=["Payments"])
logger = logging.getLogger(__name__)

# Stripe events that carry a payment outcome; everything else is acknowledged and ignored
STRIPE_PAYMENT_EVENTS = {
    "checkout.session.completed",
    "payment_intent.succeeded",
    "payment_intent.payment_failed",
}
MERCADOPAGO_PAYMENT_ACTIONS = {"payment.created", "payment.updated"}

# Webhook URLs are also hit by browsers and provider health checks
ACK_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE"]


# -------------------------
# Helper Functions
# -------------------------
def require_product(data: CheckoutRequest) -> Product:
    """Validate a checkout request before any provider is contacted."""
    if not data.producto_id or not data.user_id or not data.user_email:
        raise HTTPException(status_code=400, detail="Faltan datos requeridos")

    product = get_product(data.producto_id)
    if not product:
        raise HTTPException(status_code=400, detail="Producto no valido")
    return product


def schedule_purchase_email(
    background_tasks: BackgroundTasks,
    email_service: EmailService,
    result: ReconciliationResult,
    product: Product,
) -> None:
    if result.granted:
        background_tasks.add_task(
            email_service.send_purchase_confirmation,
            result.profile.email,
            result.profile.nombre,
            product,
        )


def ack(content: Optional[Dict[str, Any]] = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content or {"received": True})


# -------------------------
# Public configuration
# -------------------------
@router.get("/payment-config", response_model=PaymentConfigResponse)
def payment_config(settings: Settings = Depends(get_settings)):
    """Publishable keys for the front-end SDKs. Never returns secrets."""
    return PaymentConfigResponse(
        stripe_publishable_key=settings.STRIPE_PUBLISHABLE_KEY or "",
        mercadopago_public_key=settings.MERCADOPAGO_PUBLIC_KEY or "",
    )


# -------------------------
# Stripe checkout
# -------------------------
@router.post("/stripe-create", response_model=CheckoutSessionResponse)
def stripe_create_checkout(data: CheckoutRequest, gateway: StripeGateway = Depends(get_stripe_gateway)):
    """Create a hosted Stripe Checkout session (USD)."""
    product = require_product(data)
    try:
        return gateway.create_checkout_session(product, data.user_id, data.user_email, data.user_nombre)
    except PaymentProviderError as e:
        logger.error(f"❌ Stripe checkout error: {e}")
        raise HTTPException(status_code=500, detail="Error al crear la sesion de pago")


@router.post("/stripe-create-intent", response_model=PaymentIntentResponse)
def stripe_create_intent(data: CheckoutRequest, gateway: StripeGateway = Depends(get_stripe_gateway)):
    """Create a PaymentIntent for the embedded Stripe Payment Element."""
    product = require_product(data)
    try:
        return gateway.create_payment_intent(product, data.user_id, data.user_email, data.user_nombre)
    except PaymentProviderError as e:
        logger.error(f"❌ Stripe PaymentIntent error: {e}")
        raise HTTPException(status_code=500, detail="Error al crear el pago")


# -------------------------
# MercadoPago checkout
# -------------------------
@router.post("/mercadopago-create", response_model=PreferenceResponse)
def mercadopago_create_preference(
    data: CheckoutRequest,
    gateway: MercadoPagoGateway = Depends(get_mercadopago_gateway),
):
    """Create a Checkout Pro preference (ARS)."""
    product = require_product(data)
    try:
        return gateway.create_preference(product, data.user_id, data.user_email, data.user_nombre)
    except PaymentProviderError as e:
        logger.error(f"❌ MercadoPago preference error: {e}")
        raise HTTPException(status_code=500, detail="Error al crear la preferencia de pago")


@router.post("/mercadopago-process", response_model=CardPaymentResponse)
def mercadopago_process_payment(
    data: CardPaymentRequest,
    gateway: MercadoPagoGateway = Depends(get_mercadopago_gateway),
):
    """Charge a card tokenized by Checkout Bricks. Access is granted by the webhook."""
    if (
        not data.token
        or not data.payment_method_id
        or not data.transaction_amount
        or not data.payer
        or not data.payer.email
    ):
        raise HTTPException(status_code=400, detail="Faltan datos de pago")

    product = get_product(data.producto_id)
    if not product:
        raise HTTPException(status_code=400, detail="Producto no valido")
    if round(data.transaction_amount, 2) != round(product.price_ars, 2):
        logger.warning(
            f"❌ Card payment for {product.id} posted {data.transaction_amount} ARS, price is {product.price_ars}"
        )
        raise HTTPException(status_code=400, detail="Monto no valido")

    try:
        return gateway.process_card_payment(product, data.model_dump())
    except PaymentProviderError as e:
        logger.error(f"❌ MercadoPago process error: {e}")
        raise HTTPException(status_code=500, detail="Error al procesar el pago")


# -------------------------
# Stripe webhook
# -------------------------
@router.api_route("/stripe-webhook", methods=ACK_METHODS)
def stripe_webhook_ack():
    return ack()


@router.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    email_service: EmailService = Depends(get_email_service),
):
    """Verify the signature, then reconcile payment events."""
    payload = await request.body()
    # Session and SDK calls block, so they run in the threadpool
    return await run_in_threadpool(
        handle_stripe_webhook,
        payload,
        request.headers.get("stripe-signature"),
        session,
        gateway,
        background_tasks,
        email_service,
    )


def handle_stripe_webhook(
    payload: bytes,
    sig_header: Optional[str],
    session: Session,
    gateway: StripeGateway,
    background_tasks: BackgroundTasks,
    email_service: EmailService,
) -> JSONResponse:
    if not gateway.webhook_secret:
        logger.error("❌ STRIPE_WEBHOOK_SECRET not configured - rejecting webhook")
        return ack({"error": "Webhook secret not configured"}, status_code=500)

    if not sig_header:
        logger.warning("❌ Missing stripe-signature header")
        return ack({"error": "Missing signature"}, status_code=400)

    try:
        event = gateway.construct_event(payload, sig_header)
    except ValueError as e:
        logger.warning(f"❌ Invalid payload: {e}")
        return ack({"error": "Invalid payload"}, status_code=400)
    except stripe.SignatureVerificationError:
        logger.warning("❌ Webhook signature verification failed")
        return ack({"error": "Invalid signature"}, status_code=400)

    event_type = event["type"]
    if event_type not in STRIPE_PAYMENT_EVENTS:
        logger.info(f"ℹ️ Ignoring Stripe event type: {event_type}")
        return ack({"received": True, "type": event_type})

    # From here on every outcome is a 200 so Stripe does not retry
    try:
        return reconcile_stripe_object(event_type, event["data"]["object"], session, background_tasks, email_service)
    except Exception as e:
        session.rollback()
        logger.exception(f"❌ Stripe webhook error while processing {event_type}: {e}")
        return ack({"error": "Internal error"})


def reconcile_stripe_object(
    event_type: str,
    data_object,
    session: Session,
    background_tasks: BackgroundTasks,
    email_service: EmailService,
) -> JSONResponse:
    metadata = data_object.get("metadata") or {}
    user_id = metadata.get("user_id")
    product = get_product(metadata.get("producto_id"))

    if not user_id or not product:
        logger.error(f"❌ Missing user_id or producto_id in Stripe {event_type} metadata")
        return ack({"error": "Missing metadata"})

    if event_type == "checkout.session.completed":
        provider_status = data_object.get("payment_status")
        amount_cents = data_object.get("amount_total") or 0
        extra = {
            "customer_email": data_object.get("customer_email"),
            "payment_intent": data_object.get("payment_intent"),
        }
    else:
        provider_status = data_object.get("status")
        amount_cents = data_object.get("amount_received") or data_object.get("amount") or 0
        error = data_object.get("last_payment_error") or {}
        extra = {
            "receipt_email": data_object.get("receipt_email"),
            "failure_message": error.get("message"),
        }

    result = reconcile_payment(
        session,
        provider="stripe",
        provider_payment_id=data_object["id"],
        provider_status=provider_status,
        user_id=user_id,
        product=product,
        monto=round(amount_cents / 100, 2),
        moneda=(data_object.get("currency") or "usd").upper(),
        metadata=extra,
    )
    schedule_purchase_email(background_tasks, email_service, result, product)

    logger.info(
        f"[Stripe Webhook] {data_object['id']} - Status: {provider_status} → {result.estado.value} "
        f"- User: {user_id} - Product: {product.id}"
    )
    return ack({"success": True, "status": result.estado.value})


# -------------------------
# MercadoPago webhook
# -------------------------
@router.api_route("/mercadopago-webhook", methods=ACK_METHODS)
def mercadopago_webhook_ack():
    return ack()


def parse_external_reference(payment: Dict[str, Any]) -> Dict[str, Any]:
    """external_reference holds the JSON written at checkout; metadata is the fallback."""
    try:
        reference = json.loads(payment.get("external_reference") or "")
    except (TypeError, ValueError):
        reference = None
    if not isinstance(reference, dict):
        reference = {}

    metadata = payment.get("metadata") or {}
    return {
        "user_id": reference.get("user_id") or metadata.get("user_id"),
        "producto_id": reference.get("producto_id") or metadata.get("producto_id"),
    }


@router.post("/mercadopago-webhook")
async def mercadopago_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    gateway: MercadoPagoGateway = Depends(get_mercadopago_gateway),
    email_service: EmailService = Depends(get_email_service),
):
    """
    MercadoPago notifications are not signed here: the payment id in the
    body is re-fetched from the MercadoPago API and only that canonical
    state is trusted.
    """
    try:
        body = json.loads(await request.body() or b"{}")
    except ValueError:
        return ack({"error": "Invalid JSON"})
    if not isinstance(body, dict):
        return ack({"ignored": True})

    if body.get("type") != "payment" and body.get("action") not in MERCADOPAGO_PAYMENT_ACTIONS:
        return ack({"ignored": True})

    payment_id = (body.get("data") or {}).get("id")
    if not payment_id:
        return ack({"error": "No payment ID"})

    if not gateway.configured:
        logger.error("❌ MERCADOPAGO_ACCESS_TOKEN not configured - cannot verify payment")
        return ack({"error": "MercadoPago not configured"}, status_code=500)

    # The payment lookup and the session block, so they run in the threadpool
    return await run_in_threadpool(
        reconcile_mercadopago_payment,
        str(payment_id),
        session,
        gateway,
        background_tasks,
        email_service,
    )


def reconcile_mercadopago_payment(
    payment_id: str,
    session: Session,
    gateway: MercadoPagoGateway,
    background_tasks: BackgroundTasks,
    email_service: EmailService,
) -> JSONResponse:
    try:
        payment = gateway.get_payment(payment_id)
        if payment is None:
            return ack({"error": "Payment not found"}, status_code=404)

        reference = parse_external_reference(payment)
        user_id = reference["user_id"]
        product = get_product(reference["producto_id"])
        if not user_id or not product:
            logger.error("❌ Missing user_id or producto_id in MercadoPago payment metadata")
            return ack({"error": "Missing metadata"})

        payer = payment.get("payer") or {}
        result = reconcile_payment(
            session,
            provider="mercadopago",
            provider_payment_id=payment_id,
            provider_status=payment.get("status"),
            user_id=user_id,
            product=product,
            monto=float(payment.get("transaction_amount") or 0),
            moneda=payment.get("currency_id") or "ARS",
            metadata={
                "payment_method_id": payment.get("payment_method_id"),
                "payment_type_id": payment.get("payment_type_id"),
                "payer_email": payer.get("email"),
            },
        )
        schedule_purchase_email(background_tasks, email_service, result, product)

        logger.info(
            f"[MP Webhook] Payment {payment_id} - Status: {payment.get('status')} "
            f"- User: {user_id} - Product: {product.id}"
        )
        return ack({"success": True, "status": result.estado.value})

    except Exception as e:
        session.rollback()
        logger.exception(f"❌ MercadoPago webhook error: {e}")
        # Always 200 so MercadoPago does not start a retry storm
        return ack({"error": "Internal error"})
