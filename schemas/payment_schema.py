# payment_schema.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any
from datetime import datetime


# ---------------------------
# Checkout initiation
# ---------------------------
class CheckoutRequest(BaseModel):
    # All optional: missing fields are answered with the 400 message, not a 422
    producto_id: Optional[str] = None
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    user_nombre: Optional[str] = None


class CheckoutSessionResponse(BaseModel):
    sessionId: str
    url: Optional[str] = None


class PaymentIntentResponse(BaseModel):
    clientSecret: str


class PreferenceResponse(BaseModel):
    id: Optional[str] = None
    init_point: Optional[str] = None
    sandbox_init_point: Optional[str] = None


class CardPayer(BaseModel):
    email: Optional[str] = None
    identification: Optional[Dict[str, Any]] = None


class CardPaymentRequest(BaseModel):
    """Tokenized card data posted by MercadoPago Checkout Bricks."""
    token: Optional[str] = None
    issuer_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    transaction_amount: Optional[float] = None
    installments: Optional[int] = None
    payer: Optional[CardPayer] = None
    producto_id: Optional[str] = None
    user_id: Optional[str] = None


class CardPaymentResponse(BaseModel):
    status: Optional[str] = None
    status_detail: Optional[str] = None
    id: Optional[int] = None


class PaymentConfigResponse(BaseModel):
    stripe_publishable_key: str = ""
    mercadopago_public_key: str = ""


# ---------------------------
# Payment rows
# ---------------------------
class PaymentRead(BaseModel):
    id: int
    user_id: str
    monto: float
    moneda: str
    metodo: str
    concepto: str
    estado: str
    producto: str
    provider: str
    provider_payment_id: str
    provider_status: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProgressRead(BaseModel):
    modulo: str
    completado: bool = False
    fecha_completado: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationRead(BaseModel):
    id: int
    titulo: str
    mensaje: str
    tipo: str
    leida: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationCreate(BaseModel):
    user_id: str
    titulo: str = Field(..., min_length=1, max_length=200)
    mensaje: str = Field(..., min_length=1, max_length=1000)
    tipo: str = Field(default="info", pattern="^(info|success|warning)$")


class WaitlistRead(BaseModel):
    id: int
    nombre: str
    email: str
    producto: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
