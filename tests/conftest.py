"""Shared test fixtures."""

import asyncio
import hashlib
import hmac
import json
import time
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import models.models  # noqa: F401  registers the tables
from core.config import Settings, get_settings
from core.database import get_session
from core.security import create_token_for_user, hash_password
from main import app
from models.models import Profile, UserRole, Phase
from services.email_service import EmailService, get_email_service
from services.mercadopago_service import get_mercadopago_gateway
from services.payment_service import PaymentProviderError, StripeGateway, get_stripe_gateway

STRIPE_WEBHOOK_SECRET = "whsec_test_secret"
DEFAULT_PASSWORD = "secreto123"


# ============================================================
# Fakes
# ============================================================
class RecordingEmailService(EmailService):
    """Never talks to Resend; keeps every message it was asked to send."""

    def __init__(self):
        super().__init__(api_key=None, sender_email=None)
        self.sent: List[Dict[str, str]] = []

    def send(self, to_email: str, subject: str, html_content: str) -> bool:
        self.sent.append({"to": to_email, "subject": subject, "html": html_content})
        return True


class FakeStripeGateway(StripeGateway):
    """Real webhook verification, recorded checkout calls."""

    def __init__(self, settings: Settings, fail: bool = False):
        super().__init__(settings)
        self.fail = fail
        self.calls: List[tuple] = []
        self.verified_on_event_loop: Optional[bool] = None

    def construct_event(self, payload, sig_header):
        self.verified_on_event_loop = running_on_event_loop()
        return super().construct_event(payload, sig_header)

    def create_checkout_session(self, product, user_id, user_email, user_nombre=None):
        self.calls.append(("checkout", product.id, user_id, user_email))
        if self.fail:
            raise PaymentProviderError(self.provider, "card network down")
        return {"sessionId": "cs_test_123", "url": "https://checkout.stripe.com/c/pay/cs_test_123"}

    def create_payment_intent(self, product, user_id, user_email, user_nombre=None):
        self.calls.append(("intent", product.id, user_id, user_email))
        if self.fail:
            raise PaymentProviderError(self.provider, "card network down")
        return {"clientSecret": "pi_test_123_secret_abc"}


class FakeMercadoPagoGateway:
    """Stands in for MercadoPagoGateway; payments are looked up in ``self.payments``."""

    provider = "mercadopago"

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.payments: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.looked_up_on_event_loop: Optional[bool] = None

    def create_preference(self, product, user_id, user_email, user_nombre=None):
        self.calls.append(("preference", product.id, user_id, user_email))
        return {
            "id": "pref-123",
            "init_point": "https://www.mercadopago.com.ar/checkout/v1/redirect?pref_id=pref-123",
            "sandbox_init_point": "https://sandbox.mercadopago.com.ar/checkout/v1/redirect?pref_id=pref-123",
        }

    def process_card_payment(self, product, data):
        self.calls.append(("card", product.id, data.get("user_id"), data["payer"]["email"]))
        return {"status": "approved", "status_detail": "accredited", "id": 987654}

    def get_payment(self, payment_id: str) -> Optional[Dict[str, Any]]:
        self.calls.append(("get_payment", payment_id))
        self.looked_up_on_event_loop = running_on_event_loop()
        return self.payments.get(payment_id)


# ============================================================
# Helpers
# ============================================================
def running_on_event_loop() -> bool:
    """False inside a threadpool worker, True when called from the event loop."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def stripe_signature(payload: str, secret: str = STRIPE_WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header the same way Stripe does."""
    timestamp = timestamp or int(time.time())
    signed_payload = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def stripe_event(event_type: str, data_object: Dict[str, Any]) -> str:
    return json.dumps({
        "id": "evt_test_1",
        "object": "event",
        "type": event_type,
        "data": {"object": data_object},
    })


def mercadopago_payment(
    payment_id: str,
    status: str,
    user_id: str,
    producto_id: str = "fase1",
    amount: float = 9999,
) -> Dict[str, Any]:
    return {
        "id": int(payment_id),
        "status": status,
        "external_reference": json.dumps({"user_id": user_id, "producto_id": producto_id}),
        "metadata": {},
        "transaction_amount": amount,
        "currency_id": "ARS",
        "payment_method_id": "visa",
        "payment_type_id": "credit_card",
        "payer": {"email": "buyer@mail.com"},
    }


def auth_headers(profile: Profile) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_token_for_user(profile)}"}


# ============================================================
# Fixtures
# ============================================================
@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        REQUIRE_EMAIL_CONFIRMATION=False,
        STRIPE_SECRET_KEY="sk_test_dummy",
        STRIPE_PUBLISHABLE_KEY="pk_test_dummy",
        STRIPE_WEBHOOK_SECRET=STRIPE_WEBHOOK_SECRET,
        MERCADOPAGO_PUBLIC_KEY="TEST-public-key",
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def email_service() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def stripe_gateway(test_settings) -> FakeStripeGateway:
    return FakeStripeGateway(test_settings)


@pytest.fixture
def mercadopago_gateway() -> FakeMercadoPagoGateway:
    return FakeMercadoPagoGateway()


@pytest.fixture
def client(engine, test_settings, email_service, stripe_gateway, mercadopago_gateway):
    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_email_service] = lambda: email_service
    app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway
    app.dependency_overrides[get_mercadopago_gateway] = lambda: mercadopago_gateway

    # Not used as a context manager: the lifespan would create tables in the real database
    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def make_profile(session):
    def _make_profile(
        email: str = "alumno@mail.com",
        password: str = DEFAULT_PASSWORD,
        nombre: str = "Alumno Prueba",
        rol: str = UserRole.STUDENT.value,
        fase: str = Phase.NONE.value,
        **fields,
    ) -> Profile:
        profile = Profile(
            nombre=nombre,
            email=email,
            password_hash=hash_password(password),
            rol=rol,
            fase=fase,
            email_confirmado=fields.pop("email_confirmado", True),
            **fields,
        )
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    return _make_profile


@pytest.fixture
def student(make_profile) -> Profile:
    return make_profile()


@pytest.fixture
def admin(make_profile) -> Profile:
    return make_profile(
        email="admin@mail.com",
        nombre="Admin Orbita",
        rol=UserRole.ADMIN.value,
        fase=Phase.BOTH.value,
    )
