# ================================================================
# services/reconciliation.py — payment callbacks → internal state
# ================================================================
"""
Shared by both payment webhooks.

Each step is idempotent on its own (payment upsert keyed by provider and
provider payment id, insert-if-absent progress rows, monotonic phase
union) so a redelivered callback is absorbed without duplicating rows.
The notification and email are not deduplicated: a duplicate delivery of
an approved payment can notify twice.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models.models import (
    COURSE_MODULES,
    Notification,
    NotificationType,
    Payment,
    PaymentStatus,
    Phase,
    Profile,
    Progress,
    utc_now,
)
from services.catalog import Product, WELCOME_NOTIFICATION_TITLE

logger = logging.getLogger(__name__)


# ============================================================
# Provider status → internal status
# ============================================================
MERCADOPAGO_STATUS_MAP = {
    "approved": PaymentStatus.COMPLETED,
    "pending": PaymentStatus.PENDING,
    "authorized": PaymentStatus.PENDING,
    "in_process": PaymentStatus.PENDING,
    "in_mediation": PaymentStatus.PENDING,
    "rejected": PaymentStatus.REJECTED,
    "cancelled": PaymentStatus.REJECTED,
    "refunded": PaymentStatus.REJECTED,
    "charged_back": PaymentStatus.REJECTED,
}

# Checkout Session payment_status and PaymentIntent status share one table
STRIPE_STATUS_MAP = {
    "paid": PaymentStatus.COMPLETED,
    "no_payment_required": PaymentStatus.COMPLETED,
    "succeeded": PaymentStatus.COMPLETED,
    "unpaid": PaymentStatus.PENDING,
    "processing": PaymentStatus.PENDING,
    "requires_action": PaymentStatus.PENDING,
    "requires_capture": PaymentStatus.PENDING,
    "requires_confirmation": PaymentStatus.PENDING,
    "requires_payment_method": PaymentStatus.REJECTED,
    "canceled": PaymentStatus.REJECTED,
}

STATUS_MAPS = {
    "mercadopago": MERCADOPAGO_STATUS_MAP,
    "stripe": STRIPE_STATUS_MAP,
}

PROVIDER_LABELS = {
    "mercadopago": "MercadoPago",
    "stripe": "Stripe",
}


def map_status(provider: str, provider_status: Optional[str]) -> PaymentStatus:
    """Unknown statuses stay pending so access is never granted by accident."""
    table = STATUS_MAPS.get(provider, {})
    return table.get(provider_status or "", PaymentStatus.PENDING)


def covers_price(product: Product, provider: str, monto: float) -> bool:
    """True when the amount paid is at least the catalog price for that provider."""
    return round(monto or 0, 2) >= round(product.price_for(provider), 2)


# ============================================================
# Phase union
# ============================================================
def merge_phase(current: Optional[str], granted: Phase) -> str:
    """
    Combine the phase a user already has with a newly purchased one.
    Never downgrades: fase-1 + fase-2 → ambas, ambas stays ambas.
    """
    current = current or Phase.NONE.value
    granted_value = granted.value
    if current in (granted_value, Phase.BOTH.value):
        return current
    if current == Phase.NONE.value:
        return granted_value
    return Phase.BOTH.value


# ============================================================
# Dialect-aware upserts
# ============================================================
def _dialect_insert(session: Session):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    return None


def ensure_progress_rows(session: Session, user_id: str, modules: List[str] = COURSE_MODULES) -> None:
    """Insert one not-completed row per module, leaving existing rows untouched."""
    insert = _dialect_insert(session)
    if insert is not None:
        rows = [{"user_id": user_id, "modulo": m, "completado": False} for m in modules]
        stmt = insert(Progress).values(rows).on_conflict_do_nothing(index_elements=["user_id", "modulo"])
        session.exec(stmt)
        return

    existing = set(session.exec(select(Progress.modulo).where(Progress.user_id == user_id)).all())
    for modulo in modules:
        if modulo not in existing:
            session.add(Progress(user_id=user_id, modulo=modulo, completado=False))


def record_payment(session: Session, values: Dict[str, Any]) -> Payment:
    """
    Upsert the payment row keyed by (provider, provider_payment_id).

    When the upsert itself fails (no unique constraint, unsupported
    dialect) the row is appended with a plain insert instead.
    """
    now = utc_now()
    values = {**values, "updated_at": now}
    key = (values["provider"], values["provider_payment_id"])

    insert = _dialect_insert(session)
    try:
        if insert is None:
            raise NotImplementedError(f"no upsert for dialect {session.get_bind().dialect.name}")
        stmt = insert(Payment).values(created_at=now, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["provider", "provider_payment_id"],
            set_={k: v for k, v in values.items() if k not in ("provider", "provider_payment_id")},
        )
        session.exec(stmt)
        session.commit()
    except (SQLAlchemyError, NotImplementedError) as e:
        session.rollback()
        logger.warning(f"⚠️ Payment upsert failed for {key}, falling back to insert: {e}")
        session.add(Payment(created_at=now, **values))
        session.commit()

    return session.exec(
        select(Payment)
        .where(Payment.provider == key[0], Payment.provider_payment_id == key[1])
        .order_by(Payment.id.desc())
    ).first()


# ============================================================
# Access grants
# ============================================================
def grant_access(session: Session, user_id: str, product: Product) -> Optional[Profile]:
    """Apply the entitlement a completed purchase of ``product`` buys."""
    profile = session.get(Profile, user_id)
    if not profile:
        logger.error(f"❌ Cannot grant {product.id}: profile {user_id} not found")
        return None

    if product.grants_phase is not None:
        new_phase = merge_phase(profile.fase, product.grants_phase)
        if new_phase != profile.fase:
            logger.info(f"🎓 User {user_id} phase {profile.fase} → {new_phase}")
            profile.fase = new_phase
        ensure_progress_rows(session, user_id)

    if product.grants_bot:
        profile.bot_activo = True

    session.add(profile)
    session.commit()
    session.refresh(profile)
    return profile


def create_notification(
    session: Session,
    user_id: str,
    titulo: str,
    mensaje: str,
    tipo: str = NotificationType.INFO.value,
) -> Optional[Notification]:
    """Best effort: a failed insert is logged and swallowed."""
    try:
        notification = Notification(user_id=user_id, titulo=titulo, mensaje=mensaje, tipo=tipo)
        session.add(notification)
        session.commit()
        session.refresh(notification)
        return notification
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"❌ Could not create notification for {user_id}: {e}")
        return None


# ============================================================
# Full reconciliation
# ============================================================
@dataclass
class ReconciliationResult:
    estado: PaymentStatus
    payment: Optional[Payment]
    profile: Optional[Profile] = None

    @property
    def granted(self) -> bool:
        return self.estado == PaymentStatus.COMPLETED and self.profile is not None


def reconcile_payment(
    session: Session,
    *,
    provider: str,
    provider_payment_id: str,
    provider_status: Optional[str],
    user_id: str,
    product: Product,
    monto: float,
    moneda: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> ReconciliationResult:
    estado = map_status(provider, provider_status)
    if estado == PaymentStatus.COMPLETED and not covers_price(product, provider, monto):
        # Held as pending for manual review; access is not granted
        logger.error(
            f"❌ {provider} payment {provider_payment_id} paid {monto} {moneda}, "
            f"below the {product.id} price of {product.price_for(provider)}"
        )
        estado = PaymentStatus.PENDING
    label = PROVIDER_LABELS.get(provider, provider)

    payment = record_payment(session, {
        "user_id": user_id,
        "monto": monto,
        "moneda": moneda,
        "metodo": label,
        "concepto": product.concept(label),
        "estado": estado.value,
        "producto": product.id,
        "provider": provider,
        "provider_payment_id": str(provider_payment_id),
        "provider_status": provider_status,
        "provider_metadata": metadata or {},
    })

    result = ReconciliationResult(estado=estado, payment=payment)
    if estado != PaymentStatus.COMPLETED:
        return result

    result.profile = grant_access(session, user_id, product)
    if result.profile is not None:
        create_notification(
            session,
            user_id,
            WELCOME_NOTIFICATION_TITLE,
            product.notification_message,
            NotificationType.SUCCESS.value,
        )
    return result
