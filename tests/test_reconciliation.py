"""Tests for status mapping, phase union and the shared reconciliation steps."""

from datetime import timedelta

import pytest
from sqlmodel import select

from models.models import (
    COURSE_MODULES, Notification, Payment, PaymentStatus, Phase, Profile, Progress, WaitlistEntry, utc_now,
)
from services.catalog import PRODUCTS, get_product
from services.reconciliation import (
    covers_price,
    ensure_progress_rows,
    map_status,
    merge_phase,
    reconcile_payment,
    record_payment,
)


class TestStatusMapping:
    @pytest.mark.parametrize("status, expected", [
        ("approved", PaymentStatus.COMPLETED),
        ("pending", PaymentStatus.PENDING),
        ("in_process", PaymentStatus.PENDING),
        ("in_mediation", PaymentStatus.PENDING),
        ("authorized", PaymentStatus.PENDING),
        ("rejected", PaymentStatus.REJECTED),
        ("cancelled", PaymentStatus.REJECTED),
        ("refunded", PaymentStatus.REJECTED),
        ("charged_back", PaymentStatus.REJECTED),
    ])
    def test_mercadopago(self, status, expected):
        assert map_status("mercadopago", status) == expected

    @pytest.mark.parametrize("status, expected", [
        ("paid", PaymentStatus.COMPLETED),
        ("no_payment_required", PaymentStatus.COMPLETED),
        ("succeeded", PaymentStatus.COMPLETED),
        ("unpaid", PaymentStatus.PENDING),
        ("processing", PaymentStatus.PENDING),
        ("requires_payment_method", PaymentStatus.REJECTED),
        ("canceled", PaymentStatus.REJECTED),
    ])
    def test_stripe(self, status, expected):
        assert map_status("stripe", status) == expected

    def test_unknown_status_is_pending(self):
        assert map_status("mercadopago", "something_new") == PaymentStatus.PENDING
        assert map_status("stripe", None) == PaymentStatus.PENDING
        assert map_status("paypal", "approved") == PaymentStatus.PENDING


class TestMergePhase:
    @pytest.mark.parametrize("current, granted, expected", [
        ("ninguna", Phase.PHASE_1, "fase-1"),
        (None, Phase.PHASE_1, "fase-1"),
        ("fase-1", Phase.PHASE_1, "fase-1"),
        ("fase-2", Phase.PHASE_1, "ambas"),
        ("fase-1", Phase.PHASE_2, "ambas"),
        ("ambas", Phase.PHASE_1, "ambas"),
        ("ambas", Phase.PHASE_2, "ambas"),
    ])
    def test_union_never_downgrades(self, current, granted, expected):
        assert merge_phase(current, granted) == expected


class TestCatalog:
    def test_prices(self):
        assert PRODUCTS["fase1"].price_usd_cents == 1000
        assert PRODUCTS["fase1"].price_ars == 9999
        assert PRODUCTS["bot"].price_usd_cents == 500
        assert PRODUCTS["bot"].price_ars == 7500

    def test_concept_labels(self):
        assert get_product("fase1").concept("Stripe") == "Curso Fase 1 (Stripe)"
        assert get_product("bot").concept("MercadoPago") == "Bot de Trading (MercadoPago)"

    def test_unknown_product(self):
        assert get_product("fase3") is None
        assert get_product(None) is None

    def test_price_per_provider(self):
        assert get_product("fase1").price_for("stripe") == 10.0
        assert get_product("fase1").price_for("mercadopago") == 9999
        assert get_product("bot").price_for("stripe") == 5.0

    def test_covers_price(self):
        fase1 = get_product("fase1")

        assert covers_price(fase1, "stripe", 10.0)
        assert covers_price(fase1, "mercadopago", 9999)
        assert not covers_price(fase1, "mercadopago", 1)
        assert not covers_price(fase1, "stripe", 9.99)


class TestProgressRows:
    def test_creates_one_row_per_module(self, session, student):
        ensure_progress_rows(session, student.id)
        session.commit()

        rows = session.exec(select(Progress).where(Progress.user_id == student.id)).all()
        assert sorted(r.modulo for r in rows) == sorted(COURSE_MODULES)
        assert not any(r.completado for r in rows)

    def test_existing_rows_are_left_alone(self, session, student):
        session.add(Progress(user_id=student.id, modulo="flexzone", completado=True))
        session.commit()

        ensure_progress_rows(session, student.id)
        ensure_progress_rows(session, student.id)
        session.commit()

        rows = session.exec(select(Progress).where(Progress.user_id == student.id)).all()
        assert len(rows) == len(COURSE_MODULES)
        flexzone = next(r for r in rows if r.modulo == "flexzone")
        assert flexzone.completado is True


class TestRecordPayment:
    def _values(self, user_id, estado="pendiente", status="pending"):
        return {
            "user_id": user_id,
            "monto": 9999.0,
            "moneda": "ARS",
            "metodo": "MercadoPago",
            "concepto": "Curso Fase 1 (MercadoPago)",
            "estado": estado,
            "producto": "fase1",
            "provider": "mercadopago",
            "provider_payment_id": "555",
            "provider_status": status,
            "provider_metadata": {"payment_method_id": "visa"},
        }

    def test_upsert_updates_the_same_row(self, session, student):
        first = record_payment(session, self._values(student.id))
        second = record_payment(session, self._values(student.id, "completado", "approved"))

        rows = session.exec(select(Payment)).all()
        assert len(rows) == 1
        assert first.id == second.id
        session.refresh(second)
        assert second.estado == "completado"
        assert second.provider_status == "approved"
        assert second.provider_metadata == {"payment_method_id": "visa"}


class TestReconcilePayment:
    def _reconcile(self, session, user_id, status, product_id="fase1", payment_id="pay-1", monto=9999):
        return reconcile_payment(
            session,
            provider="mercadopago",
            provider_payment_id=payment_id,
            provider_status=status,
            user_id=user_id,
            product=get_product(product_id),
            monto=monto,
            moneda="ARS",
        )

    def test_approved_grants_phase_progress_and_notification(self, session, student):
        result = self._reconcile(session, student.id, "approved")

        assert result.estado == PaymentStatus.COMPLETED
        assert result.granted
        session.refresh(student)
        assert student.fase == "fase-1"
        progress = session.exec(select(Progress).where(Progress.user_id == student.id)).all()
        assert len(progress) == len(COURSE_MODULES)
        notifications = session.exec(select(Notification).where(Notification.user_id == student.id)).all()
        assert len(notifications) == 1
        assert notifications[0].tipo == "success"

    def test_pending_records_payment_only(self, session, student):
        result = self._reconcile(session, student.id, "in_process")

        assert result.estado == PaymentStatus.PENDING
        assert not result.granted
        session.refresh(student)
        assert student.fase == "ninguna"
        assert session.exec(select(Progress)).all() == []
        assert session.exec(select(Notification)).all() == []
        assert result.payment.estado == "pendiente"

    def test_bot_purchase_sets_flag_not_phase(self, session, student):
        self._reconcile(session, student.id, "approved", product_id="bot")

        session.refresh(student)
        assert student.bot_activo is True
        assert student.fase == "ninguna"

    def test_phase_two_holder_buying_phase_one_gets_both(self, session, make_profile):
        profile = make_profile(email="fase2@mail.com", fase="fase-2")
        self._reconcile(session, profile.id, "approved")

        session.refresh(profile)
        assert profile.fase == "ambas"

    def test_redelivery_is_absorbed(self, session, student):
        self._reconcile(session, student.id, "approved")
        self._reconcile(session, student.id, "approved")

        assert len(session.exec(select(Payment)).all()) == 1
        assert len(session.exec(select(Progress)).all()) == len(COURSE_MODULES)
        session.refresh(student)
        assert student.fase == "fase-1"

    def test_unknown_user_records_payment_without_grant(self, session):
        result = self._reconcile(session, "missing-user", "approved")

        assert result.estado == PaymentStatus.COMPLETED
        assert result.profile is None
        assert not result.granted

    def test_underpaid_approval_is_held_as_pending(self, session, student):
        result = self._reconcile(session, student.id, "approved", monto=1)

        assert result.estado == PaymentStatus.PENDING
        assert not result.granted
        assert result.payment.estado == "pendiente"
        assert result.payment.provider_status == "approved"
        assert result.payment.monto == 1
        session.refresh(student)
        assert student.fase == "ninguna"
        assert session.exec(select(Progress)).all() == []
        assert session.exec(select(Notification)).all() == []


class TestTimestamps:
    def test_utc_now_is_timezone_aware(self):
        assert utc_now().utcoffset() == timedelta(0)

    def test_default_factories_are_timezone_aware(self):
        rows = [
            Profile(nombre="Ana", email="ana@mail.com", password_hash="x"),
            Notification(user_id="user-1", titulo="Hola", mensaje="Bienvenida"),
            WaitlistEntry(nombre="Ana", email="ana@mail.com", producto="fase-2"),
        ]

        assert rows[0].fecha_registro.tzinfo is not None
        assert rows[1].created_at.tzinfo is not None
        assert rows[2].created_at.tzinfo is not None

    def test_rows_round_trip_through_the_database(self, session, student):
        result = reconcile_payment(
            session,
            provider="stripe",
            provider_payment_id="cs_ts",
            provider_status="paid",
            user_id=student.id,
            product=get_product("fase1"),
            monto=10.0,
            moneda="USD",
        )

        assert result.granted
        assert result.payment.created_at is not None
        assert result.payment.updated_at is not None
        assert student.fecha_registro is not None
