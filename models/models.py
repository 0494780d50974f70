# models/models.py
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint, Column, JSON


# ============================================================
# ENUMS
# ============================================================
class UserRole(str, Enum):
    ADMIN = "admin"
    STUDENT = "estudiante"


class Phase(str, Enum):
    NONE = "ninguna"
    PHASE_1 = "fase-1"
    PHASE_2 = "fase-2"
    BOTH = "ambas"


class AccountStatus(str, Enum):
    ACTIVE = "activo"
    SUSPENDED = "suspendido"


class PaymentStatus(str, Enum):
    COMPLETED = "completado"
    PENDING = "pendiente"
    REJECTED = "rechazado"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"


# Course modules, in the order the dashboard lists them
COURSE_MODULES = [
    "preparacion-grafico",
    "flexzone",
    "relleno-zona",
    "glosario",
    "consejos",
]


def new_user_id() -> str:
    return str(uuid4())


def utc_now() -> datetime:
    """Timezone-aware UTC timestamp; naive datetimes are rejected at bind time."""
    return datetime.now(timezone.utc)


# ============================================================
# PROFILE (identity + course entitlements)
# ============================================================
class Profile(SQLModel, table=True):
    __tablename__ = "profiles"

    id: str = Field(default_factory=new_user_id, primary_key=True, max_length=36)
    nombre: str = Field(max_length=100)
    email: str = Field(index=True, unique=True, max_length=200)
    password_hash: str = Field(nullable=False)

    rol: str = Field(default=UserRole.STUDENT.value, max_length=20, index=True)
    fase: str = Field(default=Phase.NONE.value, max_length=20)
    estado: str = Field(default=AccountStatus.ACTIVE.value, max_length=20)

    bot_activo: bool = Field(default=False)
    licencia_bot: Optional[str] = Field(default=None, max_length=100)
    comunidad_acceso: bool = Field(default=False)

    # Contact
    telefono: Optional[str] = Field(default=None, max_length=40)
    pais: Optional[str] = Field(default=None, max_length=60)

    email_confirmado: bool = Field(default=False)
    fecha_registro: datetime = Field(default_factory=utc_now)
    ultimo_acceso: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.rol == UserRole.ADMIN.value

    @property
    def is_active(self) -> bool:
        return self.estado == AccountStatus.ACTIVE.value


# ============================================================
# PROGRESS (one row per user and course module)
# ============================================================
class Progress(SQLModel, table=True):
    __tablename__ = "progreso"
    __table_args__ = (UniqueConstraint("user_id", "modulo", name="uq_progreso_user_modulo"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", nullable=False, index=True)
    modulo: str = Field(max_length=50)
    completado: bool = Field(default=False)
    fecha_completado: Optional[datetime] = None


# ============================================================
# PAYMENT
# ============================================================
class Payment(SQLModel, table=True):
    __tablename__ = "pagos"
    __table_args__ = (
        UniqueConstraint("provider", "provider_payment_id", name="uq_pagos_provider_payment"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", nullable=False, index=True)

    monto: float = Field(default=0.0)
    moneda: str = Field(default="USD", max_length=3)
    metodo: str = Field(max_length=30)
    concepto: str = Field(max_length=200)
    estado: str = Field(default=PaymentStatus.PENDING.value, max_length=20, index=True)
    producto: str = Field(max_length=20)

    provider: str = Field(max_length=20)
    provider_payment_id: str = Field(max_length=255)
    provider_status: Optional[str] = Field(default=None, max_length=50)
    provider_metadata: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# ============================================================
# NOTIFICATION
# ============================================================
class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", nullable=False, index=True)
    titulo: str = Field(max_length=200)
    mensaje: str = Field(max_length=1000)
    tipo: str = Field(default=NotificationType.INFO.value, max_length=20)
    leida: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)


# ============================================================
# WAITLIST
# ============================================================
class WaitlistEntry(SQLModel, table=True):
    __tablename__ = "waitlist"

    id: Optional[int] = Field(default=None, primary_key=True)
    nombre: str = Field(max_length=100)
    email: str = Field(unique=True, index=True, max_length=200)
    producto: str = Field(default="fase-2", max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
