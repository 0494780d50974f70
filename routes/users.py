# routes/users.py — admin views over profiles, payments and the waitlist
from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlmodel import Session, select
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError

from models.models import Notification, Payment, Phase, Profile, WaitlistEntry
from schemas.payment_schema import NotificationCreate, NotificationRead, PaymentRead, WaitlistRead
from schemas.user_schema import AdminProfileUpdate, ProfileRead
from core.database import get_session
from core.security import get_current_admin
from services.reconciliation import ensure_progress_rows

import logging
logger = logging.getLogger(__name__)


router = APIRouter(prefix="/admin", tags=["Admin"])


# ----------------------------------------------------------------------
# ✅ List Profiles
# ----------------------------------------------------------------------
@router.get("/users", response_model=List[ProfileRead])
def list_users(
    fase: Optional[str] = Query(default=None),
    estado: Optional[str] = Query(default=None),
    admin: Profile = Depends(get_current_admin),
    session: Session = Depends(get_session),
):
    statement = select(Profile)
    if fase:
        statement = statement.where(Profile.fase == fase)
    if estado:
        statement = statement.where(Profile.estado == estado)
    return session.exec(statement.order_by(Profile.fecha_registro.desc())).all()


# ----------------------------------------------------------------------
# ✅ Update Profile (phase, status, bot license, role)
# ----------------------------------------------------------------------
@router.patch("/users/{user_id}", response_model=ProfileRead)
def update_user(
    user_id: str,
    user_update: AdminProfileUpdate,
    admin: Profile = Depends(get_current_admin),
    session: Session = Depends(get_session),
):
    user = session.get(Profile, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if user.id == admin.id and user_update.rol is not None and user_update.rol.value != user.rol:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot change their own role.",
        )

    for field, value in user_update.model_dump(exclude_unset=True).items():
        setattr(user, field, value.value if hasattr(value, "value") else value)

    try:
        # A manual enrollment gets the same progress rows a purchase does
        if user.fase != Phase.NONE.value:
            ensure_progress_rows(session, user.id)
        session.add(user)
        session.commit()
        session.refresh(user)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"❌ Failed to update user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Could not update user")

    logger.info(f"🛠️ Admin {admin.email} updated {user.email}: {user_update.model_dump(exclude_unset=True)}")
    return user


# ----------------------------------------------------------------------
# ✅ Send Notification
# ----------------------------------------------------------------------
@router.post("/notifications", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
def send_notification(
    data: NotificationCreate,
    admin: Profile = Depends(get_current_admin),
    session: Session = Depends(get_session),
):
    if not session.get(Profile, data.user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    notification = Notification(
        user_id=data.user_id,
        titulo=data.titulo,
        mensaje=data.mensaje,
        tipo=data.tipo,
    )
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification


# ----------------------------------------------------------------------
# ✅ Payments & Waitlist
# ----------------------------------------------------------------------
@router.get("/payments", response_model=List[PaymentRead])
def list_payments(
    estado: Optional[str] = Query(default=None),
    admin: Profile = Depends(get_current_admin),
    session: Session = Depends(get_session),
):
    statement = select(Payment)
    if estado:
        statement = statement.where(Payment.estado == estado)
    return session.exec(statement.order_by(Payment.created_at.desc())).all()


@router.get("/waitlist", response_model=List[WaitlistRead])
def list_waitlist(
    admin: Profile = Depends(get_current_admin),
    session: Session = Depends(get_session),
):
    return session.exec(select(WaitlistEntry).order_by(WaitlistEntry.created_at)).all()
