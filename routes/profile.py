# routes/profile.py
from typing import List
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from core.database import get_session
from core.security import get_current_user
from models.models import COURSE_MODULES, Notification, Payment, Profile, Progress, utc_now
from schemas.payment_schema import NotificationRead, PaymentRead, ProgressRead
from schemas.user_schema import ProfileRead, ProfileUpdate

router = APIRouter(prefix="/profile", tags=["Profile"])
logger = logging.getLogger(__name__)


# ==================================================================
#  ✅  Profile
# ==================================================================
@router.get("/me", response_model=ProfileRead)
def get_my_profile(current_user: Profile = Depends(get_current_user)):
    """Return the current user's profile details."""
    return current_user


@router.patch("/me", response_model=ProfileRead)
def update_my_profile(
    data: ProfileUpdate,
    current_user: Profile = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Update the self-service contact fields."""
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)

    session.add(current_user)
    session.commit()
    session.refresh(current_user)
    return current_user


# ==================================================================
#  ✅  Course progress
# ==================================================================
@router.get("/progress", response_model=List[ProgressRead])
def get_my_progress(
    current_user: Profile = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    rows = session.exec(select(Progress).where(Progress.user_id == current_user.id)).all()
    order = {modulo: i for i, modulo in enumerate(COURSE_MODULES)}
    return sorted(rows, key=lambda row: order.get(row.modulo, len(order)))


@router.post("/progress/{modulo}", response_model=ProgressRead)
def mark_module_complete(
    modulo: str,
    current_user: Profile = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Mark a module completed; repeating the call changes nothing."""
    if modulo not in COURSE_MODULES:
        raise HTTPException(status_code=404, detail="Module not found")

    row = session.exec(
        select(Progress).where(Progress.user_id == current_user.id, Progress.modulo == modulo)
    ).first()
    if not row:
        row = Progress(user_id=current_user.id, modulo=modulo)

    if not row.completado:
        row.completado = True
        row.fecha_completado = utc_now()
        session.add(row)
        session.commit()
        session.refresh(row)
        logger.info(f"📘 {current_user.email} completed {modulo}")

    return row


# ==================================================================
#  ✅  Payments & notifications
# ==================================================================
@router.get("/payments", response_model=List[PaymentRead])
def get_my_payments(
    current_user: Profile = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return session.exec(
        select(Payment).where(Payment.user_id == current_user.id).order_by(Payment.created_at.desc())
    ).all()


@router.get("/notifications", response_model=List[NotificationRead])
def get_my_notifications(
    current_user: Profile = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return session.exec(
        select(Notification)
        .where(Notification.user_id == current_user.id)
        .order_by(Notification.created_at.desc())
    ).all()


@router.post("/notifications/{notification_id}/read", response_model=NotificationRead)
def mark_notification_read(
    notification_id: int,
    current_user: Profile = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    notification = session.get(Notification, notification_id)
    # Someone else's notification is reported as missing
    if not notification or notification.user_id != current_user.id:
        raise HTTPException(status_code=404, detail="Notification not found")

    if not notification.leida:
        notification.leida = True
        session.add(notification)
        session.commit()
        session.refresh(notification)
    return notification
