# routes/waitlist.py — Phase 2 waitlist signup
import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.database import get_session
from models.models import WaitlistEntry
from services.email_service import EmailService, get_email_service

router = APIRouter(prefix="/api", tags=["Waitlist"])
logger = logging.getLogger(__name__)

WAITLIST_PRODUCT = "fase-2"
MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 200


@router.options("/waitlist-signup", status_code=204)
def waitlist_preflight():
    return Response(status_code=204)


@router.post("/waitlist-signup")
async def waitlist_signup(
    request: Request,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    email_service: EmailService = Depends(get_email_service),
):
    """Store a name/e-mail pair; signing up twice is a no-op success."""
    try:
        data = json.loads(await request.body() or b"{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    nombre = data.get("nombre") if isinstance(data, dict) else None
    email = data.get("email") if isinstance(data, dict) else None
    if not nombre or not email or "@" not in str(email):
        raise HTTPException(status_code=400, detail="Nombre y email son requeridos")

    nombre = str(nombre).strip()[:MAX_NAME_LENGTH]
    email = str(email).strip().lower()[:MAX_EMAIL_LENGTH]

    await run_in_threadpool(add_to_waitlist, session, nombre, email)

    background_tasks.add_task(email_service.send_waitlist_confirmation, email, nombre)
    return {"success": True}


def add_to_waitlist(session: Session, nombre: str, email: str) -> None:
    existing = session.exec(select(WaitlistEntry).where(WaitlistEntry.email == email)).first()
    if existing:
        logger.info(f"ℹ️ {email} already on the waitlist")
        return

    try:
        session.add(WaitlistEntry(nombre=nombre, email=email, producto=WAITLIST_PRODUCT))
        session.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same address
        session.rollback()
        logger.info(f"ℹ️ Duplicate waitlist signup for {email}")
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"❌ Waitlist DB error: {e}")
        raise HTTPException(status_code=500, detail="No se pudo guardar. Intentá de nuevo.")
