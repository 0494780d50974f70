import logging

from email_validator import validate_email, EmailNotValidError
from fastapi import APIRouter, BackgroundTasks, HTTPException, Depends, Query
from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.config import Settings, get_settings
from core.database import get_session
from core.security import (
    CONFIRM_PURPOSE, RESET_PURPOSE,
    hash_password, verify_password, create_email_token, create_token_for_user,
    decode_token, get_current_user,
)
from models.models import Profile, UserRole, Phase, utc_now
from schemas.user_schema import (
    UserCreate, UserLogin, PasswordResetRequest, PasswordResetConfirm,
    ProfileRead, LoginResponse, AuthUser, MessageResponse,
)
from services.email_service import EmailService, get_email_service

router = APIRouter(tags=["Authentication"])
logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

# English messages are part of the API contract; the client translates them
INVALID_CREDENTIALS = "Invalid login credentials"
EMAIL_NOT_CONFIRMED = "Email not confirmed"
USER_EXISTS = "User already registered"
PASSWORD_TOO_SHORT = f"Password should be at least {MIN_PASSWORD_LENGTH} characters"
INVALID_EMAIL = "Unable to validate email address: invalid format"
ACCOUNT_SUSPENDED = "Account suspended"
RESET_SENT = "Si el correo esta registrado, recibiras un enlace para restablecer tu contrasena."


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


# ==========================================================
# ✅ Register — creates a student profile
# ==========================================================
@router.post("/register", response_model=MessageResponse)
def register(
    user_data: UserCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    email_service: EmailService = Depends(get_email_service),
):
    """Create a student account; the e-mail must be confirmed before login."""
    try:
        email = validate_email(user_data.email, check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        raise HTTPException(status_code=400, detail=INVALID_EMAIL)

    if not user_data.password:
        raise HTTPException(status_code=400, detail="Signup requires a valid password")
    if len(user_data.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail=PASSWORD_TOO_SHORT)

    if session.exec(select(Profile).where(Profile.email == email)).first():
        raise HTTPException(status_code=400, detail=USER_EXISTS)

    needs_confirmation = settings.REQUIRE_EMAIL_CONFIRMATION
    profile = Profile(
        nombre=user_data.nombre.strip(),
        email=email,
        password_hash=hash_password(user_data.password),
        rol=UserRole.STUDENT.value,
        fase=Phase.NONE.value,
        email_confirmado=not needs_confirmation,
        fecha_registro=utc_now(),
    )

    try:
        session.add(profile)
        session.commit()
        session.refresh(profile)
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=400, detail=USER_EXISTS)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"❌ Database error during register: {e}")
        raise HTTPException(
            status_code=500,
            detail="Something went wrong while creating your account. Please try again later.",
        )

    logger.info(f"📝 Registered {profile.email} ({profile.id})")

    if not needs_confirmation:
        return MessageResponse(message="Cuenta creada. Ya podes iniciar sesion.")

    token = create_email_token(profile.id, CONFIRM_PURPOSE)
    link = f"{settings.BACKEND_URL}/auth/confirm?token={token}"
    background_tasks.add_task(email_service.send_account_confirmation, profile.email, profile.nombre, link)

    return MessageResponse(
        message="Cuenta creada. Revisa tu correo para confirmar tu cuenta.",
        needs_confirmation=True,
    )


# ==========================================================
# ✅ Confirm e-mail
# ==========================================================
@router.get("/confirm", response_model=MessageResponse)
def confirm_email(token: str = Query(...), session: Session = Depends(get_session)):
    payload = decode_token(token, purpose=CONFIRM_PURPOSE)
    profile = session.get(Profile, payload.get("user_id"))
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")

    if not profile.email_confirmado:
        profile.email_confirmado = True
        session.add(profile)
        session.commit()
        logger.info(f"✅ E-mail confirmed for {profile.email}")

    return MessageResponse(message="Correo confirmado. Ya podes iniciar sesion.")


# ==========================================================
# ✅ Login
# ==========================================================
@router.post("/login", response_model=LoginResponse)
def login(credentials: UserLogin, session: Session = Depends(get_session)):
    """Authenticate a profile and return a bearer token."""
    try:
        db_user = session.exec(
            select(Profile).where(Profile.email == normalize_email(credentials.email))
        ).first()

        if not db_user or not verify_password(credentials.password, db_user.password_hash):
            raise HTTPException(status_code=400, detail=INVALID_CREDENTIALS)

        if not db_user.email_confirmado:
            raise HTTPException(status_code=400, detail=EMAIL_NOT_CONFIRMED)

        if not db_user.is_active:
            raise HTTPException(status_code=403, detail=ACCOUNT_SUSPENDED)

        db_user.ultimo_acceso = utc_now()
        session.add(db_user)
        session.commit()
        session.refresh(db_user)

        logger.info(f"🔑 Login successful for {db_user.email}")

        return LoginResponse(
            access_token=create_token_for_user(db_user),
            user=AuthUser(
                id=db_user.id,
                email=db_user.email,
                nombre=db_user.nombre,
                rol=db_user.rol,
                fase=db_user.fase,
            ),
        )

    except HTTPException:
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"❌ Login database error: {e}")
        raise HTTPException(
            status_code=500,
            detail="We're having trouble logging you in. Please try again later.",
        )


# ==========================================================
# ✅ Password reset
# ==========================================================
@router.post("/reset-password", response_model=MessageResponse)
def request_password_reset(
    data: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    email_service: EmailService = Depends(get_email_service),
):
    """Same answer whether or not the address exists."""
    profile = session.exec(select(Profile).where(Profile.email == normalize_email(data.email))).first()
    if profile:
        token = create_email_token(profile.id, RESET_PURPOSE)
        link = f"{settings.LOGIN_URL}?reset_token={token}"
        background_tasks.add_task(email_service.send_password_reset, profile.email, profile.nombre, link)
        logger.info(f"🔁 Password reset requested for {profile.email}")

    return MessageResponse(message=RESET_SENT)


@router.post("/reset-password/confirm", response_model=MessageResponse)
def confirm_password_reset(data: PasswordResetConfirm, session: Session = Depends(get_session)):
    payload = decode_token(data.token, purpose=RESET_PURPOSE)
    if len(data.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail=PASSWORD_TOO_SHORT)

    profile = session.get(Profile, payload.get("user_id"))
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")

    profile.password_hash = hash_password(data.password)
    # Following the e-mailed link proves ownership of the address
    profile.email_confirmado = True
    session.add(profile)
    session.commit()

    return MessageResponse(message="Contrasena actualizada. Ya podes iniciar sesion.")


# ==========================================================
# ✅ Current session
# ==========================================================
@router.get("/session", response_model=ProfileRead)
def get_session_profile(current_user: Profile = Depends(get_current_user)):
    """Return the authenticated profile; 401 when the token is invalid."""
    return current_user
