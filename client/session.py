# ================================================================
# client/session.py — login state, page guards and data helpers
# ================================================================
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from jose import JWTError, jwt

from client.backend import Backend, BackendError
from client.store import SessionStore

logger = logging.getLogger(__name__)

LOGIN_PAGE = "iniciar-sesion.html"
DASHBOARD_PAGE = "dashboard.html"

# Server messages the user can see, in Spanish
ERROR_TRANSLATIONS = {
    "Invalid login credentials": "Email o contraseña incorrectos.",
    "Email not confirmed": "Tu email aun no fue confirmado. Revisa tu bandeja de entrada.",
    "User already registered": "Ya existe una cuenta con este email.",
    "Password should be at least 6 characters": "La contraseña debe tener al menos 6 caracteres.",
    "Unable to validate email address: invalid format": "El formato del email no es valido.",
    "Account suspended": "Tu cuenta esta suspendida. Contacta a soporte.",
    "Invalid or expired token.": "El enlace expiro o no es valido. Solicita uno nuevo.",
}
GENERIC_ERROR = "Ocurrio un error. Intenta de nuevo."

REGISTER_OK = "Cuenta creada exitosamente."
REGISTER_CONFIRM = "Cuenta creada. Revisa tu email para confirmar tu cuenta."
RESET_OK = "Te enviamos un email con instrucciones para restablecer tu contraseña."
RESET_DONE = "Contraseña actualizada. Ya podes iniciar sesion."
LOGIN_OK = "Sesion iniciada."

STUDENT_ROLE = "estudiante"
ADMIN_ROLE = "admin"
BOTH_PHASES = "ambas"


def translate_error(message: Optional[str]) -> str:
    if not message:
        return GENERIC_ERROR
    return ERROR_TRANSLATIONS.get(message, message)


@dataclass
class AuthResult:
    success: bool
    message: str = ""
    needs_confirmation: bool = False


@dataclass
class GuardResult:
    allowed: bool
    redirect: Optional[str] = None
    user: Optional[Dict[str, Any]] = None


def _session_user(profile: Dict[str, Any]) -> Dict[str, Any]:
    """The five fields every page reads from the cached session."""
    return {
        "id": profile.get("id"),
        "nombre": profile.get("nombre") or _name_from_email(profile.get("email")),
        "email": profile.get("email"),
        "rol": profile.get("rol") or STUDENT_ROLE,
        "fase": profile.get("fase") or "ninguna",
    }


def _name_from_email(email: Optional[str]) -> str:
    return (email or "").split("@")[0] or "Usuario"


class SessionClient:
    """
    Front-end session logic for the course site.

    The backend is chosen once (see ``client.backend.resolve_backend``);
    the store keeps the signed-in user between calls.
    """

    def __init__(self, backend: Backend, store: Optional[SessionStore] = None):
        self.backend = backend
        self.store = store or SessionStore()

    @property
    def demo(self) -> bool:
        return self.backend.demo

    # ------------------------
    # Authentication
    # ------------------------
    def login(self, email: str, password: str) -> AuthResult:
        try:
            data = self.backend.login((email or "").strip(), password)
        except BackendError as e:
            logger.info(f"[Auth] Login failed for {email}: {e.message}")
            return AuthResult(False, translate_error(e.message))

        identity = data.get("user") or {}
        self.store.save_login(data["access_token"], identity, _session_user(identity))
        logger.info(f"✅ [Auth] {email} signed in")
        return AuthResult(True, LOGIN_OK)

    def register(self, nombre: str, email: str, password: str) -> AuthResult:
        try:
            data = self.backend.register((nombre or "").strip(), (email or "").strip(), password)
        except BackendError as e:
            return AuthResult(False, translate_error(e.message))

        if data.get("needs_confirmation"):
            return AuthResult(True, REGISTER_CONFIRM, needs_confirmation=True)
        return AuthResult(True, REGISTER_OK)

    def reset_password(self, email: str) -> AuthResult:
        try:
            self.backend.reset_password((email or "").strip())
        except BackendError as e:
            return AuthResult(False, translate_error(e.message))
        return AuthResult(True, RESET_OK)

    def confirm_password_reset(self, reset_token: str, password: str) -> AuthResult:
        try:
            self.backend.confirm_password_reset(reset_token, password)
        except BackendError as e:
            return AuthResult(False, translate_error(e.message))
        return AuthResult(True, RESET_DONE)

    def logout(self) -> None:
        self.store.clear()
        logger.info("[Auth] Session cleared")

    # ------------------------
    # Session lookup
    # ------------------------
    def get_session(self) -> Optional[Dict[str, Any]]:
        """
        Current user as ``{id, nombre, email, rol, fase}``, or None.

        Prefers the live profile. When the backend cannot be reached the
        best local source wins: cached user, then login metadata, then
        the token claims.
        """
        token = self.store.access_token
        if not token:
            return None

        try:
            profile = self.backend.fetch_session(token)
        except BackendError as e:
            if e.is_auth_failure:
                logger.info("[Auth] Session rejected by the backend")
                self.store.clear()
                return None
            logger.warning(f"⚠️ [Auth] Profile lookup failed, using local session: {e.message}")
            return self._fallback_user(token)

        user = _session_user(profile)
        self.store.cache_user(user)
        return user

    def _fallback_user(self, token: str) -> Optional[Dict[str, Any]]:
        if self.store.user:
            return self.store.user
        if self.store.identity:
            return _session_user(self.store.identity)
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError:
            return None
        return _session_user({"id": claims.get("user_id"), "email": claims.get("sub"), "rol": claims.get("role")})

    # ------------------------
    # Page guards
    # ------------------------
    def guard(self) -> GuardResult:
        """Any signed-in user. The local flag is checked before the backend."""
        if not self.store.authorized or not self.store.access_token:
            return GuardResult(False, LOGIN_PAGE)
        user = self.get_session()
        if user is None:
            self.store.clear()
            return GuardResult(False, LOGIN_PAGE)
        return GuardResult(True, user=user)

    def course_guard(self, phase: str) -> GuardResult:
        """Signed-in user whose fase covers ``phase``; admins always pass."""
        result = self.guard()
        if not result.allowed:
            return result

        user = result.user
        if user.get("rol") == ADMIN_ROLE or user.get("fase") in (phase, BOTH_PHASES):
            return result
        return GuardResult(False, DASHBOARD_PAGE)

    def admin_guard(self) -> GuardResult:
        result = self.guard()
        if not result.allowed:
            return result

        if result.user.get("rol") == ADMIN_ROLE:
            return result
        return GuardResult(False, DASHBOARD_PAGE)

    # ------------------------
    # Data helpers
    # ------------------------
    def _token(self) -> str:
        token = self.store.access_token
        if not token:
            raise BackendError("Not authenticated", 401)
        return token

    def get_profile(self) -> Dict[str, Any]:
        return self.backend.fetch_session(self._token())

    def update_profile(self, **fields) -> Dict[str, Any]:
        profile = self.backend.update_profile(self._token(), fields)
        self.store.cache_user(_session_user(profile))
        return profile

    def get_progress(self) -> List[Dict[str, Any]]:
        return self.backend.progress(self._token())

    def mark_module_complete(self, modulo: str) -> Dict[str, Any]:
        return self.backend.mark_module_complete(self._token(), modulo)

    def get_payments(self) -> List[Dict[str, Any]]:
        return self.backend.payments(self._token())

    def get_notifications(self) -> List[Dict[str, Any]]:
        return self.backend.notifications(self._token())

    def mark_notification_read(self, notification_id: int) -> Dict[str, Any]:
        return self.backend.mark_notification_read(self._token(), notification_id)

    # ------------------------
    # Admin helpers
    # ------------------------
    def admin_list_users(self, fase: Optional[str] = None, estado: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.backend.admin_users(self._token(), fase=fase, estado=estado)

    def admin_update_user(self, user_id: str, **fields) -> Dict[str, Any]:
        return self.backend.admin_update_user(self._token(), user_id, fields)

    def admin_send_notification(self, user_id: str, titulo: str, mensaje: str, tipo: str = "info") -> Dict[str, Any]:
        return self.backend.admin_notify(
            self._token(),
            {"user_id": user_id, "titulo": titulo, "mensaje": mensaje, "tipo": tipo},
        )

    def admin_list_payments(self, estado: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.backend.admin_payments(self._token(), estado=estado)

    def admin_list_waitlist(self) -> List[Dict[str, Any]]:
        return self.backend.admin_waitlist(self._token())
