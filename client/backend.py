# client/backend.py — the two backends a SessionClient can talk to
"""
A client is built with exactly one backend, chosen once by
``resolve_backend``:

* ``ConfiguredBackend`` calls the Orbita Capital API over HTTP.
* ``DemoBackend`` serves two hard-coded accounts and refuses every
  operation that would need a real server.

Both expose the same methods, so ``SessionClient`` never checks which
one it holds.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

PLACEHOLDER_API_URLS = {"", "TU_API_URL_AQUI"}


class BackendError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_auth_failure(self) -> bool:
        """The server rejected the session itself, not a transient failure."""
        return self.status_code in (401, 403)


class DemoModeError(BackendError):
    pass


class Backend(ABC):
    demo = False

    @abstractmethod
    def login(self, email: str, password: str) -> Dict[str, Any]: ...

    @abstractmethod
    def register(self, nombre: str, email: str, password: str) -> Dict[str, Any]: ...

    @abstractmethod
    def reset_password(self, email: str) -> Dict[str, Any]: ...

    @abstractmethod
    def confirm_password_reset(self, reset_token: str, password: str) -> Dict[str, Any]: ...

    @abstractmethod
    def fetch_session(self, token: str) -> Dict[str, Any]: ...

    @abstractmethod
    def update_profile(self, token: str, fields: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    def progress(self, token: str) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def mark_module_complete(self, token: str, modulo: str) -> Dict[str, Any]: ...

    @abstractmethod
    def payments(self, token: str) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def notifications(self, token: str) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def mark_notification_read(self, token: str, notification_id: int) -> Dict[str, Any]: ...

    @abstractmethod
    def admin_users(self, token: str, **filters) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def admin_update_user(self, token: str, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    def admin_notify(self, token: str, notification: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    def admin_payments(self, token: str, **filters) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def admin_waitlist(self, token: str) -> List[Dict[str, Any]]: ...


# ============================================================
# HTTP backend
# ============================================================
class ConfiguredBackend(Backend):
    def __init__(self, http: httpx.Client):
        self.http = http

    def _call(self, method: str, path: str, token: Optional[str] = None, **kwargs) -> Any:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = self.http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ {method} {path} failed: {e}")
            raise BackendError(str(e)) from e

        if response.is_success:
            return response.json()

        try:
            detail = response.json().get("detail")
        except ValueError:
            detail = None
        # 422 bodies carry a list of field errors
        if not isinstance(detail, str):
            detail = response.reason_phrase or "Request failed"
        raise BackendError(detail, response.status_code)

    def login(self, email, password):
        return self._call("POST", "/auth/login", json={"email": email, "password": password})

    def register(self, nombre, email, password):
        return self._call("POST", "/auth/register", json={"nombre": nombre, "email": email, "password": password})

    def reset_password(self, email):
        return self._call("POST", "/auth/reset-password", json={"email": email})

    def confirm_password_reset(self, reset_token, password):
        return self._call("POST", "/auth/reset-password/confirm", json={"token": reset_token, "password": password})

    def fetch_session(self, token):
        return self._call("GET", "/auth/session", token)

    def update_profile(self, token, fields):
        return self._call("PATCH", "/profile/me", token, json=fields)

    def progress(self, token):
        return self._call("GET", "/profile/progress", token)

    def mark_module_complete(self, token, modulo):
        return self._call("POST", f"/profile/progress/{modulo}", token)

    def payments(self, token):
        return self._call("GET", "/profile/payments", token)

    def notifications(self, token):
        return self._call("GET", "/profile/notifications", token)

    def mark_notification_read(self, token, notification_id):
        return self._call("POST", f"/profile/notifications/{notification_id}/read", token)

    def admin_users(self, token, **filters):
        return self._call("GET", "/admin/users", token, params={k: v for k, v in filters.items() if v})

    def admin_update_user(self, token, user_id, fields):
        return self._call("PATCH", f"/admin/users/{user_id}", token, json=fields)

    def admin_notify(self, token, notification):
        return self._call("POST", "/admin/notifications", token, json=notification)

    def admin_payments(self, token, **filters):
        return self._call("GET", "/admin/payments", token, params={k: v for k, v in filters.items() if v})

    def admin_waitlist(self, token):
        return self._call("GET", "/admin/waitlist", token)


# ============================================================
# Demo backend
# ============================================================
DEMO_TOKEN_PREFIX = "demo:"

DEMO_ACCOUNTS = {
    "email@email.com": {
        "password": "contraseña",
        "user": {"id": "demo-estudiante", "nombre": "Usuario Demo", "email": "email@email.com",
                 "rol": "estudiante", "fase": "fase-1"},
    },
    "admin@email.com": {
        "password": "admin1234",
        "user": {"id": "demo-admin", "nombre": "Admin Demo", "email": "admin@email.com",
                 "rol": "admin", "fase": "ambas"},
    },
}

REGISTER_UNAVAILABLE = "Registro no disponible en modo demo. Configura el backend."
RESET_UNAVAILABLE = "Recuperacion no disponible en modo demo."
DEMO_UNAVAILABLE = "No disponible en modo demo."


class DemoBackend(Backend):
    demo = True

    def _account(self, token: str) -> Dict[str, Any]:
        email = token[len(DEMO_TOKEN_PREFIX):] if token and token.startswith(DEMO_TOKEN_PREFIX) else None
        account = DEMO_ACCOUNTS.get(email)
        if not account:
            raise BackendError("Invalid or expired token.", 401)
        return account

    def login(self, email, password):
        account = DEMO_ACCOUNTS.get((email or "").strip().lower())
        if not account or account["password"] != password:
            raise BackendError("Invalid login credentials", 400)
        return {"access_token": DEMO_TOKEN_PREFIX + account["user"]["email"], "user": dict(account["user"])}

    def register(self, nombre, email, password):
        raise DemoModeError(REGISTER_UNAVAILABLE)

    def reset_password(self, email):
        raise DemoModeError(RESET_UNAVAILABLE)

    def confirm_password_reset(self, reset_token, password):
        raise DemoModeError(RESET_UNAVAILABLE)

    def fetch_session(self, token):
        return dict(self._account(token)["user"])

    def update_profile(self, token, fields):
        raise DemoModeError(DEMO_UNAVAILABLE)

    def progress(self, token):
        self._account(token)
        return []

    def mark_module_complete(self, token, modulo):
        raise DemoModeError(DEMO_UNAVAILABLE)

    def payments(self, token):
        self._account(token)
        return []

    def notifications(self, token):
        self._account(token)
        return []

    def mark_notification_read(self, token, notification_id):
        raise DemoModeError(DEMO_UNAVAILABLE)

    def admin_users(self, token, **filters):
        return [dict(a["user"]) for a in DEMO_ACCOUNTS.values()]

    def admin_update_user(self, token, user_id, fields):
        raise DemoModeError(DEMO_UNAVAILABLE)

    def admin_notify(self, token, notification):
        raise DemoModeError(DEMO_UNAVAILABLE)

    def admin_payments(self, token, **filters):
        return []

    def admin_waitlist(self, token):
        return []


def resolve_backend(api_url: Optional[str] = None, http: Optional[httpx.Client] = None) -> Backend:
    """Pick the backend once, at start-up."""
    if http is not None:
        return ConfiguredBackend(http)
    if api_url is None or api_url.strip() in PLACEHOLDER_API_URLS:
        logger.warning("[Auth] Backend no configurado. Usando modo demo.")
        return DemoBackend()
    return ConfiguredBackend(httpx.Client(base_url=api_url.rstrip("/"), timeout=10.0))
