# client/store.py — locally persisted session state
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

# Key names are shared with the static site; do not rename
USER_KEY = "usuario"
AUTHORIZED_KEY = "accesoAutorizado"
TIMESTAMP_KEY = "timestampAcceso"
SESSION_KEY = "sesion"


class SessionStore:
    """
    Small key/value store persisted as one JSON file.

    With ``path=None`` it lives in memory only, like a browser tab's
    sessionStorage.
    """

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path else None
        self._data: Dict[str, Any] = {}
        if self.path and self.path.exists():
            try:
                self._data = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning(f"⚠️ Ignoring unreadable session file {self.path}: {e}")
                self._data = {}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def clear(self) -> None:
        self._data = {}
        self._flush()

    # ------------------------
    # Session helpers
    # ------------------------
    @property
    def authorized(self) -> bool:
        return self.get(AUTHORIZED_KEY) == "true"

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self.get(USER_KEY)

    @property
    def access_token(self) -> Optional[str]:
        return (self.get(SESSION_KEY) or {}).get("access_token")

    @property
    def identity(self) -> Optional[Dict[str, Any]]:
        """User metadata returned by the identity provider at login."""
        return (self.get(SESSION_KEY) or {}).get("user")

    def save_login(self, access_token: str, identity: Dict[str, Any], user: Dict[str, Any]) -> None:
        self._data[SESSION_KEY] = {"access_token": access_token, "user": identity}
        self._data[USER_KEY] = user
        self._data[AUTHORIZED_KEY] = "true"
        self._data[TIMESTAMP_KEY] = str(int(time.time() * 1000))
        self._flush()

    def cache_user(self, user: Dict[str, Any]) -> None:
        self._data[USER_KEY] = user
        self._data[AUTHORIZED_KEY] = "true"
        self._flush()
