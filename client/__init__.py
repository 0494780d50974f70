from .backend import (
    Backend, BackendError, ConfiguredBackend, DemoBackend, DemoModeError,
    DEMO_ACCOUNTS, resolve_backend,
)
from .session import AuthResult, GuardResult, SessionClient, translate_error
from .store import SessionStore
