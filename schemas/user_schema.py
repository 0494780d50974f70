# user_schema.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime

from models.models import UserRole, Phase, AccountStatus


# ---------------------------
# Register & Auth
# ---------------------------
class UserCreate(BaseModel):
    nombre: str = Field(..., min_length=1, max_length=100)
    email: str
    # Length is checked in the route so the message matches the client's translation table
    password: str


class UserLogin(BaseModel):
    email: str
    password: str


class PasswordResetRequest(BaseModel):
    email: str


class PasswordResetConfirm(BaseModel):
    token: str
    password: str


# ---------------------------
# Read / Update
# ---------------------------
class ProfileRead(BaseModel):
    id: str
    nombre: str
    email: str
    rol: str
    fase: str
    estado: str
    bot_activo: bool = False
    licencia_bot: Optional[str] = None
    comunidad_acceso: bool = False
    telefono: Optional[str] = None
    pais: Optional[str] = None
    fecha_registro: datetime
    ultimo_acceso: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    """Self-service fields; entitlements are only changed by payments or admins."""
    nombre: Optional[str] = Field(default=None, min_length=1, max_length=100)
    telefono: Optional[str] = Field(default=None, max_length=40)
    pais: Optional[str] = Field(default=None, max_length=60)


class AdminProfileUpdate(BaseModel):
    nombre: Optional[str] = Field(default=None, min_length=1, max_length=100)
    rol: Optional[UserRole] = None
    fase: Optional[Phase] = None
    estado: Optional[AccountStatus] = None
    bot_activo: Optional[bool] = None
    licencia_bot: Optional[str] = Field(default=None, max_length=100)
    comunidad_acceso: Optional[bool] = None


class AuthUser(BaseModel):
    """Identity metadata returned at login, cached by the client."""
    id: str
    email: str
    nombre: str
    rol: str
    fase: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: AuthUser


class MessageResponse(BaseModel):
    success: bool = True
    message: str
    needs_confirmation: bool = False
