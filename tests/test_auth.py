"""Tests for registration, login, e-mail confirmation and password reset."""

from urllib.parse import parse_qs, urlparse

from sqlmodel import select

from conftest import DEFAULT_PASSWORD, auth_headers
from core.config import get_settings
from core.security import RESET_PURPOSE, create_email_token, decode_token
from main import app
from models.models import Profile


def link_from(email: dict) -> str:
    html = email["html"]
    start = html.index('href="http') + len('href="')
    return html[start:html.index('"', start)].replace("&amp;", "&")


class TestRegister:
    def test_register_creates_student(self, client, session):
        response = client.post("/auth/register", json={
            "nombre": "Nuevo Alumno",
            "email": "Nuevo@Mail.com",
            "password": "secreto123",
        })

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["needs_confirmation"] is False

        profile = session.exec(select(Profile).where(Profile.email == "nuevo@mail.com")).one()
        assert profile.rol == "estudiante"
        assert profile.fase == "ninguna"
        assert profile.estado == "activo"
        assert profile.password_hash != "secreto123"

    def test_duplicate_email(self, client, student):
        response = client.post("/auth/register", json={
            "nombre": "Otro",
            "email": student.email,
            "password": "secreto123",
        })

        assert response.status_code == 400
        assert response.json()["detail"] == "User already registered"

    def test_short_password(self, client):
        response = client.post("/auth/register", json={"nombre": "A", "email": "a@mail.com", "password": "123"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Password should be at least 6 characters"

    def test_invalid_email(self, client):
        response = client.post("/auth/register", json={"nombre": "A", "email": "no-es-email", "password": "secreto123"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Unable to validate email address: invalid format"


class TestEmailConfirmation:
    def test_confirmation_flow(self, client, session, test_settings, email_service):
        settings = test_settings.model_copy(update={"REQUIRE_EMAIL_CONFIRMATION": True})
        app.dependency_overrides[get_settings] = lambda: settings

        response = client.post("/auth/register", json={
            "nombre": "Confirmar",
            "email": "confirmar@mail.com",
            "password": "secreto123",
        })
        assert response.json()["needs_confirmation"] is True

        login = client.post("/auth/login", json={"email": "confirmar@mail.com", "password": "secreto123"})
        assert login.status_code == 400
        assert login.json()["detail"] == "Email not confirmed"

        link = link_from(email_service.sent[0])
        assert "/auth/confirm?token=" in link
        token = parse_qs(urlparse(link).query)["token"][0]

        assert client.get("/auth/confirm", params={"token": token}).status_code == 200
        login = client.post("/auth/login", json={"email": "confirmar@mail.com", "password": "secreto123"})
        assert login.status_code == 200

    def test_bad_token(self, client):
        assert client.get("/auth/confirm", params={"token": "garbage"}).status_code == 401


class TestLogin:
    def test_login_returns_token_and_identity(self, client, session, student):
        response = client.post("/auth/login", json={"email": student.email, "password": DEFAULT_PASSWORD})

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"] == {
            "id": student.id,
            "email": student.email,
            "nombre": student.nombre,
            "rol": "estudiante",
            "fase": "ninguna",
        }
        assert decode_token(data["access_token"])["user_id"] == student.id

        session.refresh(student)
        assert student.ultimo_acceso is not None

    def test_email_is_case_insensitive(self, client, student):
        response = client.post("/auth/login", json={"email": student.email.upper(), "password": DEFAULT_PASSWORD})
        assert response.status_code == 200

    def test_wrong_password(self, client, student):
        response = client.post("/auth/login", json={"email": student.email, "password": "incorrecta"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid login credentials"

    def test_unknown_user(self, client):
        response = client.post("/auth/login", json={"email": "nadie@mail.com", "password": "secreto123"})
        assert response.json()["detail"] == "Invalid login credentials"

    def test_suspended_account(self, client, make_profile):
        profile = make_profile(email="suspendido@mail.com", estado="suspendido")
        response = client.post("/auth/login", json={"email": profile.email, "password": DEFAULT_PASSWORD})

        assert response.status_code == 403
        assert response.json()["detail"] == "Account suspended"


class TestSession:
    def test_session_returns_profile(self, client, student):
        response = client.get("/auth/session", headers=auth_headers(student))

        assert response.status_code == 200
        assert response.json()["email"] == student.email
        assert "password_hash" not in response.json()

    def test_session_requires_token(self, client):
        assert client.get("/auth/session").status_code == 401

    def test_reset_token_is_not_an_access_token(self, client, student):
        token = create_email_token(student.id, RESET_PURPOSE)
        response = client.get("/auth/session", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


class TestPasswordReset:
    def test_reset_flow(self, client, session, student, email_service):
        response = client.post("/auth/reset-password", json={"email": student.email})
        assert response.status_code == 200

        link = link_from(email_service.sent[0])
        assert "iniciar-sesion.html?reset_token=" in link
        token = parse_qs(urlparse(link).query)["reset_token"][0]

        response = client.post("/auth/reset-password/confirm", json={"token": token, "password": "nueva-clave"})
        assert response.status_code == 200

        assert client.post("/auth/login", json={"email": student.email, "password": "nueva-clave"}).status_code == 200
        assert client.post("/auth/login", json={"email": student.email, "password": DEFAULT_PASSWORD}).status_code == 400

    def test_unknown_email_gets_the_same_answer(self, client, student, email_service):
        known = client.post("/auth/reset-password", json={"email": student.email})
        unknown = client.post("/auth/reset-password", json={"email": "nadie@mail.com"})

        assert known.json() == unknown.json()
        assert len(email_service.sent) == 1

    def test_short_new_password(self, client, student):
        token = create_email_token(student.id, RESET_PURPOSE)
        response = client.post("/auth/reset-password/confirm", json={"token": token, "password": "123"})

        assert response.status_code == 400
