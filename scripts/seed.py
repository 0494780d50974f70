# scripts/seed.py

import os
import sys
import argparse

from dotenv import load_dotenv
from sqlmodel import Session, select

# Ensure root path for relative imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.database import engine, create_db_and_tables
from core.security import hash_password
from models.models import Profile, UserRole, Phase, COURSE_MODULES
from services.reconciliation import ensure_progress_rows

# ✅ Load environment variables
load_dotenv()


def get_or_create_profile(session: Session, email: str, **fields) -> Profile:
    profile = session.exec(select(Profile).where(Profile.email == email)).first()
    if profile:
        print(f"ℹ️ {email} already exists")
        return profile

    profile = Profile(email=email, email_confirmado=True, **fields)
    session.add(profile)
    session.commit()
    session.refresh(profile)
    print(f"✅ Added {email}")
    return profile


def seed_dev_data():
    """Seed development database with an admin and two students."""
    print("🌱 Seeding development data...")
    create_db_and_tables()

    with Session(engine) as session:
        # -----------------------------
        # 👑 Admin
        # -----------------------------
        get_or_create_profile(
            session,
            "admin@orbitacapital.io",
            nombre="Admin Orbita",
            password_hash=hash_password("admin1234"),
            rol=UserRole.ADMIN.value,
            fase=Phase.BOTH.value,
        )

        # -----------------------------
        # 🎓 Students
        # -----------------------------
        student = get_or_create_profile(
            session,
            "alumno@orbitacapital.io",
            nombre="Alumno Fase 1",
            password_hash=hash_password("alumno123"),
            fase=Phase.PHASE_1.value,
        )
        ensure_progress_rows(session, student.id, COURSE_MODULES)
        session.commit()

        get_or_create_profile(
            session,
            "nuevo@orbitacapital.io",
            nombre="Alumno Nuevo",
            password_hash=hash_password("nuevo123"),
        )

    print("🌱 Development data seeding complete.")


def seed_staging_data():
    """Seed staging database with a single admin."""
    print("🌱 Seeding staging data...")
    create_db_and_tables()

    with Session(engine) as session:
        get_or_create_profile(
            session,
            "staging-admin@orbitacapital.io",
            nombre="Staging Admin",
            password_hash=hash_password(os.getenv("STAGING_ADMIN_PASSWORD", "staging123")),
            rol=UserRole.ADMIN.value,
            fase=Phase.BOTH.value,
        )

    print("🌱 Staging data seeding complete.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Orbita Capital database.")
    parser.add_argument(
        "--env",
        choices=["dev", "staging"],
        default="dev",
        help="Select environment to seed (dev or staging)",
    )
    args = parser.parse_args()

    if args.env == "dev":
        seed_dev_data()
    elif args.env == "staging":
        seed_staging_data()
