import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.database import create_db_and_tables, ping_database
from routes.auth import router as auth_router
from routes.profile import router as profile_router
from routes.users import router as admin_router
from routes.payment import router as payment_router
from routes.waitlist import router as waitlist_router

logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)


# =========================================
# 🏁 Lifespan (DB initialization)
# =========================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    logger.info("✅ Database tables created on startup.")
    yield
    logger.info("✅ Application shutting down.")


# =========================================
#  ✅ FastAPI App
# =========================================
app = FastAPI(lifespan=lifespan, title="Orbita Capital Backend")

# Checkout and waitlist endpoints are called from the static site
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# =========================================
# 📦 Routers
# =========================================
app.include_router(auth_router, prefix="/auth", tags=["Authentication"])
app.include_router(profile_router)
app.include_router(admin_router)
app.include_router(payment_router)   # ✅ Stripe + MercadoPago
app.include_router(waitlist_router)


# =========================================
# 🩺 Health Check
# =========================================
@app.get("/health")
def health_check():
    if not ping_database():
        return JSONResponse(status_code=503, content={"status": "error", "message": "Database unavailable"})
    return {"status": "ok", "message": "Backend is running"}


@app.get("/")
def read_root():
    return {"message": "Welcome to Orbita Capital Backend!"}
