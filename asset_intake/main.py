import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from asset_intake.config import settings
from asset_intake.middleware.exceptions import register_exception_handlers
from asset_intake.middleware.security import SecurityHeadersMiddleware
from asset_intake.routers import auth, health, intake, submissions
from asset_intake.utils.cache import close_redis

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# StaticFiles checks the directory when mounted
Path(settings.storage_dir).mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Asset intake starting ({settings.environment}, catalog={settings.asset_catalog}, "
        f"contact={settings.contact_mode})"
    )
    yield
    await close_redis()


app = FastAPI(
    title="Asset Intake",
    description="Employee asset-assignment intake form and admin dashboard",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (outermost first) ─────────────────────────────
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(intake.router, prefix="/api/intake", tags=["intake"])
app.include_router(submissions.router, prefix="/api/submissions", tags=["submissions"])

# Uploaded asset photos: <storage_dir>/<bucket>/<name> → /media/<bucket>/<name>
app.mount("/media", StaticFiles(directory=settings.storage_dir), name="media")
