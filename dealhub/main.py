import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dealhub.core.config import AUTO_CREATE_SCHEMA, CORS_ORIGINS, DATABASE_URL
from dealhub.core.database import Base, engine
from dealhub.core.error_handlers import register_exception_handlers
from dealhub.core.logging_setup import configure_logging
from dealhub.core.startup_checks import ensure_migrations_applied, validate_database_environment
from dealhub.middleware.observability import ObservabilityMiddleware
import dealhub.models  # registers every table on Base.metadata

from dealhub.routers.admin import router as admin_router
from dealhub.routers.auth import router as auth_router
from dealhub.routers.deals import router as deals_router
from dealhub.routers.points import router as points_router
from dealhub.routers.redirect import router as redirect_router
from dealhub.routers.shares import router as shares_router
from dealhub.routers.tenants import router as tenants_router

configure_logging()

logger = logging.getLogger(__name__)
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini")))


def _startup_tasks() -> None:
    validate_database_environment()
    if AUTO_CREATE_SCHEMA and DATABASE_URL.startswith("sqlite"):
        logger.info("Creating tables on %s", engine.url.render_as_string(hide_password=True))
        Base.metadata.create_all(bind=engine)
        return
    ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="DealHub API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)
register_exception_handlers(app)

app.include_router(tenants_router)
app.include_router(auth_router)
app.include_router(shares_router)
app.include_router(redirect_router)
app.include_router(deals_router)
app.include_router(points_router)
app.include_router(admin_router)


@app.get("/health")
def health():
    return {"status": "ok"}
