import logging
import subprocess
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pointage.api.absences import router as absences_router
from pointage.api.alerts import router as alerts_router
from pointage.api.analytics import router as analytics_router
from pointage.api.employees import router as employees_router
from pointage.api.files import router as files_router
from pointage.core.config import settings
from pointage.core.exceptions import PointageError
from pointage.services.rules import AttendanceRules

logger = logging.getLogger(__name__)


def run_migrations() -> None:
    logger.info("Running Alembic migrations...")
    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            capture_output=True,
            text=True,
            cwd=settings.ALEMBIC_CONFIG_DIR,
        )
    except OSError as exc:
        logger.exception("Failed to run migrations: %s", exc)
        return
    if result.returncode != 0:
        logger.error("Alembic migration failed:\n%s", result.stderr)
    else:
        logger.info("Migrations applied successfully:\n%s", result.stdout)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Apply Alembic migrations on startup."""
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        run_migrations()

    yield

    logger.info("Shutting down Pointage backend.")


app = FastAPI(
    title="Pointage API",
    description="Attendance analytics computed from time-clock punches and recorded absences.",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.rules = AttendanceRules.from_settings(settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PointageError)
async def pointage_error_handler(request: Request, exc: PointageError) -> JSONResponse:
    logger.warning("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(employees_router, prefix="/api/employees", tags=["Employees"])
app.include_router(absences_router, prefix="/api/absences", tags=["Absences"])
app.include_router(analytics_router, prefix="/api/analytics", tags=["Analytics"])
app.include_router(alerts_router, prefix="/api/alerts", tags=["Alerts"])
app.include_router(files_router, prefix="/api/files", tags=["Files"])


@app.get("/health", tags=["System"])
async def health_check() -> dict:
    return {"status": "ok"}
