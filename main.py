"""Eduverse - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.config import settings
from app.database import init_db
from app.exceptions import NotFoundError, ValidationFailure
from app.logging_config import setup_logging
from app.middleware import AuthMiddleware
from app.routers import admin, classes, quizzes, student, subjects, units

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    setup_logging()
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    await init_db()
    yield


app = FastAPI(title="Eduverse", version="0.1.0", lifespan=lifespan)

# Middleware
app.add_middleware(AuthMiddleware)

# Uploaded unit resources
app.mount(
    settings.UPLOAD_URL_PREFIX,
    StaticFiles(directory=str(settings.UPLOAD_DIR), check_dir=False),
    name="uploads",
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Server error"})


@app.get("/health")
async def health():
    return {"status": "ok"}


# Routers
app.include_router(student.router)
app.include_router(classes.router)
app.include_router(subjects.router)
app.include_router(units.router)
app.include_router(quizzes.router)
app.include_router(admin.router)
