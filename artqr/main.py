"""
ArtQR API
Artistic QR generation: submit, poll, fetch archived artifacts.
"""

import hashlib
import logging
import mimetypes
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from artqr import __version__
from artqr.api import artistic
from artqr.core.config import settings
from artqr.core.database import engine, init_db
from artqr.core.redis import redis_health_check

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"[API] {settings.APP_NAME} {__version__} starting")
    init_db()
    yield
    logger.info("[API] Shutting down")


app = FastAPI(
    title=settings.APP_NAME,
    description="Asynchronous artistic QR generation with scannability checks",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(artistic.router, prefix=settings.API_PREFIX, tags=["Artistic QR"])


def _storage_backend() -> str:
    if settings.USE_GCS:
        return "gcs"
    return "local" if settings.USE_LOCAL_STORAGE else "s3"


@app.get("/health", tags=["Health"])
def health_check():
    """
    Liveness plus dependency status.

    `degraded` means the API answers but jobs cannot be queued or tracked.
    A missing Replicate token is reported but does not degrade the API;
    only the workers need it.
    """
    checks = {}
    healthy = True

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        logger.error(f"[Health] Database check failed: {e}")
        checks["database"] = f"error: {e}"
        healthy = False

    redis_status = redis_health_check()
    if redis_status["connected"]:
        checks["redis"] = {"status": "ok", "version": redis_status["redis_version"], "keys": redis_status["keys"]}
    else:
        checks["redis"] = {"status": "error", "error": redis_status.get("error")}
        healthy = False

    checks["replicate"] = "configured" if settings.REPLICATE_API_TOKEN else "missing token"

    return {
        "status": "healthy" if healthy else "degraded",
        "version": __version__,
        "storage": _storage_backend(),
        "services": checks,
    }


@app.get("/files/{file_path:path}", tags=["Files"])
async def serve_file(file_path: str):
    """Archived artifacts, proxied from whichever storage backend is active."""
    from artqr.core.container import get_container

    try:
        data = await get_container().artifacts.get_file(file_path)
    except Exception as e:
        logger.warning(f"[Files] {file_path} not served: {e}")
        raise HTTPException(status_code=404, detail=f"File not found: {file_path}")

    return Response(
        content=data,
        media_type=mimetypes.guess_type(file_path)[0] or "application/octet-stream",
        headers={
            # Paths are keyed by source image URL and never rewritten
            "Cache-Control": "public, max-age=86400, immutable",
            "ETag": hashlib.md5(data).hexdigest(),
        },
    )


@app.get("/", tags=["Root"])
def root():
    return {
        "name": settings.APP_NAME,
        "version": __version__,
        "submit": f"{settings.API_PREFIX}/artistic",
        "styles": f"{settings.API_PREFIX}/artistic/styles",
        "docs": "/docs",
        "health": "/health",
    }
