"""FastAPI app: shared photo galleries, likes, comments."""
import asyncio
import logging
import sys
import traceback
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from photowall.config import settings
from photowall.database import get_db, init_db
from photowall.errors import (
    NotFoundError,
    ObjectStoreError,
    RecordStoreError,
    ValidationError,
)
from photowall.routers import engagement, galleries
from photowall.schemas import HealthResponse
from photowall.services.feed import get_feed_view
from photowall.services.media_lifecycle import get_media_manager
from photowall.services.object_store import MinioObjectStore, get_object_store

# Логи приложения в stderr: видны в docker logs
_app_log = logging.getLogger("photowall")
_app_log.setLevel(settings.log_level.upper())
if not _app_log.handlers:
    _h = logging.StreamHandler(sys.stderr)
    _h.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    _app_log.addHandler(_h)
_app_log.propagate = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    store = get_object_store()
    await asyncio.get_running_loop().run_in_executor(None, store.ensure_bucket)
    # Любая мутация помечает ленту устаревшей
    get_media_manager().add_listener(get_feed_view().invalidate)
    _app_log.info("photowall started, bucket %s", store.bucket)
    yield


app = FastAPI(
    title="Photowall",
    description="Общие фотогалереи: загрузка, лента, лайки и комментарии.",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(RecordStoreError)
@app.exception_handler(ObjectStoreError)
async def backend_error_handler(request: Request, exc: Exception):
    _app_log.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc), "type": type(exc).__name__})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Traceback в ответе 500 только в режиме debug."""
    _app_log.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"detail": str(exc), "type": type(exc).__name__}
    if settings.debug:
        content["traceback"] = traceback.format_exc()
    return JSONResponse(status_code=500, content=content)


app.include_router(galleries.router)
app.include_router(engagement.router)


@app.get("/health", response_model=HealthResponse)
async def health(
    db: AsyncSession = Depends(get_db),
    store: MinioObjectStore = Depends(get_object_store),
):
    services = {}
    try:
        await db.execute(text("SELECT 1"))
        services["database"] = "healthy"
    except SQLAlchemyError as e:
        _app_log.error("Database health check failed: %s", type(e).__name__)
        services["database"] = "unhealthy"
    try:
        await store.ping()
        services["storage"] = "healthy"
    except ObjectStoreError as e:
        _app_log.error("Storage health check failed: %s", e)
        services["storage"] = "unhealthy"
    all_healthy = all(s == "healthy" for s in services.values())
    return HealthResponse(status="ok" if all_healthy else "degraded", services=services)
