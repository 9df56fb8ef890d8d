import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles

from bbe_admin.core.config import settings
from bbe_admin.core.logging import log_end, log_start, setup_logging
from bbe_admin.core.services import get_directory, get_site_probe
from bbe_admin.routers import auth, clients, dashboard, upload
from bbe_admin.services.site_probe import probe_loop

# Configure logging
setup_logging(log_level=settings.LOG_LEVEL, log_dir=settings.LOG_DIR)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log_start(logger, f"{settings.PROJECT_NAME} {settings.VERSION} starting")
    probe_task = None
    if settings.PROBE_INTERVAL_SECONDS > 0:
        probe_task = asyncio.create_task(
            probe_loop(get_directory(), get_site_probe(), settings.PROBE_INTERVAL_SECONDS)
        )
    yield
    if probe_task:
        probe_task.cancel()
        try:
            await probe_task
        except asyncio.CancelledError:
            pass
    log_end(logger, f"{settings.PROJECT_NAME} stopped")


app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)

app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(clients.router)
app.include_router(upload.router)

static_dir = Path(__file__).resolve().parent / "static"
app.mount("/static", StaticFiles(directory=static_dir), name="static")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    if request.url.path.startswith("/static") or request.url.path == "/health":
        return await call_next(request)

    logger.info(f"[REQ] {request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(f"[RES] {response.status_code} {request.method} {request.url.path}")
    return response


@app.get("/health")
async def health():
    return {"status": "ok"}
