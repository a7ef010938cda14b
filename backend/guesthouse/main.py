import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from guesthouse.config import settings

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_DIR.mkdir(exist_ok=True)

_log_level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "guesthouse.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("apscheduler").setLevel(logging.WARNING)

from guesthouse.routers import bookings, reviews

logger = logging.getLogger(__name__)


async def expire_stale_bookings() -> int:
    from guesthouse.database import async_session_factory
    from guesthouse.services.booking_service import booking_service

    async with async_session_factory() as db:
        count = await booking_service.expire_stale_bookings(db)
    if count:
        logger.info(f"Expiry sweep: {count} unpaid bookings released")
    return count


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: launch background scheduler
    scheduler = None
    if settings.scheduler_enabled:
        try:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.interval import IntervalTrigger

            scheduler = AsyncIOScheduler()
            scheduler.add_job(
                expire_stale_bookings,
                IntervalTrigger(minutes=settings.expiry_sweep_interval_minutes),
                id="expire_stale_bookings",
            )
            scheduler.start()
            logger.info("Background scheduler started")
        except Exception as e:
            logger.error(f"Scheduler failed to start: {e}")
            scheduler = None

    yield

    # Shutdown
    from guesthouse.services.email_client import email_client
    from guesthouse.services.payment_client import payment_client

    await payment_client.close()
    await email_client.close()
    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")


app = FastAPI(
    title="Guesthouse",
    description="Bed and breakfast reviews and room booking",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Bad request bodies are client errors (400), not FastAPI's default 422."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


app.include_router(reviews.router, prefix="/api/reviews", tags=["reviews"])
app.include_router(bookings.router, prefix="/api", tags=["bookings"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": "guesthouse"}
