from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tischbuchung.routers import tables, reservations
from tischbuchung.config import settings
from tischbuchung.database import SessionLocal
from tischbuchung.exception_handlers import register_exception_handlers
from tischbuchung.middleware.logging_middleware import log_requests
from tischbuchung.services.clock import SystemClock
from tischbuchung.services.ticker import ReconciliationTicker
from tischbuchung.utils.logging_config import setup_logging


logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    ticker = None
    if settings.scheduler_enabled:
        ticker = ReconciliationTicker(
            SessionLocal,
            SystemClock(),
            interval_seconds=settings.scheduler_interval_seconds,
            expiry_interval_seconds=settings.expiry_interval_seconds,
        )
        ticker.start()
    logger.info("Application starting...")
    yield
    if ticker:
        ticker.stop()
    logger.info("Application stopped")


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

app.middleware("http")(log_requests)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(tables.router)
app.include_router(reservations.router)

@app.get("/")
def root() -> dict:
        return {"message": "Tischbuchung läuft!", "app": settings.app_name}

@app.get("/health")
def health() -> dict:
        return {"status": "ok"}
