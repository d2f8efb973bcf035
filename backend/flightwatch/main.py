from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from flightwatch.api import flights, health, monitoring
from flightwatch.config import get_settings
from flightwatch.database import Base, SessionLocal, engine, ensure_sqlite_directory
from flightwatch.models import MonitoringJob, PriceHistory, PriceAlert  # noqa: F401 - register tables
from flightwatch.scheduler import PriceWatchScheduler
from flightwatch.services.amadeus import AmadeusClient
from flightwatch.services.flight_search import FlightSearchService
from flightwatch.services.price_check import PriceCheckService
from flightwatch.services.search_cache import SearchCache

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting Flightwatch")

    if settings.database_url.startswith("sqlite"):
        logger.info("SQLite detected - creating tables if needed")
        ensure_sqlite_directory(settings.database_url)
        Base.metadata.create_all(bind=engine)

    client = AmadeusClient()
    cache = SearchCache()
    checker = PriceCheckService(client, session_factory=SessionLocal)
    scheduler = PriceWatchScheduler(checker, session_factory=SessionLocal)

    app.state.amadeus_client = client
    app.state.search_cache = cache
    app.state.flight_search = FlightSearchService(client, cache)
    app.state.price_checker = checker
    app.state.scheduler = scheduler

    if settings.scheduler_enabled:
        # Raises StoreUnavailableError and aborts startup if the database is down
        scheduler.start()
        logger.info("✅ Price watch scheduler started")
    else:
        logger.info("Price watch scheduler disabled (SCHEDULER_ENABLED=false)")

    # Application is running
    yield

    # Shutdown
    logger.info("🛑 Shutting down Flightwatch")

    try:
        scheduler.stop()
        logger.info("✅ Price watch scheduler stopped")

        await client.close()
        logger.info("✅ Amadeus client closed")

    except Exception as e:
        logger.error(f"❌ Shutdown error: {e}")


app = FastAPI(
    title="Flightwatch",
    description="Flight search and price-drop monitoring",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["health"])
app.include_router(flights.router, prefix="/api/flights", tags=["flights"])
app.include_router(monitoring.router, prefix="/api/monitoring", tags=["monitoring"])


@app.get("/ping")
async def ping():
    """Simple ping endpoint for health checks."""
    return {"status": "ok"}
