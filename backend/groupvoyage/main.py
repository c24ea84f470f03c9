import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from groupvoyage.config import settings

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
            _LOG_DIR / "groupvoyage.log",
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

from groupvoyage.routers import flights, groups, itinerary, votes
from groupvoyage.services.cache_service import cache_service
from groupvoyage.services.flight_scraper_client import flight_scraper_client
from groupvoyage.services.places_client import places_client
from groupvoyage.services.routes_client import routes_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("GroupVoyage API starting")
    yield

    # Shutdown
    await places_client.close()
    await routes_client.close()
    await flight_scraper_client.close()
    await cache_service.close()
    logger.info("HTTP clients and cache closed")


app = FastAPI(
    title="GroupVoyage",
    description="Group itinerary consensus and enrichment",
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

app.include_router(groups.router, prefix="/api/groups", tags=["groups"])
app.include_router(itinerary.router, prefix="/api/groups", tags=["itinerary"])
app.include_router(votes.router, prefix="/api/groups", tags=["votes"])
app.include_router(flights.router, prefix="/api", tags=["flights"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": "groupvoyage"}
