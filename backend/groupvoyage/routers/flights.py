"""Flights router — scraped flight offers for a group's booking link."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from groupvoyage.database import get_db
from groupvoyage.routers.errors import pipeline_errors
from groupvoyage.schemas.flight import FlightOfferCard
from groupvoyage.services.flight_parser import parse_flight_options
from groupvoyage.services.trip_pipeline import FlightOptionsResult, trip_pipeline

router = APIRouter()


def _flights_response(result: FlightOptionsResult) -> dict:
    return {
        "ready": result.ready,
        "status": result.status,
        "flights": [f.model_dump(by_alias=True) for f in result.flights],
    }


@router.post("/groups/{group_id}/flights/fetch")
async def fetch_flight_options(group_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Scrape offers for the group's booking URL and store the raw cards."""
    with pipeline_errors():
        result = await trip_pipeline.fetch_flight_options(db, group_id)
    return _flights_response(result)


@router.get("/groups/{group_id}/flights")
async def check_flight_options(group_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    with pipeline_errors():
        result = await trip_pipeline.check_flight_options(db, group_id)
    return _flights_response(result)


@router.post("/flights/parse")
async def parse_offers(offers: list[FlightOfferCard]):
    """Parse raw flight-offer cards without touching any group."""
    return [f.model_dump(by_alias=True) for f in parse_flight_options(offers)]
