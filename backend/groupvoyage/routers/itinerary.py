"""Itinerary router — generation, reads and paginated enrichment."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from groupvoyage.database import get_db
from groupvoyage.routers.errors import pipeline_errors
from groupvoyage.schemas.group import EnrichDayRequest
from groupvoyage.services.trip_pipeline import trip_pipeline

router = APIRouter()


@router.post("/{group_id}/itinerary/generate")
async def generate_itinerary(group_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Generate the first itinerary. Enrich it afterwards with enrich-day."""
    with pipeline_errors():
        itinerary = await trip_pipeline.generate_itinerary(db, group_id)
    return {"itinerary": itinerary, "num_days": len(itinerary.get("itinerary", []))}


@router.get("/{group_id}/itinerary")
async def get_itinerary(group_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    with pipeline_errors():
        return {"itinerary": await trip_pipeline.get_itinerary(db, group_id)}


@router.get("/{group_id}/itinerary/days")
async def num_itinerary_days(group_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    with pipeline_errors():
        return {"num_days": await trip_pipeline.num_itinerary_days(db, group_id)}


@router.post("/{group_id}/itinerary/enrich-day")
async def enrich_day(group_id: uuid.UUID, body: EnrichDayRequest, db: AsyncSession = Depends(get_db)):
    """Add photos, coordinates and travel modes to one day."""
    with pipeline_errors():
        result = await trip_pipeline.enrich_day(db, group_id, body.day_index)
    return {
        "status": result.status,
        "day_index": result.day_index,
        "num_days": result.num_days,
        "day": result.day,
    }


@router.post("/{group_id}/itinerary/enrich")
async def enrich_all(group_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    with pipeline_errors():
        result = await trip_pipeline.enrich_all(db, group_id)
    return {"status": result.status, "itinerary": result.itinerary}
