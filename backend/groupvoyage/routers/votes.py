"""Votes router — regenerate, hotel and place votes."""

import uuid
from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from groupvoyage.database import get_db
from groupvoyage.routers.errors import pipeline_errors
from groupvoyage.schemas.group import HotelVoteRequest, PlaceVoteRequest, RegenerateVoteRequest
from groupvoyage.services.trip_pipeline import trip_pipeline

router = APIRouter()


@router.post("/{group_id}/votes/regenerate")
async def cast_regenerate_vote(group_id: uuid.UUID, body: RegenerateVoteRequest, db: AsyncSession = Depends(get_db)):
    """Vote to regenerate the itinerary, with optional feedback for the new version."""
    with pipeline_errors():
        result = await trip_pipeline.cast_regenerate_vote(db, group_id, body.user_id, body.feedback)
    return asdict(result)


@router.post("/{group_id}/votes/hotel")
async def cast_hotel_vote(group_id: uuid.UUID, body: HotelVoteRequest, db: AsyncSession = Depends(get_db)):
    with pipeline_errors():
        result = await trip_pipeline.cast_hotel_vote(db, group_id, body.user_id, body.hotel_id)
    return asdict(result)


@router.get("/{group_id}/votes/hotel")
async def aggregate_hotel_vote(group_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Current hotel winner and tally."""
    with pipeline_errors():
        result = await trip_pipeline.aggregate_hotel_vote(db, group_id)
    return asdict(result)


@router.post("/{group_id}/votes/place")
async def cast_place_vote(group_id: uuid.UUID, body: PlaceVoteRequest, db: AsyncSession = Depends(get_db)):
    with pipeline_errors():
        result = await trip_pipeline.cast_place_vote(db, group_id, body.user_id, body.place_id, body.accept)
    return asdict(result)
