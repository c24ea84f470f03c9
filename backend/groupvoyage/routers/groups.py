"""Groups router — group lifecycle, member preferences, travel dates and booking link."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from groupvoyage.database import get_db
from groupvoyage.routers.errors import pipeline_errors
from groupvoyage.schemas.group import (
    GroupCreate,
    GroupJoin,
    MemberAction,
    PreferencesUpdate,
    TravelGroupResponse,
)
from groupvoyage.services.group_store import group_store
from groupvoyage.services.trip_pipeline import trip_pipeline

router = APIRouter()


def _member_summary(member) -> dict:
    return {
        "user_id": str(member.user_id),
        "display_name": member.display_name,
        "regenerate_vote": member.regenerate_vote,
        "selected_hotel": member.selected_hotel,
        "all_places_voted": member.all_places_voted,
    }


# ─── Lifecycle ───

@router.post("", response_model=TravelGroupResponse)
async def create_group(body: GroupCreate, db: AsyncSession = Depends(get_db)):
    """Create a group; the host becomes its first member."""
    with pipeline_errors():
        return await trip_pipeline.create_group(
            db,
            host_id=body.host_id,
            destination=body.destination,
            destination_display=body.destination_display,
            destination_iata_code=body.destination_iata_code,
            host_display_name=body.host_display_name,
        )


@router.get("/{group_id}", response_model=TravelGroupResponse)
async def get_group(group_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    with pipeline_errors():
        return await group_store.get_group(db, group_id)


@router.get("/{group_id}/members")
async def list_members(group_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    with pipeline_errors():
        await group_store.get_group(db, group_id)
        members = await group_store.list_members(db, group_id)
    return [_member_summary(m) for m in members]


@router.post("/{group_id}/join")
async def join_group(group_id: uuid.UUID, body: GroupJoin, db: AsyncSession = Depends(get_db)):
    with pipeline_errors():
        member = await trip_pipeline.join_group(db, group_id, body.user_id, body.display_name)
    return _member_summary(member)


@router.post("/{group_id}/leave")
async def leave_group(group_id: uuid.UUID, body: MemberAction, db: AsyncSession = Depends(get_db)):
    with pipeline_errors():
        result = await trip_pipeline.leave_group(db, group_id, body.user_id)
    return {
        "group_deleted": result.group_deleted,
        "new_host_id": str(result.new_host_id) if result.new_host_id else None,
    }


# ─── Preferences ───

@router.put("/{group_id}/preferences")
async def update_preferences(group_id: uuid.UUID, body: PreferencesUpdate, db: AsyncSession = Depends(get_db)):
    """Store preference fields extracted for one member."""
    with pipeline_errors():
        await trip_pipeline.update_preferences(
            db, group_id, body.user_id, **body.model_dump(exclude={"user_id"}, exclude_none=True)
        )
    return {"status": "updated"}


# ─── Dates & booking ───

@router.post("/{group_id}/travel-dates")
async def determine_travel_dates(group_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Pick dates, departure airport and cabin class for the whole group."""
    with pipeline_errors():
        data = await trip_pipeline.determine_travel_dates(db, group_id)
    return {"success": True, "data": data}


@router.post("/{group_id}/booking-url")
async def generate_booking_url(group_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    with pipeline_errors():
        url = await trip_pipeline.generate_booking_url(db, group_id)
    return {"booking_url": url}
