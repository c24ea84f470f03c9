"""Group store — reads and field-scoped writes of travel group and member rows.

Every write is a single UPDATE naming only the columns the calling operation
owns, committed on its own. Reads always refresh from the database so a
caller never decides on a stale row.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from groupvoyage.config import settings
from groupvoyage.models.group import GroupMember, TravelGroup
from groupvoyage.services.errors import GroupNotFoundError, MemberNotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class GroupStore:
    """Relational access for TravelGroup / GroupMember rows."""

    # ─── Reads ───

    async def get_group(self, db: AsyncSession, group_id: uuid.UUID, *, for_update: bool = False) -> TravelGroup:
        stmt = (
            select(TravelGroup)
            .where(TravelGroup.group_id == group_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        group = result.scalar_one_or_none()
        if group is None:
            raise GroupNotFoundError(f"Group {group_id} not found")
        return group

    async def list_members(self, db: AsyncSession, group_id: uuid.UUID) -> list[GroupMember]:
        result = await db.execute(
            select(GroupMember)
            .where(GroupMember.group_id == group_id)
            .order_by(GroupMember.joined_at, GroupMember.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_member(self, db: AsyncSession, group_id: uuid.UUID, user_id: uuid.UUID) -> GroupMember:
        result = await db.execute(
            select(GroupMember)
            .where(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        member = result.scalar_one_or_none()
        if member is None:
            raise MemberNotFoundError(f"User {user_id} is not a member of group {group_id}")
        return member

    # ─── Group lifecycle ───

    async def create_group(
        self,
        db: AsyncSession,
        host_id: uuid.UUID,
        destination: str,
        destination_display: str | None = None,
        destination_iata_code: str | None = None,
        host_display_name: str | None = None,
    ) -> TravelGroup:
        group = TravelGroup(
            host_id=host_id,
            destination=destination,
            destination_display=destination_display,
            destination_iata_code=destination_iata_code,
            travel_dates_determined=False,
            flight_class="ECONOMY",
        )
        try:
            db.add(group)
            await db.flush()
            db.add(self._new_member(group.group_id, host_id, host_display_name))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise PersistenceError(f"Failed to create group: {e}") from e
        logger.info(f"Created group {group.group_id} for {destination!r} hosted by {host_id}")
        return group

    async def add_member(
        self, db: AsyncSession, group_id: uuid.UUID, user_id: uuid.UUID, display_name: str | None = None
    ) -> GroupMember:
        """Add a member; joining twice returns the existing row."""
        await self.get_group(db, group_id)
        try:
            return await self.get_member(db, group_id, user_id)
        except MemberNotFoundError:
            pass

        member = self._new_member(group_id, user_id, display_name)
        try:
            db.add(member)
            await db.commit()
        except IntegrityError:
            # Raced with a concurrent join of the same user
            await db.rollback()
            return await self.get_member(db, group_id, user_id)
        except SQLAlchemyError as e:
            await db.rollback()
            raise PersistenceError(f"Failed to add member: {e}") from e
        return member

    async def remove_member(self, db: AsyncSession, group_id: uuid.UUID, user_id: uuid.UUID) -> None:
        await self._write(
            db,
            delete(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id == user_id),
            missing=MemberNotFoundError(f"User {user_id} is not a member of group {group_id}"),
        )

    async def delete_group(self, db: AsyncSession, group_id: uuid.UUID) -> None:
        await self._write(
            db,
            delete(TravelGroup).where(TravelGroup.group_id == group_id),
            missing=GroupNotFoundError(f"Group {group_id} not found"),
        )

    # ─── Field-scoped updates ───

    async def update_group(self, db: AsyncSession, group_id: uuid.UUID, **fields: Any) -> None:
        await self._write(
            db,
            update(TravelGroup).where(TravelGroup.group_id == group_id).values(**fields),
            missing=GroupNotFoundError(f"Group {group_id} not found"),
        )

    async def update_member(self, db: AsyncSession, group_id: uuid.UUID, user_id: uuid.UUID, **fields: Any) -> None:
        await self._write(
            db,
            update(GroupMember)
            .where(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
            .values(**fields),
            missing=MemberNotFoundError(f"User {user_id} is not a member of group {group_id}"),
        )

    async def reset_regenerate_votes(self, db: AsyncSession, group_id: uuid.UUID) -> None:
        await self._write(
            db,
            update(GroupMember)
            .where(GroupMember.group_id == group_id)
            .values(regenerate_vote=False, regenerate_voted_at=None, itinerary_feedback=None),
        )

    async def merge_itinerary_day(
        self,
        db: AsyncSession,
        group_id: uuid.UUID,
        day_index: int,
        day: dict,
        hotels: list[dict] | None = None,
        map_locations: list[dict] | None = None,
    ) -> bool:
        """Write one enriched day into the freshest stored itinerary.

        The row is locked for the read-modify-write. Returns False without
        writing when the stored day no longer holds the same places (the
        itinerary was regenerated meanwhile).
        """
        try:
            group = await self.get_group(db, group_id, for_update=True)
            current = dict(group.itinerary or {})
            days = list(current.get("itinerary") or [])
            if day_index >= len(days) or _place_ids(days[day_index]) != _place_ids(day):
                # Ends the read and releases the row lock without expiring loaded objects
                await db.commit()
                return False

            days[day_index] = day
            current["itinerary"] = days
            if hotels is not None and _ids(current.get("hotels")) == _ids(hotels):
                current["hotels"] = hotels
            if map_locations is not None:
                current["mapLocations"] = _merge_map_locations(current.get("mapLocations"), map_locations, day)

            await db.execute(
                update(TravelGroup)
                .where(TravelGroup.group_id == group_id)
                .values(itinerary=current)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise PersistenceError(f"Failed to save enriched day: {e}") from e
        return True

    async def replace_enriched_itinerary(self, db: AsyncSession, group_id: uuid.UUID, itinerary: dict) -> bool:
        """Write a fully enriched itinerary unless the stored one was replaced meanwhile.

        Same locking as ``merge_itinerary_day``; the stored document must still
        hold the same days, places and hotels.
        """
        try:
            group = await self.get_group(db, group_id, for_update=True)
            if _structure(group.itinerary) != _structure(itinerary):
                await db.commit()
                return False
            await db.execute(
                update(TravelGroup)
                .where(TravelGroup.group_id == group_id)
                .values(itinerary=itinerary)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise PersistenceError(f"Failed to save enriched itinerary: {e}") from e
        return True

    # ─── Regeneration fencing ───

    async def acquire_regeneration_lock(self, db: AsyncSession, group_id: uuid.UUID) -> str | None:
        """Take the group's regeneration token. None when another regeneration holds it."""
        token = uuid.uuid4().hex
        now = datetime.now(timezone.utc)
        stale_before = now - timedelta(seconds=settings.regeneration_lock_ttl_seconds)
        rowcount = await self._write(
            db,
            update(TravelGroup)
            .where(
                TravelGroup.group_id == group_id,
                or_(
                    TravelGroup.regeneration_token.is_(None),
                    TravelGroup.regeneration_started_at < stale_before,
                ),
            )
            .values(regeneration_token=token, regeneration_started_at=now),
        )
        return token if rowcount == 1 else None

    async def release_regeneration_lock(self, db: AsyncSession, group_id: uuid.UUID, token: str) -> None:
        await self._write(
            db,
            update(TravelGroup)
            .where(TravelGroup.group_id == group_id, TravelGroup.regeneration_token == token)
            .values(regeneration_token=None, regeneration_started_at=None),
        )

    async def save_regenerated_itinerary(
        self,
        db: AsyncSession,
        group_id: uuid.UUID,
        token: str,
        itinerary: dict,
        api_call: dict,
    ) -> None:
        """Store a regenerated itinerary, only while still holding the token."""
        await self._write(
            db,
            update(TravelGroup)
            .where(TravelGroup.group_id == group_id, TravelGroup.regeneration_token == token)
            .values(
                itinerary=itinerary,
                most_recent_api_call=api_call,
                regenerated_at=datetime.now(timezone.utc),
            ),
            missing=PersistenceError(f"Regeneration lock for group {group_id} was lost"),
        )

    # ─── Helpers ───

    @staticmethod
    def _new_member(group_id: uuid.UUID, user_id: uuid.UUID, display_name: str | None) -> GroupMember:
        return GroupMember(
            group_id=group_id,
            user_id=user_id,
            display_name=display_name,
            regenerate_vote=False,
            all_places_voted=False,
            place_votes={},
        )

    @staticmethod
    async def _write(db: AsyncSession, stmt, missing: Exception | None = None) -> int:
        """Execute one write and commit. Raises ``missing`` when no row matched."""
        try:
            result = await db.execute(stmt.execution_options(synchronize_session=False))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise PersistenceError(f"Database write failed: {e}") from e
        if missing is not None and result.rowcount == 0:
            raise missing
        return result.rowcount


def _place_ids(day: dict) -> list:
    return [p.get("id") for p in (day.get("places") or [])]


def _ids(items: list[dict] | None) -> list:
    return [i.get("id") for i in (items or [])]


def _structure(itinerary: dict | None) -> tuple:
    itinerary = itinerary or {}
    return [_place_ids(d) for d in (itinerary.get("itinerary") or [])], _ids(itinerary.get("hotels"))


def _merge_map_locations(current: list[dict] | None, fresh: list[dict], day: dict) -> list[dict]:
    """Replace the map entries of the enriched day's places, keep the rest."""
    day_ids = set(_place_ids(day))
    by_id = {loc.get("id"): loc for loc in fresh if loc.get("id") in day_ids}
    if not current:
        return fresh
    merged = [by_id.pop(loc.get("id"), loc) for loc in current]
    return merged + list(by_id.values())


group_store = GroupStore()
