"""Create travel_groups and group_members

Revision ID: groupvoyage_001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision = "groupvoyage_001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "travel_groups",
        sa.Column("group_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("host_id", UUID(as_uuid=True), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("destination_display", sa.String(255), nullable=True),
        sa.Column("travel_dates_determined", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("departure_date", sa.Date, nullable=True),
        sa.Column("return_date", sa.Date, nullable=True),
        sa.Column("trip_duration_days", sa.Integer, nullable=True),
        sa.Column("departure_location", sa.String(255), nullable=True),
        sa.Column("majority_departure_location", sa.String(255), nullable=True),
        sa.Column("departure_iata_code", sa.String(3), nullable=True),
        sa.Column("destination_iata_code", sa.String(3), nullable=True),
        sa.Column("flight_class", sa.String(20), nullable=False, server_default="ECONOMY"),
        sa.Column("booking_url", sa.Text, nullable=True),
        sa.Column("flight_options", JSONB, nullable=True),
        sa.Column("selected_flight", JSONB, nullable=True),
        sa.Column("itinerary", JSONB, nullable=True),
        sa.Column("most_recent_api_call", JSONB, nullable=True),
        # Regeneration fencing token
        sa.Column("regeneration_token", sa.String(64), nullable=True),
        sa.Column("regeneration_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("regenerated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "group_members",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "group_id",
            UUID(as_uuid=True),
            sa.ForeignKey("travel_groups.group_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("deal_breakers_and_strong_preferences", sa.Text, nullable=True),
        sa.Column("interests_and_activities", sa.Text, nullable=True),
        sa.Column("nice_to_haves_and_openness", sa.Text, nullable=True),
        sa.Column("travel_motivations", sa.Text, nullable=True),
        sa.Column("must_do_experiences", sa.Text, nullable=True),
        sa.Column("learning_interests", sa.Text, nullable=True),
        sa.Column("schedule_and_logistics", sa.Text, nullable=True),
        sa.Column("budget_and_spending", sa.Text, nullable=True),
        sa.Column("travel_style_preferences", sa.Text, nullable=True),
        sa.Column("flight_preference", sa.String(20), nullable=True),
        sa.Column("regenerate_vote", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("regenerate_voted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("itinerary_feedback", sa.Text, nullable=True),
        sa.Column("selected_hotel", sa.String(64), nullable=True),
        sa.Column("place_votes", JSONB, nullable=True),
        sa.Column("all_places_voted", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
    )
    op.create_index("ix_group_members_group_id", "group_members", ["group_id"])


def downgrade() -> None:
    op.drop_index("ix_group_members_group_id", table_name="group_members")
    op.drop_table("group_members")
    op.drop_table("travel_groups")
