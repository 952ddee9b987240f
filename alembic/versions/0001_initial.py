"""initial drawing schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("sequence_number", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "category IN ('main','regular')", name=op.f("ck_events_category_enum")
        ),
        sa.CheckConstraint(
            "capacity IS NULL OR capacity >= 0",
            name=op.f("ck_events_capacity_non_negative"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_events")),
        sa.UniqueConstraint("sequence_number", name=op.f("uq_events_sequence_number")),
    )

    op.create_table(
        "participants",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("event_id", ID_TYPE, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("registration_number", sa.String(length=32), nullable=False),
        sa.Column("institution", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["event_id"],
            ["events.id"],
            name=op.f("fk_participants_event_id_events"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_participants")),
        sa.UniqueConstraint(
            "event_id",
            "registration_number",
            name="uq_participants_event_registration_number",
        ),
    )
    op.create_index(
        op.f("ix_participants_event_id"), "participants", ["event_id"], unique=False
    )

    op.create_table(
        "prizes",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("event_id", ID_TYPE, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=20), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "category IN ('main','regular')", name=op.f("ck_prizes_category_enum")
        ),
        sa.CheckConstraint("quantity >= 1", name=op.f("ck_prizes_quantity_positive")),
        sa.ForeignKeyConstraint(
            ["event_id"],
            ["events.id"],
            name=op.f("fk_prizes_event_id_events"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_prizes")),
    )
    op.create_index(op.f("ix_prizes_event_id"), "prizes", ["event_id"], unique=False)

    op.create_table(
        "winnings",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("participant_id", ID_TYPE, nullable=False),
        sa.Column("prize_id", ID_TYPE, nullable=False),
        sa.Column("exclusivity_group", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["participants.id"],
            name=op.f("fk_winnings_participant_id_participants"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["prize_id"],
            ["prizes.id"],
            name=op.f("fk_winnings_prize_id_prizes"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_winnings")),
        sa.UniqueConstraint(
            "participant_id", "prize_id", name="uq_winnings_participant_prize"
        ),
        sa.UniqueConstraint(
            "participant_id", "exclusivity_group", name="uq_winnings_participant_group"
        ),
    )
    op.create_index(
        op.f("ix_winnings_participant_id"), "winnings", ["participant_id"], unique=False
    )
    op.create_index(op.f("ix_winnings_prize_id"), "winnings", ["prize_id"], unique=False)

    op.create_table(
        "forfeitures",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("event_id", ID_TYPE, nullable=False),
        sa.Column("participant_id", ID_TYPE, nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["event_id"],
            ["events.id"],
            name=op.f("fk_forfeitures_event_id_events"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["participants.id"],
            name=op.f("fk_forfeitures_participant_id_participants"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_forfeitures")),
        sa.UniqueConstraint(
            "event_id", "participant_id", name="uq_forfeitures_event_participant"
        ),
    )
    op.create_index(
        op.f("ix_forfeitures_event_id"), "forfeitures", ["event_id"], unique=False
    )

    op.create_table(
        "draw_reservations",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("prize_id", ID_TYPE, nullable=False),
        sa.Column("event_id", ID_TYPE, nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("actor", sa.String(length=100), nullable=False),
        sa.Column("participant_id", ID_TYPE, nullable=True),
        sa.Column("animation_plan", sa.JSON(), nullable=True),
        sa.Column("randomness_digest", sa.String(length=64), nullable=True),
        sa.Column("reserved_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["prize_id"],
            ["prizes.id"],
            name=op.f("fk_draw_reservations_prize_id_prizes"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["event_id"],
            ["events.id"],
            name=op.f("fk_draw_reservations_event_id_events"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["participants.id"],
            name=op.f("fk_draw_reservations_participant_id_participants"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_draw_reservations")),
        sa.UniqueConstraint("prize_id", name="uq_draw_reservations_prize_id"),
        sa.UniqueConstraint(
            "event_id", "participant_id", name="uq_draw_reservations_event_participant"
        ),
    )
    op.create_index(
        op.f("ix_draw_reservations_event_id"),
        "draw_reservations",
        ["event_id"],
        unique=False,
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("actor", sa.String(length=100), nullable=False),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("event_id", ID_TYPE, nullable=True),
        sa.Column("prize_id", ID_TYPE, nullable=True),
        sa.Column("participant_id", ID_TYPE, nullable=True),
        sa.Column("outcome", sa.String(length=30), nullable=False),
        sa.Column("details_json", sa.Text(), nullable=True),
        sa.Column("source_address", sa.String(length=64), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "action IN ('preview','confirm','cancel','expire')",
            name=op.f("ck_audit_logs_action_enum"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_audit_logs")),
    )
    op.create_index(
        "ix_audit_logs_prize_occurred",
        "audit_logs",
        ["prize_id", "occurred_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_audit_logs_prize_occurred", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index(op.f("ix_draw_reservations_event_id"), table_name="draw_reservations")
    op.drop_table("draw_reservations")
    op.drop_index(op.f("ix_forfeitures_event_id"), table_name="forfeitures")
    op.drop_table("forfeitures")
    op.drop_index(op.f("ix_winnings_prize_id"), table_name="winnings")
    op.drop_index(op.f("ix_winnings_participant_id"), table_name="winnings")
    op.drop_table("winnings")
    op.drop_index(op.f("ix_prizes_event_id"), table_name="prizes")
    op.drop_table("prizes")
    op.drop_index(op.f("ix_participants_event_id"), table_name="participants")
    op.drop_table("participants")
    op.drop_table("events")
