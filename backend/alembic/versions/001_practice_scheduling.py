"""Initial migration: members, bands, band_members, members_prefer, practice_session

Revision ID: 001_practice
Revises:
Create Date: 2025-04-01 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_practice"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Roster
    op.create_table(
        "members",
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("practice_available", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("member_id"),
    )

    op.create_table(
        "bands",
        sa.Column("band_id", sa.Integer(), nullable=False),
        sa.Column("band_name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("band_id"),
    )

    # Membership edges: no FKs, the aggregator discards edges to unknown bands
    op.create_table(
        "band_members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("band_id", sa.Integer(), nullable=False),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_band_members_band_id", "band_members", ["band_id"])
    op.create_index("ix_band_members_member_id", "band_members", ["member_id"])

    # Member submissions per week
    op.create_table(
        "members_prefer",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column("week_id", sa.Integer(), nullable=False),
        sa.Column("requested_times", sa.String(), nullable=True),
        sa.Column("priority", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_members_prefer_member_id", "members_prefer", ["member_id"])
    op.create_index("ix_members_prefer_week_id", "members_prefer", ["week_id"])

    # Scheduling rounds and their computed results
    op.create_table(
        "practice_session",
        sa.Column("week_id", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("available", sa.JSON(), nullable=True),
        sa.Column("is_finished", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("bands_prefer_score", sa.JSON(), nullable=True),
        sa.Column("result", sa.JSON(), nullable=True),
        sa.Column("result_checksum", sa.String(length=64), nullable=True),
        sa.Column("finalized_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("week_id"),
    )
    op.create_index("ix_practice_session_is_finished", "practice_session", ["is_finished"])


def downgrade() -> None:
    op.drop_index("ix_practice_session_is_finished", table_name="practice_session")
    op.drop_table("practice_session")
    op.drop_index("ix_members_prefer_week_id", table_name="members_prefer")
    op.drop_index("ix_members_prefer_member_id", table_name="members_prefer")
    op.drop_table("members_prefer")
    op.drop_index("ix_band_members_member_id", table_name="band_members")
    op.drop_index("ix_band_members_band_id", table_name="band_members")
    op.drop_table("band_members")
    op.drop_table("bands")
    op.drop_table("members")
