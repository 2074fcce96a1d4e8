"""Create users, stories and reading_events tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema: user quota state, generated stories, and the
       append-only reading ledger.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "email",
            sa.String(255),
            nullable=False,
            comment="Login identity, managed by the upstream auth service",
        ),
        sa.Column(
            "generation_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Generations counted on the day of last_generation_at",
        ),
        sa.Column(
            "last_generation_at",
            sa.TIMESTAMP(timezone=True),
            nullable=True,
            comment="When the last counted generation happened (UTC)",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "stories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            nullable=False,
            comment="Owner; every lookup filters on it",
        ),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("word_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    # Story listing: newest first per user
    op.create_index(
        "idx_stories_user_created_at",
        "stories",
        ["user_id", sa.text("created_at DESC")],
    )

    op.create_table(
        "reading_events",
        sa.Column("id", sa.Integer(), sa.Identity(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("story_id", sa.Integer(), nullable=False),
        sa.Column(
            "word_count",
            sa.Integer(),
            nullable=False,
            comment="Words credited for this read (non-negative)",
        ),
        sa.Column(
            "read_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            comment="When the story was marked as read (UTC)",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["story_id"], ["stories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("word_count >= 0", name="ck_reading_events_word_count_non_negative"),
    )
    # Window sums
    op.create_index(
        "idx_reading_events_user_read_at",
        "reading_events",
        ["user_id", "read_at"],
    )
    # Latest event of a (user, story) pair
    op.create_index(
        "idx_reading_events_user_story_read_at",
        "reading_events",
        ["user_id", "story_id", "read_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_reading_events_user_story_read_at", table_name="reading_events")
    op.drop_index("idx_reading_events_user_read_at", table_name="reading_events")
    op.drop_table("reading_events")
    op.drop_index("idx_stories_user_created_at", table_name="stories")
    op.drop_table("stories")
    op.drop_table("users")
