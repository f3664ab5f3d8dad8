"""Initial schema: users, sessions, interests, goals, paths, family and cohorts.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid_pk() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True, server_default=sa.text("gen_random_uuid()"))


def _user_fk(name: str = "user_id") -> sa.Column:
    return sa.Column(
        name, postgresql.UUID(as_uuid=False), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False)


def upgrade() -> None:
    """Create all tables."""
    # --- Users and sessions ---
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("age_range_min", sa.SmallInteger(), nullable=False),
        sa.Column("age_range_max", sa.SmallInteger(), nullable=False),
        sa.Column("family_mode_enabled", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("onboarding_completed", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("privacy_preferences", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        _created_at(),
        _created_at("updated_at"),
        sa.Column("last_active", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.execute(
        "ALTER TABLE users ADD CONSTRAINT ck_users_age_range "
        "CHECK (age_range_min >= 6 AND age_range_max <= 99 AND age_range_min <= age_range_max)"
    )

    op.create_table(
        "auth_sessions",
        _uuid_pk(),
        _user_fk(),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_revoked", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
    )
    op.create_index("ix_auth_sessions_user_id", "auth_sessions", ["user_id"])

    # --- Interests and skill history ---
    op.create_table(
        "user_interests",
        _uuid_pk(),
        _user_fk(),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("subcategory", sa.String(100), nullable=True),
        sa.Column("current_level", sa.SmallInteger(), nullable=False),
        sa.Column("intent_level", sa.String(20), nullable=False),
        _created_at(),
        _created_at("updated_at"),
        sa.UniqueConstraint("user_id", "category", name="uq_user_interests_user_category"),
    )
    op.create_index("ix_user_interests_user_id", "user_interests", ["user_id"])
    op.create_index("ix_user_interests_cohort", "user_interests", ["category", "intent_level"])
    op.execute(
        "ALTER TABLE user_interests ADD CONSTRAINT ck_user_interests_level CHECK (current_level BETWEEN 1 AND 4)"
    )
    op.execute(
        "ALTER TABLE user_interests ADD CONSTRAINT ck_user_interests_intent "
        "CHECK (intent_level IN ('casual', 'average', 'invested', 'competitive'))"
    )

    # --- Goals and retrospectives ---
    op.create_table(
        "goals",
        _uuid_pk(),
        _user_fk(),
        sa.Column("interest_category", sa.String(50), nullable=False),
        sa.Column("goal_type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_level", sa.SmallInteger(), nullable=True),
        sa.Column("timeframe", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        _created_at(),
        sa.Column("target_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_goals_user_id", "goals", ["user_id"])

    op.create_table(
        "retrospectives",
        _uuid_pk(),
        _user_fk(),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("insights", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("skill_updates", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("goals_reviewed", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        _created_at("completed_at"),
    )
    op.create_index("ix_retrospectives_user_id", "retrospectives", ["user_id"])

    op.create_table(
        "skill_history",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_interest_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("user_interests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("previous_level", sa.SmallInteger(), nullable=True),
        sa.Column("new_level", sa.SmallInteger(), nullable=False),
        sa.Column(
            "retrospective_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("retrospectives.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at("changed_at"),
    )
    op.create_index("ix_skill_history_user_interest_id", "skill_history", ["user_interest_id"])

    # --- Paths ---
    op.create_table(
        "predefined_paths",
        _uuid_pk(),
        sa.Column("interest_category", sa.String(50), nullable=False),
        sa.Column("path_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("age_range_min", sa.SmallInteger(), nullable=False),
        sa.Column("age_range_max", sa.SmallInteger(), nullable=False),
        sa.Column("intent_levels", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("stages", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("synergies", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        _created_at(),
    )
    op.create_index("ix_predefined_paths_interest_category", "predefined_paths", ["interest_category"])

    op.create_table(
        "user_path_progress",
        _uuid_pk(),
        _user_fk(),
        sa.Column(
            "path_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("predefined_paths.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("current_stage", sa.Integer(), server_default="0", nullable=False),
        sa.Column("stages_completed", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        _created_at("started_at"),
        _created_at("last_updated"),
        sa.UniqueConstraint("user_id", "path_id", name="uq_user_path_progress"),
    )
    op.create_index("ix_user_path_progress_user_id", "user_path_progress", ["user_id"])

    # --- Family ---
    op.create_table(
        "family_relationships",
        _uuid_pk(),
        _user_fk("parent_user_id"),
        _user_fk("child_user_id"),
        sa.Column("relationship_type", sa.String(30), server_default="parent_child", nullable=False),
        sa.Column("child_consent_given", sa.Boolean(), server_default="false", nullable=False),
        _created_at(),
        sa.UniqueConstraint("parent_user_id", "child_user_id", name="uq_family_pair"),
    )
    op.create_index("ix_family_relationships_parent_user_id", "family_relationships", ["parent_user_id"])
    op.create_index("ix_family_relationships_child_user_id", "family_relationships", ["child_user_id"])
    op.execute(
        "ALTER TABLE family_relationships ADD CONSTRAINT ck_family_not_self CHECK (parent_user_id != child_user_id)"
    )

    op.create_table(
        "family_activity_log",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "relationship_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("family_relationships.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action_type", sa.String(50), nullable=False),
        _user_fk("performed_by_user_id"),
        sa.Column("details", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        _created_at(),
    )
    op.create_index("ix_family_activity_log_relationship_id", "family_activity_log", ["relationship_id"])

    # --- Cohort aggregates ---
    op.create_table(
        "cohort_stats",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("age_range_min", sa.SmallInteger(), nullable=False),
        sa.Column("age_range_max", sa.SmallInteger(), nullable=False),
        sa.Column("interest_category", sa.String(50), nullable=False),
        sa.Column("intent_level", sa.String(20), nullable=False),
        sa.Column("user_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("level_counts", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("percentile_data", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("average_level", sa.Float(), server_default="0", nullable=False),
        _created_at("updated_at"),
        sa.UniqueConstraint(
            "age_range_min", "age_range_max", "interest_category", "intent_level", name="uq_cohort_stats_key"
        ),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("cohort_stats")
    op.drop_table("family_activity_log")
    op.drop_table("family_relationships")
    op.drop_table("user_path_progress")
    op.drop_table("predefined_paths")
    op.drop_table("skill_history")
    op.drop_table("retrospectives")
    op.drop_table("goals")
    op.drop_table("user_interests")
    op.drop_table("auth_sessions")
    op.drop_table("users")
