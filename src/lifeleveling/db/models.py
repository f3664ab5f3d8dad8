"""ORM models for the Life Leveling schema.

Mirrors the tables created by ``alembic/versions/001_initial_schema.py``.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lifeleveling.db.base import Base, BigIntPK, JSONType


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    age_range_min: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    age_range_max: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    family_mode_enabled: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    privacy_preferences: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )
    last_active: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    interests: Mapped[list[UserInterest]] = relationship(
        "UserInterest", back_populates="user", cascade="all, delete-orphan", order_by="UserInterest.created_at"
    )
    sessions: Mapped[list[AuthSession]] = relationship(
        "AuthSession", back_populates="user", cascade="all, delete-orphan"
    )


class AuthSession(Base):
    """Server-side record of an issued session token (revocable on logout)."""

    __tablename__ = "auth_sessions"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)

    user: Mapped[User] = relationship("User", back_populates="sessions")


# ---------------------------------------------------------------------------
# Interests and skill history
# ---------------------------------------------------------------------------


class UserInterest(Base):
    """One interest category tracked by a user, with level and commitment."""

    __tablename__ = "user_interests"
    __table_args__ = (UniqueConstraint("user_id", "category", name="uq_user_interests_user_category"),)

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    subcategory: Mapped[str | None] = mapped_column(String(100), nullable=True)
    current_level: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    intent_level: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    user: Mapped[User] = relationship("User", back_populates="interests")
    history: Mapped[list[SkillHistory]] = relationship(
        "SkillHistory", back_populates="interest", cascade="all, delete-orphan"
    )


class SkillHistory(Base):
    """Audit trail of skill level changes for an interest."""

    __tablename__ = "skill_history"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_interest_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("user_interests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    previous_level: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    new_level: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    retrospective_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("retrospectives.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    interest: Mapped[UserInterest] = relationship("UserInterest", back_populates="history")


# ---------------------------------------------------------------------------
# Goals and retrospectives
# ---------------------------------------------------------------------------


class Goal(Base):
    __tablename__ = "goals"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    interest_category: Mapped[str] = mapped_column(String(50), nullable=False)
    goal_type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_level: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    timeframe: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", server_default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    target_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Retrospective(Base):
    """Append-only weekly/monthly/yearly reflection."""

    __tablename__ = "retrospectives"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    insights: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    skill_updates: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    goals_reviewed: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())


# ---------------------------------------------------------------------------
# Predefined paths
# ---------------------------------------------------------------------------


class PredefinedPath(Base):
    """Multi-stage curriculum for an interest category."""

    __tablename__ = "predefined_paths"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    interest_category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    path_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    age_range_min: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    age_range_max: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    intent_levels: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    stages: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list, nullable=False)
    synergies: Mapped[dict[str, float]] = mapped_column(JSONType, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())


class UserPathProgress(Base):
    __tablename__ = "user_path_progress"
    __table_args__ = (UniqueConstraint("user_id", "path_id", name="uq_user_path_progress"),)

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    path_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("predefined_paths.id", ondelete="CASCADE"), nullable=False
    )
    current_stage: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    stages_completed: Mapped[list[int]] = mapped_column(JSONType, default=list, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )

    path: Mapped[PredefinedPath] = relationship("PredefinedPath")


# ---------------------------------------------------------------------------
# Family
# ---------------------------------------------------------------------------


class FamilyRelationship(Base):
    """Parent/child link. Active only once the child has consented."""

    __tablename__ = "family_relationships"
    __table_args__ = (UniqueConstraint("parent_user_id", "child_user_id", name="uq_family_pair"),)

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_uuid)
    parent_user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    child_user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    relationship_type: Mapped[str] = mapped_column(String(30), nullable=False, default="parent_child")
    child_consent_given: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    parent: Mapped[User] = relationship("User", foreign_keys=[parent_user_id])
    child: Mapped[User] = relationship("User", foreign_keys=[child_user_id])
    activity: Mapped[list[FamilyActivityLog]] = relationship(
        "FamilyActivityLog", back_populates="family_relationship", cascade="all, delete-orphan"
    )


class FamilyActivityLog(Base):
    __tablename__ = "family_activity_log"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    relationship_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("family_relationships.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    performed_by_user_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    details: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    family_relationship: Mapped[FamilyRelationship] = relationship("FamilyRelationship", back_populates="activity")
    performed_by: Mapped[User] = relationship("User")


# ---------------------------------------------------------------------------
# Cohort statistics
# ---------------------------------------------------------------------------


class CohortStats(Base):
    """Materialized aggregate for one (age bracket, category, commitment) cohort."""

    __tablename__ = "cohort_stats"
    __table_args__ = (
        UniqueConstraint(
            "age_range_min", "age_range_max", "interest_category", "intent_level", name="uq_cohort_stats_key"
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    age_range_min: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    age_range_max: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    interest_category: Mapped[str] = mapped_column(String(50), nullable=False)
    intent_level: Mapped[str] = mapped_column(String(20), nullable=False)
    user_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    # {"1": n, "2": n, "3": n, "4": n}
    level_counts: Mapped[dict[str, int]] = mapped_column(JSONType, default=dict, nullable=False)
    # {"1": pct, ...}: share of the cohort strictly below each level
    percentile_data: Mapped[dict[str, int]] = mapped_column(JSONType, default=dict, nullable=False)
    average_level: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )
