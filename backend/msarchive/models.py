"""
SQLAlchemy ORM models for the database schema.
"""
import os
import uuid

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from msarchive.db import Base

# Use JSONB for PostgreSQL, JSON for SQLite
JsonType = JSONB if not os.getenv("DATABASE_URL", "sqlite").startswith("sqlite") else JSON


def _new_uuid() -> str:
    return str(uuid.uuid4())


class Incident(Base):
    """
    A curated mass-shooting incident.
    Publicly visible only once published and verified.
    """
    __tablename__ = "incidents"

    id = Column(String(36), primary_key=True, default=_new_uuid)
    incident_code = Column(Text, unique=True, nullable=True)  # assigned on first publish
    date = Column(Date, nullable=False)
    city = Column(Text, nullable=False)
    state = Column(String(2), nullable=False)
    location_type = Column(Text, nullable=False)  # school | public_space | private_residence | workplace | other
    fatalities = Column(Integer, nullable=False, default=0)
    injuries = Column(Integer, nullable=False, default=0)
    involves_children = Column(Boolean, nullable=False, default=False)
    involves_women_and_children = Column(Boolean, nullable=False, default=False)
    hate_crime = Column(Boolean, nullable=False, default=False)
    hate_crime_target = Column(Text, nullable=True)
    context = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)
    last_verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    suspects = relationship(
        "Suspect",
        back_populates="incident",
        cascade="all, delete-orphan",
        order_by="Suspect.created_at",
    )

    __table_args__ = (
        Index("ix_incidents_date", "date"),
        Index("ix_incidents_state_date", "state", "date"),
        Index("ix_incidents_is_published", "is_published"),
    )

    @property
    def casualties(self) -> int:
        return (self.fatalities or 0) + (self.injuries or 0)


class Suspect(Base):
    """Suspect attached to exactly one incident."""
    __tablename__ = "suspects"

    id = Column(String(36), primary_key=True, default=_new_uuid)
    incident_id = Column(String(36), ForeignKey("incidents.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=True)
    age = Column(Integer, nullable=True)
    gender = Column(Text, nullable=False, default="unknown")
    race = Column(Text, nullable=False, default="Unknown")
    nationality = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="unknown")
    motive = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    incident = relationship("Incident", back_populates="suspects")
    weapons = relationship(
        "SuspectWeapon",
        back_populates="suspect",
        cascade="all, delete-orphan",
        order_by="SuspectWeapon.id",
    )
    history = relationship(
        "SuspectPriorHistory",
        back_populates="suspect",
        cascade="all, delete-orphan",
        uselist=False,
    )


class SuspectWeapon(Base):
    """Weapon used by a suspect. legally_purchased is NULL when unknown."""
    __tablename__ = "suspect_weapons"

    id = Column(Integer, primary_key=True, index=True)
    suspect_id = Column(String(36), ForeignKey("suspects.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Text, nullable=False)
    legally_purchased = Column(Boolean, nullable=True)
    source = Column(Text, nullable=True)

    suspect = relationship("Suspect", back_populates="weapons")


class SuspectPriorHistory(Base):
    """Zero-or-one prior history row per suspect."""
    __tablename__ = "suspect_prior_history"

    suspect_id = Column(String(36), ForeignKey("suspects.id", ondelete="CASCADE"), primary_key=True)
    criminal_record = Column(Boolean, nullable=True)
    prior_mental_health_issues = Column(Boolean, nullable=True)
    prior_domestic_violence = Column(Boolean, nullable=True)

    suspect = relationship("Suspect", back_populates="history")


class Legislation(Base):
    """State or federal gun legislation."""
    __tablename__ = "legislation"

    id = Column(String(36), primary_key=True, default=_new_uuid)
    law_code = Column(Text, unique=True, nullable=True)  # assigned on first publish
    date = Column(Date, nullable=False)
    jurisdiction = Column(Text, nullable=False)  # two-letter state code or 'FEDERAL'
    title = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    summary = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)
    last_verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    __table_args__ = (
        Index("ix_legislation_jurisdiction", "jurisdiction"),
        Index("ix_legislation_jurisdiction_category", "jurisdiction", "category"),
        Index("ix_legislation_is_published", "is_published"),
    )


class Correction(Base):
    """
    Publicly submitted correction. Starts as 'pending' and is then owned
    by the admin review workflow.
    """
    __tablename__ = "corrections"

    id = Column(Integer, primary_key=True, index=True)
    incident_id = Column(String(36), ForeignKey("incidents.id", ondelete="SET NULL"), nullable=True)
    legislation_id = Column(String(36), ForeignKey("legislation.id", ondelete="SET NULL"), nullable=True)
    correction_type = Column(Text, nullable=False)  # factual_error | missing_info | suggestion
    description = Column(Text, nullable=False)
    suggested_correction = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    submitted_by = Column(Text, nullable=True)
    reviewed_by = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    incident = relationship("Incident")
    legislation = relationship("Legislation")


class AdminAllowlistEntry(Base):
    """Email addresses allowed to perform administrative operations."""
    __tablename__ = "admin_allowlist"

    email = Column(Text, primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    added_by = Column(Text, nullable=True)


class AuditLogEntry(Base):
    """
    Append-only mutation log. Rows are produced by the session hook in
    msarchive.audit and never written by request handlers.
    """
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    table_name = Column(Text, nullable=False, index=True)
    row_id = Column(Text, nullable=False)
    action = Column(Text, nullable=False)  # insert | update | delete
    actor_email = Column(Text, nullable=True)
    at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    diff = Column(JsonType, nullable=True)
