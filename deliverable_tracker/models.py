"""
Database models and SQLAlchemy setup for the Deliverable Tracker.
Percentages are stored as fractions (0..1); hours as floats.
"""
from datetime import datetime
from sqlalchemy import (
    create_engine, Column, Integer, String, Float, Date, DateTime, Text,
    ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship

from deliverable_tracker.config import get_config

DATABASE_URL = get_config().database_url
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# =============================================================================
# Project and Area
# =============================================================================

class Project(Base):
    """
    Top-level project entity.
    Deliverables, areas and variations all belong to a project.
    """
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String(36), unique=True, index=True, nullable=False)
    project_number = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    project_status = Column(String(50), default="Tender")
    client_number = Column(String(3), nullable=True)
    progress_start = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    areas = relationship("Area", back_populates="project", cascade="all, delete-orphan")
    variations = relationship("VariationEntity", back_populates="project", cascade="all, delete-orphan")


class Area(Base):
    """Physical area of a project, numbered 00-99."""
    __tablename__ = "areas"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String(36), unique=True, index=True, nullable=False)
    project_guid = Column(String(36), ForeignKey("projects.guid"), nullable=False, index=True)
    number = Column(String(2), nullable=False)
    description = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="areas")

    __table_args__ = (
        UniqueConstraint('project_guid', 'number', name='uq_area_project_number'),
    )


# =============================================================================
# Variation
# =============================================================================

class VariationEntity(Base):
    """
    Change-order container.
    Read-only once submitted or approved by the client.
    """
    __tablename__ = "variations"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String(36), unique=True, index=True, nullable=False)
    project_guid = Column(String(36), ForeignKey("projects.guid"), nullable=False, index=True)
    name = Column(String(500), nullable=False)
    comments = Column(Text, nullable=True)
    submitted = Column(Date, nullable=True)
    client_approved = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="variations")

    __table_args__ = (
        UniqueConstraint('project_guid', 'name', name='uq_variation_project_name'),
    )


# =============================================================================
# Deliverable Gate
# =============================================================================

class DeliverableGateEntity(Base):
    """Milestone gate capping cumulative progress."""
    __tablename__ = "deliverable_gates"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String(36), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    max_percentage = Column(Float, nullable=False)
    auto_percentage = Column(Float, nullable=True)


# =============================================================================
# Deliverable
# =============================================================================

class DeliverableEntity(Base):
    """
    Deliverable row.

    Standard rows have no variation_guid. Variation rows carry the variation
    and, for copies, the guid of the Standard row they derive from. At most
    one copy per original exists in a variation.
    """
    __tablename__ = "deliverables"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String(36), unique=True, index=True, nullable=False)
    project_guid = Column(String(36), ForeignKey("projects.guid"), nullable=False, index=True)

    area_number = Column(String(2), nullable=True)
    discipline = Column(String(2), nullable=True)
    document_type = Column(String(3), nullable=True)
    deliverable_type_id = Column(String(20), default="Task")
    department_id = Column(String(20), default="Administration")
    document_title = Column(String(500), nullable=True)
    client_document_number = Column(String(100), nullable=True)

    # Calculated on write
    internal_document_number = Column(String(100), nullable=True)
    booking_code = Column(String(50), nullable=True, index=True)
    project_number = Column(String(50), nullable=True)
    client_number = Column(String(3), nullable=True)
    total_hours = Column(Float, default=0.0)

    budget_hours = Column(Float, default=0.0)
    variation_hours = Column(Float, default=0.0)

    deliverable_gate_guid = Column(String(36), ForeignKey("deliverable_gates.guid"), nullable=True)
    cumulative_earnt_percentage = Column(Float, default=0.0)

    variation_guid = Column(String(36), ForeignKey("variations.guid"), nullable=True, index=True)
    original_deliverable_guid = Column(String(36), nullable=True, index=True)
    variation_status = Column(String(30), default="Standard", index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    progress = relationship("DeliverableProgress", back_populates="deliverable", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('variation_guid', 'original_deliverable_guid', name='uq_deliverable_variation_copy'),
    )


class DeliverableProgress(Base):
    """Cumulative progress of a deliverable at the end of a reporting period."""
    __tablename__ = "deliverable_progress"

    id = Column(Integer, primary_key=True, index=True)
    guid = Column(String(36), unique=True, index=True, nullable=False)
    deliverable_guid = Column(String(36), ForeignKey("deliverables.guid"), nullable=False, index=True)
    project_guid = Column(String(36), nullable=True)
    period = Column(Integer, nullable=False)
    progress_date = Column(Date, nullable=True)
    cumulative_earnt_percentage = Column(Float, default=0.0)
    current_period_earnt_percentage = Column(Float, default=0.0)
    units = Column(Float, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    deliverable = relationship("DeliverableEntity", back_populates="progress")

    __table_args__ = (
        UniqueConstraint('deliverable_guid', 'period', name='uq_progress_deliverable_period'),
    )


def init_db():
    """Initialize the database and create all tables."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Database session dependency for FastAPI."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
