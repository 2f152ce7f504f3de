"""SQLAlchemy models for experiments, variants, users and assignments."""
import uuid
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from experiment_admin.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Experiment(Base):
    """Experiment model - represents an A/B test"""
    __tablename__ = "experiments"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String(100), unique=True, nullable=False, index=True)
    # status values are: draft, active, paused, completed
    status = Column(String, default="draft", nullable=False)
    # only "uniform" hashing exists right now
    strategy = Column(String, default="uniform", nullable=False)
    start_at = Column(DateTime(timezone=True), nullable=True)
    end_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    variants = relationship(
        "Variant",
        back_populates="experiment",
        cascade="all, delete-orphan",
        order_by="Variant.key",
    )
    assignments = relationship("Assignment", back_populates="experiment", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_experiments_status', 'status'),
    )


class Variant(Base):
    """Variant model - one arm of an experiment, identified by its key"""
    __tablename__ = "variants"

    id = Column(String, primary_key=True, default=_new_id)
    experiment_id = Column(String, ForeignKey("experiments.id"), nullable=False)
    key = Column(String(50), nullable=False)
    weight = Column(Integer, nullable=False)  # 0-100, stored but not used for bucketing
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    experiment = relationship("Experiment", back_populates="variants")

    __table_args__ = (
        UniqueConstraint('experiment_id', 'key', name='uq_variants_experiment_key'),
        Index('idx_variants_experiment_id', 'experiment_id'),
    )


class User(Base):
    """User model - created lazily the first time a user gets assigned"""
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    assignments = relationship("Assignment", back_populates="user")


class Assignment(Base):
    """Assignment model - the variant key a user got for an experiment.

    variant_key is a plain copy of the variant's key (not a FK), so editing
    variants later never rewrites history.
    """
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, index=True)
    experiment_id = Column(String, ForeignKey("experiments.id"), nullable=False)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    variant_key = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    experiment = relationship("Experiment", back_populates="assignments")
    user = relationship("User", back_populates="assignments")

    # One assignment per user per experiment - the resolver relies on this
    __table_args__ = (
        UniqueConstraint('experiment_id', 'user_id', name='uq_assignments_experiment_user'),
        Index('idx_assignments_user_id', 'user_id'),
    )
