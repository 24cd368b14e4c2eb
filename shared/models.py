from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey, Index, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()

# Patrol timestamps are recorded in UTC
APP_TIMEZONE = timezone.utc


def now():
    """Return current datetime in application timezone (UTC, timezone-aware).

    Note: When stored in SQLite, timezone info is stripped (SQLite limitation).
    All stored datetimes should be treated as UTC, even though they're stored naive.
    """
    return datetime.now(APP_TIMEZONE)


class BaseModelMixin:
    """Mixin providing common fields for models to reduce DRY violations."""

    created_at = Column(DateTime, default=now)
    updated_at = Column(DateTime, default=now, onupdate=now)


class PatrolLocation(Base, BaseModelMixin):
    __tablename__ = 'patrol_locations'
    id = Column(Integer, primary_key=True, nullable=False)
    name = Column(String(200), nullable=False, server_default="Untitled")
    address = Column(Text, server_default="")
    latitude = Column(Float, server_default="0.0")
    longitude = Column(Float, server_default="0.0")
    checkpoints = relationship('Checkpoint', backref='location', lazy='select', cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint('latitude >= -90.0 AND latitude <= 90.0', name='chk_location_latitude_range'),
        CheckConstraint('longitude >= -180.0 AND longitude <= 180.0', name='chk_location_longitude_range'),
    )


class Checkpoint(Base, BaseModelMixin):
    __tablename__ = 'checkpoints'
    id = Column(Integer, primary_key=True, nullable=False)
    location_id = Column(Integer, ForeignKey('patrol_locations.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(200), nullable=False, server_default="")
    latitude = Column(Float, nullable=False, server_default="0.0")
    longitude = Column(Float, nullable=False, server_default="0.0")
    remote_id = Column(String(100), server_default="")
    verifications = relationship('CheckpointVerification', backref='checkpoint', lazy='select', cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint('latitude >= -90.0 AND latitude <= 90.0', name='chk_checkpoint_latitude_range'),
        CheckConstraint('longitude >= -180.0 AND longitude <= 180.0', name='chk_checkpoint_longitude_range'),
    )


class CheckpointVerification(Base):
    """A single officer's confirmation of a checkpoint."""
    __tablename__ = 'checkpoint_verifications'
    id = Column(Integer, primary_key=True, nullable=False)
    checkpoint_id = Column(Integer, ForeignKey('checkpoints.id', ondelete='CASCADE'), nullable=False, index=True)
    officer_id = Column(String(100), nullable=False, index=True)
    timestamp = Column(DateTime, default=now, nullable=False, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    distance_meters = Column(Float, server_default="0.0")

    __table_args__ = (
        UniqueConstraint('checkpoint_id', 'officer_id', name='uq_verification_checkpoint_officer'),
        CheckConstraint('latitude >= -90.0 AND latitude <= 90.0', name='chk_verification_latitude_range'),
        CheckConstraint('longitude >= -180.0 AND longitude <= 180.0', name='chk_verification_longitude_range'),
    )

Index('idx_verification_officer_timestamp', CheckpointVerification.officer_id, CheckpointVerification.timestamp)
