"""Patrol session state for the patrol client."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from shared.enums import PatrolState
from shared.geo import Coordinate
from shared.schemas import CheckpointResponse


def utc_now():
    return datetime.now(timezone.utc)


@dataclass
class CheckpointState:
    """A checkpoint as tracked during a patrol.

    verification_time is set exactly when is_verified is true.
    """
    id: int
    location_id: int
    name: str
    latitude: float
    longitude: float
    remote_id: str = ''
    is_verified: bool = False
    verification_time: Optional[datetime] = None
    is_in_range: bool = False

    @classmethod
    def from_api(cls, data):
        """Build from a checkpoint dict returned by the backend."""
        checkpoint = CheckpointResponse.model_validate(data)
        return cls(
            id=checkpoint.id,
            location_id=checkpoint.location_id,
            name=checkpoint.name,
            latitude=checkpoint.latitude,
            longitude=checkpoint.longitude,
            remote_id=checkpoint.remote_id or '',
            is_verified=checkpoint.is_verified,
            verification_time=checkpoint.verification_time,
        )

    @property
    def coordinate(self):
        return Coordinate(self.latitude, self.longitude)

    def mark_verified(self, when=None):
        """Mark verified once; later calls keep the first verification time."""
        if self.is_verified:
            return False
        self.is_verified = True
        self.verification_time = when or utc_now()
        return True

    def reset(self):
        self.is_verified = False
        self.verification_time = None
        self.is_in_range = False


@dataclass(frozen=True)
class ProximityEvent:
    """A checkpoint entering or leaving the proximity threshold."""
    checkpoint_id: int
    is_in_range: bool
    distance_meters: float
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class PatrolStatus:
    """Progress of the current patrol at one location."""
    location_id: int
    total_checkpoints: int
    verified_checkpoints: int = 0
    start_time: datetime = field(default_factory=utc_now)
    end_time: Optional[datetime] = None
    last_verification_time: Optional[datetime] = None
    state: PatrolState = PatrolState.ACTIVE

    @property
    def is_active(self):
        return self.state == PatrolState.ACTIVE

    @property
    def is_complete(self):
        return self.total_checkpoints > 0 and self.verified_checkpoints >= self.total_checkpoints

    @property
    def completion_percentage(self):
        if self.total_checkpoints == 0:
            return 0.0
        return round(100.0 * self.verified_checkpoints / self.total_checkpoints, 1)

    def update_progress(self, verified_checkpoints, last_verification_time=None):
        self.verified_checkpoints = min(verified_checkpoints, self.total_checkpoints)
        if last_verification_time is not None:
            self.last_verification_time = last_verification_time

    def complete_patrol(self):
        self.state = PatrolState.COMPLETED
        self.end_time = utc_now()

    def end_patrol(self):
        """End an active patrol early. A completed patrol keeps its state."""
        if self.state == PatrolState.ACTIVE:
            self.state = PatrolState.ENDED
            self.end_time = utc_now()
