"""Pydantic schemas for validation and serialization."""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict, ValidationError as PydanticValidationError
from shared.enums import VerificationStatus
from shared.validation import Validator


def format_pydantic_errors(exc: PydanticValidationError) -> str:
    """Flatten pydantic errors into a single 'field: message; ...' string."""
    errors = []
    for error in exc.errors():
        field = '.'.join(str(x) for x in error['loc'])
        errors.append(f"{field}: {error['msg']}")
    return '; '.join(errors)


# Verification Schemas
class VerificationRequest(BaseModel):
    checkpoint_id: int = Field(..., gt=0)
    officer_id: str = Field(..., min_length=1, max_length=100)
    latitude: float
    longitude: float

    @field_validator('officer_id')
    @classmethod
    def validate_officer_id(cls, v):
        return Validator.validate_officer_id(v)

    @model_validator(mode='after')
    def validate_coords(self):
        self.latitude, self.longitude = Validator.validate_coordinates(self.latitude, self.longitude)
        return self


class VerificationResponse(BaseModel):
    checkpoint_id: int
    officer_id: str
    timestamp: datetime
    latitude: float
    longitude: float
    distance_meters: float
    status: VerificationStatus

    model_config = ConfigDict(use_enum_values=True)


# Checkpoint Schemas
class CheckpointResponse(BaseModel):
    """Checkpoint as returned by the API, with per-officer verification state."""
    id: int
    location_id: int
    name: str
    latitude: float
    longitude: float
    remote_id: Optional[str] = ""
    is_verified: bool = False
    verification_time: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode='after')
    def check_verification_state(self):
        if self.is_verified != (self.verification_time is not None):
            raise ValueError('verification_time must be set if and only if is_verified is true')
        return self


# Patrol Location Schemas
class PatrolLocationResponse(BaseModel):
    id: int
    name: str
    address: Optional[str] = ""
    latitude: float = Field(default=0.0, ge=-90, le=90)
    longitude: float = Field(default=0.0, ge=-180, le=180)
    distance_meters: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class PatrolStatusResponse(BaseModel):
    location_id: int
    total_checkpoints: int = 0
    verified_checkpoints: int = 0
    last_verification_time: Optional[datetime] = None
    is_complete: bool = False


class SeedCheckpoint(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    remote_id: Optional[str] = Field(default="", max_length=100)

    model_config = ConfigDict(str_strip_whitespace=True)


class SeedLocation(BaseModel):
    """One entry of the seed-checkpoints CLI input file."""
    name: str = Field(..., min_length=1, max_length=200)
    address: Optional[str] = Field(default="", max_length=500)
    latitude: float = Field(default=0.0, ge=-90, le=90)
    longitude: float = Field(default=0.0, ge=-180, le=180)
    checkpoints: List[SeedCheckpoint] = Field(default_factory=list)

    model_config = ConfigDict(str_strip_whitespace=True)
