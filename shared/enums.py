import enum


class VerificationStatus(str, enum.Enum):
    """Outcome of a checkpoint verification request.

    Returned by the patrol verify endpoint.
    """
    ALREADY_VERIFIED = "already_verified"
    VERIFIED = "verified"


class PatrolState(str, enum.Enum):
    """Lifecycle of a client-side patrol session."""
    ACTIVE = "active"
    COMPLETED = "completed"
    ENDED = "ended"


class DistanceUnit(str, enum.Enum):
    """Display units for distances shown to the officer."""
    IMPERIAL = "imperial"
    METRIC = "metric"
