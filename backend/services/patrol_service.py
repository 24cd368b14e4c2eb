"""Patrol service: checkpoint verification, patrol status and nearby lookups."""

import logging
from datetime import datetime, timezone
from flask import current_app
from sqlalchemy.exc import IntegrityError
from shared.enums import VerificationStatus
from shared.geo import compute_distance, bounding_box, CHECKPOINT_PROXIMITY_THRESHOLD_METERS
from shared.models import PatrolLocation, Checkpoint, CheckpointVerification, now
from shared.schemas import VerificationRequest, VerificationResponse
from shared.validation import ValidationError
from ..models import db


logger = logging.getLogger(__name__)


class NotFoundError(Exception):
    """Raised when a referenced location or checkpoint does not exist."""
    pass


class OutOfRangeError(Exception):
    """Raised when an officer is too far from a checkpoint to verify it."""

    def __init__(self, checkpoint_id, distance_meters, threshold_meters):
        self.checkpoint_id = checkpoint_id
        self.distance_meters = distance_meters
        self.threshold_meters = threshold_meters
        super().__init__(
            f"Checkpoint {checkpoint_id} is {distance_meters:.1f} m away "
            f"(threshold {threshold_meters:.2f} m)"
        )


def parse_timestamp(value, field_name):
    """Parse an ISO-8601 query value into a naive UTC datetime.

    Stored timestamps are naive UTC (SQLite drops tzinfo), so aware inputs
    are converted before comparison.
    """
    if value is None or value == '':
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (ValueError, AttributeError):
        raise ValidationError(f"{field_name} must be an ISO-8601 datetime")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def as_utc(value):
    """Attach UTC to a naive stored timestamp."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def serialize_checkpoint(checkpoint, verification=None):
    """Serialize a checkpoint with the verification state of one officer."""
    return {
        'id': checkpoint.id,
        'location_id': checkpoint.location_id,
        'name': checkpoint.name,
        'latitude': checkpoint.latitude,
        'longitude': checkpoint.longitude,
        'remote_id': checkpoint.remote_id or '',
        'is_verified': verification is not None,
        'verification_time': as_utc(verification.timestamp).isoformat() if verification else None,
    }


def serialize_verification(verification):
    return {
        'id': verification.id,
        'checkpoint_id': verification.checkpoint_id,
        'officer_id': verification.officer_id,
        'timestamp': as_utc(verification.timestamp).isoformat(),
        'latitude': verification.latitude,
        'longitude': verification.longitude,
        'distance_meters': verification.distance_meters,
    }


class PatrolService:
    """Patrol operations on top of the SQLAlchemy session."""

    def __init__(self, threshold_meters=CHECKPOINT_PROXIMITY_THRESHOLD_METERS):
        self.threshold_meters = threshold_meters

    def _get_location(self, location_id):
        location = db.session.get(PatrolLocation, location_id)
        if location is None:
            raise NotFoundError(f"Patrol location with ID {location_id} not found")
        return location

    def _get_checkpoint(self, checkpoint_id):
        checkpoint = db.session.get(Checkpoint, checkpoint_id)
        if checkpoint is None:
            raise NotFoundError(f"Checkpoint with ID {checkpoint_id} not found")
        return checkpoint

    def _verifications_by_checkpoint(self, officer_id, checkpoint_ids):
        if not officer_id or not checkpoint_ids:
            return {}
        rows = CheckpointVerification.query.filter(
            CheckpointVerification.officer_id == officer_id,
            CheckpointVerification.checkpoint_id.in_(checkpoint_ids)
        ).all()
        return {v.checkpoint_id: v for v in rows}

    def get_checkpoints(self, location_id, officer_id=None):
        """Checkpoints of a location, with the officer's verification state."""
        self._get_location(location_id)
        checkpoints = Checkpoint.query.filter_by(location_id=location_id).order_by(Checkpoint.id).all()
        verified = self._verifications_by_checkpoint(officer_id, [c.id for c in checkpoints])
        return [serialize_checkpoint(c, verified.get(c.id)) for c in checkpoints]

    def get_checkpoint(self, checkpoint_id, officer_id=None):
        checkpoint = self._get_checkpoint(checkpoint_id)
        verified = self._verifications_by_checkpoint(officer_id, [checkpoint.id])
        return serialize_checkpoint(checkpoint, verified.get(checkpoint.id))

    def verify_checkpoint(self, request: VerificationRequest) -> VerificationResponse:
        """Record a proximity-gated verification.

        A repeat verification by the same officer returns the original record
        with status already_verified.

        Raises:
            NotFoundError: Unknown checkpoint
            OutOfRangeError: Officer position beyond the threshold
        """
        checkpoint = self._get_checkpoint(request.checkpoint_id)

        existing = CheckpointVerification.query.filter_by(
            checkpoint_id=checkpoint.id, officer_id=request.officer_id
        ).first()
        if existing is not None:
            logger.info(f"Checkpoint {checkpoint.id} already verified by {request.officer_id}")
            return self._to_response(existing, VerificationStatus.ALREADY_VERIFIED)

        distance = compute_distance(checkpoint.latitude, checkpoint.longitude,
                                    request.latitude, request.longitude)
        if not distance <= self.threshold_meters:
            logger.warning(
                f"Verification rejected for checkpoint {checkpoint.id} by {request.officer_id}: "
                f"{distance:.1f} m > {self.threshold_meters:.2f} m"
            )
            raise OutOfRangeError(checkpoint.id, distance, self.threshold_meters)

        verification = CheckpointVerification(
            checkpoint_id=checkpoint.id,
            officer_id=request.officer_id,
            timestamp=now(),
            latitude=request.latitude,
            longitude=request.longitude,
            distance_meters=distance,
        )
        db.session.add(verification)
        try:
            db.session.commit()
        except IntegrityError:
            # Concurrent request from the same officer won the unique constraint
            db.session.rollback()
            existing = CheckpointVerification.query.filter_by(
                checkpoint_id=checkpoint.id, officer_id=request.officer_id
            ).first()
            if existing is None:
                raise
            return self._to_response(existing, VerificationStatus.ALREADY_VERIFIED)

        logger.info(f"Checkpoint {checkpoint.id} verified by {request.officer_id} at {distance:.1f} m")
        return self._to_response(verification, VerificationStatus.VERIFIED)

    @staticmethod
    def _to_response(verification, status):
        return VerificationResponse(
            checkpoint_id=verification.checkpoint_id,
            officer_id=verification.officer_id,
            timestamp=as_utc(verification.timestamp),
            latitude=verification.latitude,
            longitude=verification.longitude,
            distance_meters=verification.distance_meters or 0.0,
            status=status,
        )

    def is_checkpoint_verified(self, checkpoint_id, officer_id):
        self._get_checkpoint(checkpoint_id)
        return CheckpointVerification.query.filter_by(
            checkpoint_id=checkpoint_id, officer_id=officer_id
        ).first() is not None

    def get_patrol_status(self, location_id, officer_id):
        """Progress of one officer through a location's checkpoints."""
        self._get_location(location_id)
        total = Checkpoint.query.filter_by(location_id=location_id).count()
        verifications = CheckpointVerification.query.join(Checkpoint).filter(
            Checkpoint.location_id == location_id,
            CheckpointVerification.officer_id == officer_id
        ).all()
        last = max((v.timestamp for v in verifications), default=None)
        return {
            'location_id': location_id,
            'total_checkpoints': total,
            'verified_checkpoints': len(verifications),
            'last_verification_time': as_utc(last).isoformat() if last else None,
            'is_complete': total > 0 and len(verifications) == total,
        }

    def get_verifications(self, officer_id, start=None, end=None):
        """An officer's verifications, newest first, optionally within [start, end]."""
        if start is not None and end is not None and end < start:
            raise ValidationError("End date must be greater than or equal to start date")
        query = CheckpointVerification.query.filter_by(officer_id=officer_id)
        if start is not None:
            query = query.filter(CheckpointVerification.timestamp >= start)
        if end is not None:
            query = query.filter(CheckpointVerification.timestamp <= end)
        return [serialize_verification(v) for v in query.order_by(CheckpointVerification.timestamp.desc()).all()]

    def _within_radius(self, model, latitude, longitude, radius_meters):
        min_lat, max_lat, min_lon, max_lon = bounding_box(latitude, longitude, radius_meters)
        query = model.query.filter(model.latitude >= min_lat, model.latitude <= max_lat)
        if min_lon is not None:
            query = query.filter(model.longitude >= min_lon, model.longitude <= max_lon)

        matches = []
        for item in query.all():
            distance = compute_distance(latitude, longitude, item.latitude, item.longitude)
            if distance <= radius_meters:
                matches.append((distance, item))
        matches.sort(key=lambda pair: pair[0])
        return matches

    def find_nearby_checkpoints(self, latitude, longitude, radius_meters, officer_id=None):
        matches = self._within_radius(Checkpoint, latitude, longitude, radius_meters)
        verified = self._verifications_by_checkpoint(officer_id, [c.id for _, c in matches])
        results = []
        for distance, checkpoint in matches:
            item = serialize_checkpoint(checkpoint, verified.get(checkpoint.id))
            item['distance_meters'] = distance
            results.append(item)
        return results

    def find_nearby_locations(self, latitude, longitude, radius_meters):
        return [{
            'id': location.id,
            'name': location.name,
            'address': location.address,
            'latitude': location.latitude,
            'longitude': location.longitude,
            'distance_meters': distance,
        } for distance, location in self._within_radius(PatrolLocation, latitude, longitude, radius_meters)]


def get_patrol_service():
    """PatrolService configured from the current Flask app."""
    threshold = current_app.config.get(
        'CHECKPOINT_PROXIMITY_THRESHOLD_METERS', CHECKPOINT_PROXIMITY_THRESHOLD_METERS
    )
    return PatrolService(threshold_meters=float(threshold))
