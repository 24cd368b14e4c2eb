"""Client-side patrol session: proximity tracking and checkpoint verification."""
import logging
from typing import Callable, Dict, List, Optional
from shared.geo import compute_distance, feet_to_meters, is_within_proximity
from shared.schemas import PatrolLocationResponse
from shared.validation import Validator, ValidationError
from ..exceptions import APIError, PatrolError
from ..state import CheckpointState, PatrolStatus, ProximityEvent, utc_now


class PatrolService:
    """Runs one patrol at a time for a single officer.

    Location updates drive proximity state. A checkpoint can be verified only
    while the officer is within the proximity threshold of it, and only once
    per patrol.
    """

    def __init__(self, api_service, proximity_threshold_feet=50.0, officer_id=''):
        self.api_service = api_service
        self.officer_id = officer_id
        self.logger = logging.getLogger(self.__class__.__name__)
        self.proximity_threshold_feet = proximity_threshold_feet

        self.checkpoints: Dict[int, CheckpointState] = {}
        self.patrol_status: Optional[PatrolStatus] = None
        self.current_location_id: Optional[int] = None
        self.pending_verifications: List[dict] = []
        self._listeners: List[Callable[[ProximityEvent], None]] = []

    @property
    def proximity_threshold_feet(self):
        return self._proximity_threshold_feet

    @proximity_threshold_feet.setter
    def proximity_threshold_feet(self, value):
        if not value > 0:
            raise ValueError("Proximity threshold must be greater than zero")
        self._proximity_threshold_feet = float(value)
        self.threshold_meters = feet_to_meters(self._proximity_threshold_feet)

    @property
    def is_patrol_active(self):
        return self.patrol_status is not None and self.patrol_status.is_active

    def add_proximity_listener(self, callback):
        """Register callback(ProximityEvent) for checkpoint range changes."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_proximity_listener(self, callback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def get_locations(self):
        """Fetch patrol locations from the backend."""
        locations = self.api_service.get_locations()
        self.logger.info(f"Retrieved {len(locations)} patrol locations")
        return [PatrolLocationResponse.model_validate(item) for item in locations]

    def get_checkpoints(self, location_id):
        """Fetch the checkpoints of a location.

        Raises:
            ValueError: location_id is not positive
        """
        if location_id <= 0:
            raise ValueError("Location ID must be greater than zero")
        items = self.api_service.get_checkpoints(location_id, self.officer_id or None)
        checkpoints = [CheckpointState.from_api(item) for item in items]
        self.logger.info(f"Retrieved {len(checkpoints)} checkpoints for location {location_id}")
        return checkpoints

    def start_patrol(self, location_id):
        """Start a patrol at a location, ending any patrol already running.

        Raises:
            ValueError: location_id is not positive
            PatrolError: No valid officer ID is configured, or the location has no checkpoints
        """
        if location_id <= 0:
            raise ValueError("Location ID must be greater than zero")
        try:
            self.officer_id = Validator.validate_officer_id(self.officer_id)
        except ValidationError as e:
            raise PatrolError(f"Cannot start patrol: {e}") from e

        if self.is_patrol_active:
            self.logger.info(f"Ending active patrol at location {self.current_location_id} before starting a new one")
            self.end_patrol()

        checkpoints = self.get_checkpoints(location_id)
        if not checkpoints:
            raise PatrolError(f"No checkpoints found for location {location_id}")

        for checkpoint in checkpoints:
            checkpoint.reset()

        self.checkpoints = {checkpoint.id: checkpoint for checkpoint in checkpoints}
        self.current_location_id = location_id
        self.patrol_status = PatrolStatus(location_id=location_id, total_checkpoints=len(checkpoints))

        self.logger.info(f"Started patrol at location {location_id} with {len(checkpoints)} checkpoints")
        return self.patrol_status

    def end_patrol(self):
        """End the current patrol.

        Returns:
            PatrolStatus: Final status, or None when no patrol was started
        """
        if self.patrol_status is None:
            self.logger.debug("end_patrol called with no patrol")
            return None

        self.patrol_status.end_patrol()
        self.logger.info(
            f"Patrol at location {self.current_location_id} ended: "
            f"{self.patrol_status.verified_checkpoints}/{self.patrol_status.total_checkpoints} verified"
        )
        return self.patrol_status

    def get_patrol_status(self):
        return self.patrol_status

    def _distance_to(self, checkpoint, latitude, longitude):
        return compute_distance(latitude, longitude, checkpoint.latitude, checkpoint.longitude)

    def check_proximity(self, latitude, longitude):
        """Ids of checkpoints within the threshold of the given position."""
        if not self.is_patrol_active:
            return []
        return [
            checkpoint.id for checkpoint in self.checkpoints.values()
            if is_within_proximity(latitude, longitude, checkpoint.latitude, checkpoint.longitude,
                                   self.threshold_meters)
        ]

    def update_location(self, latitude, longitude):
        """Re-evaluate proximity for a new position.

        Returns:
            list[ProximityEvent]: One event per checkpoint whose in-range state changed
        """
        if not self.is_patrol_active:
            return []

        events = []
        for checkpoint in self.checkpoints.values():
            distance = self._distance_to(checkpoint, latitude, longitude)
            in_range = distance <= self.threshold_meters
            if in_range != checkpoint.is_in_range:
                checkpoint.is_in_range = in_range
                events.append(ProximityEvent(checkpoint.id, in_range, distance))
                self.logger.debug(
                    f"Checkpoint {checkpoint.id} {'entered' if in_range else 'left'} range at {distance:.1f} m"
                )

        for event in events:
            self._dispatch(event)
        return events

    def _dispatch(self, event):
        for callback in list(self._listeners):
            try:
                callback(event)
            except Exception as e:
                self.logger.error(f"Proximity listener failed for checkpoint {event.checkpoint_id}: {e}", exc_info=True)

    def verify_checkpoint(self, checkpoint_id, latitude, longitude):
        """Verify a checkpoint from the officer's current position.

        Returns:
            bool: True when the checkpoint is (or already was) verified

        Raises:
            ValueError: checkpoint_id is not positive
        """
        if checkpoint_id <= 0:
            raise ValueError("Checkpoint ID must be greater than zero")

        if not self.is_patrol_active:
            self.logger.warning(f"Cannot verify checkpoint {checkpoint_id}: no active patrol")
            return False

        checkpoint = self.checkpoints.get(checkpoint_id)
        if checkpoint is None:
            self.logger.warning(f"Checkpoint {checkpoint_id} is not part of the current patrol")
            return False

        if checkpoint.is_verified:
            self.logger.info(f"Checkpoint {checkpoint_id} already verified")
            return True

        distance = self._distance_to(checkpoint, latitude, longitude)
        if not distance <= self.threshold_meters:
            self.logger.warning(
                f"Checkpoint {checkpoint_id} out of range: {distance:.1f} m > {self.threshold_meters:.2f} m"
            )
            return False

        checkpoint.mark_verified(utc_now())
        self._submit_verification(checkpoint_id, latitude, longitude)

        verified = sum(1 for c in self.checkpoints.values() if c.is_verified)
        self.patrol_status.update_progress(verified, checkpoint.verification_time)
        self.logger.info(f"Checkpoint {checkpoint_id} verified ({verified}/{self.patrol_status.total_checkpoints})")

        if self.patrol_status.is_complete:
            self.patrol_status.complete_patrol()
            self.logger.info(f"Patrol at location {self.current_location_id} completed")

        return True

    def _submit_verification(self, checkpoint_id, latitude, longitude):
        """Send a verification to the backend, queueing it on transient failure."""
        verification = {
            'checkpoint_id': checkpoint_id,
            'latitude': latitude,
            'longitude': longitude,
        }
        try:
            self.api_service.verify_checkpoint(checkpoint_id, self.officer_id, latitude, longitude)
        except APIError as e:
            if e.is_transient:
                self.logger.warning(f"Queueing verification of checkpoint {checkpoint_id} for retry: {e}")
                self.pending_verifications.append(verification)
            else:
                self.logger.error(f"Backend rejected verification of checkpoint {checkpoint_id}: {e}")

    def sync_pending_verifications(self):
        """Retry queued verifications in order.

        Stops at the first transient failure; that verification and the ones
        behind it stay queued for the next attempt.

        Returns:
            int: Number of verifications the backend accepted
        """
        remaining = []
        synced = 0
        for index, verification in enumerate(self.pending_verifications):
            try:
                self.api_service.verify_checkpoint(
                    verification['checkpoint_id'], self.officer_id,
                    verification['latitude'], verification['longitude']
                )
                synced += 1
            except APIError as e:
                if e.is_transient:
                    self.logger.warning(f"Backend still unavailable, keeping {len(self.pending_verifications) - index} queued verifications: {e}")
                    remaining = self.pending_verifications[index:]
                    break
                self.logger.error(f"Dropping queued verification of checkpoint {verification['checkpoint_id']}: {e}")
        self.pending_verifications = remaining
        if synced:
            self.logger.info(f"Synced {synced} queued verifications, {len(remaining)} still pending")
        return synced
