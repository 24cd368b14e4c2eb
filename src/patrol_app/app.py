"""Security Patrol client - service wiring."""
import logging
import time
from shared.geo import format_distance
from .config_manager import ConfigManager
from .logging_config import setup_logging
from .services.api_service import APIService
from .services.patrol_service import PatrolService


class PatrolApp:
    """Owns the configuration and services of the patrol client.

    Location delivery is platform specific; whatever produces positions
    calls on_location() at get_tracking_interval() seconds apart.
    """

    def __init__(self, config=None, configure_logging=True):
        if configure_logging:
            setup_logging()
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = config or ConfigManager()
        self.logger.info(f"Configuration loaded: API URL={self.config.api_base_url}")

        self.api_service = APIService.from_config(self.config)
        self.patrol_service = PatrolService(
            self.api_service,
            proximity_threshold_feet=self.config.proximity_threshold_feet,
            officer_id=self.config.officer_id,
        )
        self.tracking_mode = 'normal'
        self._last_sync_attempt = None

    def get_tracking_interval(self):
        return self.config.get_tracking_interval(self.tracking_mode)

    def set_tracking_mode(self, mode):
        """Switch between 'normal', 'low_power' and 'high_accuracy' tracking."""
        self.config.get_tracking_interval(mode)
        self.tracking_mode = mode
        self.logger.info(f"Location tracking mode set to {mode} ({self.get_tracking_interval()} s)")

    def format_distance(self, distance_meters):
        """Distance text in the configured display units."""
        return format_distance(distance_meters, use_imperial=self.config.use_imperial_units)

    def on_location(self, latitude, longitude):
        """Feed a position fix into the patrol session.

        Queued verifications are retried at most once per tracking interval.
        """
        events = self.patrol_service.update_location(latitude, longitude)
        if self.patrol_service.pending_verifications and self._sync_due():
            self._last_sync_attempt = time.monotonic()
            self.patrol_service.sync_pending_verifications()
        return events

    def _sync_due(self):
        if self._last_sync_attempt is None:
            return True
        return time.monotonic() - self._last_sync_attempt >= self.get_tracking_interval()
