"""Configuration Manager for the patrol client."""
from pydantic_settings import BaseSettings
from shared.enums import DistanceUnit


class ConfigManager(BaseSettings):
    """Manages client configuration settings using Pydantic BaseSettings."""

    # API settings
    api_base_url: str = 'http://localhost:5000'
    api_timeout: float = 5.0
    api_max_retries: int = 3
    api_retry_delay: float = 1.0

    # Patrol settings
    officer_id: str = ''
    proximity_threshold_feet: float = 50.0

    # Location tracking intervals (seconds)
    location_tracking_interval: int = 60
    location_tracking_interval_low_power: int = 120
    location_tracking_interval_high_accuracy: int = 30

    # Display settings
    use_imperial_units: bool = True

    class Config:
        env_prefix = 'PATROL_'
        case_sensitive = False

    @property
    def distance_unit(self):
        return DistanceUnit.IMPERIAL if self.use_imperial_units else DistanceUnit.METRIC

    def get_tracking_interval(self, mode='normal'):
        """Seconds between location updates for a tracking mode.

        Args:
            mode: 'normal', 'low_power' or 'high_accuracy'
        """
        if mode == 'low_power':
            return self.location_tracking_interval_low_power
        if mode == 'high_accuracy':
            return self.location_tracking_interval_high_accuracy
        if mode != 'normal':
            raise ValueError(f"Unknown tracking mode: {mode}")
        return self.location_tracking_interval

    def get(self, key, default=None):
        """Get a configuration value."""
        return getattr(self, key, default)

    def set(self, key, value):
        """Set a configuration value."""
        setattr(self, key, value)

    def get_all(self):
        """Get all configuration values as dictionary."""
        return self.model_dump()
