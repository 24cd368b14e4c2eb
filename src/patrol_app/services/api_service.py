"""API service for the patrol backend."""
import requests
import time
import logging
from ..exceptions import APIError


class APIService:
    """HTTP client for backend API calls with error handling and retry logic."""

    def __init__(self, base_url='http://localhost:5000', timeout=5.0, max_retries=3, retry_delay=1.0):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_config(cls, config):
        """Build from a ConfigManager."""
        return cls(
            base_url=config.api_base_url,
            timeout=config.api_timeout,
            max_retries=config.api_max_retries,
            retry_delay=config.api_retry_delay,
        )

    def _make_request(self, method, url, **kwargs):
        """Make HTTP request with retry logic.

        Client errors (4xx) other than 408 and 429 are returned immediately.
        Server errors and network failures are retried with exponential
        backoff.

        Raises:
            APIError: All attempts failed without a usable response
        """
        kwargs.setdefault('timeout', self.timeout)
        last_exception = None
        response = None

        for attempt in range(self.max_retries):
            try:
                response = requests.request(method, url, **kwargs)
                if 400 <= response.status_code < 500:
                    if response.status_code not in [408, 429]:  # Retry timeout and rate limit
                        return response
                elif response.status_code < 500:
                    return response

                if attempt < self.max_retries - 1:
                    self.logger.warning(f"Request failed (attempt {attempt + 1}/{self.max_retries}): {response.status_code} {response.reason}")
                    time.sleep(self.retry_delay * (2 ** attempt))  # Exponential backoff

            except requests.exceptions.RequestException as e:
                last_exception = e
                if attempt < self.max_retries - 1:
                    self.logger.warning(f"Request exception (attempt {attempt + 1}/{self.max_retries}): {e}")
                    time.sleep(self.retry_delay * (2 ** attempt))  # Exponential backoff
                else:
                    self.logger.error(f"Request failed after {self.max_retries} attempts: {e}")

        if response is not None and last_exception is None:
            # Last attempt produced a retryable status; hand it to the caller
            return response
        raise APIError(f"{method} {url} failed: {last_exception}") from last_exception

    def _json_or_raise(self, response):
        """Decode a JSON response, raising APIError for error statuses."""
        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400:
            message = payload.get('error') if isinstance(payload, dict) else None
            raise APIError(
                message or f"HTTP {response.status_code}",
                status_code=response.status_code,
                payload=payload if isinstance(payload, dict) else {}
            )
        return payload

    def get(self, endpoint, **kwargs):
        """GET request with error handling and retry."""
        url = f"{self.base_url}{endpoint}"
        return self._make_request('GET', url, **kwargs)

    def post(self, endpoint, **kwargs):
        """POST request with error handling and retry."""
        url = f"{self.base_url}{endpoint}"
        return self._make_request('POST', url, **kwargs)

    def get_locations(self, page=1, per_page=100):
        """Fetch patrol locations."""
        response = self.get('/api/locations', params={'page': page, 'per_page': per_page})
        return self._json_or_raise(response).get('locations', [])

    def get_checkpoints(self, location_id, officer_id=None):
        """Fetch the checkpoints of a location with the officer's verification state."""
        params = {'officer_id': officer_id} if officer_id else None
        response = self.get(f'/api/locations/{location_id}/checkpoints', params=params)
        return self._json_or_raise(response).get('checkpoints', [])

    def get_patrol_status(self, location_id, officer_id):
        response = self.get(f'/api/locations/{location_id}/status', params={'officer_id': officer_id})
        return self._json_or_raise(response)

    def verify_checkpoint(self, checkpoint_id, officer_id, latitude, longitude):
        """Submit a checkpoint verification.

        Returns:
            dict: Verification record with a status of verified or already_verified
        """
        response = self.post('/api/patrol/verify', json={
            'checkpoint_id': checkpoint_id,
            'officer_id': officer_id,
            'latitude': latitude,
            'longitude': longitude,
        })
        return self._json_or_raise(response)
