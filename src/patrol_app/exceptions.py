"""Exceptions raised by the patrol client."""


class PatrolError(Exception):
    """Raised when a patrol operation is not possible in the current state."""
    pass


class APIError(Exception):
    """Raised when the backend cannot be reached or rejects a request.

    status_code is None when no HTTP response was received.
    """

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}

    @property
    def is_transient(self):
        """True for failures worth retrying later (network or server side)."""
        return self.status_code is None or self.status_code >= 500 or self.status_code in (408, 429)
