"""
Exceptions raised by the FACEIT gateway and the match-tracking services.
"""


class GatewayError(Exception):
    """A FACEIT API call failed (network, HTTP status or malformed payload)."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status

    @property
    def is_transient(self) -> bool:
        """Rate limiting and server-side errors are worth retrying."""
        return self.status is None or self.status == 429 or self.status >= 500


class GatewayAuthError(GatewayError):
    """Credentials are missing or were rejected (401/403)."""


class StateConflictError(RuntimeError):
    """A registry invariant was violated; indicates a bug in single-writer discipline."""
