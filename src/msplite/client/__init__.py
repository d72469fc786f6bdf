"""HTTP client for the schedule backend."""

from msplite.client.backend import BackendClient, BackendError

__all__ = ["BackendClient", "BackendError"]
