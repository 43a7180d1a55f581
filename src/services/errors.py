"""
Exception types raised by the dashboard services.
"""


class DashboardError(Exception):
    """Base class for dashboard errors."""


class MessageDecodeError(DashboardError):
    """Inbound message does not match the shape declared by its type."""


class DiscoveryError(DashboardError):
    """Camera discovery endpoint unreachable or returned no streams."""


class ConfigurationError(DashboardError):
    """System configuration is missing or invalid."""

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])
