"""
Error types shared by the client, the services and the routes
"""
from typing import Optional


class WalletMetricsError(Exception):
    pass


class ConfigurationError(WalletMetricsError):
    pass


class UpstreamError(WalletMetricsError):
    """Raised by the Nansen client when a request cannot be completed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class MetricsError(WalletMetricsError):
    """A domain operation failed; no partial summary is returned."""

    def __init__(self, domain: str, address: str, cause):
        self.domain = domain
        self.address = address
        self.cause = str(cause)
        super().__init__(f"Failed to fetch {domain} for {address}: {self.cause}")
