class DashboardError(Exception):
    """Base class for every failure the dashboard reports at its API boundary."""


class ConfigurationError(DashboardError):
    """Missing or malformed configuration. Raised before any network call."""


class UpstreamFetchError(DashboardError):
    """The RPC provider could not answer a read the response depends on."""


class LogDecodeError(DashboardError):
    """A raw log does not match the expected event shape."""
