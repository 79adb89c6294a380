"""Exception types raised by the blackhole reconciliation engine."""


class IpbanError(RuntimeError):
    """Base class for errors raised by :mod:`ipban`."""


class ConfigReadError(IpbanError):
    """The routes document could not be obtained.

    This is the only fatal condition of a run: it is raised before any prefix
    lookup or route mutation is attempted.
    """

    def __init__(self, path, reason: str) -> None:
        super().__init__(f"failed to read configuration file '{path}': {reason}")
        self.path = path
        self.reason = reason


class RouteSetFrozenError(IpbanError):
    """A prefix was added to a route set after it was handed to the reconciler."""
