"""Exception hierarchy for pullstage."""


class PullstageError(Exception):
    """Base class for all pullstage errors."""


class ConfigurationError(PullstageError, ValueError):
    """Raised when producer or client options fail validation.

    Configuration errors are fatal: the producer is never started and no
    registry entry or network connection is created.
    """


class UnknownRegistryKey(PullstageError, KeyError):
    """Raised when a registry key was never issued or has been released."""


class TransportError(PullstageError):
    """A pull or acknowledge call against the remote queue failed."""


class TokenError(TransportError):
    """An access token could not be obtained."""
