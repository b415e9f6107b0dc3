"""Exception types raised by the perfkeeper core and its storage adapters."""


class PerfKeeperError(Exception):
    """Base class for all perfkeeper errors."""


class InvalidConfiguration(PerfKeeperError, ValueError):
    """A configuration value is out of range or cannot be parsed.

    Fatal: surfaced to the caller immediately and never retried.
    """


class InvalidRecord(PerfKeeperError, ValueError):
    """A record cannot be encoded into a key.

    Raised when a key field value contains the key delimiter.
    """


class MalformedRecord(PerfKeeperError, ValueError):
    """A stored value cannot be decoded back into a record.

    Report assemblers skip the offending entry and continue with the batch.
    """


class StoreUnavailable(PerfKeeperError, ConnectionError):
    """The key-value store could not be reached."""


class ScanLimitExceeded(PerfKeeperError, RuntimeError):
    """A cursor scan did not complete within the configured iteration cap."""
