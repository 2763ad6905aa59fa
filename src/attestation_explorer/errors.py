"""Exception types raised across the attestation explorer pipeline."""


class ExplorerError(Exception):
    """Base class for explorer errors."""


class TransportError(ExplorerError):
    """A node or index endpoint was unreachable or returned an error payload."""


class DecodeError(ExplorerError):
    """An event entry did not have the expected shape."""


class PersistenceError(ExplorerError):
    """The key/value store could not be read or written."""


class NoFetchSourceError(ExplorerError):
    """Neither the indexed source nor the RPC fallback is available."""
