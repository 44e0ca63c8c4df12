"""
Error taxonomy for the session analytics pipeline.

None of these ever escape SessionStore.fetch; they exist so adapters can
signal failure precisely and callers can decide how to degrade.
"""


class MemtrackError(Exception):
    """Base class for all memtrack errors."""


class SourceUnavailable(MemtrackError):
    """The remote session source could not be reached or returned an error."""


class MalformedRecord(MemtrackError):
    """A raw session record has an unparseable timestamp or invalid numeric fields."""


class StorageQuotaExceeded(MemtrackError):
    """
    The durable fallback store refused a write because it is out of space.

    When raised from SessionStore.append, `remote_ok` records whether the remote
    half of the dual write succeeded before the durable half failed.
    """

    def __init__(self, message: str = "", remote_ok: bool | None = None):
        super().__init__(message)
        self.remote_ok = remote_ok
