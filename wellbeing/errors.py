class StorageIOError(IOError):
    """The underlying store failed to read or write. Never retried."""


class MalformedRecordError(ValueError):
    """A stored collection could not be decoded.

    Raised by the decode step and caught at the repository boundary, where the
    collection is treated as empty.
    """

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Malformed collection at '{key}': {reason}")


class NoCurrentUserError(LookupError):
    """A profile update was attempted while nobody is signed in."""
