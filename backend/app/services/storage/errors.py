"""Storage errors not covered by builtin OSError subclasses (FileNotFoundError etc. propagate unchanged)."""


class InvalidStorageKeyError(ValueError):
    """Key would resolve outside the storage root (parent segments, NUL bytes)."""


class IncompleteWriteError(OSError):
    """Stream ended before content_length bytes were written; target left untouched."""
