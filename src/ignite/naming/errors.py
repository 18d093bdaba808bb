"""Errors raised by the naming collaborator layer."""


class NamingError(Exception):
    """Base class: a naming batch produced no usable results."""


class NamingResponseError(NamingError):
    """The collaborator answered, but not with a valid naming payload."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        # Keep a short excerpt for logs
        self.raw = raw[:500]


class NamingTransportError(NamingError):
    """The collaborator could not be reached or rejected the request."""
