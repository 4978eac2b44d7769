"""Error definitions for the APT S3 method.

Errors fall into two groups. ``NotFoundError`` is recoverable: the engine
answers the request with ``400 URI Failure`` and keeps running. Everything
derived from ``FatalError`` aborts the whole process after a
``401 General Failure`` message, which is what APT expects from a method
that cannot continue.
"""


class MethodError(Exception):
    """Base class for errors raised while handling method messages.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(MethodError):
    """The backend reports that the requested object does not exist."""

    def __init__(self, bucket: str = "", key: str = "") -> None:
        super().__init__(f"Object not found: {bucket}/{key}")
        self.bucket = bucket
        self.key = key


# -- Fatal errors -------------------------------------------------------------


class FatalError(MethodError):
    """An unrecoverable error; the method reports it and exits non-zero."""


class ParseError(FatalError):
    """A framed message could not be parsed."""


class ResolutionError(FatalError):
    """A URI or region could not be resolved to an S3 location."""


class MissingFieldError(FatalError):
    """A required field or value is absent from a message."""

    def __init__(self, kind: str, name: str, what: str = "field") -> None:
        super().__init__(f"{kind} message missing required {what}: {name}")
        self.kind = kind
        self.name = name


class TransferError(FatalError):
    """Any other backend or filesystem failure."""
