from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    not_found = "not_found"
    already_exists = "already_exists"
    inconsistent_ids = "inconsistent_ids"


class ServiceError(Exception):
    """Business-logic failure raised by the service.

    These travel inside endpoint responses (never as transport failures) so
    callers can tell "the user doesn't exist" apart from "the network is down".
    """

    kind: ErrorKind
    message: str = "service error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ServiceError) and other.kind == self.kind and str(other) == str(self)

    def __hash__(self) -> int:
        return hash((self.kind, str(self)))


class NotFoundError(ServiceError):
    kind = ErrorKind.not_found
    message = "not found"


class AlreadyExistsError(ServiceError):
    kind = ErrorKind.already_exists
    message = "already exists"


class InconsistentIDsError(ServiceError):
    kind = ErrorKind.inconsistent_ids
    message = "inconsistent IDs"


class TransportError(Exception):
    """Decode/routing failure. Never produced by the service."""


class BadRoutingError(TransportError):
    # Always a programmer error: the route table and the decoder disagree.
    def __init__(self, message: str = "inconsistent mapping between route and handler (programmer error)"):
        super().__init__(message)


class DecodeError(TransportError):
    pass


_ERRORS_BY_KIND: dict[ErrorKind, type[ServiceError]] = {
    ErrorKind.not_found: NotFoundError,
    ErrorKind.already_exists: AlreadyExistsError,
    ErrorKind.inconsistent_ids: InconsistentIDsError,
}

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.not_found: 404,
    ErrorKind.already_exists: 400,
    ErrorKind.inconsistent_ids: 400,
}


def status_code_for(err: BaseException) -> int:
    if isinstance(err, ServiceError):
        return STATUS_BY_KIND.get(getattr(err, "kind", None), 500)
    return 500


def error_from_message(message: str) -> ServiceError | None:
    """Rebuild a business error from its wire message.

    Used by the HTTP client, which only sees ``{"error": "<message>"}``.
    Returns None for messages that aren't business errors.
    """
    for cls in _ERRORS_BY_KIND.values():
        if cls.message == message:
            return cls()
    return None
