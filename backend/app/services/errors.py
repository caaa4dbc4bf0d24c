"""Errors shared by the status, mapping, and theme settings services."""


class ServiceError(Exception):
    """Base class for service-level failures surfaced to API callers."""

    pass


class NotFoundError(ServiceError):
    """Raised when a referenced status, category, or theme does not exist."""

    pass


class ConflictError(ServiceError):
    """Raised when an operation would break a uniqueness or usage rule."""

    pass


class InvalidRequestError(ServiceError):
    """Raised when a request cannot be applied in the current state."""

    pass
