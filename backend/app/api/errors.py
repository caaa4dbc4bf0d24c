"""Translation of service errors into HTTP responses."""

from fastapi import HTTPException, status

from app.services.errors import ConflictError, InvalidRequestError, NotFoundError, ServiceError


def http_error(e: ServiceError) -> HTTPException:
    """Map a service error onto the matching HTTP status."""
    if isinstance(e, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(e, InvalidRequestError):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(e))
