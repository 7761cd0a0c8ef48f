"""Failure kinds raised by route handlers.

Every failure is terminal for the request that raised it; nothing here is
retried or compensated.
"""

from fastapi import HTTPException, status


class AuthenticationRequired(HTTPException):
    def __init__(self, detail: str = "Not authenticated") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDenied(HTTPException):
    def __init__(self, detail: str = "Admin only") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictOfState(HTTPException):
    """Duplicate submission, full team, existing membership or foreign ownership."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ValidationFailure(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


__all__ = [
    "AuthenticationRequired",
    "ConflictOfState",
    "NotFound",
    "PermissionDenied",
    "ValidationFailure",
]
