"""Application error taxonomy.

Every error is an ``HTTPException`` so services can raise them straight through
FastAPI, while routes that render forms catch ``AppError`` and show ``detail``
to the user.
"""
from typing import Optional
from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=type(self).status_code, detail=detail or type(self).detail)


class InvalidInput(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid input"


class InvalidIdentity(InvalidInput):
    detail = "Invalid email format"


class WeakCredential(InvalidInput):
    detail = "Password must be at least 6 characters long"


class PasswordMismatch(InvalidInput):
    detail = "Passwords do not match."


class InvalidDeadline(InvalidInput):
    detail = "Deadline must be in the future"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Conflict"


class DuplicateIdentity(Conflict):
    detail = "Email already exists"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Unauthorized"


class BadCredential(Unauthorized):
    detail = "Wrong password"


class Unauthenticated(Unauthorized):
    detail = "Not authenticated"


class ResetNotAuthorized(Unauthorized):
    detail = "Session expired or unauthorized."


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Not authorized"


class Expired(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Expired"


class InvalidOrExpired(Expired):
    detail = "Invalid or expired OTP"


class DependencyFailure(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Something went wrong. Please try again."


class DispatchFailed(DependencyFailure):
    detail = "Failed to send OTP. Try again."
