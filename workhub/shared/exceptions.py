# workhub/shared/exceptions.py
from fastapi import HTTPException, status


# Authentication & Authorization Exceptions
class InvalidTokenError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing or invalid token"
        )


class NotAuthenticatedError(HTTPException):
    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class NotAMemberError(HTTPException):
    def __init__(self, message: str = "Not a member of this resource") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class MissingPermissionError(HTTPException):
    def __init__(self, permission: str) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions: {permission} required",
        )
        self.permission = permission


# Resource Not Found Exceptions
class ResourceNotFoundError(HTTPException):
    def __init__(self, resource: str = "Resource") -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"{resource} not found"
        )


# Mutation boundary exceptions
class InvariantViolationError(HTTPException):
    def __init__(self, invariant: str, message: str) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=message)
        self.invariant = invariant


class InvalidStateTransitionError(HTTPException):
    def __init__(self, message: str = "Invalid membership state transition") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=message)


# Validation / Request Exceptions
class InvalidDataError(HTTPException):
    def __init__(self, message: str = "Invalid request data") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


# Navigation
class RedirectRequired(HTTPException):
    """Raised by the route guard; the web layer turns it into a navigation."""

    def __init__(self, location: str) -> None:
        super().__init__(
            status_code=status.HTTP_303_SEE_OTHER,
            detail=f"Redirect to {location}",
            headers={"Location": location},
        )
        self.location = location
