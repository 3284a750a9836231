"""
Error taxonomy shared by all modules.

Every condition is an ``HTTPException`` subclass so services can raise them the
same way they raise plain ``HTTPException``; the exception handlers in
``app.main`` render them into the ``{success: false, error, details?}`` envelope.
Authorization guards raise distinct classes so callers can tell "not a member"
apart from "insufficient role".
"""
from typing import List, Optional

from fastapi import HTTPException, status


class UnauthenticatedError(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotGroupMemberError(ForbiddenError):
    def __init__(self, detail: str = "Not a member of this group"):
        super().__init__(detail)


class InsufficientGroupRoleError(ForbiddenError):
    def __init__(self, detail: str = "Insufficient permissions"):
        super().__init__(detail)


class NotGroupOwnerError(ForbiddenError):
    def __init__(self, detail: str = "Only group owner can perform this action"):
        super().__init__(detail)


class WrongInviteRecipientError(ForbiddenError):
    def __init__(self, detail: str = "This invite was sent to a different user"):
        super().__init__(detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ValidationFailedError(HTTPException):
    """Business-rule violation; ``details`` carries field-level messages when there are any."""

    def __init__(self, detail: str = "Validation failed", details: Optional[List[str]] = None):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
        self.details = details


class ConflictError(HTTPException):
    def __init__(self, detail: str = "Conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ServerError(HTTPException):
    def __init__(self, detail: str = "Internal server error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
