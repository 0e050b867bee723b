"""Domain error types."""
from typing import Optional


class DomainError(Exception):
    """Base domain error."""

    kind = "Internal"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnauthorizedError(DomainError):
    """Missing or invalid actor."""

    kind = "Unauthorized"
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class NotFoundError(DomainError):
    """Resource not found."""

    kind = "NotFound"
    status_code = 404

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with id {identifier} not found")


class ValidationError(DomainError):
    """Malformed or empty input, self-targeting."""

    kind = "InvalidInput"
    status_code = 400


class AuthorizationError(DomainError):
    """Actor lacks rights over the target entity."""

    kind = "Forbidden"
    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class ConflictError(DomainError):
    """Resource conflicts with its current lifecycle state."""

    kind = "Conflict"
    status_code = 400


class AlreadyExistsError(ConflictError):
    kind = "AlreadyExists"


class AlreadyMemberError(ConflictError):
    kind = "AlreadyMember"


class InvalidStateError(ConflictError):
    kind = "InvalidState"


class RoomFullError(ConflictError):
    """Room capacity exceeded."""

    kind = "Full"

    def __init__(self, room_id: str, max_members: Optional[int] = None):
        self.room_id = room_id
        self.max_members = max_members
        super().__init__(f"Room {room_id} is full")


class InternalError(DomainError):
    """Unexpected collaborator failure."""

    kind = "Internal"
    status_code = 500


# Names used by the HTTP layer and in the error taxonomy
ForbiddenError = AuthorizationError
InvalidInputError = ValidationError
