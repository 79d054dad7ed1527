"""Typed errors raised by the access-control services.

Every error carries a short, user-facing message and the HTTP status it maps to.
A single exception handler in ``bounty_rbac.main`` renders them as
``{"error": <class name>, "message": <text>}``.
"""

from fastapi import status


class AccessControlError(Exception):
    """Base exception for the access-control core."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return self.__class__.__name__


class ValidationError(AccessControlError):
    """Raised when input validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidKey(ValidationError):
    """Raised when a permission key is not of the form ``category:action``."""
    pass


class EmptyPermissionSet(ValidationError):
    """Raised when a role would end up without permissions."""

    def __init__(self, message: str = "A role must include at least one permission"):
        super().__init__(message)


class BatchTooLarge(ValidationError):
    """Raised when a bulk call carries more ids than allowed."""
    pass


class Unauthorized(AccessControlError):
    """Raised when the caller cannot be identified."""
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(AccessControlError):
    """Raised when the acting principal lacks a required permission."""
    status_code = status.HTTP_403_FORBIDDEN


class CrossScope(Forbidden):
    """Raised when a reference crosses a tenant boundary."""

    def __init__(self, message: str = "Resource belongs to a different organization"):
        super().__init__(message)


class NotFound(AccessControlError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class UnknownPermission(NotFound):
    """Raised when a role references permission ids that do not exist."""

    def __init__(self, missing_ids: list[str]):
        self.missing_ids = missing_ids
        super().__init__(f"Unknown permission ids: {', '.join(missing_ids)}")


class Conflict(AccessControlError):
    """Raised when a change collides with existing data."""
    status_code = status.HTTP_409_CONFLICT


class DuplicateKey(Conflict):
    """Raised when a permission key already exists."""
    pass


class DuplicateName(Conflict):
    """Raised when a role name is already taken within the organization."""
    pass


class DuplicateEmail(Conflict):
    """Raised when a principal email is already registered."""
    pass


class RoleInUse(Conflict):
    """Raised when deleting a role that principals are still bound to."""

    def __init__(self, member_count: int):
        self.member_count = member_count
        noun = "member" if member_count == 1 else "members"
        super().__init__(f"Cannot delete role: currently assigned to {member_count} {noun}")


class PermissionInUse(Conflict):
    """Raised when deleting a permission that roles still include."""

    def __init__(self, role_count: int):
        self.role_count = role_count
        noun = "role" if role_count == 1 else "roles"
        super().__init__(f"Cannot delete permission: used by {role_count} {noun}")
