from enum import StrEnum


class ErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"
    INSUFFICIENT_POINTS = "insufficient_points"
    INVALID_CODE = "invalid_code"
    INVALID_INPUT = "invalid_input"
    NOT_PARENT_ROLE = "not_parent_role"
    ALREADY_RELATED = "already_related"
    INTERNAL = "internal"


class WorkflowError(Exception):
    """Base class for every failure a workflow operation reports to its caller."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message = "workflow error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(WorkflowError):
    kind = ErrorKind.NOT_FOUND
    default_message = "not found"


class ForbiddenError(WorkflowError):
    kind = ErrorKind.FORBIDDEN
    default_message = "not allowed"


class InvalidStateError(WorkflowError):
    kind = ErrorKind.INVALID_STATE
    default_message = "operation not allowed in the current state"


class ConflictError(WorkflowError):
    kind = ErrorKind.CONFLICT
    default_message = "conflicting record exists"


class InsufficientPointsError(WorkflowError):
    kind = ErrorKind.INSUFFICIENT_POINTS
    default_message = "insufficient points"


class InvalidCodeError(WorkflowError):
    kind = ErrorKind.INVALID_CODE
    default_message = "invitation code is invalid, used or expired"


class InvalidInputError(WorkflowError):
    kind = ErrorKind.INVALID_INPUT
    default_message = "invalid input"


class NotParentRoleError(WorkflowError):
    kind = ErrorKind.NOT_PARENT_ROLE
    default_message = "only parent accounts can do this"


class AlreadyRelatedError(WorkflowError):
    kind = ErrorKind.ALREADY_RELATED
    default_message = "already a parent of this child"


class InternalError(WorkflowError):
    kind = ErrorKind.INTERNAL
    default_message = "internal error"
