# bustracker/errors.py
"""
Error kinds raised by the services and mapped to responses in app.py.

Every error carries a distinguishable ``kind`` plus context (violated fields,
missing permission, conflicting identifier). None of them is fatal.
"""
import enum
from typing import Any, Dict


class ErrorKind(str, enum.Enum):
    INVALID_CREDENTIAL = "InvalidCredential"
    NOT_AUTHENTICATED = "NotAuthenticated"
    INSUFFICIENT_ROLE = "InsufficientRole"
    NOT_OWNER = "NotOwner"
    VALIDATION_FAILED = "ValidationFailed"
    DUPLICATE_BUS_NUMBER = "DuplicateBusNumber"
    DUPLICATE_EMAIL = "DuplicateEmail"
    NOT_FOUND = "NotFound"
    SELF_ACTION_FORBIDDEN = "SelfActionForbidden"


class FleetError(Exception):
    kind: ErrorKind
    status_code = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "kind": self.kind.value, **self.context}


class InvalidCredential(FleetError):
    kind = ErrorKind.INVALID_CREDENTIAL
    status_code = 401


class NotAuthenticated(FleetError):
    kind = ErrorKind.NOT_AUTHENTICATED
    status_code = 401


class InsufficientRole(FleetError):
    kind = ErrorKind.INSUFFICIENT_ROLE
    status_code = 403


class NotOwner(FleetError):
    kind = ErrorKind.NOT_OWNER
    status_code = 403


class ValidationFailed(FleetError):
    kind = ErrorKind.VALIDATION_FAILED
    status_code = 400

    def __init__(self, violations, message: str = "Validation failed"):
        self.violations = list(violations)
        super().__init__(message, errors=[v.to_dict() for v in self.violations])


class DuplicateBusNumber(FleetError):
    kind = ErrorKind.DUPLICATE_BUS_NUMBER
    status_code = 400

    def __init__(self, bus_number: str):
        super().__init__("Bus number already exists", bus_number=bus_number)


class DuplicateEmail(FleetError):
    kind = ErrorKind.DUPLICATE_EMAIL
    status_code = 400

    def __init__(self, email: str):
        super().__init__("Email already registered", email=email)


class NotFound(FleetError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(self, resource: str, ident: str):
        super().__init__(f"{resource} not found", resource=resource, id=ident)


class SelfActionForbidden(FleetError):
    kind = ErrorKind.SELF_ACTION_FORBIDDEN
    status_code = 400

