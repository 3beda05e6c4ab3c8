# bustracker/policy.py
"""
Authorization policy.

Roles are a closed enumeration and every operation is looked up in a single
decision table, so the whole policy is one function that can be tested
exhaustively over (role, operation, ownership).
"""
import enum
from dataclasses import dataclass
from typing import Optional

from .errors import ErrorKind, InsufficientRole, NotAuthenticated, NotOwner, SelfActionForbidden


class Role(str, enum.Enum):
    ADMIN = "admin"
    DRIVER = "driver"
    USER = "user"


class Operation(str, enum.Enum):
    # fleet
    BUS_READ = "bus:read"
    BUS_LIST = "bus:list"
    BUS_SEARCH = "bus:search"
    BUS_CREATE = "bus:create"
    BUS_UPDATE = "bus:update"
    BUS_UPDATE_LOCATION = "bus:update-location"
    BUS_DELETE = "bus:delete"
    BUS_STATS = "bus:stats"
    # user management
    USER_LIST = "user:list"
    USER_CREATE_DRIVER = "user:create-driver"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"
    USER_TOGGLE_STATUS = "user:toggle-status"
    USER_BULK_ACTION = "user:bulk-action"
    ADMIN_DASHBOARD = "admin:dashboard"
    ADMIN_LOGS = "admin:logs"
    # self service
    PROFILE_READ = "profile:read"
    PROFILE_UPDATE = "profile:update"
    PASSWORD_CHANGE = "profile:change-password"
    LOGOUT = "profile:logout"


class Rule(enum.Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    DRIVER = "driver"
    OWNER = "owner"
    ADMIN = "admin"


DECISION_TABLE = {
    Operation.BUS_READ: Rule.PUBLIC,
    Operation.BUS_LIST: Rule.PUBLIC,
    Operation.BUS_SEARCH: Rule.PUBLIC,
    Operation.BUS_CREATE: Rule.DRIVER,
    Operation.BUS_UPDATE: Rule.OWNER,
    Operation.BUS_UPDATE_LOCATION: Rule.OWNER,
    Operation.BUS_DELETE: Rule.ADMIN,
    Operation.BUS_STATS: Rule.ADMIN,
    Operation.USER_LIST: Rule.ADMIN,
    Operation.USER_CREATE_DRIVER: Rule.ADMIN,
    Operation.USER_UPDATE: Rule.ADMIN,
    Operation.USER_DELETE: Rule.ADMIN,
    Operation.USER_TOGGLE_STATUS: Rule.ADMIN,
    Operation.USER_BULK_ACTION: Rule.ADMIN,
    Operation.ADMIN_DASHBOARD: Rule.ADMIN,
    Operation.ADMIN_LOGS: Rule.ADMIN,
    Operation.PROFILE_READ: Rule.AUTHENTICATED,
    Operation.PROFILE_UPDATE: Rule.AUTHENTICATED,
    Operation.PASSWORD_CHANGE: Rule.AUTHENTICATED,
    Operation.LOGOUT: Rule.AUTHENTICATED,
}

# Operations where the target id names a user account; acting on your own
# account through them is refused for every role.
SELF_DESTRUCTIVE = {Operation.USER_DELETE, Operation.USER_BULK_ACTION}


@dataclass(frozen=True)
class Caller:
    """Verified identity handed over by the boundary layer."""
    id: str
    role: Role
    email: str = ""


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[ErrorKind] = None

    def __bool__(self):
        return self.allowed


ALLOW = AccessDecision(True)


def _member(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _deny(reason: ErrorKind) -> AccessDecision:
    return AccessDecision(False, reason)


def evaluate_access(caller_role: Optional[Role], caller_id: Optional[str],
                    operation: Operation, target_owner_id: Optional[str] = None) -> AccessDecision:
    """
    Decide whether the caller may perform ``operation``.

    ``caller_role``/``caller_id`` are None for an unauthenticated request.
    ``target_owner_id`` is the bus owner for bus operations, or the target
    account id for user operations. Unknown role or operation names are
    denied, never raised.
    """
    operation = _member(Operation, operation)
    rule = DECISION_TABLE.get(operation)
    if rule is Rule.PUBLIC:
        return ALLOW
    if caller_role is None or caller_id is None:
        return _deny(ErrorKind.NOT_AUTHENTICATED)
    role = _member(Role, caller_role)
    if rule is None or role is None:
        # unknown roles and operations grant nothing
        return _deny(ErrorKind.INSUFFICIENT_ROLE)

    if operation in SELF_DESTRUCTIVE and target_owner_id is not None and target_owner_id == caller_id:
        return _deny(ErrorKind.SELF_ACTION_FORBIDDEN)
    if role is Role.ADMIN or rule is Rule.AUTHENTICATED:
        return ALLOW

    if rule is Rule.DRIVER:
        return ALLOW if role is Role.DRIVER else _deny(ErrorKind.INSUFFICIENT_ROLE)
    if rule is Rule.OWNER:
        if role is not Role.DRIVER:
            return _deny(ErrorKind.INSUFFICIENT_ROLE)
        if target_owner_id is not None and target_owner_id == caller_id:
            return ALLOW
        return _deny(ErrorKind.NOT_OWNER)
    return _deny(ErrorKind.INSUFFICIENT_ROLE)


def can_perform(caller_role, caller_id, operation, target_owner_id=None) -> bool:
    return evaluate_access(caller_role, caller_id, operation, target_owner_id).allowed


_MESSAGES = {
    ErrorKind.NOT_AUTHENTICATED: "Not authorized to access this route. No token provided.",
    ErrorKind.INSUFFICIENT_ROLE: "User role '{role}' is not authorized to access this route",
    ErrorKind.NOT_OWNER: "Not authorized to modify this bus",
    ErrorKind.SELF_ACTION_FORBIDDEN: "You cannot delete your own account",
}


def require(caller_role, caller_id, operation, target_owner_id=None) -> None:
    """Raise the error matching a denied decision; return quietly when allowed."""
    decision = evaluate_access(caller_role, caller_id, operation, target_owner_id)
    if decision.allowed:
        return
    role = getattr(caller_role, "value", caller_role)
    operation = getattr(operation, "value", operation)
    message = _MESSAGES[decision.reason].format(role=role)
    if decision.reason is ErrorKind.INSUFFICIENT_ROLE:
        raise InsufficientRole(message, role=role, operation=operation)
    if decision.reason is ErrorKind.NOT_OWNER:
        raise NotOwner(message, operation=operation)
    if decision.reason is ErrorKind.SELF_ACTION_FORBIDDEN:
        raise SelfActionForbidden(message)
    raise NotAuthenticated(message)


def authorize(caller: Optional[Caller], operation, target_owner_id=None) -> None:
    """require() for a resolved Caller, or None when the request carried no credential."""
    if caller is None:
        require(None, None, operation, target_owner_id)
    else:
        require(caller.role, caller.id, operation, target_owner_id)
