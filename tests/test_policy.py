import pytest

from bustracker.errors import ErrorKind, InsufficientRole, NotAuthenticated, NotOwner, SelfActionForbidden
from bustracker.policy import (DECISION_TABLE, Caller, Operation, Role, authorize, can_perform,
                               evaluate_access, require)

PUBLIC = {Operation.BUS_READ, Operation.BUS_LIST, Operation.BUS_SEARCH}


def test_every_operation_has_a_rule():
    assert set(DECISION_TABLE) == set(Operation)


@pytest.mark.parametrize("operation", sorted(PUBLIC))
def test_public_operations_need_no_identity(operation):
    assert can_perform(None, None, operation)


@pytest.mark.parametrize("operation", sorted(set(Operation) - PUBLIC))
def test_everything_else_needs_identity(operation):
    decision = evaluate_access(None, None, operation)
    assert not decision.allowed
    assert decision.reason is ErrorKind.NOT_AUTHENTICATED


@pytest.mark.parametrize("operation", list(Operation))
def test_admin_may_do_anything(operation):
    assert can_perform(Role.ADMIN, "admin-1", operation, "someone-else")


def test_bus_creation_is_for_drivers_and_admins():
    assert can_perform("driver", "d1", Operation.BUS_CREATE)
    assert can_perform("admin", "a1", Operation.BUS_CREATE)
    decision = evaluate_access("user", "u1", Operation.BUS_CREATE)
    assert decision.reason is ErrorKind.INSUFFICIENT_ROLE


@pytest.mark.parametrize("operation", [Operation.BUS_UPDATE, Operation.BUS_UPDATE_LOCATION])
def test_bus_updates_need_ownership(operation):
    assert can_perform(Role.DRIVER, "d1", operation, "d1")
    assert evaluate_access(Role.DRIVER, "d1", operation, "d2").reason is ErrorKind.NOT_OWNER
    assert evaluate_access(Role.DRIVER, "d1", operation, None).reason is ErrorKind.NOT_OWNER
    assert evaluate_access(Role.USER, "u1", operation, "d1").reason is ErrorKind.INSUFFICIENT_ROLE
    assert can_perform(Role.ADMIN, "a1", operation, "d1")


@pytest.mark.parametrize("role", [Role.DRIVER, Role.USER])
@pytest.mark.parametrize("operation", [
    Operation.BUS_DELETE, Operation.BUS_STATS, Operation.USER_LIST, Operation.USER_CREATE_DRIVER,
    Operation.USER_UPDATE, Operation.USER_DELETE, Operation.USER_TOGGLE_STATUS,
    Operation.USER_BULK_ACTION, Operation.ADMIN_DASHBOARD, Operation.ADMIN_LOGS,
])
def test_admin_only_operations(role, operation):
    assert evaluate_access(role, "x1", operation, "x2").reason is ErrorKind.INSUFFICIENT_ROLE


@pytest.mark.parametrize("role", list(Role))
def test_self_service_for_any_account(role):
    for op in (Operation.PROFILE_READ, Operation.PROFILE_UPDATE, Operation.PASSWORD_CHANGE, Operation.LOGOUT):
        assert can_perform(role, "me", op)


def test_self_deletion_is_refused_even_for_admin():
    decision = evaluate_access(Role.ADMIN, "a1", Operation.USER_DELETE, "a1")
    assert decision.reason is ErrorKind.SELF_ACTION_FORBIDDEN
    assert can_perform(Role.ADMIN, "a1", Operation.USER_DELETE, "u7")


def test_decision_is_truthy_only_when_allowed():
    assert evaluate_access(Role.ADMIN, "a1", Operation.BUS_DELETE)
    assert not evaluate_access(Role.USER, "u1", Operation.BUS_DELETE)


def test_require_raises_matching_error():
    with pytest.raises(NotAuthenticated):
        require(None, None, Operation.BUS_CREATE)
    with pytest.raises(InsufficientRole) as exc:
        require("user", "u1", Operation.BUS_DELETE)
    assert exc.value.context["role"] == "user"
    with pytest.raises(NotOwner):
        require("driver", "d1", Operation.BUS_UPDATE, "d2")
    with pytest.raises(SelfActionForbidden):
        require("admin", "a1", Operation.USER_DELETE, "a1")
    require("driver", "d1", Operation.BUS_UPDATE, "d1")


def test_authorize_with_caller():
    authorize(Caller("d1", Role.DRIVER), Operation.BUS_CREATE)
    with pytest.raises(NotAuthenticated):
        authorize(None, Operation.LOGOUT)


@pytest.mark.parametrize("role", ["guest", "", "ADMIN"])
def test_unknown_role_is_denied(role):
    assert not can_perform(role, "u1", "bus:update", "u2")
    assert evaluate_access(role, "u1", Operation.BUS_READ).allowed
    decision = evaluate_access(role, "u1", "bus:update", "u1")
    assert decision.reason is ErrorKind.INSUFFICIENT_ROLE
    with pytest.raises(InsufficientRole) as exc:
        require(role, "u1", Operation.PROFILE_READ)
    assert exc.value.context["role"] == role


def test_unknown_operation_is_denied():
    assert evaluate_access("admin", "a1", "bus:teleport").reason is ErrorKind.INSUFFICIENT_ROLE
    assert evaluate_access(None, None, "bus:teleport").reason is ErrorKind.NOT_AUTHENTICATED
    with pytest.raises(InsufficientRole) as exc:
        require(Role.ADMIN, "a1", "bus:teleport")
    assert exc.value.context["operation"] == "bus:teleport"
