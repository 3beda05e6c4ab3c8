# bustracker/accounts.py - registration, login and admin user management
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy.orm import Session

from . import repository as repo
from .errors import DuplicateEmail, InvalidCredential, NotFound
from .logger import get_logger, log_activity
from .models import UserDB
from .policy import Caller, Operation, Role, authorize
from .schemas import RegisterRequest
from .security import TokenCodec, hash_password, utcnow, verify_password
from .validation import (validate_bulk_action, validate_login, validate_password_change,
                         validate_registration, validate_user_update)

log = get_logger("accounts")


def caller_for(user: UserDB) -> Caller:
    return Caller(id=user.id, role=Role(user.role), email=user.email)


def resolve_caller(db: Session, codec: TokenCodec, token: str) -> Caller:
    """Token -> active account -> Caller. Anything else is InvalidCredential."""
    user_id = codec.verify(token)
    user = repo.get_user(db, user_id)
    if not user:
        log.info("User not found for token")
        raise InvalidCredential("User not found")
    if not user.is_active:
        log.info("User account is inactive: %s", user.email)
        raise InvalidCredential("User account is inactive")
    return caller_for(user)


def _load(db: Session, user_id: str) -> UserDB:
    user = repo.get_user(db, user_id)
    if not user:
        log.info("User not found: %s", user_id)
        raise NotFound("User", user_id)
    return user


def _create_account(db: Session, fields: Dict[str, Any]) -> UserDB:
    if repo.find_user_by_email(db, fields["email"]):
        log.info("Email already exists: %s", fields["email"])
        raise DuplicateEmail(fields["email"])
    password = fields.pop("password")
    fields["password_hash"] = hash_password(password)
    return repo.create_user(db, fields)


# ── self service ────────────────────────────────────────────────────
def register(db: Session, payload: Union[RegisterRequest, Mapping[str, Any]]) -> UserDB:
    """Public sign-up. Only the user and driver roles are on offer here."""
    fields = validate_registration(payload).unwrap()
    user = _create_account(db, fields)
    log.info("New user created: %s with role: %s", user.email, user.role)
    log_activity("USER_REGISTERED", user.id, email=user.email, role=user.role)
    return user


def login(db: Session, email, password, role: Optional[str] = None) -> UserDB:
    creds = validate_login(email, password).unwrap()
    user = repo.find_user_by_email(db, creds["email"])
    if not user:
        log.info("Login failed, unknown email: %s", creds["email"])
        raise InvalidCredential("Invalid email or password")
    if not user.is_active:
        log.info("Login refused, account inactive: %s", user.email)
        raise InvalidCredential("Your account has been deactivated. Please contact support.")
    if role and user.role != role:
        log.info("Role mismatch for %s. Expected: %s, got: %s", user.email, role, user.role)
        raise InvalidCredential("Invalid credentials for the selected role")
    if not verify_password(creds["password"], user.password_hash):
        log.info("Invalid password for user: %s", user.email)
        raise InvalidCredential("Invalid email or password")

    user = repo.update_user(db, user, {"last_login": utcnow()})
    log.info("User logged in: %s as %s", user.email, user.role)
    log_activity("USER_LOGIN", user.id, email=user.email, role=user.role)
    return user


def me(db: Session, caller: Optional[Caller]) -> UserDB:
    authorize(caller, Operation.PROFILE_READ)
    return _load(db, caller.id)


def logout(caller: Optional[Caller]) -> None:
    authorize(caller, Operation.LOGOUT)
    log.info("User logged out: %s", caller.email)
    log_activity("USER_LOGOUT", caller.id, email=caller.email)


def update_profile(db: Session, caller: Optional[Caller], payload: Mapping[str, Any]) -> UserDB:
    authorize(caller, Operation.PROFILE_UPDATE)
    own = {k: payload[k] for k in ("name", "phone") if k in payload}
    fields = validate_user_update(own).unwrap()
    user = repo.update_user(db, _load(db, caller.id), fields)
    log_activity("PROFILE_UPDATED", user.id, **fields)
    return user


def change_password(db: Session, caller: Optional[Caller], current_password, new_password) -> None:
    authorize(caller, Operation.PASSWORD_CHANGE)
    passwords = validate_password_change(current_password, new_password).unwrap()
    user = _load(db, caller.id)
    if not verify_password(passwords["current_password"], user.password_hash):
        log.info("Invalid current password for user: %s", user.email)
        raise InvalidCredential("Current password is incorrect")
    repo.update_user(db, user, {"password_hash": hash_password(passwords["new_password"])})
    log_activity("PASSWORD_CHANGED", user.id, email=user.email)


# ── admin ───────────────────────────────────────────────────────────
def list_users(db: Session, caller: Optional[Caller], role=None, is_active=None,
               page: int = 1, limit: int = 20) -> Dict[str, Any]:
    authorize(caller, Operation.USER_LIST)
    result = repo.list_users(db, role=role, is_active=is_active, page=page, limit=limit)
    log.info("Retrieved %d users by %s", result["count"], caller.email)
    return result


def create_driver(db: Session, caller: Optional[Caller], payload: Mapping[str, Any]) -> UserDB:
    authorize(caller, Operation.USER_CREATE_DRIVER)
    fields = validate_registration({**payload, "role": "driver"}).unwrap()
    driver = _create_account(db, fields)
    log.info("Driver account created: %s by admin %s", driver.email, caller.email)
    log_activity("DRIVER_CREATED", caller.id, driver_email=driver.email, created_by=caller.email)
    return driver


def update_user(db: Session, caller: Optional[Caller], user_id: str, payload: Mapping[str, Any]) -> UserDB:
    authorize(caller, Operation.USER_UPDATE, user_id)
    fields = validate_user_update(payload).unwrap()
    user = _load(db, user_id)
    if "email" in fields and fields["email"] != user.email and repo.find_user_by_email(db, fields["email"]):
        raise DuplicateEmail(fields["email"])
    user = repo.update_user(db, user, fields)
    log.info("User %s updated by %s", user.email, caller.email)
    log_activity("USER_UPDATED", caller.id, updated_user=user.email, changes=fields)
    return user


def delete_user(db: Session, caller: Optional[Caller], user_id: str) -> None:
    authorize(caller, Operation.USER_DELETE, user_id)
    user = _load(db, user_id)
    email = user.email
    repo.delete_user(db, user)
    log.info("User %s deleted by %s", email, caller.email)
    log_activity("USER_DELETED", caller.id, deleted_user=email)


def toggle_status(db: Session, caller: Optional[Caller], user_id: str) -> UserDB:
    authorize(caller, Operation.USER_TOGGLE_STATUS, user_id)
    user = _load(db, user_id)
    user = repo.update_user(db, user, {"is_active": not user.is_active})
    log.info("User %s status changed to %s by %s", user.email,
             "active" if user.is_active else "inactive", caller.email)
    log_activity("USER_STATUS_CHANGED", caller.id, user=user.email, is_active=user.is_active)
    return user


def bulk_action(db: Session, caller: Optional[Caller], action: str, user_ids: List[str]) -> int:
    """Activate, deactivate or delete many accounts. Returns the number affected."""
    authorize(caller, Operation.USER_BULK_ACTION)
    request = validate_bulk_action(action, user_ids).unwrap()
    action, user_ids = request["action"], request["user_ids"]

    if action == "delete":
        if caller.id in user_ids:
            authorize(caller, Operation.USER_BULK_ACTION, caller.id)
        affected = repo.delete_users(db, user_ids)
    else:
        affected = repo.set_users_active(db, user_ids, action == "activate")

    log.info("Bulk action '%s' performed on %d users by %s", action, len(user_ids), caller.email)
    log_activity("BULK_ACTION", caller.id, bulk_action=action, user_count=len(user_ids), affected=affected)
    return affected


def dashboard(db: Session, caller: Optional[Caller]) -> Dict[str, Any]:
    authorize(caller, Operation.ADMIN_DASHBOARD)
    buses = repo.bus_stats(db)
    log.info("Dashboard accessed by %s", caller.email)
    return {
        "users": repo.user_stats(db),
        "buses": {
            "total": buses["total_buses"],
            "active": buses["active_buses"],
            "by_type": buses["bus_type_distribution"],
        },
        "recent": {
            "buses": [b.to_dict() for b in repo.recent_buses(db)],
            "users": [u.to_dict() for u in repo.recent_users(db)],
        },
    }
