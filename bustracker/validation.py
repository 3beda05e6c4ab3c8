# bustracker/validation.py
"""
Payload validators.

The rules are the pydantic models in schemas.py. Each validator here runs one
model and returns a ValidationResult holding either the normalized values or
every violation pydantic found, in field order, so the client sees every
problem at once.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Type

from pydantic import BaseModel, ValidationError

from .errors import ValidationFailed
from .schemas import (BulkActionRequest, BusCreate, BusUpdate, LocationUpdate, LoginRequest,
                      PasswordChange, RegisterRequest, SearchQuery, UserUpdateRequest)

# first loc element FastAPI adds to request errors
REQUEST_PARTS = ("body", "query", "path", "header", "cookie")


@dataclass(frozen=True)
class Violation:
    field: str
    message: str

    def to_dict(self):
        return {"field": self.field, "message": self.message}


@dataclass
class ValidationResult:
    value: Dict[str, Any] = field(default_factory=dict)
    violations: List[Violation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations

    def unwrap(self) -> Dict[str, Any]:
        """Return the accepted values or raise ValidationFailed with every violation."""
        if self.violations:
            raise ValidationFailed(self.violations)
        return self.value


def violations_from(errors: Iterable[Mapping[str, Any]], request: bool = False) -> List[Violation]:
    """
    Map pydantic error dicts onto Violations. With ``request=True`` the
    leading "body"/"query"/... element FastAPI puts in ``loc`` is dropped.
    """
    violations = []
    for err in errors:
        if err["type"] == "json_invalid":
            violations.append(Violation("body", "Request body must be valid JSON"))
            continue
        loc = list(err["loc"])
        if request and loc and loc[0] in REQUEST_PARTS:
            loc = loc[1:]
        violations.append(Violation(".".join(str(part) for part in loc) or "body", err["msg"]))
    return violations


def _check(model: Type[BaseModel], payload, **dump_options) -> ValidationResult:
    if isinstance(payload, model):
        parsed = payload
    else:
        try:
            parsed = model.model_validate(payload)
        except ValidationError as exc:
            return ValidationResult(violations=violations_from(exc.errors()))
    return ValidationResult(parsed.model_dump(**dump_options))


def _flatten_coordinates(result: ValidationResult) -> ValidationResult:
    coords = result.value.pop("coordinates", None) or {}
    for name in ("latitude", "longitude"):
        if coords.get(name) is not None:
            result.value[name] = coords[name]
    return result


# ── bus records ─────────────────────────────────────────────────────
def validate_bus_payload(payload, partial: bool = False) -> ValidationResult:
    """
    Check a bus create payload, or with ``partial=True`` only the fields an
    update supplies. Accepted values come back normalized (trimmed strings,
    upper-case bus number, ints for counts, flat latitude/longitude).
    """
    if partial:
        result = _check(BusUpdate, payload, exclude_unset=True)
    else:
        result = _check(BusCreate, payload, exclude_none=True)
    return _flatten_coordinates(result)


def validate_location_update(payload) -> ValidationResult:
    return _flatten_coordinates(_check(LocationUpdate, payload, exclude_none=True))


def validate_search_params(source, destination) -> ValidationResult:
    return _check(SearchQuery, {"source": source, "destination": destination})


# ── accounts ────────────────────────────────────────────────────────
def validate_registration(payload, model: Type[RegisterRequest] = RegisterRequest) -> ValidationResult:
    return _check(model, payload)


def validate_login(email, password) -> ValidationResult:
    return _check(LoginRequest, {"email": email, "password": password}, exclude={"role"})


def validate_user_update(payload) -> ValidationResult:
    """Fields an account update may touch. Role is never among them."""
    return _check(UserUpdateRequest, payload, exclude_none=True)


def validate_password_change(current_password, new_password) -> ValidationResult:
    return _check(PasswordChange, {"current_password": current_password, "new_password": new_password})


def validate_bulk_action(action, user_ids) -> ValidationResult:
    return _check(BulkActionRequest, {"action": action, "user_ids": user_ids})
