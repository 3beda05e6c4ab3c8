# bustracker/schemas.py - request bodies
"""
Pydantic models for every request body.

Constraints live on the fields. ``FleetModel`` swaps pydantic's generic
messages for the per-field messages in ``messages`` so that API clients and
direct callers get the same wording.
"""
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, get_args

from pydantic import (BaseModel, ConfigDict, Field, StringConstraints, ValidationError,
                      field_validator, model_validator)
from pydantic_core import PydanticCustomError

READ_ONLY_BUS_FIELDS = ("id", "estimated_time", "added_by", "created_at", "updated_at")

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$"

Text = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2)]
SearchText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
BusNumber = Annotated[str, StringConstraints(strip_whitespace=True, to_upper=True, min_length=2)]
Phone = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^[0-9]{10}$")]
Email = Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, pattern=EMAIL_PATTERN)]
Password = Annotated[str, StringConstraints(min_length=6)]
Capacity = Annotated[int, Field(ge=10, le=100)]
Distance = Annotated[float, Field(ge=0, allow_inf_nan=False)]
Stops = Annotated[int, Field(ge=0)]

BusType = Literal["AC", "Non-AC", "Sleeper", "Semi-Sleeper", "Luxury", "Volvo"]
TrafficLevel = Literal["low", "medium", "high"]
BusStatus = Literal["active", "inactive", "delayed", "cancelled"]

BUS_TYPES = get_args(BusType)
BUS_STATUSES = get_args(BusStatus)


def _message(messages: Dict[str, str], err: Dict[str, Any]) -> str:
    field = ".".join(str(part) for part in err["loc"])
    if not field:
        return "Request body must be a JSON object"
    if err["type"] == "extra_forbidden":
        return messages.get(field, f"{field} is not an accepted field")
    return messages.get(field, err["msg"])


class FleetModel(BaseModel):
    messages: ClassVar[Dict[str, str]] = {}

    @model_validator(mode="wrap")
    @classmethod
    def _field_messages(cls, data, handler):
        try:
            return handler(data)
        except ValidationError as exc:
            raise ValidationError.from_exception_data(cls.__name__, [
                {"type": PydanticCustomError(err["type"], _message(cls.messages, err)),
                 "loc": err["loc"], "input": err.get("input")}
                for err in exc.errors()
            ])


# ── Buses ───────────────────────────────────────────────────────────
class Coordinates(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


BUS_MESSAGES = {
    "bus_number": "Bus number is required and must be at least 2 characters",
    "source": "Source location is required",
    "destination": "Destination is required",
    "current_location": "Current location is required",
    "next_stop": "Next stop is required",
    "driver_name": "Driver name is required",
    "bus_type": f"Bus type must be one of: {', '.join(BUS_TYPES)}",
    "capacity": "Capacity must be between 10 and 100",
    "driver_phone": "Driver phone must be a valid 10-digit number",
    "distance": "Distance must be a non-negative number",
    "previous_stops": "Previous stops must be a non-negative integer",
    "traffic": "Traffic must be one of: low, medium, high",
    "status": f"Status must be one of: {', '.join(BUS_STATUSES)}",
    "coordinates": "Coordinates must be an object with latitude and longitude",
    "coordinates.latitude": "Latitude must be between -90 and 90",
    "coordinates.longitude": "Longitude must be between -180 and 180",
    "fare": "Fare cannot be negative",
    "departure_time": "departure_time must be a string",
    "arrival_time": "arrival_time must be a string",
}
BUS_MESSAGES.update({name: f"{name} is read-only and cannot be set" for name in READ_ONLY_BUS_FIELDS})


class BusCreate(FleetModel):
    model_config = ConfigDict(extra="forbid")
    messages: ClassVar[Dict[str, str]] = BUS_MESSAGES

    bus_number: BusNumber
    source: Text
    destination: Text
    current_location: Text
    next_stop: Text
    driver_name: Text
    bus_type: BusType
    capacity: Capacity
    driver_phone: Phone
    distance: Distance
    previous_stops: Stops = 0
    traffic: TrafficLevel = "low"
    status: BusStatus = "active"
    coordinates: Optional[Coordinates] = None
    fare: Optional[float] = Field(None, ge=0)
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None


class BusUpdate(FleetModel):
    """Every field optional; the ones sent are checked like BusCreate and may not be null."""
    model_config = ConfigDict(extra="forbid")
    messages: ClassVar[Dict[str, str]] = BUS_MESSAGES

    bus_number: Optional[BusNumber] = None
    source: Optional[Text] = None
    destination: Optional[Text] = None
    current_location: Optional[Text] = None
    next_stop: Optional[Text] = None
    driver_name: Optional[Text] = None
    bus_type: Optional[BusType] = None
    capacity: Optional[Capacity] = None
    driver_phone: Optional[Phone] = None
    distance: Optional[Distance] = None
    previous_stops: Optional[Stops] = None
    traffic: Optional[TrafficLevel] = None
    status: Optional[BusStatus] = None
    coordinates: Optional[Coordinates] = None
    fare: Optional[float] = Field(None, ge=0)
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None

    @field_validator("bus_number", "source", "destination", "current_location", "next_stop",
                     "driver_name", "bus_type", "capacity", "driver_phone", "distance",
                     "previous_stops", "traffic", "status", mode="before")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class LocationUpdate(FleetModel):
    messages: ClassVar[Dict[str, str]] = {
        "current_location": "Current location and next stop are required",
        "next_stop": "Current location and next stop are required",
        "coordinates": BUS_MESSAGES["coordinates"],
        "coordinates.latitude": BUS_MESSAGES["coordinates.latitude"],
        "coordinates.longitude": BUS_MESSAGES["coordinates.longitude"],
    }

    current_location: Text
    next_stop: Text
    coordinates: Optional[Coordinates] = None


class SearchQuery(FleetModel):
    messages: ClassVar[Dict[str, str]] = {
        "source": "Source parameter is required for search",
        "destination": "Destination parameter is required for search",
    }

    source: SearchText
    destination: SearchText


# ── Accounts ────────────────────────────────────────────────────────
ACCOUNT_MESSAGES = {
    "name": "Name must be at least 2 characters long",
    "email": "Please provide a valid email address",
    "password": "Password must be at least 6 characters long",
    "role": "Invalid role specified",
    "phone": "Phone must be a string",
    "is_active": "is_active must be true or false",
}


class RegisterRequest(FleetModel):
    messages: ClassVar[Dict[str, str]] = ACCOUNT_MESSAGES

    name: Text
    email: Email
    password: Password
    role: Literal["user", "driver"] = "user"
    phone: Annotated[str, StringConstraints(strip_whitespace=True)] = ""

    @field_validator("role", mode="before")
    @classmethod
    def _default_role(cls, v):
        return v or cls.model_fields["role"].default

    @field_validator("phone", mode="before")
    @classmethod
    def _blank_phone(cls, v):
        return "" if v is None else v


class AdminAccount(RegisterRequest):
    """Only the provisioning path builds these; public sign-up never accepts admin."""
    role: Literal["admin"] = "admin"


class CreateDriverRequest(FleetModel):
    messages: ClassVar[Dict[str, str]] = ACCOUNT_MESSAGES

    name: Text
    email: Email
    password: Password
    phone: Optional[str] = None


class LoginRequest(FleetModel):
    messages: ClassVar[Dict[str, str]] = {
        "email": "Email is required",
        "password": "Password is required",
    }

    email: Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=1)]
    password: Annotated[str, StringConstraints(min_length=1)]
    role: Optional[str] = None


class ProfileUpdate(FleetModel):
    messages: ClassVar[Dict[str, str]] = ACCOUNT_MESSAGES

    name: Optional[Text] = None
    phone: Optional[Annotated[str, StringConstraints(strip_whitespace=True)]] = None


class UserUpdateRequest(ProfileUpdate):
    # no role: roles never change after creation
    email: Optional[Email] = None
    is_active: Optional[bool] = None


class PasswordChange(FleetModel):
    messages: ClassVar[Dict[str, str]] = {
        "current_password": "Please provide current and new password",
        "new_password": "Password must be at least 6 characters long",
    }

    current_password: Annotated[str, StringConstraints(min_length=1)]
    new_password: Password


class BulkActionRequest(FleetModel):
    messages: ClassVar[Dict[str, str]] = {
        "action": "Invalid action",
        "user_ids": "Action and user_ids array are required",
    }

    action: Literal["activate", "deactivate", "delete"]
    user_ids: List[str]
