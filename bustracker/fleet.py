# bustracker/fleet.py - bus record operations
"""
Every bus write runs the same gate: policy, then validator, then ETA,
then repository. Reads and search are public.
"""
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy.orm import Session

from . import repository as repo
from .errors import DuplicateBusNumber, NotFound
from .eta import ETA_INPUTS, estimate
from .logger import get_logger, log_activity
from .models import BusDB
from .policy import Caller, Operation, authorize
from .schemas import BusCreate, BusUpdate, LocationUpdate
from .search import search_routes
from .validation import validate_bus_payload, validate_location_update, validate_search_params

log = get_logger("fleet")


def _precheck(caller: Optional[Caller], operation: Operation) -> None:
    # authentication and role only; ownership is checked once the record is loaded
    authorize(caller, operation, caller.id if caller else None)


def _load(db: Session, bus_id: str) -> BusDB:
    bus = repo.get_bus(db, bus_id)
    if not bus:
        log.info("Bus not found: %s", bus_id)
        raise NotFound("Bus", bus_id)
    return bus


def _ensure_unique(db: Session, bus_number: str, exclude_id: Optional[str] = None) -> None:
    existing = repo.find_bus_by_number(db, bus_number)
    if existing and existing.id != exclude_id:
        log.info("Bus number already exists: %s", bus_number)
        raise DuplicateBusNumber(bus_number)


def create_bus(db: Session, caller: Optional[Caller], payload: Union[BusCreate, Mapping[str, Any]]) -> BusDB:
    authorize(caller, Operation.BUS_CREATE)
    fields = validate_bus_payload(payload).unwrap()
    _ensure_unique(db, fields["bus_number"])

    fields["estimated_time"] = estimate(fields["distance"], fields["traffic"], fields["previous_stops"])
    fields["added_by"] = caller.id
    bus = repo.create_bus(db, fields)

    log.info("Bus %s added by %s", bus.bus_number, caller.email)
    log_activity("BUS_ADDED", caller.id, bus_number=bus.bus_number,
                 route=f"{bus.source} to {bus.destination}")
    return bus


def update_bus(db: Session, caller: Optional[Caller], bus_id: str,
               payload: Union[BusUpdate, Mapping[str, Any]]) -> BusDB:
    _precheck(caller, Operation.BUS_UPDATE)
    bus = _load(db, bus_id)
    authorize(caller, Operation.BUS_UPDATE, bus.added_by)

    fields = validate_bus_payload(payload, partial=True).unwrap()
    if "bus_number" in fields and fields["bus_number"] != bus.bus_number:
        _ensure_unique(db, fields["bus_number"], exclude_id=bus.id)

    if any(name in fields for name in ETA_INPUTS):
        fields["estimated_time"] = estimate(
            fields.get("distance", bus.distance),
            fields.get("traffic", bus.traffic),
            fields.get("previous_stops", bus.previous_stops),
        )
    bus = repo.update_bus(db, bus, fields)

    log.info("Bus %s updated by %s", bus.bus_number, caller.email)
    log_activity("BUS_UPDATED", caller.id, bus_number=bus.bus_number, fields=sorted(fields))
    return bus


def update_location(db: Session, caller: Optional[Caller], bus_id: str,
                    payload: Union[LocationUpdate, Mapping[str, Any]]) -> BusDB:
    _precheck(caller, Operation.BUS_UPDATE_LOCATION)
    bus = _load(db, bus_id)
    authorize(caller, Operation.BUS_UPDATE_LOCATION, bus.added_by)

    fields = validate_location_update(payload).unwrap()
    bus = repo.update_bus(db, bus, fields)

    log.info("Location updated for bus %s", bus.bus_number)
    log_activity("BUS_LOCATION_UPDATED", caller.id, bus_number=bus.bus_number,
                 location=bus.current_location)
    return bus


def delete_bus(db: Session, caller: Optional[Caller], bus_id: str) -> None:
    authorize(caller, Operation.BUS_DELETE)
    bus = _load(db, bus_id)
    number = bus.bus_number
    repo.delete_bus(db, bus)

    log.info("Bus %s deleted by %s", number, caller.email)
    log_activity("BUS_DELETED", caller.id, bus_number=number)


def get_bus(db: Session, bus_id: str) -> BusDB:
    authorize(None, Operation.BUS_READ)
    return _load(db, bus_id)


def list_buses(db: Session, status: Optional[str] = None, bus_type: Optional[str] = None,
               page: int = 1, limit: int = 50) -> Dict[str, Any]:
    authorize(None, Operation.BUS_LIST)
    result = repo.list_buses(db, status=status, bus_type=bus_type, page=page, limit=limit)
    log.info("Retrieved %d buses", result["count"])
    return result


def search(db: Session, source, destination) -> List[BusDB]:
    authorize(None, Operation.BUS_SEARCH)
    params = validate_search_params(source, destination).unwrap()
    buses = search_routes(params["source"], params["destination"], repo.list_active_buses(db))

    log.info("Search: %s to %s - found %d buses", params["source"], params["destination"], len(buses))
    log_activity("BUS_SEARCH", "guest", source=params["source"],
                 destination=params["destination"], results=len(buses))
    return buses


def stats(db: Session, caller: Optional[Caller]) -> Dict[str, Any]:
    authorize(caller, Operation.BUS_STATS)
    return repo.bus_stats(db)
