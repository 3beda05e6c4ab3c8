# bustracker/repository.py
"""
Persistence collaborator: every query the services run against the
database goes through here. Functions take the request's Session and flush
or commit as noted; nothing is cached between calls.
"""
import math
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import DuplicateBusNumber, DuplicateEmail
from .models import BusDB, UserDB
from .security import utcnow


def paginate(query, page: int, limit: int) -> Dict[str, Any]:
    page = max(int(page), 1)
    limit = max(int(limit), 1)
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return {"items": items, "count": len(items), "total": total,
            "page": page, "pages": math.ceil(total / limit)}


# ── Buses ───────────────────────────────────────────────────────────
def find_bus_by_number(db: Session, normalized_number: str) -> Optional[BusDB]:
    return db.query(BusDB).filter(func.upper(BusDB.bus_number) == normalized_number.upper()).first()


def get_bus(db: Session, bus_id: str) -> Optional[BusDB]:
    return db.query(BusDB).filter(BusDB.id == bus_id).first()


def _commit_bus(db: Session, bus: BusDB) -> BusDB:
    try:
        db.commit()
    except IntegrityError:
        # unique index on bus_number lost a race with a concurrent writer
        db.rollback()
        raise DuplicateBusNumber(bus.bus_number)
    db.refresh(bus)
    return bus


def create_bus(db: Session, fields: Dict[str, Any]) -> BusDB:
    bus = BusDB(**fields)
    db.add(bus)
    return _commit_bus(db, bus)


def update_bus(db: Session, bus: BusDB, fields: Dict[str, Any]) -> BusDB:
    for name, value in fields.items():
        setattr(bus, name, value)
    bus.updated_at = utcnow()
    return _commit_bus(db, bus)


def delete_bus(db: Session, bus: BusDB) -> None:
    db.delete(bus)
    db.commit()


def list_buses(db: Session, status: Optional[str] = None, bus_type: Optional[str] = None,
               page: int = 1, limit: int = 50) -> Dict[str, Any]:
    q = db.query(BusDB)
    if status:
        q = q.filter(BusDB.status == status)
    if bus_type:
        q = q.filter(BusDB.bus_type == bus_type)
    return paginate(q.order_by(BusDB.created_at.desc()), page, limit)


def list_active_buses(db: Session) -> List[BusDB]:
    # storage order, so equal ETAs keep a stable order in search results
    return db.query(BusDB).filter(BusDB.status == "active").order_by(BusDB.created_at, BusDB.id).all()


def recent_buses(db: Session, limit: int = 5) -> List[BusDB]:
    return db.query(BusDB).order_by(BusDB.created_at.desc()).limit(limit).all()


def bus_stats(db: Session) -> Dict[str, Any]:
    avg = db.query(func.avg(BusDB.estimated_time)).scalar()
    by_type = db.query(BusDB.bus_type, func.count(BusDB.id)).group_by(BusDB.bus_type).all()
    return {
        "total_buses": db.query(BusDB).count(),
        "active_buses": db.query(BusDB).filter(BusDB.status == "active").count(),
        "inactive_buses": db.query(BusDB).filter(BusDB.status == "inactive").count(),
        "avg_arrival_time": round(float(avg), 2) if avg is not None else 0,
        "bus_type_distribution": [{"bus_type": t, "count": c} for t, c in by_type],
    }


# ── Users ───────────────────────────────────────────────────────────
def find_user_by_email(db: Session, email: str) -> Optional[UserDB]:
    return db.query(UserDB).filter(UserDB.email == email.strip().lower()).first()


def get_user(db: Session, user_id: str) -> Optional[UserDB]:
    return db.query(UserDB).filter(UserDB.id == user_id).first()


def _commit_user(db: Session, user: UserDB) -> UserDB:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateEmail(user.email)
    db.refresh(user)
    return user


def create_user(db: Session, fields: Dict[str, Any]) -> UserDB:
    user = UserDB(**fields)
    db.add(user)
    return _commit_user(db, user)


def update_user(db: Session, user: UserDB, fields: Dict[str, Any]) -> UserDB:
    for name, value in fields.items():
        setattr(user, name, value)
    return _commit_user(db, user)


def delete_user(db: Session, user: UserDB) -> None:
    db.delete(user)
    db.commit()


def list_users(db: Session, role: Optional[str] = None, is_active: Optional[bool] = None,
               page: int = 1, limit: int = 20) -> Dict[str, Any]:
    q = db.query(UserDB)
    if role:
        q = q.filter(UserDB.role == role)
    if is_active is not None:
        q = q.filter(UserDB.is_active == is_active)
    return paginate(q.order_by(UserDB.created_at.desc()), page, limit)


def set_users_active(db: Session, user_ids: Iterable[str], active: bool) -> int:
    n = (db.query(UserDB).filter(UserDB.id.in_(list(user_ids)))
         .update({UserDB.is_active: active}, synchronize_session=False))
    db.commit()
    return n


def delete_users(db: Session, user_ids: Iterable[str]) -> int:
    n = db.query(UserDB).filter(UserDB.id.in_(list(user_ids))).delete(synchronize_session=False)
    db.commit()
    return n


def recent_users(db: Session, limit: int = 5) -> List[UserDB]:
    return db.query(UserDB).order_by(UserDB.created_at.desc()).limit(limit).all()


def user_stats(db: Session) -> Dict[str, Any]:
    by_role = db.query(UserDB.role, func.count(UserDB.id)).group_by(UserDB.role).all()
    return {
        "total": db.query(UserDB).count(),
        "active": db.query(UserDB).filter(UserDB.is_active.is_(True)).count(),
        "by_role": [{"role": r, "count": c} for r, c in by_role],
    }
