# bustracker/models.py - database models
import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .database import Base
from .security import utcnow


def _iso(dt):
    return dt.isoformat() if dt else None


class UserDB(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")  # admin, driver, user
    phone = Column(String, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    last_login = Column(DateTime, nullable=True)

    def to_dict(self):
        # password_hash is never serialized
        return {
            "id": self.id, "name": self.name, "email": self.email, "role": self.role,
            "phone": self.phone, "is_active": self.is_active,
            "created_at": _iso(self.created_at), "last_login": _iso(self.last_login),
        }


class BusDB(Base):
    __tablename__ = "buses"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    bus_number = Column(String, unique=True, nullable=False, index=True)  # stored upper-case
    bus_type = Column(String, nullable=False, default="Non-AC")
    source = Column(String, nullable=False, index=True)
    destination = Column(String, nullable=False, index=True)
    current_location = Column(String, nullable=False)
    next_stop = Column(String, nullable=False)
    capacity = Column(Integer, nullable=False)
    driver_name = Column(String, nullable=False)
    driver_phone = Column(String, nullable=False)
    distance = Column(Float, nullable=False)
    traffic = Column(String, nullable=False, default="low")  # low, medium, high
    previous_stops = Column(Integer, nullable=False, default=0)
    estimated_time = Column(Integer, nullable=False)  # minutes, see eta.estimate
    status = Column(String, nullable=False, default="active", index=True)
    added_by = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    fare = Column(Float, nullable=True)
    departure_time = Column(String, nullable=True)
    arrival_time = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow)

    owner = relationship("UserDB", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id, "bus_number": self.bus_number, "bus_type": self.bus_type,
            "source": self.source, "destination": self.destination,
            "current_location": self.current_location, "next_stop": self.next_stop,
            "capacity": self.capacity, "driver_name": self.driver_name,
            "driver_phone": self.driver_phone, "distance": self.distance,
            "traffic": self.traffic, "previous_stops": self.previous_stops,
            "estimated_time": self.estimated_time, "status": self.status,
            "added_by": self.added_by,
            "coordinates": (
                {"latitude": self.latitude, "longitude": self.longitude}
                if self.latitude is not None or self.longitude is not None else None
            ),
            "fare": self.fare, "departure_time": self.departure_time,
            "arrival_time": self.arrival_time,
            "created_at": _iso(self.created_at), "updated_at": _iso(self.updated_at),
            "owner": (
                {"id": self.owner.id, "name": self.owner.name, "email": self.owner.email}
                if self.owner else None
            ),
        }
