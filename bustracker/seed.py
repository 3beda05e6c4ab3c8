# bustracker/seed.py - provisioning and sample data
"""
Admin accounts are only created here (public registration stops at
driver). Run ``python -m bustracker.seed`` to reset the database to a small
demo fleet.
"""
from sqlalchemy.orm import Session

from . import repository as repo
from .config import Settings, load_settings
from .database import init_db, make_engine, make_session_factory
from .eta import estimate
from .logger import get_logger, log_activity, setup_logging
from .models import BusDB, UserDB
from .schemas import AdminAccount
from .security import hash_password
from .validation import validate_bus_payload, validate_registration

log = get_logger("seed")

SAMPLE_DRIVERS = [
    {"name": "Rajesh Kumar", "email": "rajesh@driver.com", "password": "driver123", "phone": "9876543211"},
    {"name": "Amit Sharma", "email": "amit@driver.com", "password": "driver123", "phone": "9876543212"},
    {"name": "Priya Singh", "email": "priya@driver.com", "password": "driver123", "phone": "9876543213"},
]

SAMPLE_BUSES = [
    {"bus_number": "MH12AB1234", "bus_type": "AC", "source": "Mumbai", "destination": "Pune",
     "current_location": "Lonavala", "next_stop": "Talegaon", "capacity": 45,
     "driver_name": "Rajesh Kumar", "driver_phone": "9876543211", "distance": 60,
     "traffic": "medium", "previous_stops": 3, "fare": 450, "departure_time": "08:00", "arrival_time": "11:30"},
    {"bus_number": "MH14CD5678", "bus_type": "Volvo", "source": "Pune", "destination": "Mumbai",
     "current_location": "Khandala", "next_stop": "Panvel", "capacity": 50,
     "driver_name": "Amit Sharma", "driver_phone": "9876543212", "distance": 80,
     "traffic": "high", "previous_stops": 2, "fare": 600, "departure_time": "09:00", "arrival_time": "12:30"},
    {"bus_number": "KA01EF9012", "bus_type": "Sleeper", "source": "Bangalore", "destination": "Mysore",
     "current_location": "Ramanagara", "next_stop": "Channapatna", "capacity": 36,
     "driver_name": "Priya Singh", "driver_phone": "9876543213", "distance": 95,
     "traffic": "low", "previous_stops": 1, "fare": 350, "departure_time": "22:00", "arrival_time": "01:00"},
]


def provision_admin(db: Session, name: str, email: str, password: str) -> UserDB:
    existing = repo.find_user_by_email(db, email)
    if existing:
        return existing
    fields = validate_registration({"name": name, "email": email, "password": password},
                                   model=AdminAccount).unwrap()
    fields["password_hash"] = hash_password(fields.pop("password"))
    admin = repo.create_user(db, fields)
    log.info("Admin created: %s", admin.email)
    log_activity("ADMIN_PROVISIONED", admin.id, email=admin.email)
    return admin


def seed(db: Session, settings: Settings) -> dict:
    log.info("Clearing existing data...")
    db.query(BusDB).delete()
    db.query(UserDB).delete()
    db.commit()

    admin = provision_admin(db, settings.admin_name, settings.admin_email, settings.admin_password)

    drivers = []
    for d in SAMPLE_DRIVERS:
        fields = validate_registration({**d, "role": "driver"}).unwrap()
        fields["password_hash"] = hash_password(fields.pop("password"))
        drivers.append(repo.create_user(db, fields))

    buses = []
    for driver, payload in zip(drivers, SAMPLE_BUSES):
        fields = validate_bus_payload(payload).unwrap()
        fields["estimated_time"] = estimate(fields["distance"], fields["traffic"], fields["previous_stops"])
        fields["added_by"] = driver.id
        buses.append(repo.create_bus(db, fields))

    log.info("Seeded %d drivers and %d buses", len(drivers), len(buses))
    return {"admin": admin, "drivers": drivers, "buses": buses}


def main():
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_dir)
    engine = make_engine(settings.database_url)
    init_db(engine)
    db = make_session_factory(engine)()
    try:
        seed(db, settings)
    finally:
        db.close()
    log.info("Admin login: %s", settings.admin_email)


if __name__ == "__main__":
    main()
