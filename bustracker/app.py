# bustracker/app.py - Bus Tracker Backend API
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import accounts, fleet
from .config import Settings, load_settings
from .database import init_db, make_engine, make_session_factory
from .errors import FleetError, NotAuthenticated, ValidationFailed
from .logger import get_logger, list_log_files, setup_logging
from .policy import Caller, Operation, authorize
from .schemas import (BulkActionRequest, BusCreate, BusUpdate, CreateDriverRequest, LocationUpdate,
                      LoginRequest, PasswordChange, ProfileUpdate, RegisterRequest, UserUpdateRequest)
from .security import TokenCodec, utcnow
from .validation import violations_from

log = get_logger("api")


# ── Dependency ──────────────────────────────────────────────────────
def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    request: Request,
    token: Optional[str] = Query(None, alias="token"),
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Caller:
    t = token
    if not t and authorization and authorization.startswith("Bearer "):
        t = authorization[7:]
    if not t:
        log.info("No token provided for %s %s", request.method, request.url.path)
        raise NotAuthenticated("Not authorized to access this route. No token provided.")
    return accounts.resolve_caller(db, request.app.state.tokens, t)


def _auth_payload(request: Request, user) -> Dict[str, Any]:
    return {"token": request.app.state.tokens.issue(user.id),
            "user": {"id": user.id, "name": user.name, "email": user.email,
                     "role": user.role, "phone": user.phone}}


def _page(result: Dict[str, Any], key: str) -> Dict[str, Any]:
    return {"count": result["count"], "total": result["total"], "page": result["page"],
            "pages": result["pages"], key: [item.to_dict() for item in result["items"]]}


# ── Auth ─────────────────────────────────────────────────────────────
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


@auth_router.post("/register", status_code=201)
def register(req: RegisterRequest, request: Request, db: Session = Depends(get_db)):
    user = accounts.register(db, req)
    return {"message": "User registered successfully", **_auth_payload(request, user)}


@auth_router.post("/login")
def login(req: LoginRequest, request: Request, db: Session = Depends(get_db)):
    user = accounts.login(db, req.email, req.password, role=req.role)
    return {"message": "Login successful", **_auth_payload(request, user)}


@auth_router.get("/me")
def me(caller: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"user": accounts.me(db, caller).to_dict()}


@auth_router.post("/logout")
def logout(caller: Caller = Depends(get_current_user)):
    accounts.logout(caller)
    return {"message": "Logged out successfully"}


@auth_router.put("/update-profile")
def update_profile(req: ProfileUpdate, caller: Caller = Depends(get_current_user),
                   db: Session = Depends(get_db)):
    user = accounts.update_profile(db, caller, req.model_dump(exclude_unset=True))
    return {"message": "Profile updated successfully", "user": user.to_dict()}


@auth_router.put("/change-password")
def change_password(req: PasswordChange, caller: Caller = Depends(get_current_user),
                    db: Session = Depends(get_db)):
    accounts.change_password(db, caller, req.current_password, req.new_password)
    return {"message": "Password changed successfully"}


# ── Buses ────────────────────────────────────────────────────────────
bus_router = APIRouter(prefix="/api/buses", tags=["buses"])


@bus_router.post("", status_code=201)
def add_bus(payload: BusCreate, caller: Caller = Depends(get_current_user),
            db: Session = Depends(get_db)):
    bus = fleet.create_bus(db, caller, payload)
    return {"message": "Bus added successfully", "bus": bus.to_dict()}


@bus_router.get("")
def list_buses(status: Optional[str] = None, bus_type: Optional[str] = None,
               page: int = Query(1, ge=1), limit: int = Query(50, ge=1, le=500),
               db: Session = Depends(get_db)):
    return _page(fleet.list_buses(db, status=status, bus_type=bus_type, page=page, limit=limit), "buses")


# NOTE: search and stats MUST come before the {bus_id} wildcard
@bus_router.get("/search")
def search_buses(source: Optional[str] = None, destination: Optional[str] = None,
                 db: Session = Depends(get_db)):
    buses = fleet.search(db, source, destination)
    return {"count": len(buses), "buses": [b.to_dict() for b in buses]}


@bus_router.get("/stats/overview")
def bus_stats(caller: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
    return fleet.stats(db, caller)


@bus_router.get("/{bus_id}")
def get_bus(bus_id: str, db: Session = Depends(get_db)):
    return {"bus": fleet.get_bus(db, bus_id).to_dict()}


@bus_router.put("/{bus_id}")
def update_bus(bus_id: str, payload: BusUpdate,
               caller: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
    bus = fleet.update_bus(db, caller, bus_id, payload)
    return {"message": "Bus updated successfully", "bus": bus.to_dict()}


@bus_router.put("/{bus_id}/location")
def update_bus_location(bus_id: str, req: LocationUpdate,
                        caller: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
    bus = fleet.update_location(db, caller, bus_id, req)
    return {"message": "Location updated successfully", "bus": bus.to_dict()}


@bus_router.delete("/{bus_id}")
def delete_bus(bus_id: str, caller: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
    fleet.delete_bus(db, caller, bus_id)
    return {"message": "Bus deleted successfully"}


# ── Admin ────────────────────────────────────────────────────────────
admin_router = APIRouter(prefix="/api/admin", tags=["admin"])


@admin_router.get("/users")
def list_users(role: Optional[str] = None, is_active: Optional[bool] = None,
               page: int = Query(1, ge=1), limit: int = Query(20, ge=1, le=500),
               caller: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
    result = accounts.list_users(db, caller, role=role, is_active=is_active, page=page, limit=limit)
    return _page(result, "users")


@admin_router.post("/create-driver", status_code=201)
def create_driver(req: CreateDriverRequest, caller: Caller = Depends(get_current_user),
                  db: Session = Depends(get_db)):
    driver = accounts.create_driver(db, caller, req.model_dump(exclude_none=True))
    return {"message": "Driver account created successfully", "driver": driver.to_dict()}


@admin_router.put("/users/{user_id}")
def update_user(user_id: str, req: UserUpdateRequest, caller: Caller = Depends(get_current_user),
                db: Session = Depends(get_db)):
    user = accounts.update_user(db, caller, user_id, req.model_dump(exclude_unset=True))
    return {"message": "User updated successfully", "user": user.to_dict()}


@admin_router.delete("/users/{user_id}")
def delete_user(user_id: str, caller: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
    accounts.delete_user(db, caller, user_id)
    return {"message": "User deleted successfully"}


@admin_router.put("/users/{user_id}/toggle-status")
def toggle_user_status(user_id: str, caller: Caller = Depends(get_current_user),
                       db: Session = Depends(get_db)):
    user = accounts.toggle_status(db, caller, user_id)
    state = "activated" if user.is_active else "deactivated"
    return {"message": f"User {state} successfully", "user": user.to_dict()}


@admin_router.get("/dashboard")
def dashboard(caller: Caller = Depends(get_current_user), db: Session = Depends(get_db)):
    return accounts.dashboard(db, caller)


@admin_router.get("/logs")
def logs(request: Request, caller: Caller = Depends(get_current_user)):
    authorize(caller, Operation.ADMIN_LOGS)
    log.info("Logs accessed by %s", caller.email)
    return {"log_files": list_log_files(request.app.state.settings.log_dir)}


@admin_router.post("/bulk-action")
def bulk_action(req: BulkActionRequest, caller: Caller = Depends(get_current_user),
                db: Session = Depends(get_db)):
    affected = accounts.bulk_action(db, caller, req.action, req.user_ids)
    return {"message": f"Bulk action '{req.action}' completed successfully", "affected": affected}


# ── App Init ─────────────────────────────────────────────────────────
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level, settings.log_dir)

    engine = make_engine(settings.database_url)
    init_db(engine)

    app = FastAPI(title="Bus Tracker API", version="1.0.0")
    app.state.settings = settings
    app.state.session_factory = make_session_factory(engine)
    app.state.tokens = TokenCodec(settings.jwt_secret, settings.jwt_expiry_hours)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_logger(request: Request, call_next):
        start = time.perf_counter()
        log.info("[REQUEST] %s %s", request.method, request.url.path)
        response = await call_next(request)
        duration = (time.perf_counter() - start) * 1000
        log.info("[RESPONSE] %s %s - Status: %s - Duration: %.0fms",
                 request.method, request.url.path, response.status_code, duration)
        return response

    @app.exception_handler(FleetError)
    async def fleet_error_handler(request: Request, exc: FleetError):
        log.info("%s on %s %s: %s", exc.kind.value, request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        err = ValidationFailed(violations_from(exc.errors(), request=True))
        log.info("%s on %s %s: %s", err.kind.value, request.method, request.url.path, err.message)
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    @app.get("/")
    def root():
        return {
            "message": "Bus Tracking System API",
            "version": app.version,
            "endpoints": {"auth": "/api/auth", "buses": "/api/buses", "admin": "/api/admin"},
        }

    @app.get("/health")
    def health():
        return {"status": "running", "timestamp": utcnow().isoformat()}

    app.include_router(auth_router)
    app.include_router(bus_router)
    app.include_router(admin_router)

    log.info("Bus Tracker API ready (database: %s)", settings.database_url)
    return app


if __name__ == "__main__":
    import uvicorn
    s = load_settings()
    uvicorn.run("bustracker.app:create_app", factory=True, host=s.host, port=s.port, reload=True)
