# bustracker/__init__.py - bus fleet tracking backend
# Re-exports the core decisions (access, validation, ETA, route search) so the
# boundary layer and scripts can import them without knowing file names.

from .eta import estimate, Traffic
from .policy import Caller, Operation, Role, can_perform, evaluate_access
from .search import search_routes
from .security import TokenCodec
from .validation import validate_bus_payload

__version__ = "1.0.0"

__all__ = [
    "Caller",
    "Operation",
    "Role",
    "TokenCodec",
    "Traffic",
    "can_perform",
    "estimate",
    "evaluate_access",
    "search_routes",
    "validate_bus_payload",
]
