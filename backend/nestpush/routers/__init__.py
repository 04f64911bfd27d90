"""API routers."""
from .devices import router as devices_router
from .push import router as push_router
from .preferences import router as preferences_router
from .records import router as records_router
from .history import router as history_router

__all__ = ["devices_router", "push_router", "preferences_router", "records_router", "history_router"]
