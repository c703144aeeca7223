# Routers package
from . import appointments_router
from . import health_router
from . import notifications_router
from . import schedules_router

__all__ = [
    "appointments_router",
    "health_router",
    "notifications_router",
    "schedules_router",
]
