"""
Routers Package
===============

HTTP and WebSocket entry points. Each router only translates requests into
service calls; the services themselves are handed over by main.py's lifespan.
"""

from .readings import router as readings_router, set_services
from .device import router as device_router
from .live import router as live_router

__all__ = [
    "readings_router",
    "device_router",
    "live_router",
    "set_services",
]
