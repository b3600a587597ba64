"""Route modules for the studysync API server."""

from .assistant_routes import register_assistant_routes
from .event_routes import register_event_routes
from .import_routes import register_import_routes

__all__ = [
    "register_assistant_routes",
    "register_event_routes",
    "register_import_routes",
]
