"""
Route handler registration functions.
"""
from .formats import register_formats_routes
from .health import register_health_routes
from .metadata import register_metadata_routes
from .version import register_version_routes

__all__ = [
    "register_formats_routes",
    "register_health_routes",
    "register_metadata_routes",
    "register_version_routes",
]
