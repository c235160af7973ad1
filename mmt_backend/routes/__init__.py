"""
HTTP routes for Media Meta Tagger.
Importing this package is side-effect free; route registration is explicit.
"""
from .registry import build_route_table, create_app, register_routes

__all__ = ["build_route_table", "create_app", "register_routes"]
