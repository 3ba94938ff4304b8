"""API package exports."""
from . import routes_admin, routes_gifs

__all__ = [
    "routes_admin",
    "routes_gifs",
]
