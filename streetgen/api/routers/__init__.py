"""API routers for StreetGen."""

from . import session, settings

__all__ = ["session", "settings"]
