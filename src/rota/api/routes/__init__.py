"""Route group exports."""

from . import customers, health, routes

__all__ = ["routes", "health", "customers"]
