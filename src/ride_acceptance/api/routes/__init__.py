"""Route group exports."""

from . import acceptance, distance, health

__all__ = ["acceptance", "distance", "health"]
