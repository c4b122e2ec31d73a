"""API endpoints package."""

from . import health
from . import proposals

__all__ = ["health", "proposals"]
