"""API route modules."""
from . import reports

__all__ = ["reports"]
