"""University exam admission API."""

__all__ = []
