"""Router modules exposed for convenient imports."""

from . import healthz, readyz, universities

__all__ = ["healthz", "readyz", "universities"]
