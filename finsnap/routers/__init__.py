"""API routers package."""

from finsnap.routers import reconciliation

__all__ = ["reconciliation"]
