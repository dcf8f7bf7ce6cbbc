"""FastAPI routers, one module per resource."""

from promaallem.presentation.routes import ai, auth, bookings, catalog

__all__ = ["ai", "auth", "bookings", "catalog"]
