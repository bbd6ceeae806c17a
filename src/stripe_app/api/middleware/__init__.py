"""HTTP middleware."""

from stripe_app.api.middleware.correlation import CorrelationIdMiddleware

__all__ = ["CorrelationIdMiddleware"]
