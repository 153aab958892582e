"""Analytics module for privacy-preserving visit counting."""
from .store import AnalyticsStore
from .middleware import AnalyticsMiddleware

__all__ = ["AnalyticsStore", "AnalyticsMiddleware"]
