"""
Gateway domain package.

Route table, dispatcher and portfolio normalization.
"""

from .dispatcher import Dispatcher
from .portfolio import PortfolioEntry, normalize_entry, normalize_stock_entry
from .routes import ROUTES, ApiRequest, ApiResponse, RouteSpec

__all__ = [
    "Dispatcher",
    "PortfolioEntry",
    "normalize_entry",
    "normalize_stock_entry",
    "ROUTES",
    "ApiRequest",
    "ApiResponse",
    "RouteSpec",
]
