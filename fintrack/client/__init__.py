"""REST client for the finance tracker API."""

from fintrack.client.api import ApiClient
from fintrack.client.loader import MonthLoader, MonthView

__all__ = ["ApiClient", "MonthLoader", "MonthView"]
