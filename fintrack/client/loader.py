"""Month loading with parallel fetches and stale-response discarding."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from fintrack.client.api import ApiClient
from fintrack.exceptions import FintrackError
from fintrack.reports import MonthSummary, summarize_month
from fintrack.series.materializer import Materialization

logger = logging.getLogger(__name__)


@dataclass
class MonthView:
    """Everything a month screen renders."""

    month: int
    year: int
    materialization: Materialization
    summary: MonthSummary
    dashboard: dict[str, Any] | None = None


class MonthLoader:
    """Load month views; only the most recently requested month may publish.

    Each load takes a ticket. A response that arrives after a newer load
    was requested is discarded, so switching months quickly never shows an
    older month. A failed load keeps the previously published view.
    """

    def __init__(self, client: ApiClient, max_workers: int | None = None) -> None:
        self.client = client
        self.max_workers = max_workers or client.config.max_workers
        self.view: MonthView | None = None
        self.error: FintrackError | None = None
        self._lock = threading.Lock()
        self._latest = 0
        self._background = ThreadPoolExecutor(max_workers=self.max_workers)

    def _next_ticket(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def _is_current(self, ticket: int) -> bool:
        return ticket == self._latest

    def load(self, month: int, year: int) -> MonthView | None:
        """Fetch a month and publish it unless a newer load superseded it.

        Returns
        -------
        MonthView | None
            The published view, or ``None`` if the response was stale.

        Raises
        ------
        FintrackError
            If the fetch fails and this load is still the latest.
        """
        ticket = self._next_ticket()
        try:
            view = self._fetch(month, year)
        except FintrackError as exc:
            with self._lock:
                if not self._is_current(ticket):
                    logger.debug("Discarding stale failure for %02d/%d: %s", month, year, exc)
                    return None
                self.error = exc
            raise

        with self._lock:
            if not self._is_current(ticket):
                logger.debug("Discarding stale response for %02d/%d", month, year)
                return None
            self.view = view
            self.error = None
        return view

    def submit(self, month: int, year: int) -> Future:
        """Start a load in the background."""
        return self._background.submit(self.load, month, year)

    def _fetch(self, month: int, year: int) -> MonthView:
        # Both requests must complete before the view is built
        with ThreadPoolExecutor(max_workers=2) as executor:
            dashboard_future = executor.submit(self.client.get_dashboard, month, year)
            month_future = executor.submit(self.client.fetch_month, month, year)
            materialization = month_future.result()
            dashboard = dashboard_future.result()

        return MonthView(
            month=month,
            year=year,
            materialization=materialization,
            summary=summarize_month(materialization.entries),
            dashboard=dashboard,
        )

    def close(self) -> None:
        self._background.shutdown(wait=True)

    def __enter__(self) -> "MonthLoader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
