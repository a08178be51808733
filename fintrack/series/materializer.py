"""Occurrence Materializer: the visible transactions of a (month, year) window.

The materializer is a pure function of its inputs. Recurring templates
produce one virtual occurrence per month from their start month onward;
installment templates produce occurrence ``k`` in the month ``k - 1``
months after their start, for ``k`` in ``1..total``. Persisted
occurrences and tombstones take precedence over synthesis, so calling it
twice against the same state yields the same list.
"""

import calendar
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Iterable

from dateutil.relativedelta import relativedelta

from fintrack.exceptions import DataIntegrityWarning
from fintrack.models.enums import SeriesKind
from fintrack.models.transaction import (
    Entry,
    PersistedEntry,
    Tombstone,
    Transaction,
    VirtualEntry,
)
from fintrack.series.resolver import resolve_all

logger = logging.getLogger(__name__)


@dataclass
class Materialization:
    """Entries visible in one window plus any integrity warnings."""

    year: int
    month: int
    entries: list[Entry] = field(default_factory=list)
    warnings: list[DataIntegrityWarning] = field(default_factory=list)

    @property
    def transactions(self) -> list[Transaction]:
        return [entry.transaction for entry in self.entries]

    @property
    def virtual(self) -> list[VirtualEntry]:
        return [entry for entry in self.entries if isinstance(entry, VirtualEntry)]

    @property
    def persisted(self) -> list[PersistedEntry]:
        return [entry for entry in self.entries if isinstance(entry, PersistedEntry)]


# Calendar helpers

def clamp_day(year: int, month: int, day: int) -> date:
    """Date for ``day`` in the given month, clamped to the month's last day."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(max(day, 1), last_day))


def add_months(start: date, months: int) -> date:
    """Shift a date by whole months; day 31 lands on the target month's last day."""
    return start + relativedelta(months=months)


def months_between(start: date, year: int, month: int) -> int:
    """Whole months from ``start``'s month to (year, month); negative if before."""
    return (year - start.year) * 12 + (month - start.month)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month."""
    return date(year, month, 1), clamp_day(year, month, 31)


def _check_window(month: int, year: int) -> None:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be within 1-12, got {month}")
    if year < 1:
        raise ValueError(f"Invalid year: {year}")


def materialize(
    roots: Iterable[Transaction],
    persisted: Iterable[Transaction],
    month: int,
    year: int,
    tombstones: Iterable[Tombstone] = (),
) -> Materialization:
    """Build the listing for a (month, year) window.

    Parameters
    ----------
    roots : Iterable[Transaction]
        Recurring and installment templates. Non-templates are ignored.
    persisted : Iterable[Transaction]
        Singles and concrete occurrences, in creation order.
    month, year : int
        Target window.
    tombstones : Iterable[Tombstone]
        Skip markers left by scoped deletes.

    Returns
    -------
    Materialization
        Entries sorted by date descending, ties in insertion order.
    """
    _check_window(month, year)
    result = Materialization(year=year, month=month)
    templates = {t.transaction_id: t for t in roots if t.is_template and t.transaction_id}

    recurring_taken: set[tuple[str, int, int]] = set()
    installment_taken: set[tuple[str, int]] = set()
    listed: list[Entry] = []

    for transaction in persisted:
        if transaction.is_template:
            continue
        if transaction.is_occurrence:
            parent_id = transaction.series_parent_id
            if parent_id not in templates:
                _warn(result, f"Occurrence {transaction.transaction_id} references missing series {parent_id}",
                      transaction.transaction_id)
                continue
            if transaction.series_kind == SeriesKind.RECURRING_OCCURRENCE:
                recurring_taken.add((parent_id, transaction.date.year, transaction.date.month))
            elif transaction.occurrence_index is not None:
                installment_taken.add((parent_id, transaction.occurrence_index))
        if (transaction.date.year, transaction.date.month) == (year, month):
            listed.append(PersistedEntry(transaction))

    skipped_windows: set[tuple[str, int, int]] = set()
    skipped_indexes: set[tuple[str, int]] = set()
    for tombstone in tombstones:
        if tombstone.series_parent_id not in templates:
            _warn(result, f"Tombstone {tombstone.tombstone_id} references missing series "
                          f"{tombstone.series_parent_id}", tombstone.tombstone_id)
            continue
        # Installment tombstones follow the index, not the month it was dated in
        if tombstone.occurrence_index is not None:
            skipped_indexes.add((tombstone.series_parent_id, tombstone.occurrence_index))
        else:
            skipped_windows.add((tombstone.series_parent_id, tombstone.year, tombstone.month))

    for template_id, template in templates.items():
        if (template_id, year, month) in skipped_windows:
            continue
        if template.series_kind == SeriesKind.RECURRING_TEMPLATE:
            if (template_id, year, month) in recurring_taken:
                continue
            virtual = _recurring_occurrence(template, month, year)
        else:
            virtual = _installment_occurrence(template, month, year)
            if virtual is None:
                continue
            if (template_id, virtual.occurrence_index) in installment_taken | skipped_indexes:
                continue
        if virtual is not None:
            listed.append(VirtualEntry(virtual))

    # Stable sort keeps insertion order for equal dates
    result.entries = sorted(listed, key=lambda entry: entry.transaction.date, reverse=True)
    logger.debug(
        "Materialized %02d/%d: %d persisted, %d virtual",
        month, year, len(result.persisted), len(result.virtual),
    )
    return result


def _recurring_occurrence(template: Transaction, month: int, year: int) -> Transaction | None:
    if months_between(template.date, year, month) < 0:
        return None
    day = template.recurring_day or template.date.day
    return _derive(
        template,
        kind=SeriesKind.RECURRING_OCCURRENCE,
        occurrence_date=clamp_day(year, month, day),
    )


def _installment_occurrence(template: Transaction, month: int, year: int) -> Transaction | None:
    index = months_between(template.date, year, month) + 1
    total = template.total_occurrences or 0
    if not 1 <= index <= total:
        return None
    return _derive(
        template,
        kind=SeriesKind.INSTALLMENT_OCCURRENCE,
        occurrence_date=add_months(template.date, index - 1),
        occurrence_index=index,
    )


def _derive(
    template: Transaction,
    kind: SeriesKind,
    occurrence_date: date,
    occurrence_index: int | None = None,
) -> Transaction:
    return replace(
        template,
        transaction_id=None,
        date=occurrence_date,
        series_kind=kind,
        series_parent_id=template.transaction_id,
        occurrence_index=occurrence_index,
        recurring_day=None,
        is_virtual=True,
        diverged=False,
        created_at=None,
        updated_at=None,
    )


def _warn(result: Materialization, message: str, record_id: str | None) -> None:
    logger.warning("Data integrity: %s", message)
    result.warnings.append(DataIntegrityWarning(message, record_id))


def materialize_records(records: Iterable[dict[str, Any]], month: int, year: int) -> Materialization:
    """Resolve raw stored records and materialize one window."""
    resolved = resolve_all(records)
    result = materialize(resolved.roots, resolved.concrete, month, year, resolved.tombstones)
    result.warnings = resolved.warnings + result.warnings
    return result
