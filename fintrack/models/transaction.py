"""Transaction and series models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from fintrack.models.enums import (
    OCCURRENCE_KINDS,
    TEMPLATE_KINDS,
    PaymentMethod,
    SeriesKind,
    TransactionType,
)


@dataclass
class Transaction:
    """Atomic financial record: a single, a series root, or an occurrence."""

    transaction_id: str | None
    type: TransactionType
    amount: Decimal
    description: str
    category: str
    date: date
    payment_method: PaymentMethod
    bank: str | None = None
    credit_card: str | None = None

    # Series membership
    series_kind: SeriesKind = SeriesKind.SINGLE
    series_parent_id: str | None = None
    occurrence_index: int | None = None  # installments only, 1-based
    total_occurrences: int | None = None  # installments only, 2-60
    recurring_day: int | None = None  # recurring templates only, 1-31
    is_virtual: bool = False
    diverged: bool = False

    notes: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_template(self) -> bool:
        return self.series_kind in TEMPLATE_KINDS

    @property
    def is_occurrence(self) -> bool:
        return self.series_kind in OCCURRENCE_KINDS

    @property
    def is_installment(self) -> bool:
        return self.series_kind in (
            SeriesKind.INSTALLMENT_TEMPLATE,
            SeriesKind.INSTALLMENT_OCCURRENCE,
        )

    @property
    def is_recurring(self) -> bool:
        return self.series_kind in (
            SeriesKind.RECURRING_TEMPLATE,
            SeriesKind.RECURRING_OCCURRENCE,
        )

    @property
    def root_id(self) -> str | None:
        """Id of the record that owns the series (itself for roots)."""
        if self.is_occurrence:
            return self.series_parent_id
        return self.transaction_id

    @property
    def display_description(self) -> str:
        """Description with the installment position, e.g. ``Notebook (3/12)``."""
        if self.series_kind == SeriesKind.INSTALLMENT_OCCURRENCE and self.occurrence_index:
            return f"{self.description} ({self.occurrence_index}/{self.total_occurrences})"
        return self.description


@dataclass
class Tombstone:
    """Marker suppressing a virtual occurrence for one (month, year) window."""

    tombstone_id: str | None
    series_parent_id: str
    year: int
    month: int
    occurrence_index: int | None = None
    created_at: datetime | None = None

    @property
    def window(self) -> tuple[int, int]:
        return (self.year, self.month)


@dataclass(frozen=True)
class PersistedEntry:
    """A stored row shown in a month listing."""

    transaction: Transaction

    @property
    def is_virtual(self) -> bool:
        return False


@dataclass(frozen=True)
class VirtualEntry:
    """An occurrence derived on read; it has no id until materialized."""

    transaction: Transaction

    @property
    def is_virtual(self) -> bool:
        return True


Entry = PersistedEntry | VirtualEntry


@dataclass
class Series:
    """A series root with everything persisted under it."""

    root: Transaction
    occurrences: list[Transaction] = field(default_factory=list)
    tombstones: list[Tombstone] = field(default_factory=list)
