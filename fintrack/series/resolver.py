"""Series Resolver: classify raw stored records into series kinds."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from fintrack.exceptions import DataIntegrityWarning, SeriesIntegrityError
from fintrack.models.enums import SeriesKind
from fintrack.models.transaction import Tombstone, Transaction
from fintrack.serialization import (
    parse_amount,
    parse_date,
    parse_datetime,
    parse_payment_method,
    parse_type,
    record_id,
)

logger = logging.getLogger(__name__)

# Position suffix the server appends to installment descriptions, e.g. "Notebook (2/4)"
POSITION_SUFFIX = re.compile(r"\s*\(\d+/\d+\)\s*$")


@dataclass
class ResolvedRecords:
    """Outcome of classifying a batch of stored records."""

    transactions: list[Transaction] = field(default_factory=list)
    tombstones: list[Tombstone] = field(default_factory=list)
    warnings: list[DataIntegrityWarning] = field(default_factory=list)

    @property
    def roots(self) -> list[Transaction]:
        return [t for t in self.transactions if t.is_template]

    @property
    def concrete(self) -> list[Transaction]:
        """Singles and persisted occurrences, templates excluded."""
        return [t for t in self.transactions if not t.is_template]


def _id(value: Any) -> str | None:
    return str(value) if value not in (None, "") else None


def _int(value: Any) -> int:
    if value in (None, ""):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise SeriesIntegrityError(f"Invalid series counter: {value!r}") from exc


def classify(record: dict[str, Any]) -> tuple[SeriesKind, str | None]:
    """Return the series kind and parent id of a raw record.

    Raises
    ------
    SeriesIntegrityError
        If the record claims both recurring and installment membership, or
        is an occurrence without a parent.
    """
    is_recurring = bool(record.get("isRecurring"))
    recurring_parent = _id(record.get("recurringParentId"))
    is_installment = bool(record.get("isInstallment"))
    installment_parent = _id(record.get("installmentParentId"))
    installment_number = _int(record.get("installmentNumber"))

    recurring_flags = is_recurring or recurring_parent is not None
    installment_flags = is_installment or installment_parent is not None or installment_number > 0
    if recurring_flags and installment_flags:
        raise SeriesIntegrityError(
            f"Record {record_id(record)} is flagged as both recurring and installment"
        )

    if installment_number > 0 or installment_parent is not None:
        if installment_parent is None:
            # The first stored installment heads its series
            if is_installment and installment_number == 1:
                return SeriesKind.INSTALLMENT_TEMPLATE, None
            raise SeriesIntegrityError(
                f"Installment {installment_number} of record {record_id(record)} has no parent"
            )
        return SeriesKind.INSTALLMENT_OCCURRENCE, installment_parent
    if is_installment:
        return SeriesKind.INSTALLMENT_TEMPLATE, None
    if is_recurring and recurring_parent is None:
        return SeriesKind.RECURRING_TEMPLATE, None
    if recurring_parent is not None:
        return SeriesKind.RECURRING_OCCURRENCE, recurring_parent
    return SeriesKind.SINGLE, None


def resolve(record: dict[str, Any]) -> Transaction | Tombstone:
    """Normalize one stored record into a Transaction or a Tombstone."""
    if record.get("isTombstone"):
        return _resolve_tombstone(record)

    kind, parent_id = classify(record)
    description = str(record.get("description") or "")
    if kind in (SeriesKind.INSTALLMENT_TEMPLATE, SeriesKind.INSTALLMENT_OCCURRENCE):
        description = POSITION_SUFFIX.sub("", description)

    try:
        occurrence_date = parse_date(record.get("date"))
        transaction = Transaction(
            transaction_id=record_id(record),
            type=parse_type(record.get("type")),
            amount=parse_amount(record.get("amount")),
            description=description,
            category=str(record.get("category") or ""),
            date=occurrence_date,
            payment_method=parse_payment_method(record.get("paymentMethod")),
            bank=record.get("bank") or None,
            credit_card=record.get("creditCard") or None,
            series_kind=kind,
            series_parent_id=parent_id,
            diverged=bool(record.get("diverged")),
            notes=str(record.get("notes") or ""),
            created_at=parse_datetime(record.get("createdAt")),
            updated_at=parse_datetime(record.get("updatedAt")),
        )
    except ValueError as exc:
        raise SeriesIntegrityError(f"Record {record_id(record)} is malformed: {exc}") from exc

    if kind == SeriesKind.RECURRING_TEMPLATE:
        transaction.recurring_day = _int(record.get("recurringDay")) or occurrence_date.day
    elif kind == SeriesKind.INSTALLMENT_TEMPLATE:
        total = _int(record.get("totalInstallments"))
        if total < 2:
            raise SeriesIntegrityError(
                f"Installment template {record_id(record)} has invalid total {total}"
            )
        transaction.total_occurrences = total
    elif kind == SeriesKind.INSTALLMENT_OCCURRENCE:
        transaction.occurrence_index = _int(record.get("installmentNumber")) or None
        transaction.total_occurrences = _int(record.get("totalInstallments")) or None

    return transaction


def _resolve_tombstone(record: dict[str, Any]) -> Tombstone:
    parent_id = _id(
        record.get("seriesParentId")
        or record.get("recurringParentId")
        or record.get("installmentParentId")
    )
    if parent_id is None:
        raise SeriesIntegrityError(f"Tombstone {record_id(record)} has no series parent")
    try:
        window = parse_date(record.get("date"))
        created_at = parse_datetime(record.get("createdAt"))
    except ValueError as exc:
        raise SeriesIntegrityError(f"Tombstone {record_id(record)} is malformed: {exc}") from exc
    return Tombstone(
        tombstone_id=record_id(record),
        series_parent_id=parent_id,
        year=window.year,
        month=window.month,
        occurrence_index=_int(record.get("installmentNumber")) or None,
        created_at=created_at,
    )


def resolve_all(records: Iterable[dict[str, Any]]) -> ResolvedRecords:
    """Classify a batch, turning malformed records into integrity warnings."""
    resolved = ResolvedRecords()
    for record in records:
        try:
            item = resolve(record)
        except SeriesIntegrityError as exc:
            warning = DataIntegrityWarning(str(exc), record_id(record))
            logger.warning("Skipping record: %s", warning.message)
            resolved.warnings.append(warning)
            continue
        if isinstance(item, Tombstone):
            resolved.tombstones.append(item)
        else:
            resolved.transactions.append(item)
    return resolved


def check_series_flags(transaction: Transaction) -> None:
    """Write-time guard: series fields must agree with the series kind."""
    kind = transaction.series_kind
    if kind == SeriesKind.SINGLE:
        if transaction.series_parent_id or transaction.total_occurrences or transaction.occurrence_index:
            raise SeriesIntegrityError("A single transaction cannot carry series fields")
    elif kind == SeriesKind.RECURRING_TEMPLATE:
        if transaction.series_parent_id or transaction.total_occurrences or transaction.occurrence_index:
            raise SeriesIntegrityError("A recurring template cannot carry a parent or installment fields")
    elif kind == SeriesKind.INSTALLMENT_TEMPLATE:
        if transaction.series_parent_id or transaction.recurring_day:
            raise SeriesIntegrityError("An installment template cannot carry a parent or a recurring day")
    elif kind == SeriesKind.RECURRING_OCCURRENCE:
        if not transaction.series_parent_id:
            raise SeriesIntegrityError("A recurring occurrence must reference its template")
        if transaction.total_occurrences or transaction.occurrence_index:
            raise SeriesIntegrityError("A recurring occurrence cannot carry installment fields")
    elif kind == SeriesKind.INSTALLMENT_OCCURRENCE:
        if not transaction.series_parent_id:
            raise SeriesIntegrityError("An installment occurrence must reference its template")
        if transaction.recurring_day:
            raise SeriesIntegrityError("An installment occurrence cannot carry a recurring day")
