"""Scoped Mutation Handler: turn edits and deletes into persistence writes.

Planning functions never touch storage. They return a list of write
operations that a ledger (or a REST backend) applies as one unit.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any

from fintrack.exceptions import InvalidEntityStateError, ValidationError
from fintrack.models.enums import ROOT_KINDS, EditScope, SeriesKind
from fintrack.models.transaction import (
    Entry,
    PersistedEntry,
    Series,
    Tombstone,
    Transaction,
    VirtualEntry,
)
from fintrack.serialization import parse_amount, parse_date, parse_payment_method, parse_type
from fintrack.series.materializer import add_months, clamp_day, months_between
from fintrack.validation import validate_transaction

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({
    "type",
    "amount",
    "description",
    "category",
    "date",
    "payment_method",
    "bank",
    "credit_card",
    "notes",
    "total_occurrences",
    "recurring_day",
})

# Fields whose change makes the user choose between one occurrence and the series
SCOPED_FIELDS = ("amount", "description", "category", "type", "payment_method")

# Fields that reshape a series and so only change through a whole-series edit
SERIES_SHAPE_FIELDS = frozenset({"total_occurrences", "recurring_day"})


@dataclass
class InsertTransaction:
    transaction: Transaction


@dataclass
class PatchTransaction:
    transaction_id: str
    changes: dict[str, Any]


@dataclass
class DeleteTransaction:
    transaction_id: str


@dataclass
class InsertTombstone:
    tombstone: Tombstone


@dataclass
class DeleteTombstone:
    tombstone_id: str


@dataclass
class DeleteSeries:
    """Cascade delete of a root, its persisted occurrences and its tombstones."""

    root_id: str


Write = (
    InsertTransaction
    | PatchTransaction
    | DeleteTransaction
    | InsertTombstone
    | DeleteTombstone
    | DeleteSeries
)


def normalize_changes(changes: dict[str, Any]) -> dict[str, Any]:
    """Parse raw edit values into model types.

    Raises
    ------
    ValidationError
        For unknown fields or unparsable values.
    """
    normalized: dict[str, Any] = {}
    for key, value in changes.items():
        if key not in EDITABLE_FIELDS:
            raise ValidationError(key, f"Campo não editável: {key}")
        try:
            if key == "amount":
                value = parse_amount(value)
            elif key == "date":
                value = parse_date(value)
            elif key == "type":
                value = parse_type(value)
            elif key == "payment_method":
                value = parse_payment_method(value)
            elif key in ("total_occurrences", "recurring_day"):
                value = int(value)
            elif key in ("bank", "credit_card"):
                value = (value or "").strip() or None
            elif key in ("description", "category"):
                value = (value or "").strip()
        except (TypeError, ValueError) as exc:
            raise ValidationError(key, f"Valor inválido para {key}") from exc
        normalized[key] = value
    return normalized


def requires_scope_prompt(
    entry: Entry,
    changes: dict[str, Any],
    template: Transaction | None = None,
) -> bool:
    """Whether an edit must ask "this occurrence or the whole series".

    Only series members qualify, and only when a scoped field actually
    differs from the template (or from the entry when no template is given).
    """
    transaction = entry.transaction
    if transaction.series_kind == SeriesKind.SINGLE:
        return False
    reference = template or transaction
    normalized = normalize_changes(changes)
    return any(
        name in normalized and normalized[name] != getattr(reference, name)
        for name in SCOPED_FIELDS
    )


def plan_create(transaction: Transaction) -> list[Write]:
    """Plan the insert of a single transaction or a series root."""
    if transaction.is_virtual or transaction.series_kind not in ROOT_KINDS:
        raise InvalidEntityStateError("Occurrences are created by their series, not directly")
    validate_transaction(transaction)
    return [InsertTransaction(transaction)]


def plan_edit(
    entry: Entry,
    changes: dict[str, Any],
    scope: EditScope,
    series: Series | None = None,
) -> list[Write]:
    """Plan the writes for an edit at the given scope.

    Parameters
    ----------
    entry : Entry
        The listed row being edited (persisted or virtual), or a root.
    changes : dict[str, Any]
        New field values keyed by model field name.
    scope : EditScope
        One occurrence or the whole series; ignored for singles.
    series : Series | None
        The target's series; required for whole-series edits.
    """
    normalized = normalize_changes(changes)
    target = entry.transaction

    if target.series_kind == SeriesKind.SINGLE:
        _reject_shape_changes(normalized)
        validate_transaction(replace(target, **normalized))
        return [PatchTransaction(_persisted_id(entry), normalized)]

    if target.is_template:
        if scope == EditScope.THIS_OCCURRENCE:
            raise InvalidEntityStateError("A series root can only be edited as a whole series")
        return _plan_series_edit(_require_series(series, target.transaction_id), normalized, origin=None)

    if scope == EditScope.THIS_OCCURRENCE:
        return _plan_occurrence_edit(entry, normalized)

    return _plan_series_edit(_require_series(series, target.series_parent_id), normalized, origin=target)


def _plan_occurrence_edit(entry: Entry, changes: dict[str, Any]) -> list[Write]:
    target = entry.transaction
    _reject_shape_changes(changes)
    new_date: date | None = changes.get("date")
    if (
        new_date is not None
        and target.series_kind == SeriesKind.RECURRING_OCCURRENCE
        and (new_date.year, new_date.month) != (target.date.year, target.date.month)
    ):
        raise ValidationError("date", "Uma ocorrência fixa não pode mudar de mês")

    diverged = replace(target, **changes, is_virtual=False, diverged=True)
    validate_transaction(diverged)

    if isinstance(entry, VirtualEntry):
        logger.debug("Materializing virtual occurrence of %s before patching", target.series_parent_id)
        return [InsertTransaction(diverged)]
    return [PatchTransaction(_persisted_id(entry), {**changes, "diverged": True})]


def _plan_series_edit(
    series: Series,
    changes: dict[str, Any],
    origin: Transaction | None,
) -> list[Write]:
    root = series.root
    root_changes = dict(changes)

    new_date: date | None = changes.get("date")
    if new_date is not None:
        root_changes["date"] = _root_date(root, new_date, origin)
        if root.series_kind == SeriesKind.RECURRING_TEMPLATE and "recurring_day" not in changes:
            root_changes["recurring_day"] = new_date.day
    if "recurring_day" in root_changes and root.series_kind != SeriesKind.RECURRING_TEMPLATE:
        raise ValidationError("recurring_day", "Somente transações fixas têm dia de repetição")
    if "total_occurrences" in root_changes and root.series_kind != SeriesKind.INSTALLMENT_TEMPLATE:
        raise ValidationError("total_occurrences", "Somente transações parceladas têm parcelas")

    validate_transaction(replace(root, **root_changes))
    writes: list[Write] = [PatchTransaction(root.transaction_id, root_changes)]

    new_total = root_changes.get("total_occurrences")
    occurrence_changes = {
        key: value for key, value in changes.items() if key not in ("date", "recurring_day")
    }

    for occurrence in series.occurrences:
        index = occurrence.occurrence_index
        if new_total is not None and index is not None and index > new_total:
            writes.append(DeleteTransaction(occurrence.transaction_id))
            continue
        if occurrence.diverged or not occurrence_changes:
            continue
        validate_transaction(replace(occurrence, **occurrence_changes))
        writes.append(PatchTransaction(occurrence.transaction_id, dict(occurrence_changes)))

    if new_total is not None:
        for tombstone in series.tombstones:
            if tombstone.occurrence_index is not None and tombstone.occurrence_index > new_total:
                writes.append(DeleteTombstone(tombstone.tombstone_id))

    return writes


def _root_date(root: Transaction, new_date: date, origin: Transaction | None) -> date:
    """Where the series start moves when an edit changes a date.

    Editing from the root moves the start itself. Editing from an
    occurrence keeps the start month for recurring series and shifts an
    installment series so the edited occurrence lands on the new date.
    """
    if origin is None:
        return new_date
    if root.series_kind == SeriesKind.RECURRING_TEMPLATE:
        return clamp_day(root.date.year, root.date.month, new_date.day)
    index = origin.occurrence_index or (months_between(root.date, origin.date.year, origin.date.month) + 1)
    return add_months(new_date, -(index - 1))


def series_root_changes(target: Transaction, changes: dict[str, Any]) -> dict[str, Any]:
    """Root changes for a whole-series edit made from ``target``, without the stored root.

    A date edited on a recurring occurrence only moves the repeat day, so the
    start month is left to the root. A date edited on an installment
    occurrence shifts the start by the occurrence's position.
    """
    root_changes = dict(changes)
    new_date: date | None = changes.get("date")
    if new_date is None:
        return root_changes
    if target.is_recurring:
        root_changes.setdefault("recurring_day", new_date.day)
        if target.is_occurrence:
            del root_changes["date"]
    elif target.is_occurrence:
        index = target.occurrence_index or 1
        root_changes["date"] = add_months(new_date, -(index - 1))
    return root_changes


def plan_delete(
    entry: Entry,
    scope: EditScope,
    series: Series | None = None,
) -> list[Write]:
    """Plan the writes for a delete at the given scope.

    Deleting one occurrence always leaves a tombstone so the window is not
    regenerated; deleting the whole series cascades from the root.
    """
    target = entry.transaction

    if target.series_kind == SeriesKind.SINGLE:
        return [DeleteTransaction(_persisted_id(entry))]

    if target.is_template:
        if scope == EditScope.THIS_OCCURRENCE:
            raise InvalidEntityStateError("A series root can only be deleted as a whole series")
        return [DeleteSeries(target.transaction_id)]

    if scope == EditScope.ALL_OCCURRENCES:
        root_id = series.root.transaction_id if series else target.series_parent_id
        return [DeleteSeries(root_id)]

    tombstone = Tombstone(
        tombstone_id=None,
        series_parent_id=target.series_parent_id,
        year=target.date.year,
        month=target.date.month,
        occurrence_index=target.occurrence_index,
    )
    if isinstance(entry, VirtualEntry):
        return [InsertTombstone(tombstone)]
    return [DeleteTransaction(_persisted_id(entry)), InsertTombstone(tombstone)]


def _reject_shape_changes(changes: dict[str, Any]) -> None:
    for name in SERIES_SHAPE_FIELDS & changes.keys():
        raise ValidationError(name, "Este campo só pode ser alterado na série inteira")


def _persisted_id(entry: Entry) -> str:
    if not isinstance(entry, PersistedEntry) or not entry.transaction.transaction_id:
        raise InvalidEntityStateError("A virtual occurrence has no stored record to change")
    return entry.transaction.transaction_id


def _require_series(series: Series | None, root_id: str | None) -> Series:
    if series is None:
        raise InvalidEntityStateError(f"Series {root_id} is required for a whole-series change")
    if series.root.transaction_id != root_id:
        raise InvalidEntityStateError(
            f"Series {series.root.transaction_id} does not own the target (expected {root_id})"
        )
    return series
