"""Wire-format serialization shared by the API client, ledger and sinks."""

from dataclasses import asdict, fields, is_dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any

from fintrack.models.enums import (
    PAYMENT_METHOD_ALIASES,
    TYPE_ALIASES,
    PaymentMethod,
    SeriesKind,
    TransactionType,
)
from fintrack.models.transaction import Entry, Tombstone, Transaction

CENTS = Decimal("0.01")


def to_dict(obj: Any) -> dict:
    """Convert object to dictionary."""
    if is_dataclass(obj):
        return dataclass_to_dict(obj)
    elif isinstance(obj, dict):
        return obj
    else:
        return {"value": str(obj)}


def dataclass_to_dict(obj: Any) -> dict:
    """Convert dataclass to dict with proper serialization."""
    result = {}
    for key, value in asdict(obj).items():
        result[key] = serialize_value(value)
    return result


def to_dict_fast(obj: Any) -> dict:
    """Convert a flat dataclass without the deep copy ``asdict`` makes."""
    return {f.name: serialize_value(getattr(obj, f.name)) for f in fields(obj)}


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output."""
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


# Parsing

def parse_amount(value: Any) -> Decimal:
    """Parse a monetary amount into a Decimal quantized to cents.

    Floats go through ``str`` first so binary artifacts never reach the
    stored value. Comma decimal separators (``"12,50"``) are accepted.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_date(value: Any) -> date:
    """Parse an occurrence date from a date, datetime or ISO string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid date: {value!r}")
    text = value.strip()
    if len(text) > 10 and text[10] not in ("T", " "):
        raise ValueError(f"Invalid date: {value!r}")
    return date.fromisoformat(text[:10])


def parse_datetime(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).replace("Z", "+00:00")
    return datetime.fromisoformat(text)


def parse_type(value: Any) -> TransactionType:
    if isinstance(value, TransactionType):
        return value
    try:
        return TYPE_ALIASES[str(value).strip().lower()]
    except KeyError as exc:
        raise ValueError(f"Invalid transaction type: {value!r}") from exc


def parse_payment_method(value: Any) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    try:
        return PAYMENT_METHOD_ALIASES[str(value).strip().lower()]
    except KeyError as exc:
        raise ValueError(f"Invalid payment method: {value!r}") from exc


def record_id(record: dict[str, Any]) -> str | None:
    """Return the record id under either ``_id`` or ``id``."""
    raw = record.get("_id", record.get("id"))
    return str(raw) if raw not in (None, "") else None


# Encoding

def to_record(transaction: Transaction) -> dict[str, Any]:
    """Encode a transaction into the API's raw-flag record shape."""
    kind = transaction.series_kind
    record: dict[str, Any] = {
        "type": transaction.type.value,
        "amount": str(transaction.amount),
        "description": transaction.description,
        "category": transaction.category,
        "date": transaction.date.isoformat(),
        "paymentMethod": transaction.payment_method.value,
        "bank": transaction.bank,
        "creditCard": transaction.credit_card,
        "isRecurring": kind == SeriesKind.RECURRING_TEMPLATE,
        "isInstallment": transaction.is_installment,
        "diverged": transaction.diverged,
        "notes": transaction.notes,
    }
    if transaction.transaction_id:
        record["_id"] = transaction.transaction_id

    if kind == SeriesKind.RECURRING_TEMPLATE:
        record["recurringDay"] = transaction.recurring_day or transaction.date.day
    elif kind == SeriesKind.RECURRING_OCCURRENCE:
        record["recurringParentId"] = transaction.series_parent_id
    elif kind == SeriesKind.INSTALLMENT_TEMPLATE:
        record["totalInstallments"] = transaction.total_occurrences
    elif kind == SeriesKind.INSTALLMENT_OCCURRENCE:
        record["installmentNumber"] = transaction.occurrence_index
        record["totalInstallments"] = transaction.total_occurrences
        record["installmentParentId"] = transaction.series_parent_id

    if transaction.created_at:
        record["createdAt"] = transaction.created_at.isoformat()
    if transaction.updated_at:
        record["updatedAt"] = transaction.updated_at.isoformat()
    return record


def tombstone_to_record(tombstone: Tombstone) -> dict[str, Any]:
    """Encode a tombstone as a skip marker record."""
    record: dict[str, Any] = {
        "isTombstone": True,
        "seriesParentId": tombstone.series_parent_id,
        "date": date(tombstone.year, tombstone.month, 1).isoformat(),
    }
    if tombstone.occurrence_index is not None:
        record["installmentNumber"] = tombstone.occurrence_index
    if tombstone.tombstone_id:
        record["_id"] = tombstone.tombstone_id
    return record


def changes_to_record(changes: dict[str, Any]) -> dict[str, Any]:
    """Encode an edit's field changes with wire names."""
    names = {
        "type": "type",
        "amount": "amount",
        "description": "description",
        "category": "category",
        "date": "date",
        "payment_method": "paymentMethod",
        "bank": "bank",
        "credit_card": "creditCard",
        "notes": "notes",
        "total_occurrences": "totalInstallments",
        "recurring_day": "recurringDay",
        "diverged": "diverged",
    }
    return {names.get(key, key): serialize_value(value) for key, value in changes.items()}


def entry_to_dict(entry: Entry) -> dict[str, Any]:
    """Flatten a listing entry for JSON export."""
    data = to_dict_fast(entry.transaction)
    data["display_description"] = entry.transaction.display_description
    return data
