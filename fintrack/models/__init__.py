"""Domain models for fintrack."""

from fintrack.models.enums import (
    BANK_METHODS,
    OCCURRENCE_KINDS,
    ROOT_KINDS,
    TEMPLATE_KINDS,
    EditScope,
    PaymentMethod,
    SeriesKind,
    TransactionType,
)
from fintrack.models.reference import Bank, CreditCard
from fintrack.models.transaction import (
    Entry,
    PersistedEntry,
    Series,
    Tombstone,
    Transaction,
    VirtualEntry,
)

__all__ = [
    "BANK_METHODS",
    "Bank",
    "CreditCard",
    "EditScope",
    "Entry",
    "OCCURRENCE_KINDS",
    "PaymentMethod",
    "PersistedEntry",
    "ROOT_KINDS",
    "Series",
    "SeriesKind",
    "TEMPLATE_KINDS",
    "Tombstone",
    "Transaction",
    "TransactionType",
    "VirtualEntry",
]
