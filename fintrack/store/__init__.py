"""In-memory stores for transactions and reference data."""

from fintrack.store.ledger import TransactionLedger

__all__ = ["TransactionLedger"]
