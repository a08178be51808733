"""In-memory transaction ledger with series and reference integrity."""

import copy
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from fintrack.exceptions import (
    EntityNotFoundError,
    InvalidEntityStateError,
    ReferentialIntegrityError,
)
from fintrack.models import (
    BANK_METHODS,
    Bank,
    CreditCard,
    PaymentMethod,
    Series,
    SeriesKind,
    Tombstone,
    Transaction,
)
from fintrack.series.materializer import Materialization, materialize
from fintrack.series.mutations import (
    DeleteSeries,
    DeleteTombstone,
    DeleteTransaction,
    InsertTombstone,
    InsertTransaction,
    PatchTransaction,
    Write,
)
from fintrack.series.resolver import check_series_flags
from fintrack.serialization import to_record, tombstone_to_record

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class TransactionLedger:
    """In-memory store for transactions, tombstones and reference data."""

    # Primary entities
    transactions: dict[str, Transaction] = field(default_factory=dict)
    tombstones: dict[str, Tombstone] = field(default_factory=dict)
    banks: dict[str, Bank] = field(default_factory=dict)
    credit_cards: dict[str, CreditCard] = field(default_factory=dict)

    auto_create_references: bool = True

    # Relationship indexes
    _series_occurrences: dict[str, list[str]] = field(default_factory=dict)
    _series_tombstones: dict[str, list[str]] = field(default_factory=dict)

    def add_transaction(self, transaction: Transaction) -> Transaction:
        """Persist a single, a series root or a concrete occurrence."""
        if transaction.is_virtual:
            raise InvalidEntityStateError("Virtual occurrences must be materialized before storing")
        check_series_flags(transaction)

        if transaction.is_occurrence:
            parent = self.transactions.get(transaction.series_parent_id)
            if parent is None or not parent.is_template:
                raise ReferentialIntegrityError(f"Series {transaction.series_parent_id} not found")

        stored = replace(transaction, transaction_id=transaction.transaction_id or _new_id())
        if stored.transaction_id in self.transactions:
            raise InvalidEntityStateError(f"Transaction {stored.transaction_id} already exists")
        if stored.created_at is None:
            stored.created_at = datetime.now()

        self.transactions[stored.transaction_id] = stored
        if stored.is_template:
            self._series_occurrences[stored.transaction_id] = []
            self._series_tombstones[stored.transaction_id] = []
        elif stored.is_occurrence:
            self._series_occurrences[stored.series_parent_id].append(stored.transaction_id)

        if self.auto_create_references:
            self._ensure_references(stored)
        return stored

    def patch_transaction(self, transaction_id: str, changes: dict[str, Any]) -> Transaction:
        """Apply field changes to a stored transaction."""
        current = self.get_transaction(transaction_id)
        patched = replace(current, **changes, updated_at=datetime.now())
        check_series_flags(patched)
        self.transactions[transaction_id] = patched
        if self.auto_create_references:
            self._ensure_references(patched)
        return patched

    def delete_transaction(self, transaction_id: str) -> Transaction:
        """Delete one stored transaction; series roots go through ``delete_series``."""
        current = self.get_transaction(transaction_id)
        if current.is_template:
            raise InvalidEntityStateError(f"Transaction {transaction_id} is a series root")
        del self.transactions[transaction_id]
        if current.is_occurrence:
            self._series_occurrences[current.series_parent_id].remove(transaction_id)
        return current

    def add_tombstone(self, tombstone: Tombstone) -> Tombstone:
        """Persist a skip marker for one window of a series."""
        parent = self.transactions.get(tombstone.series_parent_id)
        if parent is None or not parent.is_template:
            raise ReferentialIntegrityError(f"Series {tombstone.series_parent_id} not found")

        for existing_id in self._series_tombstones[tombstone.series_parent_id]:
            existing = self.tombstones[existing_id]
            if (existing.window, existing.occurrence_index) == (tombstone.window, tombstone.occurrence_index):
                return existing

        stored = replace(tombstone, tombstone_id=tombstone.tombstone_id or _new_id())
        if stored.created_at is None:
            stored.created_at = datetime.now()
        self.tombstones[stored.tombstone_id] = stored
        self._series_tombstones[stored.series_parent_id].append(stored.tombstone_id)
        return stored

    def delete_tombstone(self, tombstone_id: str) -> Tombstone:
        if tombstone_id not in self.tombstones:
            raise EntityNotFoundError(f"Tombstone {tombstone_id} not found")
        tombstone = self.tombstones.pop(tombstone_id)
        self._series_tombstones[tombstone.series_parent_id].remove(tombstone_id)
        return tombstone

    def delete_series(self, root_id: str) -> int:
        """Delete a root with every occurrence and tombstone under it.

        Returns
        -------
        int
            Number of transaction records removed (root included).
        """
        root = self.get_transaction(root_id)
        if not root.is_template:
            raise InvalidEntityStateError(f"Transaction {root_id} is not a series root")

        occurrence_ids = self._series_occurrences.pop(root_id, [])
        for occurrence_id in occurrence_ids:
            del self.transactions[occurrence_id]
        for tombstone_id in self._series_tombstones.pop(root_id, []):
            del self.tombstones[tombstone_id]
        del self.transactions[root_id]

        logger.info("Deleted series %s with %d persisted occurrences", root_id, len(occurrence_ids))
        return len(occurrence_ids) + 1

    def apply(self, writes: list[Write]) -> list[Transaction | Tombstone | int]:
        """Apply a mutation plan as one unit.

        If any write fails the ledger is restored to its prior state and the
        error propagates.
        """
        snapshot = self._snapshot()
        results: list[Transaction | Tombstone | int] = []
        try:
            for write in writes:
                results.append(self._apply_one(write))
        except Exception:
            self._restore(snapshot)
            raise
        return results

    def _apply_one(self, write: Write) -> Transaction | Tombstone | int:
        if isinstance(write, InsertTransaction):
            return self.add_transaction(write.transaction)
        if isinstance(write, PatchTransaction):
            return self.patch_transaction(write.transaction_id, write.changes)
        if isinstance(write, DeleteTransaction):
            return self.delete_transaction(write.transaction_id)
        if isinstance(write, InsertTombstone):
            return self.add_tombstone(write.tombstone)
        if isinstance(write, DeleteTombstone):
            return self.delete_tombstone(write.tombstone_id)
        if isinstance(write, DeleteSeries):
            return self.delete_series(write.root_id)
        raise TypeError(f"Unknown write: {write!r}")

    def _snapshot(self) -> tuple:
        return (
            copy.deepcopy(self.transactions),
            copy.deepcopy(self.tombstones),
            copy.deepcopy(self.banks),
            copy.deepcopy(self.credit_cards),
            copy.deepcopy(self._series_occurrences),
            copy.deepcopy(self._series_tombstones),
        )

    def _restore(self, snapshot: tuple) -> None:
        (
            self.transactions,
            self.tombstones,
            self.banks,
            self.credit_cards,
            self._series_occurrences,
            self._series_tombstones,
        ) = snapshot

    # Reference data
    def add_bank(self, bank: Bank) -> Bank:
        """Add a bank to the store."""
        stored = replace(bank, bank_id=bank.bank_id or _new_id())
        if stored.created_at is None:
            stored.created_at = datetime.now()
        self.banks[stored.bank_id] = stored
        return stored

    def add_credit_card(self, card: CreditCard) -> CreditCard:
        """Add a credit card to the store."""
        stored = replace(card, card_id=card.card_id or _new_id())
        if stored.created_at is None:
            stored.created_at = datetime.now()
        self.credit_cards[stored.card_id] = stored
        return stored

    def delete_bank(self, bank_id: str) -> Bank:
        if bank_id not in self.banks:
            raise EntityNotFoundError(f"Bank {bank_id} not found")
        return self.banks.pop(bank_id)

    def delete_credit_card(self, card_id: str) -> CreditCard:
        if card_id not in self.credit_cards:
            raise EntityNotFoundError(f"Credit card {card_id} not found")
        return self.credit_cards.pop(card_id)

    def find_bank(self, name: str) -> Bank | None:
        return next((b for b in self.banks.values() if b.name == name), None)

    def find_credit_card(self, name: str) -> CreditCard | None:
        return next((c for c in self.credit_cards.values() if c.name == name), None)

    def _ensure_references(self, transaction: Transaction) -> None:
        if transaction.bank and transaction.payment_method in BANK_METHODS:
            if self.find_bank(transaction.bank) is None:
                self.add_bank(Bank(
                    bank_id=None,
                    name=transaction.bank,
                    notes="Criado automaticamente via transação.",
                ))
                logger.info("Bank created automatically: %s", transaction.bank)
        if transaction.credit_card and transaction.payment_method == PaymentMethod.CREDIT:
            if self.find_credit_card(transaction.credit_card) is None:
                self.add_credit_card(CreditCard(
                    card_id=None,
                    name=transaction.credit_card,
                    notes="Criado automaticamente via transação.",
                ))
                logger.info("Credit card created automatically: %s", transaction.credit_card)

    # Query methods
    def get_transaction(self, transaction_id: str) -> Transaction:
        """Get a stored transaction by id."""
        try:
            return self.transactions[transaction_id]
        except KeyError:
            raise EntityNotFoundError(f"Transaction {transaction_id} not found") from None

    def get_series(self, root_id: str) -> Series:
        """Get a root with its persisted occurrences and tombstones."""
        root = self.get_transaction(root_id)
        if not root.is_template:
            raise InvalidEntityStateError(f"Transaction {root_id} is not a series root")
        return Series(
            root=root,
            occurrences=[self.transactions[i] for i in self._series_occurrences.get(root_id, [])],
            tombstones=[self.tombstones[i] for i in self._series_tombstones.get(root_id, [])],
        )

    def series_of(self, transaction: Transaction) -> Series | None:
        """Get the series a transaction belongs to, if any."""
        root_id = transaction.root_id
        if transaction.series_kind == SeriesKind.SINGLE or root_id is None:
            return None
        return self.get_series(root_id)

    def roots(self) -> list[Transaction]:
        """All recurring and installment templates."""
        return [t for t in self.transactions.values() if t.is_template]

    def concrete(self) -> list[Transaction]:
        """Singles and persisted occurrences, in insertion order."""
        return [t for t in self.transactions.values() if not t.is_template]

    def materialize(self, month: int, year: int) -> Materialization:
        """Visible transactions of a window, virtual occurrences included."""
        return materialize(self.roots(), self.concrete(), month, year, self.tombstones.values())

    def records(self) -> list[dict[str, Any]]:
        """Every stored row in the API's wire shape."""
        rows = [to_record(t) for t in self.transactions.values()]
        rows.extend(tombstone_to_record(t) for t in self.tombstones.values())
        return rows

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "transactions": len(self.transactions),
            "series": len(self.roots()),
            "tombstones": len(self.tombstones),
            "banks": len(self.banks),
            "credit_cards": len(self.credit_cards),
        }
