"""Month reports: dashboard stats, bank balances and credit card usage."""

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from fintrack.models import BANK_METHODS, Entry, PaymentMethod, Transaction, TransactionType

RECENT_LIMIT = 5


@dataclass
class MonthSummary:
    """Aggregate stats of one month listing.

    ``expense`` only counts money that left a bank or wallet; credit card
    spending is reported separately in ``credit_card_total``.
    """

    income: Decimal = Decimal("0.00")
    expense: Decimal = Decimal("0.00")
    credit_card_total: Decimal = Decimal("0.00")
    count: int = 0
    recent: list[Transaction] = field(default_factory=list)

    @property
    def balance(self) -> Decimal:
        return self.income - self.expense


def _transactions(items: Iterable[Entry | Transaction]) -> list[Transaction]:
    return [item if isinstance(item, Transaction) else item.transaction for item in items]


def summarize_month(entries: Iterable[Entry | Transaction]) -> MonthSummary:
    """Summarize a materialized month (entries already sorted newest first)."""
    transactions = _transactions(entries)
    summary = MonthSummary(count=len(transactions), recent=transactions[:RECENT_LIMIT])
    for transaction in transactions:
        if transaction.type == TransactionType.INCOME:
            summary.income += transaction.amount
        elif transaction.payment_method == PaymentMethod.CREDIT:
            summary.credit_card_total += transaction.amount
        else:
            summary.expense += transaction.amount
    return summary


def bank_balances(entries: Iterable[Entry | Transaction]) -> dict[str, Decimal]:
    """Net movement per bank: income adds, expense subtracts (debit and PIX only)."""
    balances: dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
    for transaction in _transactions(entries):
        if not transaction.bank or transaction.payment_method not in BANK_METHODS:
            continue
        if transaction.type == TransactionType.INCOME:
            balances[transaction.bank] += transaction.amount
        else:
            balances[transaction.bank] -= transaction.amount
    return dict(balances)


def card_usage(entries: Iterable[Entry | Transaction]) -> dict[str, Decimal]:
    """Credit expenses per card."""
    usage: dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
    for transaction in _transactions(entries):
        if (
            transaction.credit_card
            and transaction.payment_method == PaymentMethod.CREDIT
            and transaction.type == TransactionType.EXPENSE
        ):
            usage[transaction.credit_card] += transaction.amount
    return dict(usage)
