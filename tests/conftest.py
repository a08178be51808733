"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest

from fintrack.models import PaymentMethod, SeriesKind, Transaction, TransactionType
from fintrack.series.mutations import plan_create
from fintrack.store import TransactionLedger


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def ledger() -> TransactionLedger:
    """Create a fresh ledger for each test."""
    return TransactionLedger()


@pytest.fixture
def single_expense() -> Transaction:
    """A one-off PIX expense in June 2024."""
    return Transaction(
        transaction_id=None,
        type=TransactionType.EXPENSE,
        amount=Decimal("45.90"),
        description="Almoço",
        category="Alimentação",
        date=date(2024, 6, 10),
        payment_method=PaymentMethod.PIX,
        bank="Nubank",
    )


@pytest.fixture
def rent_template() -> Transaction:
    """Recurring rent paid by debit from 2024-01-05."""
    return Transaction(
        transaction_id=None,
        type=TransactionType.EXPENSE,
        amount=Decimal("1200.00"),
        description="Aluguel",
        category="Moradia",
        date=date(2024, 1, 5),
        payment_method=PaymentMethod.DEBIT,
        bank="Itaú",
        series_kind=SeriesKind.RECURRING_TEMPLATE,
        recurring_day=5,
    )


@pytest.fixture
def notebook_template() -> Transaction:
    """Notebook bought in 4 credit installments of 300.00 from 2024-01-15."""
    return Transaction(
        transaction_id=None,
        type=TransactionType.EXPENSE,
        amount=Decimal("300.00"),
        description="Notebook",
        category="Eletrônicos",
        date=date(2024, 1, 15),
        payment_method=PaymentMethod.CREDIT,
        credit_card="Nubank Visa",
        series_kind=SeriesKind.INSTALLMENT_TEMPLATE,
        total_occurrences=4,
    )


@pytest.fixture
def rent(ledger: TransactionLedger, rent_template: Transaction) -> Transaction:
    """The rent template stored in the ledger."""
    (stored,) = ledger.apply(plan_create(rent_template))
    return stored


@pytest.fixture
def notebook(ledger: TransactionLedger, notebook_template: Transaction) -> Transaction:
    """The notebook installment template stored in the ledger."""
    (stored,) = ledger.apply(plan_create(notebook_template))
    return stored
