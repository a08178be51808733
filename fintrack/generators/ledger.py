"""Sample ledger generator: banks, cards, singles and transaction series."""

from datetime import date
from decimal import Decimal

from fintrack.generators.base import BaseGenerator
from fintrack.models import (
    Bank,
    CreditCard,
    PaymentMethod,
    SeriesKind,
    Transaction,
    TransactionType,
)
from fintrack.series.materializer import clamp_day
from fintrack.series.mutations import plan_create
from fintrack.store.ledger import TransactionLedger


class SampleLedgerGenerator(BaseGenerator):
    """Generate a plausible personal ledger for demos and manual checks."""

    BANKS = [
        ("Nubank", "Conta Digital"),
        ("Itaú", "Conta Corrente"),
        ("C6 Bank", "Conta Digital"),
        ("Bradesco", "Conta Corrente"),
    ]
    CARD_FLAGS = ["VISA", "MASTERCARD", "ELO"]

    EXPENSE_CATEGORIES = {
        "Alimentação": ["Supermercado", "Almoço restaurante", "Padaria", "Delivery"],
        "Transporte": ["Uber", "Combustível", "Estacionamento"],
        "Lazer": ["Cinema", "Show", "Streaming"],
        "Saúde": ["Farmácia", "Consulta"],
        "Compras": ["Roupas", "Eletrônicos", "Presentes"],
    }
    FIXED_EXPENSES = [
        ("Aluguel", "Moradia", (900, 2500)),
        ("Internet", "Casa", (90, 200)),
        ("Academia", "Saúde", (80, 180)),
    ]
    INSTALLMENT_PURCHASES = [
        ("Notebook", "Eletrônicos", (200, 600), (4, 12)),
        ("Geladeira", "Casa", (150, 400), (6, 10)),
        ("Celular", "Eletrônicos", (120, 350), (3, 12)),
    ]

    def _amount(self, low: float, high: float) -> Decimal:
        cents = self.random.randint(int(low * 100), int(high * 100))
        return (Decimal(cents) / 100).quantize(Decimal("0.01"))

    def _day(self, year: int, month: int) -> date:
        return clamp_day(year, month, self.random.randint(1, 28))

    def generate_banks(self, count: int = 2) -> list[Bank]:
        """Generate bank accounts from a fixed list of institutions."""
        return [
            Bank(
                bank_id=None,
                name=name,
                account_type=account_type,
                agency=f"{self.random.randint(1, 9999):04d}",
                account_number=f"{self.random.randint(10000, 99999)}-{self.random.randint(0, 9)}",
            )
            for name, account_type in self.random.sample(self.BANKS, k=min(count, len(self.BANKS)))
        ]

    def generate_card(self, bank: Bank) -> CreditCard:
        """Generate a credit card issued by ``bank``."""
        flag = self.random.choice(self.CARD_FLAGS)
        return CreditCard(
            card_id=None,
            name=f"{bank.name} {flag.title()}",
            limit=Decimal(self.random.choice([2000, 3000, 5000, 8000])),
            due_day=self.random.choice([5, 10, 15, 20]),
            last_digits=f"{self.random.randint(0, 9999):04d}",
            flag=flag,
            bank=bank.name,
            holder_name=self.fake.name().upper(),
        )

    def generate_expense(self, year: int, month: int, bank: Bank, card: CreditCard) -> Transaction:
        """Generate a one-off expense paid by PIX, debit or credit."""
        category = self.random.choice(list(self.EXPENSE_CATEGORIES))
        method = self.random.choice([PaymentMethod.PIX, PaymentMethod.DEBIT, PaymentMethod.CREDIT])
        return Transaction(
            transaction_id=None,
            type=TransactionType.EXPENSE,
            amount=self._amount(10, 400),
            description=self.random.choice(self.EXPENSE_CATEGORIES[category]),
            category=category,
            date=self._day(year, month),
            payment_method=method,
            bank=bank.name if method != PaymentMethod.CREDIT else None,
            credit_card=card.name if method == PaymentMethod.CREDIT else None,
        )

    def generate_salary(self, start: date, bank: Bank) -> Transaction:
        """Generate a recurring salary template."""
        return Transaction(
            transaction_id=None,
            type=TransactionType.INCOME,
            amount=self._amount(3000, 12000),
            description=f"Salário {self.fake.company()}",
            category="Salário",
            date=clamp_day(start.year, start.month, 5),
            payment_method=PaymentMethod.DEBIT,
            bank=bank.name,
            series_kind=SeriesKind.RECURRING_TEMPLATE,
            recurring_day=5,
        )

    def generate_fixed_expense(self, start: date, bank: Bank) -> Transaction:
        """Generate a recurring monthly bill template."""
        description, category, (low, high) = self.random.choice(self.FIXED_EXPENSES)
        day = self.random.randint(1, 31)
        return Transaction(
            transaction_id=None,
            type=TransactionType.EXPENSE,
            amount=self._amount(low, high),
            description=description,
            category=category,
            date=clamp_day(start.year, start.month, day),
            payment_method=self.random.choice([PaymentMethod.PIX, PaymentMethod.DEBIT]),
            bank=bank.name,
            series_kind=SeriesKind.RECURRING_TEMPLATE,
            recurring_day=day,
        )

    def generate_installment_purchase(self, start: date, card: CreditCard) -> Transaction:
        """Generate an installment template charged to a credit card."""
        description, category, (low, high), (min_n, max_n) = self.random.choice(self.INSTALLMENT_PURCHASES)
        return Transaction(
            transaction_id=None,
            type=TransactionType.EXPENSE,
            amount=self._amount(low, high),
            description=description,
            category=category,
            date=self._day(start.year, start.month),
            payment_method=PaymentMethod.CREDIT,
            credit_card=card.name,
            series_kind=SeriesKind.INSTALLMENT_TEMPLATE,
            total_occurrences=self.random.randint(min_n, max_n),
        )

    def populate(
        self,
        ledger: TransactionLedger,
        start: date,
        months: int = 3,
        expenses_per_month: int = 8,
    ) -> TransactionLedger:
        """Fill ``ledger`` with reference data, series and monthly expenses.

        Parameters
        ----------
        ledger : TransactionLedger
            Target ledger.
        start : date
            First month of generated activity.
        months : int
            Number of months with one-off expenses.
        expenses_per_month : int
            One-off expenses generated per month.
        """
        banks = [ledger.add_bank(bank) for bank in self.generate_banks()]
        cards = [ledger.add_credit_card(self.generate_card(bank)) for bank in banks]

        roots = [
            self.generate_salary(start, banks[0]),
            self.generate_fixed_expense(start, banks[-1]),
            self.generate_installment_purchase(start, cards[0]),
        ]
        for root in roots:
            ledger.apply(plan_create(root))

        for offset in range(months):
            year = start.year + (start.month - 1 + offset) // 12
            month = (start.month - 1 + offset) % 12 + 1
            for _ in range(expenses_per_month):
                expense = self.generate_expense(
                    year, month, self.random.choice(banks), self.random.choice(cards)
                )
                ledger.apply(plan_create(expense))
        return ledger
