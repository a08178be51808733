"""Enumeration types for fintrack entities."""

from enum import Enum


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class PaymentMethod(str, Enum):
    PIX = "pix"
    DEBIT = "debito"
    CREDIT = "credito"
    CASH = "dinheiro"


class SeriesKind(str, Enum):
    SINGLE = "single"
    RECURRING_TEMPLATE = "recurring_template"
    RECURRING_OCCURRENCE = "recurring_occurrence"
    INSTALLMENT_TEMPLATE = "installment_template"
    INSTALLMENT_OCCURRENCE = "installment_occurrence"


class EditScope(str, Enum):
    THIS_OCCURRENCE = "this_occurrence"
    ALL_OCCURRENCES = "all_occurrences"


ROOT_KINDS = frozenset(
    {SeriesKind.SINGLE, SeriesKind.RECURRING_TEMPLATE, SeriesKind.INSTALLMENT_TEMPLATE}
)
TEMPLATE_KINDS = frozenset({SeriesKind.RECURRING_TEMPLATE, SeriesKind.INSTALLMENT_TEMPLATE})
OCCURRENCE_KINDS = frozenset(
    {SeriesKind.RECURRING_OCCURRENCE, SeriesKind.INSTALLMENT_OCCURRENCE}
)

# Payment methods that settle against a bank account
BANK_METHODS = frozenset({PaymentMethod.PIX, PaymentMethod.DEBIT})

# Legacy Portuguese labels still present in older records
TYPE_ALIASES = {
    "income": TransactionType.INCOME,
    "receita": TransactionType.INCOME,
    "expense": TransactionType.EXPENSE,
    "despesa": TransactionType.EXPENSE,
}

PAYMENT_METHOD_ALIASES = {
    "pix": PaymentMethod.PIX,
    "debito": PaymentMethod.DEBIT,
    "débito": PaymentMethod.DEBIT,
    "debit": PaymentMethod.DEBIT,
    "credito": PaymentMethod.CREDIT,
    "crédito": PaymentMethod.CREDIT,
    "credit": PaymentMethod.CREDIT,
    "dinheiro": PaymentMethod.CASH,
    "cash": PaymentMethod.CASH,
}
