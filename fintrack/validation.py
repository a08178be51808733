"""Local validation of transaction forms and built transactions.

Everything here runs before any write is planned or any request is sent;
failures raise :class:`~fintrack.exceptions.ValidationError` naming the
offending field.
"""

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Any

from fintrack.exceptions import SeriesIntegrityError, ValidationError
from fintrack.models.enums import BANK_METHODS, PaymentMethod, SeriesKind, TransactionType
from fintrack.models.transaction import Transaction
from fintrack.serialization import parse_amount, parse_date, parse_payment_method, parse_type
from fintrack.series.resolver import check_series_flags

MIN_INSTALLMENTS = 2
MAX_INSTALLMENTS = 60


@dataclass
class TransactionDraft:
    """Form values for a new transaction, as entered by the user."""

    description: str = ""
    amount: Any = ""
    type: Any = TransactionType.EXPENSE
    category: str = ""
    date: Any = None
    payment_method: Any = PaymentMethod.PIX
    bank: str | None = None
    credit_card: str | None = None
    notes: str = ""
    is_recurring: bool = False
    is_installment: bool = False
    total_installments: Any = None


def toggle_installment(draft: TransactionDraft, enabled: bool) -> TransactionDraft:
    """Switch installment mode on or off.

    PIX cannot be paid in installments, so enabling installments while PIX
    is selected moves the draft to debit.
    """
    payment_method = draft.payment_method
    if enabled and _method_or_none(payment_method) == PaymentMethod.PIX:
        payment_method = PaymentMethod.DEBIT
    return replace(draft, is_installment=enabled, payment_method=payment_method)


def select_payment_method(draft: TransactionDraft, method: Any) -> TransactionDraft:
    """Pick a payment method; choosing PIX turns installments off."""
    payment_method = parse_payment_method(method)
    is_installment = draft.is_installment and payment_method != PaymentMethod.PIX
    return replace(draft, payment_method=payment_method, is_installment=is_installment)


def _method_or_none(value: Any) -> PaymentMethod | None:
    try:
        return parse_payment_method(value)
    except ValueError:
        return None


def build_transaction(draft: TransactionDraft, today: date | None = None) -> Transaction:
    """Validate a draft and build the transaction (or series root) it describes.

    Parameters
    ----------
    draft : TransactionDraft
        Form values.
    today : date | None
        Date used when the draft leaves the date empty.

    Raises
    ------
    ValidationError
        On the first invalid field.
    """
    description = (draft.description or "").strip()
    if not description:
        raise ValidationError("description", "Descrição é obrigatória")

    if draft.amount in (None, ""):
        raise ValidationError("amount", "Valor é obrigatório")
    try:
        amount = parse_amount(draft.amount)
    except ValueError as exc:
        raise ValidationError("amount", "Valor inválido") from exc

    try:
        tx_type = parse_type(draft.type)
    except ValueError as exc:
        raise ValidationError("type", "Tipo inválido") from exc

    try:
        payment_method = parse_payment_method(draft.payment_method)
    except ValueError as exc:
        raise ValidationError("payment_method", "Forma de pagamento inválida") from exc

    if draft.date in (None, ""):
        occurrence_date = today or date.today()
    else:
        try:
            occurrence_date = parse_date(draft.date)
        except ValueError as exc:
            raise ValidationError("date", "Data inválida") from exc

    if draft.is_recurring and draft.is_installment:
        raise ValidationError("is_installment", "Uma transação não pode ser fixa e parcelada")

    kind = SeriesKind.SINGLE
    total: int | None = None
    recurring_day: int | None = None
    if draft.is_installment:
        kind = SeriesKind.INSTALLMENT_TEMPLATE
        total = _parse_installments(draft.total_installments)
    elif draft.is_recurring:
        kind = SeriesKind.RECURRING_TEMPLATE
        recurring_day = occurrence_date.day

    transaction = Transaction(
        transaction_id=None,
        type=tx_type,
        amount=amount,
        description=description,
        category=(draft.category or "").strip(),
        date=occurrence_date,
        payment_method=payment_method,
        bank=(draft.bank or "").strip() or None,
        credit_card=(draft.credit_card or "").strip() or None,
        series_kind=kind,
        total_occurrences=total,
        recurring_day=recurring_day,
        notes=draft.notes or "",
    )
    validate_transaction(transaction)
    return transaction


def _parse_installments(value: Any) -> int:
    try:
        total = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("total_installments", "Número de parcelas inválido") from exc
    _check_installment_count(total)
    return total


def _check_installment_count(total: int) -> None:
    if not MIN_INSTALLMENTS <= total <= MAX_INSTALLMENTS:
        raise ValidationError(
            "total_installments",
            f"Número de parcelas deve estar entre {MIN_INSTALLMENTS} e {MAX_INSTALLMENTS}",
        )


def validate_transaction(transaction: Transaction) -> None:
    """Check the field and series invariants of a built transaction."""
    if not transaction.description or not transaction.description.strip():
        raise ValidationError("description", "Descrição é obrigatória")
    if not isinstance(transaction.amount, Decimal) or transaction.amount <= 0:
        raise ValidationError("amount", "Valor deve ser maior que zero")
    if not isinstance(transaction.date, date):
        raise ValidationError("date", "Data inválida")

    method = transaction.payment_method
    if method in BANK_METHODS and not transaction.bank:
        raise ValidationError("bank", "Selecione um banco")
    if method == PaymentMethod.CREDIT and not transaction.credit_card:
        raise ValidationError("credit_card", "Selecione um cartão de crédito")
    if method == PaymentMethod.PIX and transaction.is_installment:
        raise ValidationError("payment_method", "PIX não pode ser parcelado")

    if transaction.is_installment and transaction.total_occurrences is not None:
        _check_installment_count(transaction.total_occurrences)
        if transaction.occurrence_index is not None and not (
            1 <= transaction.occurrence_index <= transaction.total_occurrences
        ):
            raise ValidationError("occurrence_index", "Parcela fora do intervalo")
    if transaction.series_kind == SeriesKind.INSTALLMENT_TEMPLATE and transaction.total_occurrences is None:
        raise ValidationError("total_installments", "Número de parcelas é obrigatório")
    if transaction.recurring_day is not None and not 1 <= transaction.recurring_day <= 31:
        raise ValidationError("date", "Dia de repetição inválido")

    try:
        check_series_flags(transaction)
    except SeriesIntegrityError as exc:
        raise ValidationError("series", str(exc)) from exc
