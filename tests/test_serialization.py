"""Tests for wire-format parsing and encoding."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

import pytest

from fintrack.models import (
    PaymentMethod,
    PersistedEntry,
    SeriesKind,
    Tombstone,
    Transaction,
    TransactionType,
    VirtualEntry,
)
from fintrack.serialization import (
    changes_to_record,
    entry_to_dict,
    parse_amount,
    parse_date,
    parse_datetime,
    parse_payment_method,
    parse_type,
    record_id,
    serialize_value,
    to_dict,
    to_record,
    tombstone_to_record,
)


class Color(Enum):
    RED = "red"


@dataclass
class Sample:
    amount: Decimal
    when: date


class TestSerializeValue:
    """Tests for serialize_value and to_dict."""

    def test_decimal_keeps_precision(self) -> None:
        assert serialize_value(Decimal("0.10")) == "0.10"

    def test_enum_and_dates(self) -> None:
        assert serialize_value(Color.RED) == "red"
        assert serialize_value(date(2024, 1, 5)) == "2024-01-05"
        assert serialize_value(datetime(2024, 1, 5, 10, 30)) == "2024-01-05T10:30:00"

    def test_nested(self) -> None:
        assert serialize_value({"a": [Decimal("1.00")]}) == {"a": ["1.00"]}

    def test_to_dict_dataclass(self) -> None:
        assert to_dict(Sample(Decimal("2.50"), date(2024, 2, 1))) == {
            "amount": "2.50",
            "when": "2024-02-01",
        }

    def test_to_dict_passthrough_and_fallback(self) -> None:
        assert to_dict({"x": 1}) == {"x": 1}
        assert to_dict(5) == {"value": "5"}


class TestParseAmount:
    """Tests for parse_amount."""

    def test_string_and_comma(self) -> None:
        assert parse_amount("1200") == Decimal("1200.00")
        assert parse_amount("12,5") == Decimal("12.50")

    def test_float_has_no_binary_artifacts(self) -> None:
        assert parse_amount(0.1) == Decimal("0.10")

    def test_rounds_half_up_to_cents(self) -> None:
        assert parse_amount("2.345") == Decimal("2.35")

    @pytest.mark.parametrize("value", [None, True, "abc", "NaN", "Infinity"])
    def test_rejects_invalid(self, value) -> None:
        with pytest.raises(ValueError):
            parse_amount(value)


class TestParseDate:
    """Tests for parse_date and parse_datetime."""

    def test_iso_date(self) -> None:
        assert parse_date("2024-03-05") == date(2024, 3, 5)

    def test_iso_datetime_uses_calendar_part(self) -> None:
        assert parse_date("2024-03-05T00:00:00.000Z") == date(2024, 3, 5)

    def test_datetime_object(self) -> None:
        assert parse_date(datetime(2024, 3, 5, 23, 59)) == date(2024, 3, 5)

    @pytest.mark.parametrize("value", [None, 20240305, "2024-03-05X", "not a date"])
    def test_rejects_invalid(self, value) -> None:
        with pytest.raises(ValueError):
            parse_date(value)

    def test_parse_datetime_with_z_suffix(self) -> None:
        parsed = parse_datetime("2024-03-05T10:00:00Z")
        assert parsed.year == 2024
        assert parsed.utcoffset().total_seconds() == 0

    def test_parse_datetime_empty(self) -> None:
        assert parse_datetime(None) is None
        assert parse_datetime("") is None


class TestParseEnums:
    """Tests for type and payment method aliases."""

    def test_type_aliases(self) -> None:
        assert parse_type("receita") == TransactionType.INCOME
        assert parse_type("DESPESA") == TransactionType.EXPENSE
        assert parse_type(TransactionType.INCOME) == TransactionType.INCOME

    def test_payment_method_aliases(self) -> None:
        assert parse_payment_method("débito") == PaymentMethod.DEBIT
        assert parse_payment_method("credito") == PaymentMethod.CREDIT
        assert parse_payment_method("Pix") == PaymentMethod.PIX

    def test_invalid_values(self) -> None:
        with pytest.raises(ValueError):
            parse_type("transfer")
        with pytest.raises(ValueError):
            parse_payment_method("boleto")

    def test_record_id_under_either_key(self) -> None:
        assert record_id({"_id": "a"}) == "a"
        assert record_id({"id": 7}) == "7"
        assert record_id({}) is None


class TestEncoding:
    """Tests for record encoders."""

    def _installment(self) -> Transaction:
        return Transaction(
            transaction_id="occ-1",
            type=TransactionType.EXPENSE,
            amount=Decimal("300.00"),
            description="Notebook",
            category="Eletrônicos",
            date=date(2024, 2, 15),
            payment_method=PaymentMethod.CREDIT,
            credit_card="Nubank Visa",
            series_kind=SeriesKind.INSTALLMENT_OCCURRENCE,
            series_parent_id="root-1",
            occurrence_index=2,
            total_occurrences=4,
            diverged=True,
        )

    def test_installment_occurrence_record(self) -> None:
        record = to_record(self._installment())

        assert record["_id"] == "occ-1"
        assert record["isInstallment"] is True
        assert record["isRecurring"] is False
        assert record["installmentNumber"] == 2
        assert record["totalInstallments"] == 4
        assert record["installmentParentId"] == "root-1"
        assert record["paymentMethod"] == "credito"
        assert record["amount"] == "300.00"
        assert record["diverged"] is True

    def test_recurring_template_record(self) -> None:
        template = Transaction(
            transaction_id=None,
            type=TransactionType.EXPENSE,
            amount=Decimal("1200.00"),
            description="Aluguel",
            category="Moradia",
            date=date(2024, 1, 31),
            payment_method=PaymentMethod.DEBIT,
            bank="Itaú",
            series_kind=SeriesKind.RECURRING_TEMPLATE,
            recurring_day=31,
        )
        record = to_record(template)

        assert "_id" not in record
        assert record["isRecurring"] is True
        assert record["recurringDay"] == 31
        assert "recurringParentId" not in record

    def test_tombstone_record(self) -> None:
        tombstone = Tombstone(
            tombstone_id=None, series_parent_id="root-1", year=2024, month=2, occurrence_index=2
        )
        assert tombstone_to_record(tombstone) == {
            "isTombstone": True,
            "seriesParentId": "root-1",
            "date": "2024-02-01",
            "installmentNumber": 2,
        }

    def test_changes_use_wire_names(self) -> None:
        record = changes_to_record({
            "amount": Decimal("99.90"),
            "payment_method": PaymentMethod.PIX,
            "total_occurrences": 6,
            "date": date(2024, 5, 1),
        })
        assert record == {
            "amount": "99.90",
            "paymentMethod": "pix",
            "totalInstallments": 6,
            "date": "2024-05-01",
        }

    def test_entry_to_dict_flags_virtual(self) -> None:
        transaction = self._installment()
        data = entry_to_dict(PersistedEntry(transaction))
        assert data["display_description"] == "Notebook (2/4)"
        assert data["series_kind"] == "installment_occurrence"

        virtual = entry_to_dict(VirtualEntry(Transaction(**{**vars(transaction), "is_virtual": True})))
        assert virtual["is_virtual"] is True
