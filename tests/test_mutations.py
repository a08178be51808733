"""Tests for planning scoped edits and deletes."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from fintrack.exceptions import InvalidEntityStateError, ValidationError
from fintrack.models import (
    EditScope,
    PersistedEntry,
    Series,
    SeriesKind,
    Tombstone,
    Transaction,
    VirtualEntry,
)
from fintrack.series.materializer import materialize
from fintrack.series.mutations import (
    DeleteSeries,
    DeleteTombstone,
    DeleteTransaction,
    InsertTombstone,
    InsertTransaction,
    PatchTransaction,
    normalize_changes,
    plan_create,
    plan_delete,
    plan_edit,
    requires_scope_prompt,
    series_root_changes,
)

THIS = EditScope.THIS_OCCURRENCE
ALL = EditScope.ALL_OCCURRENCES


@pytest.fixture
def rent_root(rent_template: Transaction) -> Transaction:
    return replace(rent_template, transaction_id="rent")


@pytest.fixture
def notebook_root(notebook_template: Transaction) -> Transaction:
    return replace(notebook_template, transaction_id="nb")


def virtual_entry(root: Transaction, month: int, year: int = 2024) -> VirtualEntry:
    (entry,) = materialize([root], [], month, year).entries
    return entry


def stored_occurrence(root: Transaction, month: int, transaction_id: str, **changes) -> Transaction:
    virtual = virtual_entry(root, month).transaction
    return replace(virtual, transaction_id=transaction_id, is_virtual=False, **changes)


class TestNormalizeChanges:
    """Tests for normalize_changes."""

    def test_parses_values(self) -> None:
        changes = normalize_changes({
            "amount": "99,90",
            "date": "2024-05-02",
            "payment_method": "pix",
            "bank": "  ",
            "description": " Mercado ",
        })
        assert changes["amount"] == Decimal("99.90")
        assert changes["date"] == date(2024, 5, 2)
        assert changes["bank"] is None
        assert changes["description"] == "Mercado"

    def test_unknown_field(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            normalize_changes({"series_parent_id": "x"})
        assert exc_info.value.field == "series_parent_id"

    def test_invalid_value(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            normalize_changes({"amount": "abc"})
        assert exc_info.value.field == "amount"


class TestRequiresScopePrompt:
    """Tests for requires_scope_prompt."""

    def test_single_never_prompts(self, single_expense: Transaction) -> None:
        entry = PersistedEntry(replace(single_expense, transaction_id="s1"))
        assert requires_scope_prompt(entry, {"amount": "1.00"}) is False

    def test_series_member_with_changed_amount(self, rent_root: Transaction) -> None:
        assert requires_scope_prompt(virtual_entry(rent_root, 3), {"amount": "1300"}, rent_root) is True

    def test_series_member_with_unchanged_values(self, rent_root: Transaction) -> None:
        assert requires_scope_prompt(virtual_entry(rent_root, 3), {"amount": "1200"}, rent_root) is False

    def test_notes_do_not_prompt(self, rent_root: Transaction) -> None:
        assert requires_scope_prompt(virtual_entry(rent_root, 3), {"notes": "pago"}) is False


class TestPlanCreate:
    """Tests for plan_create."""

    def test_single(self, single_expense: Transaction) -> None:
        assert plan_create(single_expense) == [InsertTransaction(single_expense)]

    def test_occurrence_rejected(self, rent_root: Transaction) -> None:
        with pytest.raises(InvalidEntityStateError):
            plan_create(virtual_entry(rent_root, 2).transaction)

    def test_stored_occurrence_rejected(self, notebook_root: Transaction) -> None:
        with pytest.raises(InvalidEntityStateError):
            plan_create(stored_occurrence(notebook_root, 2, "occ"))

    def test_series_root(self, rent_root: Transaction) -> None:
        assert plan_create(rent_root) == [InsertTransaction(rent_root)]

    def test_invalid_transaction(self, single_expense: Transaction) -> None:
        with pytest.raises(ValidationError):
            plan_create(replace(single_expense, bank=None))


class TestPlanEditSingle:
    """Tests for editing singles."""

    def test_patch(self, single_expense: Transaction) -> None:
        entry = PersistedEntry(replace(single_expense, transaction_id="s1"))
        writes = plan_edit(entry, {"amount": "50"}, THIS)
        assert writes == [PatchTransaction("s1", {"amount": Decimal("50.00")})]

    def test_series_shape_rejected(self, single_expense: Transaction) -> None:
        entry = PersistedEntry(replace(single_expense, transaction_id="s1"))
        with pytest.raises(ValidationError):
            plan_edit(entry, {"total_occurrences": 3}, THIS)


class TestPlanEditThisOccurrence:
    """Tests for single-occurrence edits."""

    def test_virtual_occurrence_is_materialized(self, rent_root: Transaction) -> None:
        (write,) = plan_edit(virtual_entry(rent_root, 3), {"amount": "1300"}, THIS)

        assert isinstance(write, InsertTransaction)
        created = write.transaction
        assert created.transaction_id is None
        assert created.is_virtual is False
        assert created.diverged is True
        assert created.amount == Decimal("1300.00")
        assert created.series_parent_id == "rent"
        assert created.date == date(2024, 3, 5)

    def test_persisted_occurrence_is_patched(self, notebook_root: Transaction) -> None:
        occurrence = stored_occurrence(notebook_root, 2, "occ-2")
        (write,) = plan_edit(PersistedEntry(occurrence), {"amount": "310"}, THIS)

        assert write == PatchTransaction("occ-2", {"amount": Decimal("310.00"), "diverged": True})

    def test_recurring_occurrence_cannot_change_month(self, rent_root: Transaction) -> None:
        with pytest.raises(ValidationError) as exc_info:
            plan_edit(virtual_entry(rent_root, 3), {"date": "2024-04-05"}, THIS)
        assert exc_info.value.field == "date"

    def test_recurring_occurrence_can_change_day(self, rent_root: Transaction) -> None:
        (write,) = plan_edit(virtual_entry(rent_root, 3), {"date": "2024-03-10"}, THIS)
        assert write.transaction.date == date(2024, 3, 10)

    def test_root_requires_whole_series(self, rent_root: Transaction) -> None:
        with pytest.raises(InvalidEntityStateError):
            plan_edit(PersistedEntry(rent_root), {"amount": "1"}, THIS)

    def test_pix_installment_rejected(self, notebook_root: Transaction) -> None:
        with pytest.raises(ValidationError):
            plan_edit(virtual_entry(notebook_root, 2), {"payment_method": "pix", "bank": "Nubank"}, THIS)


class TestPlanEditAllOccurrences:
    """Tests for whole-series edits."""

    def test_series_required(self, rent_root: Transaction) -> None:
        with pytest.raises(InvalidEntityStateError):
            plan_edit(virtual_entry(rent_root, 3), {"amount": "1300"}, ALL)

    def test_series_must_own_target(self, rent_root: Transaction, notebook_root: Transaction) -> None:
        with pytest.raises(InvalidEntityStateError):
            plan_edit(virtual_entry(rent_root, 3), {"amount": "1300"}, ALL, Series(notebook_root))

    def test_patches_root_and_non_diverged_occurrences(self, rent_root: Transaction) -> None:
        plain = stored_occurrence(rent_root, 2, "occ-2")
        diverged = stored_occurrence(rent_root, 3, "occ-3", diverged=True)
        series = Series(rent_root, occurrences=[plain, diverged])

        writes = plan_edit(virtual_entry(rent_root, 4), {"amount": "1300"}, ALL, series)

        assert writes == [
            PatchTransaction("rent", {"amount": Decimal("1300.00")}),
            PatchTransaction("occ-2", {"amount": Decimal("1300.00")}),
        ]

    def test_recurring_date_change_moves_day_only(self, rent_root: Transaction) -> None:
        writes = plan_edit(virtual_entry(rent_root, 3), {"date": "2024-03-20"}, ALL, Series(rent_root))

        assert writes == [
            PatchTransaction("rent", {"date": date(2024, 1, 20), "recurring_day": 20}),
        ]

    def test_installment_date_change_shifts_start(self, notebook_root: Transaction) -> None:
        writes = plan_edit(
            virtual_entry(notebook_root, 3), {"date": "2024-04-10"}, ALL, Series(notebook_root)
        )
        assert writes == [PatchTransaction("nb", {"date": date(2024, 2, 10)})]

    def test_from_root(self, notebook_root: Transaction) -> None:
        writes = plan_edit(
            PersistedEntry(notebook_root), {"description": "Notebook Dell"}, ALL, Series(notebook_root)
        )
        assert writes == [PatchTransaction("nb", {"description": "Notebook Dell"})]

    def test_shrinking_total_drops_extra_rows(self, notebook_root: Transaction) -> None:
        third = stored_occurrence(notebook_root, 3, "occ-3", diverged=True)
        fourth = stored_occurrence(notebook_root, 4, "occ-4")
        tombstone = Tombstone(
            tombstone_id="t4", series_parent_id="nb", year=2024, month=4, occurrence_index=4
        )
        series = Series(notebook_root, occurrences=[third, fourth], tombstones=[tombstone])

        writes = plan_edit(PersistedEntry(notebook_root), {"total_occurrences": 3}, ALL, series)

        assert writes == [
            PatchTransaction("nb", {"total_occurrences": 3}),
            DeleteTransaction("occ-4"),
            DeleteTombstone("t4"),
        ]

    def test_total_out_of_range(self, notebook_root: Transaction) -> None:
        with pytest.raises(ValidationError):
            plan_edit(PersistedEntry(notebook_root), {"total_occurrences": 61}, ALL, Series(notebook_root))

    def test_recurring_day_on_installment_rejected(self, notebook_root: Transaction) -> None:
        with pytest.raises(ValidationError):
            plan_edit(PersistedEntry(notebook_root), {"recurring_day": 3}, ALL, Series(notebook_root))


class TestSeriesRootChanges:
    """Tests for series_root_changes, used when only the edited row is known."""

    def test_recurring_occurrence_moves_repeat_day_only(self, rent_root: Transaction) -> None:
        march = virtual_entry(rent_root, 3).transaction
        changes = series_root_changes(march, {"date": date(2024, 3, 20), "amount": Decimal("1300.00")})
        assert changes == {"recurring_day": 20, "amount": Decimal("1300.00")}

    def test_recurring_root_moves_start_and_day(self, rent_root: Transaction) -> None:
        changes = series_root_changes(rent_root, {"date": date(2024, 2, 10)})
        assert changes == {"date": date(2024, 2, 10), "recurring_day": 10}

    def test_installment_occurrence_shifts_start(self, notebook_root: Transaction) -> None:
        third = virtual_entry(notebook_root, 3).transaction
        assert series_root_changes(third, {"date": date(2024, 3, 20)}) == {"date": date(2024, 1, 20)}

    def test_matches_planner_for_installments(self, notebook_root: Transaction) -> None:
        entry = virtual_entry(notebook_root, 3)
        series = Series(root=notebook_root, occurrences=[], tombstones=[])
        (patch,) = plan_edit(entry, {"date": "2024-03-20"}, ALL, series)
        assert patch.changes == series_root_changes(entry.transaction, normalize_changes({"date": "2024-03-20"}))

    def test_without_date_unchanged(self, notebook_root: Transaction) -> None:
        third = virtual_entry(notebook_root, 3).transaction
        assert series_root_changes(third, {"amount": Decimal("1")}) == {"amount": Decimal("1")}


class TestPlanDelete:
    """Tests for plan_delete."""

    def test_single(self, single_expense: Transaction) -> None:
        entry = PersistedEntry(replace(single_expense, transaction_id="s1"))
        assert plan_delete(entry, THIS) == [DeleteTransaction("s1")]

    def test_virtual_occurrence_leaves_tombstone(self, rent_root: Transaction) -> None:
        (write,) = plan_delete(virtual_entry(rent_root, 2), THIS)

        assert isinstance(write, InsertTombstone)
        assert write.tombstone.series_parent_id == "rent"
        assert write.tombstone.window == (2024, 2)
        assert write.tombstone.occurrence_index is None

    def test_persisted_occurrence_deleted_and_tombstoned(self, notebook_root: Transaction) -> None:
        occurrence = stored_occurrence(notebook_root, 2, "occ-2")
        delete, tombstone = plan_delete(PersistedEntry(occurrence), THIS)

        assert delete == DeleteTransaction("occ-2")
        assert tombstone.tombstone.occurrence_index == 2

    def test_whole_series_from_occurrence(self, notebook_root: Transaction) -> None:
        assert plan_delete(virtual_entry(notebook_root, 2), ALL) == [DeleteSeries("nb")]

    def test_root(self, rent_root: Transaction) -> None:
        assert plan_delete(PersistedEntry(rent_root), ALL) == [DeleteSeries("rent")]
        with pytest.raises(InvalidEntityStateError):
            plan_delete(PersistedEntry(rent_root), THIS)
