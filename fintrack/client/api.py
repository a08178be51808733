"""REST API client for the finance tracker backend."""

import logging
from dataclasses import replace
from typing import Any

import requests

from fintrack.config import ApiConfig
from fintrack.exceptions import InvalidEntityStateError, NetworkError, ServerError
from fintrack.models import (
    Bank,
    CreditCard,
    EditScope,
    Entry,
    SeriesKind,
    Transaction,
    VirtualEntry,
)
from fintrack.serialization import (
    changes_to_record,
    record_id,
    serialize_value,
    to_record,
    tombstone_to_record,
)
from fintrack.series.materializer import Materialization, materialize_records
from fintrack.series.mutations import (
    DeleteTransaction,
    InsertTombstone,
    InsertTransaction,
    PatchTransaction,
    normalize_changes,
    plan_create,
    plan_delete,
    plan_edit,
    series_root_changes,
)
from fintrack.series.resolver import resolve
from fintrack.validation import TransactionDraft, build_transaction, validate_transaction

logger = logging.getLogger(__name__)


class ApiClient:
    """Client for the transactions, dashboard and reference-data endpoints.

    Every request carries the bearer token (once logged in) and the
    configured timeout. Failures surface as :class:`NetworkError` or
    :class:`ServerError`; nothing is retried automatically.
    """

    def __init__(
        self,
        config: ApiConfig | None = None,
        session: requests.Session | None = None,
        token: str | None = None,
    ) -> None:
        self.config = config or ApiConfig()
        self.session = session or requests.Session()
        self.token = token

    def set_token(self, token: str | None) -> None:
        self.token = token

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send a request and decode its JSON body.

        Raises
        ------
        NetworkError
            On timeout, connection failure, or a non-2xx response without a
            structured body.
        ServerError
            On a non-2xx response with a JSON object body.
        """
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        url = self.config.url(path)
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.config.timeout_seconds,
            )
        except requests.Timeout as exc:
            logger.error("%s %s timed out after %.1fs", method, url, self.config.timeout_seconds)
            raise NetworkError(f"Request timed out after {self.config.timeout_seconds}s") from exc
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise NetworkError(f"Connection failed: {exc}") from exc

        if response.ok:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                raise NetworkError(f"Invalid JSON from {method} {path}") from exc

        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            logger.warning("%s %s -> %d: %s", method, path, response.status_code, message)
            raise ServerError(message, status_code=response.status_code)
        raise NetworkError(f"HTTP {response.status_code} from {method} {path}")

    # Auth
    def login(self, email: str, password: str) -> dict[str, Any]:
        """Log in and keep the returned bearer token for later requests."""
        data = self._request("POST", "/auth/login", json={"email": email, "password": password})
        if data and data.get("token"):
            self.set_token(data["token"])
        return data

    def register(self, name: str, email: str, password: str) -> dict[str, Any]:
        return self._request(
            "POST", "/auth/register", json={"name": name, "email": email, "password": password}
        )

    # Dashboard
    def get_dashboard(self, month: int, year: int) -> dict[str, Any]:
        return self._request("GET", "/dashboard", params={"month": month, "year": year})

    # Transactions
    def list_records(self, month: int, year: int) -> list[dict[str, Any]]:
        """Persisted rows for a window: series roots, concrete rows and tombstones."""
        return self._request("GET", "/transactions", params={"month": month, "year": year}) or []

    def fetch_month(self, month: int, year: int) -> Materialization:
        """Fetch a window and materialize its virtual occurrences locally."""
        result = materialize_records(self.list_records(month, year), month, year)
        for warning in result.warnings:
            logger.warning("Integrity warning in %02d/%d: %s", month, year, warning.message)
        return result

    def create_transaction(self, draft: TransactionDraft | Transaction) -> Transaction:
        """Validate locally, then create a single transaction or a series root."""
        if isinstance(draft, TransactionDraft):
            transaction = build_transaction(draft)
        else:
            transaction = draft
        (insert,) = plan_create(transaction)
        return self._stored(self._request("POST", "/transactions", json=to_record(insert.transaction)))

    def edit(
        self,
        entry: Entry,
        changes: dict[str, Any],
        scope: EditScope = EditScope.THIS_OCCURRENCE,
    ) -> Transaction | None:
        """Edit a listed row at the given scope.

        A virtual occurrence edited alone is created as a concrete diverged
        occurrence; a whole-series edit is sent to the series root with
        ``updateAll``.
        """
        target = entry.transaction
        whole_series = scope == EditScope.ALL_OCCURRENCES and target.series_kind != SeriesKind.SINGLE

        if whole_series:
            normalized = normalize_changes(changes)
            values = {k: v for k, v in normalized.items() if k != "recurring_day"}
            validate_transaction(replace(target, occurrence_index=None, **values))
            root_changes = series_root_changes(target, normalized)
            body = {**changes_to_record(root_changes), "updateAll": True}
            return self._stored(self._request("PUT", f"/transactions/{target.root_id}", json=body))

        (write,) = plan_edit(entry, changes, scope)
        if isinstance(write, InsertTransaction):
            return self._stored(self._request("POST", "/transactions", json=to_record(write.transaction)))
        if isinstance(write, PatchTransaction):
            body = {**changes_to_record(write.changes), "updateAll": False}
            return self._stored(self._request("PUT", f"/transactions/{write.transaction_id}", json=body))
        raise TypeError(f"Unexpected write for an edit: {write!r}")

    def delete(self, entry: Entry, scope: EditScope = EditScope.THIS_OCCURRENCE) -> Any:
        """Delete a listed row at the given scope.

        Deleting a virtual occurrence alone stores a tombstone for its
        window. Deleting a whole series uses the cascade endpoint of its kind.
        """
        target = entry.transaction
        if scope == EditScope.ALL_OCCURRENCES and target.series_kind != SeriesKind.SINGLE:
            suffix = "installments" if target.is_installment else "recurring"
            return self._request("DELETE", f"/transactions/{target.root_id}/{suffix}")

        writes = plan_delete(entry, scope)
        if isinstance(entry, VirtualEntry):
            tombstone = next(w.tombstone for w in writes if isinstance(w, InsertTombstone))
            return self._request("POST", "/transactions", json=tombstone_to_record(tombstone))

        # The server leaves the tombstone for a deleted stored occurrence
        delete = next(w for w in writes if isinstance(w, DeleteTransaction))
        return self._request(
            "DELETE", f"/transactions/{delete.transaction_id}", params={"deleteAll": "false"}
        )

    def _stored(self, data: Any) -> Transaction | None:
        if not isinstance(data, dict) or record_id(data) is None:
            return None
        item = resolve(data)
        return item if isinstance(item, Transaction) else None

    # Reference data
    def list_banks(self) -> list[dict[str, Any]]:
        return self._request("GET", "/banks") or []

    def create_bank(self, bank: Bank) -> dict[str, Any]:
        return self._request("POST", "/banks", json=_bank_body(bank))

    def update_bank(self, bank: Bank) -> dict[str, Any]:
        return self._request("PUT", f"/banks/{_reference_id(bank.bank_id)}", json=_bank_body(bank))

    def delete_bank(self, bank_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"/banks/{_reference_id(bank_id)}")

    def list_credit_cards(self) -> list[dict[str, Any]]:
        return self._request("GET", "/credit-cards") or []

    def create_credit_card(self, card: CreditCard) -> dict[str, Any]:
        return self._request("POST", "/credit-cards", json=_card_body(card))

    def update_credit_card(self, card: CreditCard) -> dict[str, Any]:
        return self._request(
            "PUT", f"/credit-cards/{_reference_id(card.card_id)}", json=_card_body(card)
        )

    def delete_credit_card(self, card_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"/credit-cards/{_reference_id(card_id)}")


def _reference_id(value: str | None) -> str:
    if not value:
        raise InvalidEntityStateError("Reference data must be stored before it can be changed")
    return value


def _bank_body(bank: Bank) -> dict[str, Any]:
    return {
        "name": bank.name,
        "accountType": bank.account_type,
        "agency": bank.agency,
        "accountNumber": bank.account_number,
        "icon": bank.icon,
        "notes": bank.notes,
    }


def _card_body(card: CreditCard) -> dict[str, Any]:
    return {
        "name": card.name,
        "limit": serialize_value(card.limit),
        "dueDay": card.due_day,
        "lastDigits": card.last_digits,
        "flag": card.flag,
        "bank": card.bank,
        "holderName": card.holder_name,
        "notes": card.notes,
    }
