"""Reference entities used to settle transactions."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Bank:
    """Bank account a debit or PIX transaction settles against."""

    bank_id: str | None
    name: str
    account_type: str = "Conta Corrente"
    agency: str = "0000"
    account_number: str = "00000-0"
    icon: str = ""
    notes: str = ""
    created_at: datetime | None = None


@dataclass
class CreditCard:
    """Credit card a credit transaction is charged to."""

    card_id: str | None
    name: str
    limit: Decimal = Decimal("1000.00")
    due_day: int = 10  # 1-31
    last_digits: str = "0000"
    flag: str = ""  # VISA, MASTERCARD, ...
    bank: str = ""
    holder_name: str = ""
    notes: str = ""
    created_at: datetime | None = None
