"""Category icon lookup shared by every listing."""

import unicodedata

from fintrack.models.enums import TransactionType
from fintrack.serialization import parse_type

CATEGORY_ICONS = {
    "alimentacao": "🍕",
    "comida": "🍕",
    "restaurante": "🍽️",
    "transporte": "🚗",
    "combustivel": "⛽",
    "uber": "🚕",
    "saude": "🏥",
    "farmacia": "💊",
    "educacao": "📚",
    "curso": "📚",
    "livros": "📖",
    "lazer": "🎮",
    "entretenimento": "🎬",
    "cinema": "🎬",
    "netflix": "📺",
    "casa": "🏠",
    "moradia": "🏠",
    "aluguel": "🏠",
    "condominio": "🏠",
    "trabalho": "💼",
    "salario": "💰",
    "freelance": "💻",
    "investimento": "📈",
    "venda": "💵",
    "compras": "🛍️",
    "shopping": "🛍️",
    "outros": "💳",
    "diversos": "💳",
}

INCOME_ICON = "💰"
EXPENSE_ICON = "💳"


def _normalize(category: str) -> str:
    decomposed = unicodedata.normalize("NFKD", category.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def category_icon(category: str | None, type: TransactionType | str = TransactionType.EXPENSE) -> str:
    """Icon for a category, ignoring case and accents.

    Unknown categories fall back to the income or expense icon.
    """
    if category:
        icon = CATEGORY_ICONS.get(_normalize(category))
        if icon:
            return icon
    return INCOME_ICON if parse_type(type) == TransactionType.INCOME else EXPENSE_ICON
