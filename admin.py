import math
from typing import Any, Dict, List

from database import ConfigStore, CredentialStore, ProductStore, clean_categories
from observability import build_logger
from schemas import DEFAULT_THEME, KioskStatus

logger = build_logger(__name__)

MIN_PIN_LENGTH = 4


class ValidationFailed(ValueError):
    pass


# Coercion helpers

def to_number(value: Any) -> float:
    """Lenient numeric coercion: anything unparseable (or NaN) becomes 0."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text or "_" in text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _text(value: Any, default: str) -> str:
    text = "" if value is None else str(value).strip()
    return text or default


def sanitize_product(item: Any, index: int) -> Dict[str, Any]:
    source = item if isinstance(item, dict) else {}
    price = to_number(source.get("price"))
    return {
        "id": str(source.get("id") or f"prod-{index + 1:03d}"),
        "title": _text(source.get("title"), "Untitled"),
        "category": _text(source.get("category"), "Misc"),
        "price": int(price) if price.is_integer() else price,
        # Negative stock is passed through as-is
        "stock": int(to_number(source.get("stock"))),
    }


def sanitize_products(products: Any) -> List[Dict[str, Any]]:
    if not isinstance(products, list):
        raise ValidationFailed("Invalid payload")
    return [sanitize_product(item, index) for index, item in enumerate(products)]


def sanitize_theme(theme: Any) -> Dict[str, str]:
    source = theme if isinstance(theme, dict) else {}
    return {key: source.get(key) or default for key, default in DEFAULT_THEME.items()}


def sanitize_config(status: Any, categories: Any, theme: Any) -> Dict[str, Any]:
    if status not in [s.value for s in KioskStatus]:
        raise ValidationFailed("Invalid status")
    if not isinstance(categories, list) or not categories:
        raise ValidationFailed("Categories required")
    cleaned = clean_categories(categories)
    if not cleaned:
        raise ValidationFailed("Categories required")
    return {
        "status": status,
        "categories": cleaned,
        "theme": sanitize_theme(theme),
    }


class AdminMutator:
    """
    Validates admin edits and rewrites the stores. Every save replaces the
    whole document; nothing is merged and nothing is written when validation
    fails.
    """

    def __init__(self, products: ProductStore, config: ConfigStore, credential: CredentialStore):
        self.products = products
        self.config = config
        self.credential = credential

    def save_products(self, products: Any) -> List[Dict[str, Any]]:
        sanitized = sanitize_products(products)
        self.products.replace(sanitized)
        return sanitized

    def save_config(self, status: Any, categories: Any, theme: Any) -> Dict[str, Any]:
        next_config = sanitize_config(status, categories, theme)
        self.config.replace(next_config)
        return next_config

    def update_pin(self, new_pin: Any) -> None:
        if not isinstance(new_pin, str) or len(new_pin) < MIN_PIN_LENGTH:
            raise ValidationFailed(f"PIN must be at least {MIN_PIN_LENGTH} digits")
        self.credential.replace(new_pin)
        logger.info("Admin PIN updated")
