from __future__ import annotations

import re
from typing import TYPE_CHECKING

from app.fieldops.constants import (
    LEGACY_BUCKET_RETAIL,
    LEGACY_BUCKET_WHOLESALE,
    SHOP_TYPE_ALIASES,
    SHOP_TYPE_RETAILER,
    SHOP_TYPES,
)
from app.fieldops.errors import FieldError, ValidationError

if TYPE_CHECKING:
    from app.fieldops.modules.distributors.models import LegacyShopEntry
    from app.fieldops.modules.shops.models import Shop


IDENTITY_KEY_SEPARATOR = "-"


def shop_identity_key(name: str | None, owner_name: str | None, address: str | None) -> str:
    """
    Composite key used to recognise the same physical shop in the shops table and in a
    distributor's legacy shop lists.

    Algorithm:
    1. Each component is lower-cased (None becomes "")
    2. Components are joined with "-"

    Examples:
        >>> shop_identity_key("Nandu Shop", "Ram", "Delhi")
        'nandu shop-ram-delhi'
        >>> shop_identity_key("nandu shop", "ram", "delhi")
        'nandu shop-ram-delhi'

    Edge Cases (Documented Behavior):
    - Whitespace and punctuation are NOT folded:
        - "Nandu  Shop" and "Nandu Shop" produce different keys
        - Shop rows are stripped on write, legacy rows were not always
    - Empty components are kept as empty strings:
        - shop_identity_key("A", "", "C") == "a--c"
        - Required-field validation happens upstream
    """
    parts = (name or "", owner_name or "", address or "")
    return IDENTITY_KEY_SEPARATOR.join(p.lower() for p in parts)


def shop_record_key(shop: "Shop") -> str:
    return shop_identity_key(shop.name, shop.owner_name, shop.address)


def entry_identity_key(entry: "LegacyShopEntry") -> str:
    return shop_identity_key(entry.shop_name, entry.owner_name, entry.address)


def normalize_shop_type(value: str | None) -> str:
    """
    Map client spellings ("Retailer", "Whole Seller", "WholeSeller", "wholesaler") onto the
    stored shop type. Raises ValidationError for anything else.
    """
    raw = (value or "").strip()
    if raw in SHOP_TYPES:
        return raw
    folded = re.sub(r"[\s_\-]+", "", raw).lower()
    shop_type = SHOP_TYPE_ALIASES.get(folded)
    if shop_type is None:
        raise ValidationError([FieldError("type", "Shop type must be 'Retailer' or 'Whole Seller'.")])
    return shop_type


def legacy_bucket_for_type(shop_type: str) -> str:
    return LEGACY_BUCKET_RETAIL if shop_type == SHOP_TYPE_RETAILER else LEGACY_BUCKET_WHOLESALE
