"""
Central constants for the field operations backend.
"""
from __future__ import annotations

# Shop types as stored on Shop.type (and sent by the mobile client)
SHOP_TYPE_RETAILER = "Retailer"
SHOP_TYPE_WHOLESELLER = "Whole Seller"
SHOP_TYPES = frozenset({SHOP_TYPE_RETAILER, SHOP_TYPE_WHOLESELLER})

# Spelling variants accepted on input (lower-cased, spaces/underscores/dashes removed)
SHOP_TYPE_ALIASES = {
    "retailer": SHOP_TYPE_RETAILER,
    "retail": SHOP_TYPE_RETAILER,
    "wholeseller": SHOP_TYPE_WHOLESELLER,
    "wholesaler": SHOP_TYPE_WHOLESELLER,
    "wholesale": SHOP_TYPE_WHOLESELLER,
}

# Legacy distributor shop lists (retailShops / wholesaleShops)
LEGACY_BUCKET_RETAIL = "retail"
LEGACY_BUCKET_WHOLESALE = "wholesale"
LEGACY_BUCKETS = frozenset({LEGACY_BUCKET_RETAIL, LEGACY_BUCKET_WHOLESALE})

# Prefix for legacy entry ids in merged shop listings
LEGACY_ID_PREFIX = "legacy-"
