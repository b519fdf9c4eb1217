"""
Shops module.

Scope:
- Shop Store (shops table, soft delete)
- Shop lifecycle: add / update / transfer / delete, merged listing with legacy entries
- Distributor shop-count reconciliation against the legacy retailShops / wholesaleShops lists
"""
