"""
Distributors module.

Distributor rows plus their legacy embedded shop lists (retailShops / wholesaleShops),
which predate the shops table and are still read by older clients.
"""
