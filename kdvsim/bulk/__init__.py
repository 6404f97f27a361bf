"""Bulk (per-product) simulation.

- importer.py: sheet column contract -> ProductRow
- aggregate.py: quantity-share apportionment, per-product and aggregate statements
"""
