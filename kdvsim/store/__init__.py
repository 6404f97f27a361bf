"""Snapshot persistence for collaborators (forms, bulk screen). The engine never uses it.

- snapshots.py: SnapshotStore interface, memory and JSON-file stores, global reset
"""
