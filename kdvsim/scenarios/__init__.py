"""Scenario drivers built on the statement formula.

- sensitivity.py: one-variable sweeps, multi-variable deltas, sweep summaries
- comparison.py: side-by-side metrics for two parameter sets
"""
