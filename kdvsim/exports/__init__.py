"""Exports & reporting: CSV writers and Markdown reports.

- writers.py: CSV emitters with fixed schemas, including the bulk template
- reports.py: assumptions, P&L, sensitivity and validation Markdown
"""
