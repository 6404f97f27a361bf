"""VAT (KDV) helpers: inclusive/net decomposition at a percent rate.

- decompose.py: decompose_inclusive, gross_from_net
"""
