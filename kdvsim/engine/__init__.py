"""P&L engine: one scenario in, one statement out.

- parameters.py: ScenarioParameters, expense groups, defaults, payload parsing
- statement.py: PnLResult and the single statement formula (statement_from_totals)
- pnl.py: compute_pnl, the statement plus break-even and target solutions
- checks.py: accounting identity checks over a statement
"""
