from __future__ import annotations
from dataclasses import replace

from kdvsim.config.env import DEFAULT_CONSTANTS, EngineConstants
from kdvsim.engine.parameters import ScenarioParameters
from kdvsim.engine.statement import PnLResult, build_statement
from kdvsim.solver.targets import solve_break_even, solve_target_price, solve_target_quantity


def compute_pnl(params: ScenarioParameters, constants: EngineConstants = DEFAULT_CONSTANTS) -> PnLResult:
    """Full monthly P&L, VAT ledger, unit economics and target solutions for one scenario.

    Never raises for numeric input. A zero quantity gives zero revenue, a net
    loss equal to the fixed expenses and zero per-unit figures. Solver fields
    hold 0.0 when the target cannot be reached.
    """
    statement = build_statement(params, constants)
    return replace(
        statement,
        break_even_quantity=solve_break_even(params, constants),
        target_quantity=solve_target_quantity(params, params.target_profit, constants),
        target_unit_price=solve_target_price(params, params.target_profit, constants),
    )
