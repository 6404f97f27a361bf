from __future__ import annotations
import logging
from dataclasses import replace
from typing import Optional

from kdvsim.config.env import DEFAULT_CONSTANTS, DEFAULT_SOLVER, EngineConstants, SolverConfig
from kdvsim.engine.parameters import ScenarioParameters
from kdvsim.engine.statement import build_statement, effective_commission_rate
from kdvsim.vat.decompose import gross_from_net

logger = logging.getLogger(__name__)

# Returned when no finite quantity or price reaches the requested profit.
UNREACHABLE = 0.0


def _net_profit_at(params: ScenarioParameters, quantity: float, constants: EngineConstants) -> float:
    return build_statement(replace(params, quantity=float(quantity)), constants).net_profit


def unit_contribution_margin(params: ScenarioParameters, constants: EngineConstants = DEFAULT_CONSTANTS) -> float:
    """Contribution margin per unit; independent of the quantity sold."""
    return build_statement(replace(params, quantity=1.0), constants).contribution_margin


def _unit_ebit_slope(params: ScenarioParameters, constants: EngineConstants) -> float:
    # EBIT is linear in quantity; the slope also carries the return loss the contribution margin omits.
    one = build_statement(replace(params, quantity=1.0), constants)
    zero = build_statement(replace(params, quantity=0.0), constants)
    return one.ebit - zero.ebit


def _bisect_quantity(
    params: ScenarioParameters,
    target: float,
    high: float,
    constants: EngineConstants,
    solver: SolverConfig,
) -> float:
    if _unit_ebit_slope(params, constants) <= 0:
        logger.debug("target %.2f unreachable: non-positive unit margin", target)
        return UNREACHABLE

    low = 0.0
    if _net_profit_at(params, low, constants) >= target:
        return low

    high = max(high, 1.0)
    doublings = 0
    while _net_profit_at(params, high, constants) < target:
        if doublings >= solver.max_bracket_doublings:
            logger.debug("target %.2f unreachable: no bracket below q=%.2f", target, high)
            return UNREACHABLE
        low, high = high, high * 2.0
        doublings += 1

    mid = (low + high) / 2.0
    for i in range(solver.max_iterations):
        mid = (low + high) / 2.0
        value = _net_profit_at(params, mid, constants)
        if abs(value - target) < solver.tolerance:
            logger.debug("bisection converged after %d iterations at q=%.4f", i + 1, mid)
            return mid
        if value < target:
            low = mid
        else:
            high = mid
    return mid


def solve_break_even(
    params: ScenarioParameters,
    constants: EngineConstants = DEFAULT_CONSTANTS,
    solver: SolverConfig = DEFAULT_SOLVER,
) -> float:
    """Monthly quantity at which net profit reaches zero.

    The closed form (fixed / contribution margin) only seeds the bracket; the
    answer comes from bisection over the full statement, since returns and
    the tax threshold keep profit from being a single straight line.
    """
    cm = unit_contribution_margin(params, constants)
    if cm <= 0:
        return UNREACHABLE
    fixed = build_statement(replace(params, quantity=0.0), constants).fixed_expense_total
    return _bisect_quantity(params, 0.0, 3.0 * fixed / cm, constants, solver)


def solve_target_quantity(
    params: ScenarioParameters,
    target_profit: Optional[float] = None,
    constants: EngineConstants = DEFAULT_CONSTANTS,
    solver: SolverConfig = DEFAULT_SOLVER,
) -> float:
    """Monthly quantity at which net profit reaches `target_profit` (defaults to params.target_profit)."""
    target = params.target_profit if target_profit is None else float(target_profit)
    cm = unit_contribution_margin(params, constants)
    if cm <= 0:
        return UNREACHABLE
    fixed = build_statement(replace(params, quantity=0.0), constants).fixed_expense_total
    return _bisect_quantity(params, target, 2.0 * (fixed + target) / cm, constants, solver)


def solve_target_price(
    params: ScenarioParameters,
    target_profit: Optional[float] = None,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> float:
    """VAT-inclusive unit price that yields `target_profit` at the current quantity.

    Solves net_price * ((1 - commission) * (1 - returns) - withholding)
        = cost + shipping + platform fee + fixed/q + target EBIT/q
    where the target EBIT is grossed up for income tax when the target is positive.
    """
    target = params.target_profit if target_profit is None else float(target_profit)
    q = params.quantity
    if q <= 0:
        return UNREACHABLE

    tax_fraction = params.income_tax_rate / 100.0
    if target > 0:
        if tax_fraction >= 1.0:
            return UNREACHABLE
        target_ebit = target / (1.0 - tax_fraction)
    else:
        target_ebit = target

    base = build_statement(params, constants)
    commission = effective_commission_rate(params.commission_rate, constants)
    denominator = (1.0 - commission) * (1.0 - params.return_rate / 100.0) - constants.withholding_rate / 100.0
    if denominator <= 0:
        return UNREACHABLE

    per_unit = (
        base.unit_cost_net
        + base.unit_shipping
        + base.unit_platform_fee
        + base.fixed_expense_total / q
        + target_ebit / q
    )
    price_net = per_unit / denominator
    if price_net <= 0:
        return UNREACHABLE
    return gross_from_net(price_net, params.vat_rate)
