from __future__ import annotations
import math
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple

from kdvsim.config.env import DEFAULT_CONSTANTS, EngineConstants
from kdvsim.engine.parameters import PARAMETER_NAMES, ScenarioParameters
from kdvsim.engine.statement import build_statement

# Variables offered on the sensitivity screen, with display labels.
SENSITIVITY_VARIABLES: Dict[str, str] = {
    "unit_price": "Unit sale price",
    "quantity": "Monthly quantity",
    "unit_cost": "Unit cost",
    "shipping_cost": "Average shipping",
    "commission_rate": "Commission (%)",
    "staff_cost": "Staff",
    "marketing_cost": "Marketing",
}

REVENUE_VARIABLES = frozenset({"unit_price", "quantity"})
COST_VARIABLES = frozenset({
    "unit_cost", "shipping_cost", "commission_rate", "return_rate", "income_tax_rate",
    "staff_cost", "warehouse_cost", "accounting_cost", "marketing_cost", "other_cost",
})


@dataclass(frozen=True)
class SensitivityPoint:
    deviation_percent: float
    net_profit: float

    @property
    def label(self) -> str:
        return f"{self.deviation_percent:g}%"


@dataclass(frozen=True)
class SensitivitySummary:
    variable: str
    impact: str  # 'revenue' | 'cost'
    baseline: float
    best: SensitivityPoint
    worst: SensitivityPoint

    @property
    def best_difference(self) -> float:
        return self.best.net_profit - self.baseline

    @property
    def worst_difference(self) -> float:
        return self.worst.net_profit - self.baseline


def _check_variable(name: str) -> None:
    if name not in PARAMETER_NAMES:
        raise ValueError(f"unknown parameter '{name}'")


def perturb(base: ScenarioParameters, variable: str, percent: float) -> ScenarioParameters:
    _check_variable(variable)
    return replace(base, **{variable: getattr(base, variable) * (1.0 + percent / 100.0)})


def percent_steps(start: float, end: float, step: float) -> List[float]:
    """Ascending percents from start to end inclusive, computed by index to avoid drift."""
    if step <= 0:
        raise ValueError("step must be positive")
    if end < start:
        return []
    count = int(math.floor((end - start) / step + 1e-9)) + 1
    return [start + i * step for i in range(count)]


def run_sensitivity(
    base: ScenarioParameters,
    variable: str,
    start: float = -20.0,
    end: float = 20.0,
    step: float = 5.0,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> List[SensitivityPoint]:
    """Net profit for `variable` scaled by each percent in [start, end]."""
    _check_variable(variable)
    return [
        SensitivityPoint(deviation_percent=pct, net_profit=build_statement(perturb(base, variable, pct), constants).net_profit)
        for pct in percent_steps(start, end, step)
    ]


def run_multi_variable_scenario(
    base: ScenarioParameters,
    perturbations: Iterable[Tuple[str, float]],
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> float:
    """Net profit delta versus `base` with every perturbation applied at once.

    Each perturbation scales the base value of its field, so order does not
    matter across distinct fields. A repeated field keeps the last percent;
    callers should not repeat names.
    """
    overrides: Dict[str, float] = {}
    for name, pct in perturbations:
        _check_variable(name)
        overrides[name] = getattr(base, name) * (1.0 + float(pct) / 100.0)
    baseline = build_statement(base, constants).net_profit
    return build_statement(replace(base, **overrides), constants).net_profit - baseline


def summarize_sensitivity(points: List[SensitivityPoint], variable: str) -> Optional[SensitivitySummary]:
    """Best and worst ends of a sweep relative to the 0% point.

    Revenue variables improve upward, cost variables downward. Returns None
    for an empty sweep or a variable in neither group.
    """
    if not points:
        return None
    if variable in REVENUE_VARIABLES:
        impact, best, worst = "revenue", points[-1], points[0]
    elif variable in COST_VARIABLES:
        impact, best, worst = "cost", points[0], points[-1]
    else:
        return None
    baseline = next((p.net_profit for p in points if p.deviation_percent == 0), 0.0)
    return SensitivitySummary(variable=variable, impact=impact, baseline=baseline, best=best, worst=worst)
