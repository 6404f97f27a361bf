from __future__ import annotations
from dataclasses import dataclass
from typing import List, Tuple

from kdvsim.config.env import DEFAULT_CONSTANTS, EngineConstants
from kdvsim.engine.parameters import ScenarioParameters
from kdvsim.engine.pnl import compute_pnl

COMPARISON_METRICS: Tuple[Tuple[str, str], ...] = (
    ("net_revenue", "Net sales revenue"),
    ("gross_profit", "Gross profit"),
    ("ebit", "Operating profit (EBIT)"),
    ("operating_expenses", "Total operating expenses"),
    ("vat_payable", "VAT payable"),
    ("net_profit", "Net profit"),
    ("unit_net_profit", "Net profit per unit"),
    ("contribution_margin", "Contribution margin per unit"),
    ("break_even_quantity", "Break-even quantity"),
)


@dataclass(frozen=True)
class MetricDiff:
    key: str
    label: str
    first: float
    second: float

    @property
    def diff(self) -> float:
        return self.second - self.first


def compare_scenarios(
    first: ScenarioParameters,
    second: ScenarioParameters,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> List[MetricDiff]:
    a = compute_pnl(first, constants)
    b = compute_pnl(second, constants)
    return [MetricDiff(key, label, getattr(a, key), getattr(b, key)) for key, label in COMPARISON_METRICS]
