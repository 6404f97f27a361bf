from __future__ import annotations
import math
import re
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping


@dataclass(frozen=True)
class FixedExpenses:
    # Monthly amounts. Staff carries no VAT; the rest are VAT-inclusive at the expense rate.
    staff: float = 0.0
    warehouse: float = 0.0
    accounting: float = 0.0
    marketing: float = 0.0
    other: float = 0.0

    def apportion(self, share: float) -> "FixedExpenses":
        return FixedExpenses(
            staff=self.staff * share,
            warehouse=self.warehouse * share,
            accounting=self.accounting * share,
            marketing=self.marketing * share,
            other=self.other * share,
        )


@dataclass(frozen=True)
class VariableExpenses:
    shipping_cost: float = 0.0     # per unit, VAT-inclusive
    commission_rate: float = 0.0   # percent, VAT-inclusive convention
    return_rate: float = 0.0       # percent of units
    income_tax_rate: float = 0.0   # percent of positive EBIT


@dataclass(frozen=True)
class ScenarioParameters:
    # Volume and unit prices (VAT-inclusive)
    quantity: float
    unit_price: float
    unit_cost: float
    shipping_cost: float

    # Rates, all in percent
    commission_rate: float
    vat_rate: float
    return_rate: float
    income_tax_rate: float

    # Monthly fixed expenses
    staff_cost: float
    warehouse_cost: float
    accounting_cost: float
    marketing_cost: float
    other_cost: float

    target_profit: float

    @property
    def fixed_expenses(self) -> FixedExpenses:
        return FixedExpenses(
            staff=self.staff_cost,
            warehouse=self.warehouse_cost,
            accounting=self.accounting_cost,
            marketing=self.marketing_cost,
            other=self.other_cost,
        )

    @property
    def variable_expenses(self) -> VariableExpenses:
        return VariableExpenses(
            shipping_cost=self.shipping_cost,
            commission_rate=self.commission_rate,
            return_rate=self.return_rate,
            income_tax_rate=self.income_tax_rate,
        )

    def with_overrides(self, **overrides: float) -> "ScenarioParameters":
        return replace(self, **{k: float(v) for k, v in overrides.items()})


DEFAULT_PARAMETERS = ScenarioParameters(
    quantity=500.0,
    unit_price=999.99,
    unit_cost=312.98,
    shipping_cost=85.44,
    commission_rate=21.0,
    vat_rate=20.0,
    return_rate=8.0,
    income_tax_rate=25.0,
    staff_cost=17082.0,
    warehouse_cost=5000.0,
    accounting_cost=4800.0,
    marketing_cost=10000.0,
    other_cost=2000.0,
    target_profit=50000.0,
)

# Second column of the comparison screen starts slightly ahead of the defaults.
COMPARISON_ALTERNATIVE = replace(DEFAULT_PARAMETERS, quantity=600.0, unit_price=1049.99)

PARAMETER_NAMES = tuple(f.name for f in fields(ScenarioParameters))


def _snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def parameters_from_mapping(
    data: Mapping[str, Any], base: ScenarioParameters = DEFAULT_PARAMETERS
) -> ScenarioParameters:
    """Build parameters from a loose mapping (JSON payload, CLI pairs).

    - Accepts snake_case or camelCase keys (``unitPrice`` -> ``unit_price``)
    - Missing keys fall back to `base`; unknown keys are ignored
    - Non-numeric or non-finite values raise ValueError naming the field
    """
    overrides: dict[str, float] = {}
    for key, value in data.items():
        name = _snake(str(key))
        if name not in PARAMETER_NAMES:
            continue
        if isinstance(value, bool):
            raise ValueError(f"{name} must be numeric")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"{name} must be numeric") from None
        if not math.isfinite(number):
            raise ValueError(f"{name} must be numeric")
        overrides[name] = number
    return replace(base, **overrides)


def plausibility_warnings(p: ScenarioParameters) -> list[str]:
    """Business-sanity notes for reports. The engine computes regardless."""
    warnings: list[str] = []
    if p.quantity < 0:
        warnings.append("quantity is negative")
    if p.unit_price < p.unit_cost:
        warnings.append("unit price is below unit cost")
    for name in ("commission_rate", "vat_rate", "return_rate", "income_tax_rate"):
        value = getattr(p, name)
        if not (0.0 <= value <= 100.0):
            warnings.append(f"{name} outside 0..100%")
    if p.return_rate >= 50.0:
        warnings.append("return rate of 50% or more")
    return warnings
