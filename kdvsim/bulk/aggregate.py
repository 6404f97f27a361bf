from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import List, Sequence

from kdvsim.config.env import DEFAULT_CONSTANTS, EngineConstants
from kdvsim.engine.parameters import FixedExpenses, VariableExpenses
from kdvsim.engine.statement import PnLResult, safe_div, statement_from_totals
from kdvsim.vat.decompose import VatSplit, decompose_inclusive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductRow:
    # Period totals for one product, not per-unit figures.
    name: str
    total_cost: float
    total_quantity: float
    total_revenue_inclusive: float
    vat_rate: float = 18.0


@dataclass(frozen=True)
class BulkRowResult:
    product: ProductRow
    quantity_share: float
    statement: PnLResult

    @property
    def total_expenses(self) -> float:
        s = self.statement
        return s.cogs + s.operating_expenses + s.income_tax

    @property
    def profit_margin(self) -> float:
        return safe_div(self.statement.net_profit, self.statement.net_revenue)


@dataclass(frozen=True)
class BulkResult:
    rows: List[BulkRowResult]
    aggregate: PnLResult

    @property
    def rows_net_profit(self) -> float:
        """Sum of per-product net profits. Differs from aggregate.net_profit when
        some products are loss-making, because tax is thresholded per statement."""
        return sum(r.statement.net_profit for r in self.rows)

    @property
    def total_quantity(self) -> float:
        return sum(r.product.total_quantity for r in self.rows)


def _cost_split(row: ProductRow, cost_includes_vat: bool) -> VatSplit:
    if cost_includes_vat:
        return decompose_inclusive(row.total_cost, row.vat_rate)
    return VatSplit(float(row.total_cost), 0.0)


def compute_bulk_results(
    products: Sequence[ProductRow],
    variable_expenses: VariableExpenses,
    fixed_expenses: FixedExpenses,
    cost_includes_vat: bool = False,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> BulkResult:
    """Per-product and aggregate statements for a product list.

    - Revenue is decomposed at each row's own VAT rate
    - total_cost is taken as net of VAT unless cost_includes_vat is set, in
      which case it is decomposed at the row's VAT rate
    - Shared fixed expenses are apportioned by quantity share
    - The aggregate is one statement over summed totals with unapportioned
      fixed expenses; it is not the sum of the rows
    """
    total_quantity = sum(float(p.total_quantity) for p in products)

    rows: List[BulkRowResult] = []
    sales_net = sales_vat = cost_net = cost_vat = 0.0
    for p in products:
        sales = decompose_inclusive(p.total_revenue_inclusive, p.vat_rate)
        cost = _cost_split(p, cost_includes_vat)
        share = safe_div(p.total_quantity, total_quantity)
        statement = statement_from_totals(
            p.total_quantity, sales, cost, variable_expenses, fixed_expenses.apportion(share), constants
        )
        rows.append(BulkRowResult(product=p, quantity_share=share, statement=statement))
        sales_net += sales.net
        sales_vat += sales.vat
        cost_net += cost.net
        cost_vat += cost.vat

    aggregate = statement_from_totals(
        total_quantity,
        VatSplit(sales_net, sales_vat),
        VatSplit(cost_net, cost_vat),
        variable_expenses,
        fixed_expenses,
        constants,
    )
    logger.debug("bulk run over %d products, %.0f units", len(rows), total_quantity)
    return BulkResult(rows=rows, aggregate=aggregate)
