from __future__ import annotations
from typing import Dict

from kdvsim.engine.statement import PnLResult


def _close(a: float, b: float, eps: float) -> bool:
    return abs(a - b) <= eps * max(1.0, abs(a), abs(b))


def statement_checks(r: PnLResult, eps: float = 1e-9) -> Dict[str, bool]:
    """Accounting identities a statement must satisfy, keyed by check name.

    Tolerance is relative to the magnitudes compared (absolute below 1.0).
    """
    expense_sum = (
        r.commission_amount
        + r.shipping_amount
        + r.platform_fee_amount
        + r.withholding_amount
        + r.fixed_expense_total
    )
    input_sum = r.cost_vat + r.commission_vat + r.shipping_vat + r.platform_fee_vat + r.fixed_expense_vat
    return {
        "net_revenue_identity": _close(r.gross_revenue - r.return_amount, r.net_revenue, eps),
        "gross_profit_identity": _close(r.net_revenue - r.cogs, r.gross_profit, eps),
        "operating_expense_sum": _close(expense_sum, r.operating_expenses, eps),
        "ebit_identity": _close(r.gross_profit - r.operating_expenses, r.ebit, eps),
        "tax_threshold": r.income_tax == 0.0 if r.ebit <= 0 else r.income_tax >= 0.0,
        "net_profit_identity": _close(r.ebit - r.income_tax, r.net_profit, eps),
        "input_vat_sum": _close(input_sum, r.input_vat, eps),
        "vat_balance": _close(r.vat_payable - r.vat_carried_forward, r.output_vat - r.input_vat, eps),
        "vat_ledger_exclusive": not (r.vat_payable > 0 and r.vat_carried_forward > 0),
    }
