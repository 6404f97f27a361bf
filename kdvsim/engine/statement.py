from __future__ import annotations
from dataclasses import dataclass

from kdvsim.config.env import DEFAULT_CONSTANTS, EngineConstants
from kdvsim.engine.parameters import FixedExpenses, ScenarioParameters, VariableExpenses
from kdvsim.vat.decompose import VatSplit, decompose_inclusive


@dataclass(frozen=True)
class PnLResult:
    # Revenue chain (net of VAT)
    gross_revenue: float
    return_units: float
    return_amount: float
    net_revenue: float

    # Cost chain
    cogs: float
    gross_profit: float

    # Operating expenses
    commission_amount: float
    shipping_amount: float
    platform_fee_amount: float
    withholding_amount: float
    fixed_expense_total: float
    operating_expenses: float

    # Profit chain
    ebit: float
    income_tax: float
    net_profit: float

    # VAT ledger
    output_vat: float
    cost_vat: float
    commission_vat: float
    shipping_vat: float
    platform_fee_vat: float
    fixed_expense_vat: float
    input_vat: float
    vat_payable: float
    vat_carried_forward: float

    # Unit economics (0 when quantity is 0)
    unit_price_net: float
    unit_cost_net: float
    unit_commission: float
    unit_shipping: float
    unit_platform_fee: float
    unit_withholding: float
    unit_fixed_share: float
    unit_total_cost: float
    contribution_margin: float
    unit_net_profit: float

    # Margins as fractions of net revenue
    gross_margin: float
    operating_margin: float
    net_margin: float

    # Solver outputs, filled by compute_pnl
    break_even_quantity: float = 0.0
    target_quantity: float = 0.0
    target_unit_price: float = 0.0


def safe_div(a: float, b: float) -> float:
    return float(a) / float(b) if b not in (0, None) else 0.0


def effective_commission_rate(commission_rate: float, constants: EngineConstants = DEFAULT_CONSTANTS) -> float:
    """Commission rates are quoted VAT-inclusive; strip the expense VAT to get the net fraction."""
    divisor = 1.0 + constants.expense_vat_rate / 100.0
    if divisor == 0:
        return commission_rate / 100.0
    return (commission_rate / 100.0) / divisor


def statement_from_totals(
    quantity: float,
    sales: VatSplit,
    cogs: VatSplit,
    variable: VariableExpenses,
    fixed: FixedExpenses,
    constants: EngineConstants = DEFAULT_CONSTANTS,
) -> PnLResult:
    """Monthly P&L and VAT ledger from period totals.

    Inputs:
    - sales: net sales and sales VAT for all units sold, before returns
    - cogs: net cost and input VAT for all units sold
    - variable: per-unit shipping (inclusive) and percent rates
    - fixed: monthly fixed expenses (already apportioned when driven per product)

    Shipping, platform fee, commission and the VAT-bearing fixed expenses are
    always decomposed at the expense VAT rate; sales and cost arrive already
    decomposed at the seller's own rate. Staff cost has no VAT.
    """
    q = float(quantity)
    expense_rate = constants.expense_vat_rate
    return_fraction = variable.return_rate / 100.0

    shipping = decompose_inclusive(variable.shipping_cost, expense_rate)
    platform_fee = decompose_inclusive(constants.platform_fee_inclusive, expense_rate)
    warehouse = decompose_inclusive(fixed.warehouse, expense_rate)
    accounting = decompose_inclusive(fixed.accounting, expense_rate)
    marketing = decompose_inclusive(fixed.marketing, expense_rate)
    other = decompose_inclusive(fixed.other, expense_rate)

    # Revenue
    gross_revenue = sales.net
    return_units = q * return_fraction
    return_amount = sales.net * return_fraction
    net_revenue = gross_revenue - return_amount
    gross_profit = net_revenue - cogs.net

    # Operating expenses; withholding is levied on sales before returns
    commission = net_revenue * effective_commission_rate(variable.commission_rate, constants)
    shipping_total = shipping.net * q
    platform_fee_total = platform_fee.net * q
    withholding = sales.net * constants.withholding_rate / 100.0
    fixed_total = fixed.staff + warehouse.net + accounting.net + marketing.net + other.net
    operating_expenses = commission + shipping_total + platform_fee_total + withholding + fixed_total

    ebit = gross_profit - operating_expenses
    income_tax = ebit * variable.income_tax_rate / 100.0 if ebit > 0 else 0.0
    net_profit = ebit - income_tax

    # VAT ledger; returned units leave the output VAT base
    output_vat = sales.vat * (1.0 - return_fraction)
    commission_vat = commission * expense_rate / 100.0
    shipping_vat = shipping.vat * q
    platform_fee_vat = platform_fee.vat * q
    fixed_vat = warehouse.vat + accounting.vat + marketing.vat + other.vat
    input_vat = cogs.vat + commission_vat + shipping_vat + platform_fee_vat + fixed_vat
    balance = output_vat - input_vat

    unit_price_net = safe_div(sales.net, q)
    unit_cost_net = safe_div(cogs.net, q)
    unit_commission = safe_div(commission, q)
    unit_shipping = safe_div(shipping_total, q)
    unit_platform_fee = safe_div(platform_fee_total, q)
    unit_withholding = safe_div(withholding, q)
    contribution_margin = unit_price_net - (
        unit_cost_net + unit_commission + unit_shipping + unit_platform_fee + unit_withholding
    )

    return PnLResult(
        gross_revenue=gross_revenue,
        return_units=return_units,
        return_amount=return_amount,
        net_revenue=net_revenue,
        cogs=cogs.net,
        gross_profit=gross_profit,
        commission_amount=commission,
        shipping_amount=shipping_total,
        platform_fee_amount=platform_fee_total,
        withholding_amount=withholding,
        fixed_expense_total=fixed_total,
        operating_expenses=operating_expenses,
        ebit=ebit,
        income_tax=income_tax,
        net_profit=net_profit,
        output_vat=output_vat,
        cost_vat=cogs.vat,
        commission_vat=commission_vat,
        shipping_vat=shipping_vat,
        platform_fee_vat=platform_fee_vat,
        fixed_expense_vat=fixed_vat,
        input_vat=input_vat,
        vat_payable=balance if balance > 0 else 0.0,
        vat_carried_forward=-balance if balance < 0 else 0.0,
        unit_price_net=unit_price_net,
        unit_cost_net=unit_cost_net,
        unit_commission=unit_commission,
        unit_shipping=unit_shipping,
        unit_platform_fee=unit_platform_fee,
        unit_withholding=unit_withholding,
        unit_fixed_share=safe_div(fixed_total, q),
        unit_total_cost=safe_div(operating_expenses + cogs.net, q),
        contribution_margin=contribution_margin,
        unit_net_profit=safe_div(net_profit, q),
        gross_margin=safe_div(gross_profit, net_revenue),
        operating_margin=safe_div(ebit, net_revenue),
        net_margin=safe_div(net_profit, net_revenue),
    )


def build_statement(params: ScenarioParameters, constants: EngineConstants = DEFAULT_CONSTANTS) -> PnLResult:
    """P&L for one scenario without solver outputs."""
    q = params.quantity
    price = decompose_inclusive(params.unit_price, params.vat_rate)
    cost = decompose_inclusive(params.unit_cost, params.vat_rate)
    return statement_from_totals(
        q,
        VatSplit(price.net * q, price.vat * q),
        VatSplit(cost.net * q, cost.vat * q),
        params.variable_expenses,
        params.fixed_expenses,
        constants,
    )
