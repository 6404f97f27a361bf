import math
import unittest
from dataclasses import asdict, fields

from kdvsim.config.env import DEFAULT_CONSTANTS, EngineConstants
from kdvsim.engine.checks import statement_checks
from kdvsim.engine.parameters import (
    DEFAULT_PARAMETERS,
    parameters_from_mapping,
    plausibility_warnings,
)
from kdvsim.engine.pnl import compute_pnl
from kdvsim.engine.statement import PnLResult, build_statement

UNIT_FIELDS = [f.name for f in fields(PnLResult) if f.name.startswith("unit_")] + ["contribution_margin"]


class TestDefaultScenario(unittest.TestCase):
    def setUp(self):
        self.r = compute_pnl(DEFAULT_PARAMETERS)

    def test_revenue_chain(self):
        self.assertAlmostEqual(self.r.gross_revenue, 416662.5, places=6)
        self.assertAlmostEqual(self.r.return_units, 40.0)
        self.assertAlmostEqual(self.r.return_amount, 33333.0, places=6)
        self.assertAlmostEqual(self.r.net_revenue, 383329.5, places=6)
        self.assertAlmostEqual(self.r.cogs, 130408.333333, places=4)

    def test_expense_chain(self):
        self.assertAlmostEqual(self.r.commission_amount, 67082.6625, places=4)
        self.assertAlmostEqual(self.r.shipping_amount, 35600.0, places=6)
        self.assertAlmostEqual(self.r.platform_fee_amount, 4245.833333, places=4)
        self.assertAlmostEqual(self.r.withholding_amount, 4166.625, places=6)
        self.assertAlmostEqual(self.r.fixed_expense_total, 35248.666667, places=4)
        self.assertAlmostEqual(self.r.operating_expenses, 146343.7875, places=4)

    def test_pinned_profit(self):
        self.assertAlmostEqual(self.r.ebit, 106577.379167, places=4)
        self.assertAlmostEqual(self.r.income_tax, 26644.344792, places=4)
        self.assertAlmostEqual(self.r.net_profit, 79933.034375, places=4)

    def test_vat_ledger(self):
        self.assertAlmostEqual(self.r.output_vat, 76665.9, places=4)
        self.assertAlmostEqual(self.r.commission_vat, 13416.5325, places=4)
        self.assertAlmostEqual(self.r.fixed_expense_vat, 3633.333333, places=4)
        self.assertAlmostEqual(self.r.input_vat, 51100.699167, places=4)
        self.assertAlmostEqual(self.r.vat_payable, 25565.200833, places=4)
        self.assertEqual(self.r.vat_carried_forward, 0.0)

    def test_unit_economics(self):
        self.assertAlmostEqual(self.r.unit_price_net, 833.325, places=6)
        self.assertAlmostEqual(self.r.unit_commission, 134.165325, places=6)
        self.assertAlmostEqual(self.r.contribution_margin, 350.318092, places=5)
        self.assertAlmostEqual(self.r.unit_net_profit, self.r.net_profit / 500, places=6)
        self.assertAlmostEqual(self.r.net_margin, self.r.net_profit / self.r.net_revenue)

    def test_identities(self):
        checks = statement_checks(self.r)
        self.assertTrue(all(checks.values()), checks)

    def test_deterministic_and_structural_equality(self):
        self.assertEqual(compute_pnl(DEFAULT_PARAMETERS), self.r)


class TestEngineEdges(unittest.TestCase):
    def test_zero_quantity(self):
        r = compute_pnl(DEFAULT_PARAMETERS.with_overrides(quantity=0))
        self.assertEqual(r.gross_revenue, 0.0)
        self.assertAlmostEqual(r.net_profit, -r.fixed_expense_total)
        self.assertEqual(r.income_tax, 0.0)
        for name in UNIT_FIELDS:
            self.assertEqual(getattr(r, name), 0.0, name)
        for name, value in asdict(r).items():
            self.assertTrue(math.isfinite(value), name)
        self.assertEqual(r.net_margin, 0.0)
        self.assertEqual(r.target_unit_price, 0.0)
        self.assertGreater(r.vat_carried_forward, 0.0)

    def test_monotonic_in_quantity(self):
        previous = None
        for q in range(0, 1001, 25):
            profit = build_statement(DEFAULT_PARAMETERS.with_overrides(quantity=q)).net_profit
            if previous is not None:
                self.assertGreaterEqual(profit, previous)
            previous = profit

    def test_loss_is_not_taxed(self):
        r = compute_pnl(DEFAULT_PARAMETERS.with_overrides(quantity=50))
        self.assertLess(r.ebit, 0)
        self.assertEqual(r.income_tax, 0.0)
        self.assertEqual(r.net_profit, r.ebit)

    def test_vat_ledger_exclusive(self):
        cases = [
            DEFAULT_PARAMETERS,
            DEFAULT_PARAMETERS.with_overrides(unit_price=150.0),
            DEFAULT_PARAMETERS.with_overrides(quantity=0),
            DEFAULT_PARAMETERS.with_overrides(vat_rate=1.0),
        ]
        for p in cases:
            r = compute_pnl(p)
            nonzero = [v for v in (r.vat_payable, r.vat_carried_forward) if v != 0]
            self.assertEqual(len(nonzero), 1, p)
        low = compute_pnl(cases[1])
        self.assertEqual(low.vat_payable, 0.0)
        self.assertGreater(low.vat_carried_forward, 0.0)

    def test_commission_rate_is_vat_inclusive(self):
        r = build_statement(DEFAULT_PARAMETERS.with_overrides(commission_rate=12.0))
        self.assertAlmostEqual(r.commission_amount, r.net_revenue * 0.10, places=6)
        self.assertAlmostEqual(r.commission_vat, r.commission_amount * 0.20, places=6)

    def test_fixed_costs_use_expense_rate_not_sales_rate(self):
        a = build_statement(DEFAULT_PARAMETERS)
        b = build_statement(DEFAULT_PARAMETERS.with_overrides(vat_rate=10.0))
        self.assertAlmostEqual(a.fixed_expense_total, b.fixed_expense_total)
        self.assertAlmostEqual(a.shipping_amount, b.shipping_amount)

    def test_staff_cost_has_no_vat(self):
        a = build_statement(DEFAULT_PARAMETERS)
        b = build_statement(DEFAULT_PARAMETERS.with_overrides(staff_cost=30000.0))
        self.assertAlmostEqual(a.input_vat, b.input_vat)
        self.assertAlmostEqual(b.fixed_expense_total - a.fixed_expense_total, 30000.0 - 17082.0)

    def test_minus_hundred_rates_are_well_defined(self):
        cases = [
            (DEFAULT_PARAMETERS.with_overrides(vat_rate=-100), DEFAULT_CONSTANTS),
            (DEFAULT_PARAMETERS, EngineConstants(expense_vat_rate=-100.0)),
        ]
        for params, constants in cases:
            r = compute_pnl(params, constants)
            for name, value in asdict(r).items():
                self.assertTrue(math.isfinite(value), name)
        r = compute_pnl(DEFAULT_PARAMETERS.with_overrides(vat_rate=-100))
        self.assertAlmostEqual(r.unit_price_net, 999.99)
        self.assertEqual(r.output_vat, 0.0)

    def test_checks_hold_for_loss_scenario(self):
        r = compute_pnl(DEFAULT_PARAMETERS.with_overrides(unit_price=200.0))
        self.assertTrue(all(statement_checks(r).values()))


class TestParameters(unittest.TestCase):
    def test_from_mapping_accepts_camel_case(self):
        p = parameters_from_mapping({"unitPrice": "899.9", "quantity": 750, "unknown": 1})
        self.assertEqual(p.unit_price, 899.9)
        self.assertEqual(p.quantity, 750.0)
        self.assertEqual(p.unit_cost, DEFAULT_PARAMETERS.unit_cost)

    def test_from_mapping_rejects_non_numeric(self):
        with self.assertRaises(ValueError):
            parameters_from_mapping({"vat_rate": "twenty"})
        with self.assertRaises(ValueError):
            parameters_from_mapping({"quantity": True})
        for bad in ("nan", "inf", float("-inf")):
            with self.assertRaises(ValueError):
                parameters_from_mapping({"unit_price": bad})

    def test_plausibility_warnings(self):
        self.assertEqual(plausibility_warnings(DEFAULT_PARAMETERS), [])
        w = plausibility_warnings(DEFAULT_PARAMETERS.with_overrides(unit_price=100.0, return_rate=120.0))
        self.assertIn("unit price is below unit cost", w)
        self.assertIn("return_rate outside 0..100%", w)


if __name__ == "__main__":
    unittest.main()
