from __future__ import annotations
from dataclasses import asdict
from typing import Dict, Any, List

from kdvsim.engine.statement import PnLResult
from kdvsim.scenarios.sensitivity import SensitivityPoint, SensitivitySummary

PNL_SECTIONS = (
    ("Revenue", ("gross_revenue", "return_amount", "net_revenue", "cogs", "gross_profit")),
    ("Operating expenses", (
        "commission_amount", "shipping_amount", "platform_fee_amount",
        "withholding_amount", "fixed_expense_total", "operating_expenses",
    )),
    ("Profit", ("ebit", "income_tax", "net_profit")),
    ("VAT", ("output_vat", "input_vat", "vat_payable", "vat_carried_forward")),
    ("Unit economics", (
        "unit_price_net", "unit_cost_net", "unit_total_cost", "contribution_margin", "unit_net_profit",
    )),
    ("Targets", ("break_even_quantity", "target_quantity", "target_unit_price")),
)


def _money(v: float) -> str:
    return f"{v:,.2f}"


def assumptions_md(assumptions: Dict[str, Any], warnings: List[str] | None = None) -> str:
    lines = ["# Assumptions", ""]
    for k, v in assumptions.items():
        lines.append(f"- {k}: {v}")
    if warnings:
        lines.append("\n## Warnings")
        for w in warnings:
            lines.append(f"- {w}")
    return "\n".join(lines) + "\n"


def pnl_md(result: PnLResult) -> str:
    values = asdict(result)
    lines = ["# Monthly P&L (net of VAT)", ""]
    for title, keys in PNL_SECTIONS:
        lines.append(f"## {title}")
        for k in keys:
            lines.append(f"- {k}: {_money(values[k])}")
        lines.append("")
    lines.append("## Margins")
    for k in ("gross_margin", "operating_margin", "net_margin"):
        lines.append(f"- {k}: {values[k] * 100:.1f}%")
    return "\n".join(lines) + "\n"


def sensitivity_md(variable: str, points: List[SensitivityPoint], summary: SensitivitySummary | None = None) -> str:
    lines = [f"# Sensitivity: {variable}", "", "| deviation | net profit |", "|---|---|"]
    for p in points:
        lines.append(f"| {p.label} | {_money(p.net_profit)} |")
    if summary:
        lines.append("\n## Summary")
        lines.append(f"- baseline: {_money(summary.baseline)}")
        lines.append(f"- best ({summary.best.label}): {_money(summary.best.net_profit)} ({summary.best_difference:+,.2f})")
        lines.append(f"- worst ({summary.worst.label}): {_money(summary.worst.net_profit)} ({summary.worst_difference:+,.2f})")
    return "\n".join(lines) + "\n"


def validation_report_md(checks: Dict[str, bool], details: Dict[str, Any] | None = None) -> str:
    lines = ["# Validation Report", ""]
    for k, ok in checks.items():
        lines.append(f"- {k}: {'PASS' if ok else 'FAIL'}")
    if details:
        lines.append("\n## Details")
        for k, v in details.items():
            lines.append(f"- {k}: {v}")
    return "\n".join(lines) + "\n"
