from __future__ import annotations
from dataclasses import asdict, fields
from typing import List, Dict, Any, Iterable
import csv
import io

from kdvsim.bulk.aggregate import BulkResult
from kdvsim.engine.statement import PnLResult
from kdvsim.scenarios.comparison import MetricDiff
from kdvsim.scenarios.sensitivity import SensitivityPoint

# CSV schemas
SCHEMAS = {
    "pnl": [f.name for f in fields(PnLResult)],
    "sensitivity": ["deviation_percent", "label", "net_profit"],
    "comparison": ["key", "label", "first", "second", "diff"],
    "bulk_results": [
        "name", "total_cost", "total_quantity", "total_revenue_inclusive", "vat_rate",
        "quantity_share", "net_revenue", "total_expenses", "income_tax", "net_profit", "profit_margin",
    ],
    "bulk_template": [
        "Product Name", "Total Cost", "Total Sales Quantity", "Total Sales Revenue", "VAT Rate (%)",
    ],
}

# Example rows shipped with the downloadable template.
TEMPLATE_EXAMPLES = [
    ["Example Product 1", 1000, 100, 15000, 18],
    ["Example Product 2", 500, 50, 8000, 18],
]


def write_csv(rows: Iterable[Dict[str, Any]], columns: List[str]) -> str:
    buf = io.StringIO()
    w = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore")
    w.writeheader()
    for r in rows:
        w.writerow({k: r.get(k) for k in columns})
    return buf.getvalue()


def write_pnl(results: Iterable[PnLResult]) -> str:
    return write_csv((asdict(r) for r in results), SCHEMAS["pnl"])


def write_sensitivity(points: Iterable[SensitivityPoint]) -> str:
    return write_csv(
        ({"deviation_percent": p.deviation_percent, "label": p.label, "net_profit": p.net_profit} for p in points),
        SCHEMAS["sensitivity"],
    )


def write_comparison(diffs: Iterable[MetricDiff]) -> str:
    return write_csv(
        ({"key": d.key, "label": d.label, "first": d.first, "second": d.second, "diff": d.diff} for d in diffs),
        SCHEMAS["comparison"],
    )


def write_bulk_results(result: BulkResult) -> str:
    rows = []
    for r in result.rows:
        rows.append({
            **asdict(r.product),
            "quantity_share": r.quantity_share,
            "net_revenue": r.statement.net_revenue,
            "total_expenses": r.total_expenses,
            "income_tax": r.statement.income_tax,
            "net_profit": r.statement.net_profit,
            "profit_margin": r.profit_margin,
        })
    return write_csv(rows, SCHEMAS["bulk_results"])


def write_bulk_template() -> str:
    buf = io.StringIO()
    w = csv.writer(buf)
    w.writerow(SCHEMAS["bulk_template"])
    w.writerows(TEMPLATE_EXAMPLES)
    return buf.getvalue()
