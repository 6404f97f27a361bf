from __future__ import annotations
import csv
import io
import logging
from typing import Any, Iterable, List, Sequence

from kdvsim.bulk.aggregate import ProductRow

logger = logging.getLogger(__name__)

# Column order of the bulk sheet; the first row is a header.
COLUMNS = ("name", "total_cost", "total_quantity", "total_revenue_inclusive", "vat_rate")
DEFAULT_VAT_RATE = 18.0


def _number(value: Any, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        out = float(str(value).strip())
    except ValueError:
        return default
    return out if out == out else default  # NaN


def decode_row(row: Sequence[Any]) -> ProductRow | None:
    """One sheet row -> ProductRow, or None when the name cell is blank."""
    cells = list(row) + [None] * (len(COLUMNS) - len(row))
    name = "" if cells[0] is None else str(cells[0]).strip()
    if not name:
        return None
    return ProductRow(
        name=name,
        total_cost=_number(cells[1], 0.0),
        total_quantity=_number(cells[2], 0.0),
        total_revenue_inclusive=_number(cells[3], 0.0),
        vat_rate=_number(cells[4], DEFAULT_VAT_RATE),
    )


def decode_rows(rows: Iterable[Sequence[Any]]) -> List[ProductRow]:
    """Decode already-parsed sheet rows (header first).

    Non-numeric cells fall back to 0, except VAT rate which falls back to 18.
    Rows with a blank name are skipped.
    """
    products: List[ProductRow] = []
    skipped = 0
    for i, row in enumerate(rows):
        if i == 0:
            continue
        if isinstance(row, (str, bytes)) or not isinstance(row, Sequence):
            skipped += 1
            continue
        product = decode_row(row)
        if product is None:
            skipped += 1
            continue
        products.append(product)
    if skipped:
        logger.info("bulk import skipped %d row(s)", skipped)
    return products


def load_products_csv(text: str) -> List[ProductRow]:
    try:
        rows = list(csv.reader(io.StringIO(text)))
    except csv.Error as e:
        raise ValueError(f"invalid CSV: {e}") from e
    return decode_rows(rows)
