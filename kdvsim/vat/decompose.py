from __future__ import annotations
from typing import NamedTuple


class VatSplit(NamedTuple):
    net: float
    vat: float


def decompose_inclusive(amount: float, rate: float) -> VatSplit:
    """Split a VAT-inclusive amount into (net, vat) at `rate` percent.

    Zero rate, a rate of -100 or zero amount returns the amount untouched
    with no VAT. Negative amounts are decomposed algebraically; rejecting
    them is the caller's job.
    """
    divisor = 1.0 + rate / 100.0
    if rate == 0 or amount == 0 or divisor == 0:
        return VatSplit(float(amount), 0.0)
    net = amount / divisor
    return VatSplit(net, amount - net)


def gross_from_net(net: float, rate: float) -> float:
    """VAT-inclusive amount for a net amount at `rate` percent."""
    return float(net * (1.0 + rate / 100.0))
