from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from receipt_engine.money import normalize, normalize_rate


@dataclass(frozen=True)
class TaxSplit:
    tax_amount: float
    base_amount: float


def decompose(gross_price: Any, rate_percent: Any) -> TaxSplit:
    """Split a VAT-inclusive price into its tax and its base (matrah).

    Inverse of ``gross = base * (1 + rate / 100)``. A missing or negative rate
    counts as zero, in which case the whole gross is base.
    """
    gross = normalize(gross_price, 0.0)
    rate = normalize_rate(rate_percent)
    tax_amount = gross * (rate / (100 + rate))
    return TaxSplit(tax_amount=tax_amount, base_amount=gross - tax_amount)
