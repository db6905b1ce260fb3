from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from receipt_engine.money import normalize, normalize_rate, rate_from_key, rate_key, round_money
from receipt_engine.tax import decompose
from schemas.receipt_schema import LineItem, ReceiptRecord, TaxBreakdownEntry


@dataclass
class _RateBucket:
    base: float = 0.0
    amount: float = 0.0


@dataclass(frozen=True)
class CalculatedTotals:
    """Unrounded aggregates derived from line items alone."""

    subtotal: float
    tax: float
    total: float
    tax_breakdown: list[TaxBreakdownEntry] = field(default_factory=list)


def calculate_totals(items: Iterable[LineItem]) -> CalculatedTotals:
    subtotal = 0.0
    tax = 0.0
    total = 0.0
    buckets: dict[int, _RateBucket] = {}

    for item in items:
        gross = normalize(item.total_price, 0.0)
        rate = normalize_rate(item.vat_rate)
        split = decompose(gross, rate)

        total += gross
        tax += split.tax_amount
        subtotal += split.base_amount

        bucket = buckets.setdefault(rate_key(rate), _RateBucket())
        bucket.base += split.base_amount
        bucket.amount += split.tax_amount

    breakdown = [
        TaxBreakdownEntry(
            rate=rate_from_key(key),
            base=round_money(bucket.base),
            amount=round_money(bucket.amount),
        )
        for key, bucket in sorted(buckets.items())
    ]
    return CalculatedTotals(subtotal=subtotal, tax=tax, total=total, tax_breakdown=breakdown)


def _prefer_declared(declared: float, calculated: float) -> float:
    return declared if declared > 0 else calculated


def _rounded_breakdown(entries: list[TaxBreakdownEntry]) -> list[TaxBreakdownEntry]:
    return [
        entry.model_copy(update={"base": round_money(entry.base), "amount": round_money(entry.amount)})
        for entry in entries
    ]


def reconcile(record: ReceiptRecord) -> ReceiptRecord:
    """Recompute subtotal, tax, total and the VAT breakdown from the line items.

    Declared totals survive only when positive, and a declared breakdown only
    when non-empty; anything else is replaced by the figures computed from
    VAT-inclusive item prices. A record without items is returned unchanged.
    """
    if not record.items:
        return record

    calculated = calculate_totals(record.items)
    return record.with_financials(
        subtotal=round_money(_prefer_declared(normalize(record.subtotal, 0.0), calculated.subtotal)),
        tax=round_money(_prefer_declared(normalize(record.tax, 0.0), calculated.tax)),
        total=round_money(_prefer_declared(normalize(record.total, 0.0), calculated.total)),
        tax_breakdown=_rounded_breakdown(record.tax_breakdown) or calculated.tax_breakdown,
    )
