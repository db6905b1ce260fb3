from __future__ import annotations

import pytest

from receipt_engine.reconciler import calculate_totals, reconcile
from schemas.receipt_schema import LineItem, ReceiptRecord, TaxBreakdownEntry


def _item(total: float, rate: float, description: str = "item") -> LineItem:
    return LineItem(description=description, quantity=1, unit_price=total, total_price=total, vat_rate=rate)


def _grocery_receipt(**overrides: object) -> ReceiptRecord:
    payload: dict = {
        "merchant_name": "MIGROS",
        "items": [
            _item(71.0, 1, "SÜT"),
            _item(28.9, 10, "SPAGETTI"),
            _item(60.0, 1, "DOMATES"),
            _item(0.25, 20, "POŞET"),
        ],
        "subtotal": 0,
        "tax": 0,
        "total": 0,
    }
    payload.update(overrides)
    return ReceiptRecord(**payload)


def test_zero_totals_are_replaced_by_values_computed_from_items() -> None:
    record = ReceiptRecord(items=[_item(100.0, 20)], total=0, tax=0, subtotal=0)

    reconciled = reconcile(record)

    assert reconciled.total == 100.0
    assert reconciled.tax == 16.67
    assert reconciled.subtotal == 83.33
    assert reconciled.tax_breakdown == [TaxBreakdownEntry(rate=20, base=83.33, amount=16.67)]


def test_positive_declared_totals_are_kept() -> None:
    record = _grocery_receipt(total=999.0, tax=5.0, subtotal=0)

    reconciled = reconcile(record)

    assert reconciled.total == 999.0
    assert reconciled.tax == 5.0
    assert reconciled.subtotal == pytest.approx(156.18, abs=0.01)


def test_declared_breakdown_is_kept_whole() -> None:
    declared = [TaxBreakdownEntry(rate=1, base=10.0, amount=0.1)]
    reconciled = reconcile(_grocery_receipt(tax_breakdown=declared))
    assert reconciled.tax_breakdown == declared


def test_declared_breakdown_is_rounded_to_cents() -> None:
    declared = [TaxBreakdownEntry(rate=20, base=83.33333, amount=16.66667)]
    reconciled = reconcile(_grocery_receipt(tax_breakdown=declared))
    assert reconciled.tax_breakdown == [TaxBreakdownEntry(rate=20, base=83.33, amount=16.67)]
    assert reconcile(reconciled) == reconciled


def test_breakdown_partitions_items_by_rate() -> None:
    reconciled = reconcile(_grocery_receipt())

    rates = [entry.rate for entry in reconciled.tax_breakdown]
    assert rates == [1.0, 10.0, 20.0]
    tolerance = 0.01 * len(rates)
    assert abs(sum(e.base for e in reconciled.tax_breakdown) - reconciled.subtotal) <= tolerance
    assert abs(sum(e.amount for e in reconciled.tax_breakdown) - reconciled.tax) <= tolerance
    assert reconciled.total == 160.15
    assert reconciled.total == pytest.approx(reconciled.subtotal + reconciled.tax, abs=0.01)


def test_reconcile_is_idempotent() -> None:
    once = reconcile(_grocery_receipt())
    assert reconcile(once) == once


def test_reconcile_does_not_modify_its_input() -> None:
    record = _grocery_receipt()
    reconcile(record)
    assert record.total == 0
    assert record.tax_breakdown == []


def test_record_without_items_is_returned_unchanged() -> None:
    record = ReceiptRecord(items=[], total=0, tax=0, subtotal=0)
    assert reconcile(record) is record


def test_nearly_equal_rates_share_one_breakdown_entry() -> None:
    record = ReceiptRecord(items=[_item(12.0, 20), _item(24.0, 20.0000000001)])
    reconciled = reconcile(record)
    assert len(reconciled.tax_breakdown) == 1
    assert reconciled.tax_breakdown[0].amount == 6.0


def test_malformed_item_numbers_degrade_to_zero() -> None:
    record = ReceiptRecord.model_validate(
        {
            "items": [
                {"description": "broken", "totalPrice": "abc", "vatRate": -5},
                {"description": "ok", "totalPrice": 50, "vatRate": None},
            ],
            "total": None,
        }
    )

    reconciled = reconcile(record)

    assert reconciled.total == 50.0
    assert reconciled.tax == 0.0
    assert reconciled.subtotal == 50.0
    assert reconciled.tax_breakdown == [TaxBreakdownEntry(rate=0, base=50.0, amount=0.0)]


def test_calculate_totals_keeps_full_precision() -> None:
    totals = calculate_totals([_item(100.0, 20)])
    assert totals.tax == pytest.approx(100 / 6)
    assert totals.subtotal + totals.tax == pytest.approx(100.0)
