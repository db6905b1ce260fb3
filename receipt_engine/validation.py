from __future__ import annotations

from typing import Any

from schemas.receipt_schema import ReceiptRecord


def validate_receipt_payload(payload: dict[str, Any]) -> ReceiptRecord:
    return ReceiptRecord.model_validate(payload)


def evaluate_consistency(
    record: ReceiptRecord,
    *,
    amount_tolerance: float = 0.01,
) -> list[dict[str, Any]]:
    """Report arithmetic inconsistencies of a receipt; the record itself is not changed."""
    violations: list[dict[str, Any]] = []

    if not record.items:
        violations.append(
            {
                "code": "missing_items",
                "severity": "warning",
                "message": "receipt has no line items; totals could not be recomputed",
            }
        )

    computed_total = round(record.subtotal + record.tax, 2)
    declared_total = round(record.total, 2)
    if abs(computed_total - declared_total) > amount_tolerance:
        violations.append(
            {
                "code": "amount_mismatch",
                "severity": "error",
                "message": "subtotal + tax does not match total",
                "expected_total": computed_total,
                "actual_total": declared_total,
            }
        )

    if record.tax_breakdown:
        tolerance = amount_tolerance * len(record.tax_breakdown)
        base_sum = round(sum(entry.base for entry in record.tax_breakdown), 2)
        amount_sum = round(sum(entry.amount for entry in record.tax_breakdown), 2)
        if abs(base_sum - round(record.subtotal, 2)) > tolerance:
            violations.append(
                {
                    "code": "breakdown_subtotal_mismatch",
                    "severity": "error",
                    "message": "sum(tax_breakdown.base) does not match subtotal",
                    "expected_subtotal": base_sum,
                    "actual_subtotal": round(record.subtotal, 2),
                }
            )
        if abs(amount_sum - round(record.tax, 2)) > tolerance:
            violations.append(
                {
                    "code": "breakdown_tax_mismatch",
                    "severity": "error",
                    "message": "sum(tax_breakdown.amount) does not match tax",
                    "expected_tax": amount_sum,
                    "actual_tax": round(record.tax, 2),
                }
            )

    if record.items:
        gross_sum = round(sum(item.total_price for item in record.items), 2)
        if abs(gross_sum - declared_total) > amount_tolerance:
            violations.append(
                {
                    "code": "item_total_mismatch",
                    "severity": "warning",
                    "message": "sum(items.total_price) does not match total",
                    "expected_total": gross_sum,
                    "actual_total": declared_total,
                }
            )

    return violations
