from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from receipt_engine.money import normalize, normalize_quantity, normalize_rate
from receipt_engine.normalization import normalize_date

_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)


def _field_value(data: dict[str, Any], name: str) -> Any:
    if name in data:
        return data[name]
    return data.get(to_camel(name))


class LineItem(BaseModel):
    model_config = _MODEL_CONFIG

    description: str = ""
    quantity: float = Field(default=1.0, gt=0)
    unit_price: float = Field(default=0.0, ge=0)
    total_price: float = Field(default=0.0, ge=0)
    vat_rate: float = Field(default=0.0, ge=0)
    category: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _coerce_amounts(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        quantity = normalize_quantity(_field_value(data, "quantity"))
        unit_price = normalize(_field_value(data, "unit_price"), 0.0)
        total_price = normalize(_field_value(data, "total_price"), 0.0)
        if unit_price <= 0 and total_price > 0:
            unit_price = total_price / quantity
        elif total_price <= 0 and unit_price > 0:
            total_price = unit_price * quantity
        description = _field_value(data, "description")
        category = _field_value(data, "category")
        if category is not None:
            category = str(category).strip() or None
        return {
            "description": "" if description is None else str(description).strip(),
            "quantity": quantity,
            "unit_price": unit_price,
            "total_price": total_price,
            "vat_rate": normalize_rate(_field_value(data, "vat_rate")),
            "category": category,
        }


class TaxBreakdownEntry(BaseModel):
    model_config = _MODEL_CONFIG

    rate: float = Field(default=0.0, ge=0)
    base: float = Field(default=0.0, ge=0)
    amount: float = Field(default=0.0, ge=0)

    @field_validator("rate", "base", "amount", mode="before")
    @classmethod
    def _non_negative(cls, value: Any) -> float:
        return normalize(value, 0.0)


class ReceiptRecord(BaseModel):
    model_config = _MODEL_CONFIG

    merchant_name: str = ""
    merchant_address: str = ""
    tax_number: str = ""
    tax_office: str = ""
    sicil_number: str = ""
    date: str = ""
    time: str = ""
    invoice_number: str = ""
    z_number: str = ""
    eku_number: str = ""
    cashier: str = ""
    items: list[LineItem] = Field(default_factory=list)
    subtotal: float = Field(default=0.0, ge=0)
    tax: float = Field(default=0.0, ge=0)
    total: float = Field(default=0.0, ge=0)
    tax_breakdown: list[TaxBreakdownEntry] = Field(default_factory=list)
    total_in_words: str = ""
    currency: str = "₺"
    payment_method: str = ""

    @field_validator(
        "merchant_name",
        "merchant_address",
        "tax_number",
        "tax_office",
        "sicil_number",
        "time",
        "invoice_number",
        "z_number",
        "eku_number",
        "cashier",
        "total_in_words",
        "payment_method",
        mode="before",
    )
    @classmethod
    def _blank_strings(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("date", mode="before")
    @classmethod
    def _iso_date(cls, value: Any) -> str:
        if value is None:
            return ""
        text = str(value).strip()
        return normalize_date(text) or text

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, value: Any) -> str:
        text = "" if value is None else str(value).strip()
        return text or "₺"

    @field_validator("subtotal", "tax", "total", mode="before")
    @classmethod
    def _amounts(cls, value: Any) -> float:
        return normalize(value, 0.0)

    @field_validator("items", "tax_breakdown", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [entry for entry in value if isinstance(entry, (dict, BaseModel))]
        return value

    def with_financials(
        self,
        *,
        subtotal: float,
        tax: float,
        total: float,
        tax_breakdown: list[TaxBreakdownEntry],
    ) -> "ReceiptRecord":
        """Return a copy carrying the given totals; the receiver is left untouched."""
        return self.model_copy(
            update={
                "subtotal": subtotal,
                "tax": tax,
                "total": total,
                "tax_breakdown": list(tax_breakdown),
            }
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
