from __future__ import annotations

import re

from receipt_engine.money import parse_amount
from receipt_engine.normalization import normalize_date, suggest_category
from schemas.receipt_schema import LineItem, ReceiptRecord

DEFAULT_ITEM_VAT_RATE = 20.0
ASSUMED_TAX_RATE = 0.18
PLACEHOLDER_DESCRIPTION = "Ürün Bulunamadı"

TOTAL_PATTERN = re.compile(
    r"(?:TOPLAM|TOTAL|TUTAR|AMOUNT)[\s:*]*(?P<amount>\d[\d,.]*)\s*(?P<currency>[$€₺]?)",
    re.IGNORECASE,
)
DATE_PATTERN = re.compile(r"\b(\d{4}[./-]\d{2}[./-]\d{2}|\d{2}[./-]\d{2}[./-]\d{2,4})\b")
PRICE_LINE_PATTERN = re.compile(
    r"^(?P<desc>.+?)\s+\*?(?P<price>\d{1,3}(?:[.,]\d{3})+(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?)"
    r"\s*(?P<currency>[$€₺]|TL)?$",
    re.IGNORECASE,
)
SUMMARY_ROW_PATTERN = re.compile(
    r"toplam|kdv|total|tutar|matrah|\b(?:nakit|kredi kart\w*|para üstü|tarih|tel|fi[sş] no|eku|z no)\b",
    re.IGNORECASE,
)
# "2 Adet *35,50" style quantity / unit price columns left between description and line total.
_TRAILING_COLUMNS = re.compile(
    r"(?:\s+(?:x\s*)?\*?\d[\d.,]*(?:\s+(?:adet|ad|kg|gr|lt)\b\.?)?)+$",
    re.IGNORECASE,
)
_HEADING_MARKUP = re.compile(r"^[#*]+\s*")


def _clean_table_row(line: str) -> str:
    row = re.sub(r"^\|\s*", "", line.strip())
    row = re.sub(r"\s*\|$", "", row)
    return re.sub(r"\s*\|\s*", " ", row)


def _clean_description(raw: str) -> str:
    description = raw.strip().strip("*").strip()
    stripped = _TRAILING_COLUMNS.sub("", description).strip()
    return stripped or description


def _find_total(text: str) -> float:
    match = TOTAL_PATTERN.search(text)
    if not match:
        return 0.0
    return parse_amount(match.group("amount")) or 0.0


def _find_date(text: str) -> str:
    match = DATE_PATTERN.search(text)
    if not match:
        return ""
    raw = match.group(0)
    return normalize_date(raw) or raw


def _extract_items(lines: list[str], vat_rate: float) -> list[LineItem]:
    items: list[LineItem] = []
    for line in lines[1:-3]:
        match = PRICE_LINE_PATTERN.match(_clean_table_row(line))
        if not match:
            continue
        description = _clean_description(match.group("desc"))
        if SUMMARY_ROW_PATTERN.search(description):
            continue
        price = parse_amount(match.group("price"))
        if price is None or price <= 0:
            continue
        items.append(
            LineItem(
                description=description,
                quantity=1,
                unit_price=price,
                total_price=price,
                vat_rate=vat_rate,
                category=suggest_category(description).category,
            )
        )
    return items


def extract_fallback(
    markdown_text: str,
    *,
    default_vat_rate: float = DEFAULT_ITEM_VAT_RATE,
    assumed_tax_rate: float = ASSUMED_TAX_RATE,
) -> ReceiptRecord:
    """Best-effort receipt extraction from OCR markdown using regular expressions only.

    Item VAT rates are not recoverable this way, so subtotal and tax are a flat
    ``assumed_tax_rate`` share of the total rather than a per-item decomposition.
    """
    lines = [line for line in markdown_text.splitlines() if line.strip()]
    merchant_name = _HEADING_MARKUP.sub("", lines[0].strip()).rstrip("*").strip() if lines else ""

    detected_total = _find_total(markdown_text)
    items = _extract_items(lines, default_vat_rate)

    total = detected_total if detected_total > 0 else sum(item.total_price for item in items)
    if not items:
        items = [
            LineItem(
                description=PLACEHOLDER_DESCRIPTION,
                quantity=1,
                unit_price=total,
                total_price=total,
                vat_rate=default_vat_rate,
            )
        ]
    tax = total * assumed_tax_rate

    return ReceiptRecord(
        merchant_name=merchant_name,
        date=_find_date(markdown_text),
        items=items,
        subtotal=total - tax,
        tax=tax,
        total=total,
        total_in_words="",
        currency="₺",
    )


class RegexReceiptExtractor:
    name = "regex"

    def __init__(
        self,
        *,
        default_vat_rate: float = DEFAULT_ITEM_VAT_RATE,
        assumed_tax_rate: float = ASSUMED_TAX_RATE,
    ) -> None:
        self._default_vat_rate = default_vat_rate
        self._assumed_tax_rate = assumed_tax_rate

    def extract(self, text: str) -> ReceiptRecord:
        return extract_fallback(
            text,
            default_vat_rate=self._default_vat_rate,
            assumed_tax_rate=self._assumed_tax_rate,
        )
