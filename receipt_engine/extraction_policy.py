from __future__ import annotations

from typing import Any

# Frequent OCR misreads on Turkish retail receipts and their corrected form.
OCR_CORRECTIONS: dict[str, str] = {
    "BUYOK MUKELLEFLER": "BÜYÜK MÜKELLEFLER",
    "BIM BIRLESIK": "BİM BİRLEŞİK",
    "MAGAZALAR": "MAĞAZALAR",
    "DOM4TES": "DOMATES",
    "MIGR0S": "MIGROS",
    "VDB": "V.D.",
    "TESEKKURLER": "TEŞEKKÜRLER",
    "KASIYER": "KASİYER",
}

COMMON_VAT_RATES: tuple[int, ...] = (1, 8, 10, 20)


def _corrections_block() -> str:
    return "\n".join(f'     - "{wrong}" -> "{right}"' for wrong, right in OCR_CORRECTIONS.items())


SYSTEM_INSTRUCTION = f"""
You parse Turkish fiscal receipts (Mali Fiş) and invoices from OCR markdown into
structured data that follows Turkish receipt conventions (VUK 507).

Rules:
1. Merchant: company title (A.Ş., Ltd. Şti.), address, "VN" (Vergi No),
   "VD" (Vergi Dairesi), ticaret sicil / Mersis number.
2. Fiscal identifiers: "Fiş No" (receipt/invoice number), "Z No",
   "EKU No" (Mali Hafıza No), "Kasiyer" (cashier).
3. VAT (KDV): identify the rate of EVERY item from context; usual rates are
   {", ".join(f"%{rate}" for rate in COMMON_VAT_RATES)}. Read the KDV / Matrah / Tutar table
   at the bottom into taxBreakdown when it is printed.
4. Items: description, quantity, unit price and total price. Drop artifacts
   such as "*" or a stray "e" next to prices.
   - If the unit price is missing but the total price exists:
     unitPrice = totalPrice / quantity.
   - If the quantity is missing, use 1.
5. Totals: when "ARA TOPLAM" (subtotal), "TOPLAM KDV" (tax) or
   "GENEL TOPLAM" (total) are missing or illegible, compute them from the
   items instead of leaving them blank. total = subtotal + tax.
6. Formatting: dates as YYYY-MM-DD, times as HH:MM, currency "₺". Use an
   empty string for absent fields. Never invent a merchant name or address
   that is not in the text.
7. Corrections: fix obvious OCR typos in item descriptions and merchant
   names, in particular:
{_corrections_block()}
8. totalInWords: write the final total as a formal Turkish phrase
   "Yalnız <lira in words> Türk Lirası <kuruş in words> Kuruş",
   e.g. 150.25 -> "Yalnız Yüz Elli Türk Lirası Yirmi Beş Kuruş".
   Omit the kuruş part when it is zero ("Yalnız On Türk Lirası").

The input is raw OCR output and may be noisy; use context to resolve errors.
""".strip()


_ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "description": {"type": "string"},
        "quantity": {"type": "number"},
        "unitPrice": {"type": "number"},
        "totalPrice": {"type": "number", "description": "VAT inclusive line total"},
        "category": {"type": "string"},
        "vatRate": {"type": "number", "description": "KDV percentage, e.g. 1, 10, 20"},
    },
}

_BREAKDOWN_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "rate": {"type": "number"},
        "base": {"type": "number", "description": "Matrah (amount excluding tax)"},
        "amount": {"type": "number", "description": "Tax amount"},
    },
}

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "merchantName": {"type": "string"},
        "merchantAddress": {"type": "string"},
        "taxNumber": {"type": "string", "description": "Vergi No (VN) or TC Kimlik No"},
        "taxOffice": {"type": "string", "description": "Vergi Dairesi (VD)"},
        "sicilNumber": {"type": "string", "description": "Ticaret Sicil No"},
        "date": {"type": "string", "description": "YYYY-MM-DD"},
        "time": {"type": "string", "description": "HH:MM"},
        "invoiceNumber": {"type": "string", "description": "Fiş No or Fatura No"},
        "zNumber": {"type": "string", "description": "Z No"},
        "ekuNumber": {"type": "string", "description": "EKU No / Mali Hafıza No"},
        "cashier": {"type": "string", "description": "Kasiyer name or id"},
        "items": {"type": "array", "items": _ITEM_SCHEMA},
        "taxBreakdown": {
            "type": "array",
            "description": "VAT rates with their base and tax amounts",
            "items": _BREAKDOWN_SCHEMA,
        },
        "subtotal": {"type": "number"},
        "tax": {"type": "number"},
        "total": {"type": "number"},
        "totalInWords": {"type": "string", "description": "Total written out, e.g. Yalnız Yüz Türk Lirası"},
        "currency": {"type": "string"},
        "paymentMethod": {"type": "string"},
    },
    "required": ["merchantName", "items", "total"],
}


def build_user_prompt(markdown_text: str) -> str:
    return f"Extract detailed Turkish fiscal receipt data from this text:\n\n{markdown_text}"
