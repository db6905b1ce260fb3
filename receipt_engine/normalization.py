from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from receipt_engine.extraction_policy import OCR_CORRECTIONS

DEFAULT_CATEGORY = "Genel"

DEFAULT_CATEGORY_KEYWORDS = {
    "Gıda": {"süt", "ekmek", "peynir", "yoğurt", "domates", "makarna", "spagetti", "et", "tavuk", "yumurta"},
    "İçecek": {"su", "kola", "çay", "kahve", "meyve suyu", "ayran", "soda"},
    "Temizlik": {"deterjan", "çamaşır", "bulaşık", "sabun", "yumuşatıcı"},
    "Kişisel Bakım": {"şampuan", "diş macunu", "krem", "deodorant"},
    "Ambalaj": {"poşet", "torba"},
}

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y.%m.%d",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%y",
    "%d/%m/%y",
    "%d-%m-%y",
)

_CORRECTION_PATTERNS = [
    (re.compile(rf"(?<!\w){re.escape(wrong)}(?!\w)"), right)
    for wrong, right in sorted(OCR_CORRECTIONS.items(), key=lambda pair: len(pair[0]), reverse=True)
]


def normalize_date(value: str | None) -> str | None:
    if not value:
        return None
    text = str(value).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return None


def correct_ocr_terms(text: str) -> str:
    corrected = text
    for pattern, replacement in _CORRECTION_PATTERNS:
        corrected = pattern.sub(replacement, corrected)
    return corrected


@dataclass(frozen=True)
class CategorySuggestion:
    category: str
    confidence: float
    source: str


def _turkish_lower(text: str) -> str:
    return text.replace("I", "ı").replace("İ", "i").lower()


def suggest_category(description: str) -> CategorySuggestion:
    lowered = _turkish_lower(description)
    words = set(re.findall(r"\w+", lowered))
    for category, keywords in DEFAULT_CATEGORY_KEYWORDS.items():
        # Multi-word keywords match as phrases, single words only as whole words.
        if any((keyword in lowered) if " " in keyword else (keyword in words) for keyword in keywords):
            return CategorySuggestion(category=category, confidence=0.85, source="rules")
    return CategorySuggestion(category=DEFAULT_CATEGORY, confidence=0.2, source="fallback")
