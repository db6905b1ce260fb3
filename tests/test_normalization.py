from __future__ import annotations

import pytest

from receipt_engine.normalization import (
    DEFAULT_CATEGORY,
    correct_ocr_terms,
    normalize_date,
    suggest_category,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024-05-22", "2024-05-22"),
        ("22.05.2024", "2024-05-22"),
        ("22/05/2024", "2024-05-22"),
        ("22-05-2024", "2024-05-22"),
        ("22.05.24", "2024-05-22"),
        (" 2024.05.22 ", "2024-05-22"),
    ],
)
def test_normalize_date_accepts_receipt_formats(raw: str, expected: str) -> None:
    assert normalize_date(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "yesterday", "31.02.2024"])
def test_normalize_date_rejects_unparseable_values(raw: str | None) -> None:
    assert normalize_date(raw) is None


def test_correct_ocr_terms_fixes_known_misreads() -> None:
    assert correct_ocr_terms("MIGR0S TICARET") == "MIGROS TICARET"
    assert correct_ocr_terms("DOM4TES 1 KG") == "DOMATES 1 KG"


def test_correct_ocr_terms_only_replaces_whole_words() -> None:
    assert correct_ocr_terms("XMIGR0S") == "XMIGR0S"
    assert correct_ocr_terms("VDBA VD") == "VDBA VD"


def test_suggest_category_matches_whole_words() -> None:
    suggestion = suggest_category("SÜTAŞ TAM YAĞLI SÜT 1L")
    assert suggestion.category == "Gıda"
    assert suggestion.source == "rules"
    assert suggestion.confidence == 0.85


def test_suggest_category_uses_turkish_casing() -> None:
    assert suggest_category("ŞAMPUAN 400ML").category == "Kişisel Bakım"
    assert suggest_category("ÇAY 1KG").category == "İçecek"


def test_suggest_category_matches_phrases() -> None:
    assert suggest_category("Vişneli meyve suyu 1L").category == "İçecek"


def test_suggest_category_does_not_match_inside_words() -> None:
    # "su" must not match inside "SUSAM".
    suggestion = suggest_category("SUSAM HELVASI")
    assert suggestion.category == DEFAULT_CATEGORY
    assert suggestion.source == "fallback"
    assert suggestion.confidence == 0.2
