from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from receipt_engine.money import normalize

_ONES = ("", "Bir", "İki", "Üç", "Dört", "Beş", "Altı", "Yedi", "Sekiz", "Dokuz")
_TENS = ("", "On", "Yirmi", "Otuz", "Kırk", "Elli", "Altmış", "Yetmiş", "Seksen", "Doksan")
_SCALES = ("", "Bin", "Milyon", "Milyar", "Trilyon", "Katrilyon")

MAX_AMOUNT = 10 ** (3 * len(_SCALES))


def _hundreds_in_words(number: int) -> list[str]:
    hundreds, rest = divmod(number, 100)
    tens, ones = divmod(rest, 10)
    words: list[str] = []
    if hundreds:
        # "Yüz", never "Bir Yüz"
        if hundreds > 1:
            words.append(_ONES[hundreds])
        words.append("Yüz")
    if tens:
        words.append(_TENS[tens])
    if ones:
        words.append(_ONES[ones])
    return words


def integer_in_words(number: int) -> str:
    if number < 0:
        raise ValueError("number must be non-negative")
    if number >= MAX_AMOUNT:
        raise ValueError(f"number too large to spell out: {number}")
    if number == 0:
        return "Sıfır"

    groups: list[int] = []
    while number:
        number, group = divmod(number, 1000)
        groups.append(group)

    words: list[str] = []
    for scale in range(len(groups) - 1, -1, -1):
        group = groups[scale]
        if not group:
            continue
        if scale == 1 and group == 1:
            words.append("Bin")
            continue
        words.extend(_hundreds_in_words(group))
        if scale:
            words.append(_SCALES[scale])
    return " ".join(words)


def amount_in_words(amount: float) -> str:
    """Spell a lira amount the way Turkish invoices print it.

    >>> amount_in_words(150.25)
    'Yalnız Yüz Elli Türk Lirası Yirmi Beş Kuruş'
    >>> amount_in_words(10)
    'Yalnız On Türk Lirası'
    """
    cents = int(
        (Decimal(repr(normalize(amount, 0.0))) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    )
    lira, kurus = divmod(cents, 100)
    text = f"Yalnız {integer_in_words(lira)} Türk Lirası"
    if kurus:
        text += f" {integer_in_words(kurus)} Kuruş"
    return text
