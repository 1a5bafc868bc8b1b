"""Brand buckets used to filter records by their brand_name label.

Matching is a case-insensitive substring search of the label against each
bucket's keywords, so "LOUIS VUITTON モノグラム" lands in the ルイヴィトン bucket.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from bidsheet.models import AuctionItem


class BrandKey(str, Enum):
    """Filter buckets. ALL matches every record."""

    ALL = "ALL"
    LOUIS_VUITTON = "ルイヴィトン"
    HERMES = "エルメス"
    CHANEL = "CHANEL"
    GUCCI = "グッチ"


@dataclass(frozen=True)
class BrandDef:
    key: BrandKey
    label: str
    keywords: tuple[str, ...]
    """Lower-case keywords matched as substrings."""


BRANDS: tuple[BrandDef, ...] = (
    BrandDef(BrandKey.LOUIS_VUITTON, "ルイヴィトン", ("louis vuitton", "ルイヴィトン")),
    BrandDef(BrandKey.HERMES, "エルメス", ("hermes", "エルメス")),
    BrandDef(BrandKey.CHANEL, "CHANEL", ("chanel", "シャネル")),
    BrandDef(BrandKey.GUCCI, "グッチ", ("gucci", "グッチ")),
)

_BRANDS_BY_KEY = {brand.key: brand for brand in BRANDS}

# Katakana letters sit 0x60 code points above their hiragana counterparts.
_KATAKANA_TO_HIRAGANA = {code: code - 0x60 for code in range(0x30A1, 0x30F7)}


def matches_brand(brand_name: str, key: BrandKey | str) -> bool:
    """Return True when brand_name belongs to the bucket ``key``."""
    try:
        key = BrandKey(key)
    except ValueError:
        return False
    if key is BrandKey.ALL:
        return True
    lower = brand_name.lower()
    return any(keyword in lower for keyword in _BRANDS_BY_KEY[key].keywords)


def brand_counts(items: Iterable[AuctionItem]) -> dict[BrandKey, int]:
    """Count records per bucket, including ALL."""
    items = list(items)
    counts = {BrandKey.ALL: len(items)}
    for brand in BRANDS:
        counts[brand.key] = sum(
            1 for item in items if matches_brand(item.brand_name, brand.key)
        )
    return counts


def brand_sort_key(brand_name: str) -> str:
    """Sort key approximating Japanese collation of brand labels.

    Full-width and half-width forms are folded (NFKC), Latin letters compare
    case-insensitively, and katakana sorts together with hiragana. Latin
    labels come before kana, kana before kanji. Kanji are ordered by code
    point since readings are not available.
    """
    folded = unicodedata.normalize("NFKC", brand_name).casefold()
    return folded.translate(_KATAKANA_TO_HIRAGANA)
