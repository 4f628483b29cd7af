from __future__ import annotations
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from .normalize import term_key


# Scraped (Korean) category -> marketplace (English) category
CATEGORY_PAIRS = {
    "상의": "tops",
    "하의": "bottoms",
    "원피스": "dresses",
    "아우터": "outerwear",
    "신발": "shoes",
    "가방": "bags",
    "악세서리": "accessories",
    "언더웨어": "underwear",
    "스포츠웨어": "sportswear",
    "잠옷": "sleepwear",
}

# Common spelling -> canonical brand name
BRAND_PAIRS = {
    "zara": "ZARA",
    "h&m": "H&M",
    "uniqlo": "UNIQLO",
    "gu": "GU",
    "nike": "Nike",
    "adidas": "Adidas",
}


class VocabularyTable:
    """Immutable bidirectional term dictionary.

    ``translate`` looks a term up on the forward side first, then on the
    reverse side, so a single table serves both directions. Exact matches win
    over case-insensitive ones. The table never changes after construction;
    ``forward`` and ``reverse`` are read-only views.
    """

    __slots__ = ("name", "_forward", "_reverse", "_forward_ci", "_reverse_ci")

    def __init__(self, name: str, pairs: Mapping[str, str]):
        self.name = name
        fwd = {str(k).strip(): str(v).strip() for k, v in pairs.items()}
        rev: Dict[str, str] = {}
        fwd_ci: Dict[str, str] = {}
        rev_ci: Dict[str, str] = {}
        # First-seen wins everywhere; collisions() reports the rest
        for k, v in fwd.items():
            rev.setdefault(v, k)
            fwd_ci.setdefault(term_key(k), v)
        for v, k in rev.items():
            rev_ci.setdefault(term_key(v), k)
        self._forward = MappingProxyType(fwd)
        self._reverse = MappingProxyType(rev)
        self._forward_ci = MappingProxyType(fwd_ci)
        self._reverse_ci = MappingProxyType(rev_ci)

    @property
    def forward(self) -> Mapping[str, str]:
        return self._forward

    @property
    def reverse(self) -> Mapping[str, str]:
        return self._reverse

    def lookup(self, term: str) -> Optional[str]:
        """Forward-only lookup (exact, then case-insensitive)."""
        t = (term or "").strip()
        if t in self._forward:
            return self._forward[t]
        return self._forward_ci.get(term_key(t))

    def reverse_lookup(self, term: str) -> Optional[str]:
        t = (term or "").strip()
        if t in self._reverse:
            return self._reverse[t]
        return self._reverse_ci.get(term_key(t))

    def translate(self, term: str) -> Optional[str]:
        hit = self.lookup(term)
        if hit is not None:
            return hit
        return self.reverse_lookup(term)

    def collisions(self) -> List[Tuple[str, List[str]]]:
        """Target terms reached from more than one source term.

        Also reports terms that appear on both sides under different pairs,
        since ``translate`` would then be ambiguous for them.
        """
        by_target: Dict[str, List[str]] = {}
        for k, v in self._forward.items():
            by_target.setdefault(v, []).append(k)
        out = [(v, ks) for v, ks in by_target.items() if len(ks) > 1]
        for k in self._forward:
            if k in self._reverse and self._reverse[k] != self._forward[k]:
                out.append((k, [k, self._reverse[k]]))
        return out

    def is_bijective(self) -> bool:
        return not self.collisions()

    # Immutable: copies are the same table
    def __copy__(self) -> "VocabularyTable":
        return self

    def __deepcopy__(self, memo) -> "VocabularyTable":
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VocabularyTable):
            return NotImplemented
        return self.name == other.name and dict(self._forward) == dict(other._forward)

    def __hash__(self) -> int:
        return hash((self.name, tuple(self._forward.items())))

    def __contains__(self, term: object) -> bool:
        return isinstance(term, str) and self.translate(term) is not None

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._forward.items())

    def __len__(self) -> int:
        return len(self._forward)

    def __repr__(self) -> str:
        return f"VocabularyTable({self.name!r}, {len(self)} pairs)"


CATEGORY_TABLE = VocabularyTable("category", CATEGORY_PAIRS)
BRAND_TABLE = VocabularyTable("brand", BRAND_PAIRS)

TABLES: Mapping[str, VocabularyTable] = MappingProxyType({
    CATEGORY_TABLE.name: CATEGORY_TABLE,
    BRAND_TABLE.name: BRAND_TABLE,
})


def get_table(name: str) -> VocabularyTable:
    try:
        return TABLES[name]
    except KeyError:
        raise KeyError(f"Unknown vocabulary table: {name!r}") from None
