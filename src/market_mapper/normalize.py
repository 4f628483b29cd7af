import re
import unicodedata
from typing import Any


CURRENCY_SYMBOLS = "₩$€£¥"

_CURRENCY_RE = re.compile(f"[{re.escape(CURRENCY_SYMBOLS)}]")
_NUMERIC_JUNK_RE = re.compile(r"[^\d.\-]+")


def term_key(s: str) -> str:
    """Case- and width-insensitive key for vocabulary lookups."""
    if not s:
        return ""
    s = unicodedata.normalize("NFKC", s)
    return s.strip().casefold()


def is_missing(value: Any) -> bool:
    """True for None, blank text and empty sequences."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def strip_currency(s: str) -> str:
    s = _CURRENCY_RE.sub("", s)
    s = re.sub(r"[,\s]+", "", s)
    return s.strip()


def numeric_text(s: str) -> str:
    # Keep digits, dot and minus only (e.g. '12,000원' -> '12000')
    return _NUMERIC_JUNK_RE.sub("", s)


def join_items(value: Any, sep: str = ",") -> str:
    if isinstance(value, (list, tuple)):
        return sep.join(str(v).strip() for v in value)
    return str(value)
