"""
Named value transformers.

Every transformer is a pure function ``(raw_value, options) -> value`` that
raises ``TransformError`` when the raw value cannot be converted. Options are
typed per transformer (pydantic models that reject unknown keys), so a profile
carrying a bad option fails when it is loaded instead of on the first record.

Transformers registered with ``reports=True`` also accept a ``notes`` list and
append ``(WarningKind, reason)`` pairs for lossy but successful conversions
(truncated text, terms with no vocabulary entry).

The registry is closed: it is filled by the ``@transformer`` decorators below
at import time and exposed read-only as ``TRANSFORMERS``.
"""

from __future__ import annotations
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Tuple, Type
from urllib.parse import urlsplit, urlunsplit

from pydantic import Field, ValidationError, field_serializer, field_validator

from .errors import InvalidTransformerOptions, TransformError, UnknownTransformer, WarningKind
from .normalize import join_items, numeric_text, strip_currency
from .options import OptionsModel
from .vocabulary import BRAND_TABLE, CATEGORY_TABLE, TABLES, VocabularyTable, get_table


# --- option models ---
class TransformerOptions(OptionsModel):
    pass


class NoOptions(TransformerOptions):
    pass


class StringOptions(TransformerOptions):
    max_length: Optional[int] = Field(None, alias="maxLength", ge=1)


class PriceOptions(TransformerOptions):
    # 0 for KRW/JPY, 2 for currencies counted in cents
    minor_unit_digits: int = Field(0, alias="minorUnitDigits", ge=0, le=4)


class DateOptions(TransformerOptions):
    format: Literal["iso", "datetime", "korean", "timestamp"] = "iso"


class UrlOptions(TransformerOptions):
    protocol: Literal["http", "https"] = "https"


def _as_table(v: Any, name: str) -> VocabularyTable:
    if isinstance(v, VocabularyTable):
        return v
    if isinstance(v, str):
        try:
            return get_table(v)
        except KeyError as e:
            raise ValueError(str(e)) from None
    if isinstance(v, Mapping):
        return VocabularyTable(name, v)
    raise ValueError("expected a vocabulary table name or a mapping of terms")


def _table_config(table: VocabularyTable) -> Any:
    if TABLES.get(table.name) is table:
        return table.name
    return dict(table.forward)


class CategoryOptions(TransformerOptions):
    category_map: VocabularyTable = Field(CATEGORY_TABLE, alias="categoryMap")

    @field_validator("category_map", mode="before")
    @classmethod
    def _resolve_table(cls, v: Any) -> VocabularyTable:
        return _as_table(v, "inline-category")

    @field_serializer("category_map")
    def _dump_table(self, table: VocabularyTable) -> Any:
        return _table_config(table)


class ArrayOptions(TransformerOptions):
    separator: str = Field(",", min_length=1)
    unique: bool = False


class BrandOptions(TransformerOptions):
    max_length: Optional[int] = Field(None, alias="maxLength", ge=1)
    brand_map: VocabularyTable = Field(BRAND_TABLE, alias="brandMap")

    @field_validator("brand_map", mode="before")
    @classmethod
    def _resolve_table(cls, v: Any) -> VocabularyTable:
        return _as_table(v, "inline-brand")

    @field_serializer("brand_map")
    def _dump_table(self, table: VocabularyTable) -> Any:
        return _table_config(table)


# --- registry ---
@dataclass(frozen=True)
class Transformer:
    name: str
    func: Callable[[Any, Any], Any]
    options_model: Type[TransformerOptions]
    # Accepts a third `notes` argument collecting (WarningKind, reason) pairs
    reports: bool = False

    def parse_options(self, raw: Optional[Mapping[str, Any]] = None) -> TransformerOptions:
        if isinstance(raw, self.options_model):
            return raw
        if isinstance(raw, TransformerOptions):
            raise InvalidTransformerOptions(
                f"{self.name} expects {self.options_model.__name__}, got {type(raw).__name__}"
            )
        try:
            return self.options_model.model_validate(dict(raw or {}))
        except ValidationError as e:
            raise InvalidTransformerOptions(f"Invalid options for {self.name}: {e}") from e

    def __call__(self, value: Any, options: Any = None, notes: Optional[List[Tuple[WarningKind, str]]] = None) -> Any:
        if value is None:
            raise TransformError(self.name, value, "no value to convert")
        opts = self.parse_options(options)
        if self.reports:
            return self.func(value, opts, notes)
        return self.func(value, opts)


_REGISTRY: Dict[str, Transformer] = {}
TRANSFORMERS: Mapping[str, Transformer] = MappingProxyType(_REGISTRY)


def transformer(name: str, options_model: Type[TransformerOptions] = NoOptions, reports: bool = False):
    def decorator(func):
        _REGISTRY[name] = Transformer(name=name, func=func, options_model=options_model, reports=reports)
        return func

    return decorator


def get_transformer(name: str) -> Transformer:
    try:
        return TRANSFORMERS[name]
    except KeyError:
        raise UnknownTransformer(name) from None


def _note(notes, kind: WarningKind, reason: str) -> None:
    if notes is not None:
        notes.append((kind, reason))


def _compact(num: Decimal) -> int | float:
    if num == num.to_integral_value():
        return int(num)
    return float(num)


def _to_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, bool):
        raise TransformError(name, value, "booleans are not numbers")
    if isinstance(value, float) and not math.isfinite(value):
        raise TransformError(name, value, "not a finite number")
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    text = numeric_text(str(value))
    if not text:
        raise TransformError(name, value, "no digits found")
    try:
        num = Decimal(text)
    except InvalidOperation:
        raise TransformError(name, value, "cannot parse as a number") from None
    if not num.is_finite():
        raise TransformError(name, value, "not a finite number")
    return num


# --- transformers ---
@transformer("toString", StringOptions, reports=True)
def to_string(value: Any, options: StringOptions = StringOptions(), notes=None) -> str:
    """Coerce to trimmed text.

    Text longer than ``maxLength`` is cut to that length without an error;
    truncation is a successful conversion, reported as a ``ValueTruncated`` note.
    """
    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = join_items(value).strip()
    if options.max_length and len(text) > options.max_length:
        _note(notes, WarningKind.value_truncated, f"cut from {len(text)} to {options.max_length} characters")
        text = text[: options.max_length]
    return text


@transformer("toNumber")
def to_number(value: Any, options: NoOptions = NoOptions()) -> int | float:
    return _compact(_to_decimal(value, "toNumber"))


TRUTHY = {"true", "yes", "y", "1", "on", "enabled", "active", "사용", "판매중"}
FALSY = {"false", "no", "n", "0", "off", "disabled", "inactive", "미사용", "품절"}


@transformer("toBoolean")
def to_boolean(value: Any, options: NoOptions = NoOptions()) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    s = str(value).strip().lower()
    if s in TRUTHY:
        return True
    if s in FALSY:
        return False
    raise TransformError("toBoolean", value, "not a recognised true/false value")


@transformer("toPrice", PriceOptions)
def to_price(value: Any, options: PriceOptions = PriceOptions()) -> int:
    """Amount in the smallest currency unit, e.g. '₩15,000' -> 15000."""
    if isinstance(value, str):
        value = strip_currency(value)
    amount = _to_decimal(value, "toPrice")
    if amount < 0:
        raise TransformError("toPrice", value, "price cannot be negative")
    scaled = (amount * (10 ** options.minor_unit_digits)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(scaled)


DATE_FORMATS = ["%Y.%m.%d", "%Y/%m/%d", "%Y%m%d", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M"]


def _parse_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise TransformError("toDate", value, "timestamp out of range") from None
    text = str(value).strip()
    iso = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    compact = re.sub(r"\s+", "", text).rstrip(".")
    for fmt in DATE_FORMATS:
        for candidate in (text, compact):
            try:
                return datetime.strptime(candidate, fmt)
            except ValueError:
                continue
    raise TransformError("toDate", value, "unrecognised date")


@transformer("toDate", DateOptions)
def to_date(value: Any, options: DateOptions = DateOptions()) -> str:
    dt = _parse_date(value)
    if options.format == "iso":
        return dt.date().isoformat()
    if options.format == "korean":
        return f"{dt.year}. {dt.month}. {dt.day}."
    if options.format == "timestamp":
        # Naive values are read as UTC so the result does not depend on the host
        aware = dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
        return str(int(aware.timestamp() * 1000))
    return dt.isoformat()


_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")


@transformer("toUrl", UrlOptions)
def to_url(value: Any, options: UrlOptions = UrlOptions()) -> str:
    text = str(value).strip()
    if re.search(r"\s", text):
        raise TransformError("toUrl", value, "URL contains whitespace")
    if text.startswith("//"):
        text = f"{options.protocol}:{text}"
    elif not _SCHEME_RE.match(text):
        text = f"{options.protocol}://{text}"
    try:
        parts = urlsplit(text)
        host = parts.hostname
    except ValueError:
        raise TransformError("toUrl", value, "malformed URL") from None
    if parts.scheme.lower() not in ("http", "https"):
        raise TransformError("toUrl", value, f"unsupported scheme {parts.scheme!r}")
    if not host or ("." not in host and host != "localhost"):
        raise TransformError("toUrl", value, "URL has no valid host")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, parts.fragment))


@transformer("toCategory", CategoryOptions, reports=True)
def to_category(value: Any, options: CategoryOptions = CategoryOptions(), notes=None) -> str:
    """Translate a category term; unknown terms pass through unchanged."""
    term = join_items(value).strip()
    hit = options.category_map.translate(term)
    if hit is None:
        _note(notes, WarningKind.term_passed_through, f"no {options.category_map.name} mapping for {term!r}")
        return term
    return hit


@transformer("toArray", ArrayOptions)
def to_array(value: Any, options: ArrayOptions = ArrayOptions()) -> list:
    if isinstance(value, (list, tuple)):
        items = [str(v).strip() for v in value if v is not None]
    else:
        items = [s.strip() for s in str(value).split(options.separator)]
    items = [i for i in items if i]
    if options.unique:
        items = list(dict.fromkeys(items))
    return items


@transformer("toBrand", BrandOptions, reports=True)
def to_brand(value: Any, options: BrandOptions = BrandOptions(), notes=None) -> str:
    text = join_items(value).strip()
    canon = options.brand_map.lookup(text)
    if canon is not None:
        text = canon
    else:
        _note(notes, WarningKind.term_passed_through, f"no {options.brand_map.name} mapping for {text!r}")
    if options.max_length and len(text) > options.max_length:
        _note(notes, WarningKind.value_truncated, f"cut from {len(text)} to {options.max_length} characters")
        text = text[: options.max_length]
    return text
