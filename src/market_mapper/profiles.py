"""
Mapping profiles: how one marketplace's export schema is derived from a
scraped product record.

Profiles are authored as plain data (the dicts below, or JSON files of the
same shape) and turned into frozen ``MappingProfile`` objects by
``profile_from_dict``. All name and option checks happen here, at load time:
a profile that references an unknown transformer or validator, carries
options its transformer does not understand, repeats a target field, or
requires a target no mapping produces never reaches the engine.
"""

from __future__ import annotations
import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import (
    DuplicateTargetField,
    InvalidProfile,
    UnknownTransformer,
    UnknownValidator,
    UnreachableRequiredField,
)
from .options import OptionsModel
from .transformers import TransformerOptions, get_transformer
from .validators import get_validator


@dataclass(frozen=True)
class FieldMapping:
    source_field: str
    target_field: str
    transformer: str
    validator: Optional[str] = None
    required: bool = False
    default_value: Any = None
    options: Any = None
    validator_options: Any = None

    def __post_init__(self):
        if not self.source_field or not self.target_field:
            raise InvalidProfile(f"Mapping needs both source and target field: {self.source_field!r} -> {self.target_field!r}")
        try:
            t = get_transformer(self.transformer)
        except UnknownTransformer:
            raise UnknownTransformer(self.transformer, self.target_field) from None
        if self.validator is not None:
            try:
                v = get_validator(self.validator)
            except UnknownValidator:
                raise UnknownValidator(self.validator, self.target_field) from None
            object.__setattr__(self, "validator_options", v.parse_options(self.validator_options))
        elif self.validator_options:
            raise InvalidProfile(f"Mapping for {self.target_field!r} has validator options but no validator")
        else:
            object.__setattr__(self, "validator_options", None)
        object.__setattr__(self, "options", t.parse_options(self.options))

    @property
    def has_default(self) -> bool:
        return self.default_value is not None


@dataclass(frozen=True)
class ProfileMetadata:
    version: str = "1.0"
    description: str = ""
    required_fields: Tuple[str, ...] = ()
    encoding: str = "UTF-8"
    delimiter: str = ","
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "required_fields", tuple(dict.fromkeys(self.required_fields)))
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))
        if len(self.delimiter) != 1:
            raise InvalidProfile(f"Delimiter must be a single character, got {self.delimiter!r}")


@dataclass(frozen=True)
class MappingProfile:
    id: str
    name: str
    marketplace: str
    mappings: Tuple[FieldMapping, ...]
    metadata: ProfileMetadata = field(default_factory=ProfileMetadata)

    def __post_init__(self):
        object.__setattr__(self, "mappings", tuple(self.mappings))
        if not (self.id and self.name and self.marketplace):
            raise InvalidProfile("Profile needs id, name and marketplace")
        if not self.mappings:
            raise InvalidProfile(f"Profile {self.id!r} has no field mappings")
        seen = set()
        for m in self.mappings:
            if m.target_field in seen:
                raise DuplicateTargetField(f"Profile {self.id!r}: duplicate target field {m.target_field!r}")
            seen.add(m.target_field)
        missing = [f for f in self.metadata.required_fields if f not in seen]
        if missing:
            raise UnreachableRequiredField(f"Profile {self.id!r}: required fields without a mapping: {missing}")

    @property
    def target_fields(self) -> List[str]:
        return [m.target_field for m in self.mappings]

    def mapping_for(self, target_field: str) -> Optional[FieldMapping]:
        for m in self.mappings:
            if m.target_field == target_field:
                return m
        return None


# --- config (de)serialization ---
_MAPPING_KEYS = {
    "sourceField": "source_field",
    "targetField": "target_field",
    "transformer": "transformer",
    "validator": "validator",
    "required": "required",
    "defaultValue": "default_value",
    "options": "options",
    "validatorOptions": "validator_options",
}
_METADATA_KEYS = {
    "version": "version",
    "description": "description",
    "requiredFields": "required_fields",
    "encoding": "encoding",
    "delimiter": "delimiter",
}


def _rename(data: Mapping[str, Any], keys: Mapping[str, str]) -> Dict[str, Any]:
    snake = set(keys.values())
    out: Dict[str, Any] = {}
    for k, v in data.items():
        if k in keys:
            out[keys[k]] = v
        elif k in snake:
            out[k] = v
        else:
            raise InvalidProfile(f"Unknown mapping key {k!r}")
    return out


def mapping_from_dict(data: Mapping[str, Any]) -> FieldMapping:
    kw = _rename(data, _MAPPING_KEYS)
    if "transformer" not in kw:
        raise InvalidProfile(f"Mapping for {kw.get('target_field')!r} names no transformer")
    return FieldMapping(**kw)


def metadata_from_dict(data: Optional[Mapping[str, Any]]) -> ProfileMetadata:
    kw: Dict[str, Any] = {}
    extra: Dict[str, Any] = {}
    snake = set(_METADATA_KEYS.values())
    for k, v in (data or {}).items():
        if k in _METADATA_KEYS:
            kw[_METADATA_KEYS[k]] = v
        elif k in snake:
            kw[k] = v
        else:
            extra[k] = v
    kw["required_fields"] = tuple(kw.get("required_fields") or ())
    return ProfileMetadata(extra=extra, **kw)


def profile_from_dict(data: Mapping[str, Any]) -> MappingProfile:
    for key in ("id", "name", "marketplace", "mappings"):
        if key not in data:
            raise InvalidProfile(f"Profile definition is missing {key!r}")
    return MappingProfile(
        id=str(data["id"]),
        name=str(data["name"]),
        marketplace=str(data["marketplace"]),
        mappings=tuple(mapping_from_dict(m) for m in data["mappings"]),
        metadata=metadata_from_dict(data.get("metadata")),
    )


def mapping_to_dict(m: FieldMapping) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "sourceField": m.source_field,
        "targetField": m.target_field,
        "transformer": m.transformer,
    }
    if m.validator:
        d["validator"] = m.validator
    if m.required:
        d["required"] = True
    if m.has_default:
        d["defaultValue"] = m.default_value
    if isinstance(m.options, TransformerOptions):
        opts = m.options.to_config()
        if opts:
            d["options"] = opts
    if isinstance(m.validator_options, OptionsModel):
        vopts = m.validator_options.to_config()
        if vopts:
            d["validatorOptions"] = vopts
    return d


def profile_to_dict(profile: MappingProfile) -> Dict[str, Any]:
    md = profile.metadata
    meta: Dict[str, Any] = {
        "version": md.version,
        "description": md.description,
        "requiredFields": list(md.required_fields),
        "encoding": md.encoding,
        "delimiter": md.delimiter,
    }
    meta.update(md.extra)
    return {
        "id": profile.id,
        "name": profile.name,
        "marketplace": profile.marketplace,
        "mappings": [mapping_to_dict(m) for m in profile.mappings],
        "metadata": meta,
    }


def load_profiles_file(path: Path) -> List[MappingProfile]:
    """Read profiles from a JSON file holding one profile, a list, or {"profiles": [...]}."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, Mapping) and "profiles" in data:
        data = data["profiles"]
    if isinstance(data, Mapping):
        data = [data]
    if not isinstance(data, list):
        raise InvalidProfile(f"{path}: expected a profile object or a list of profiles")
    return [profile_from_dict(d) for d in data]


# --- built-in marketplace profiles ---
CAFE24_PROFILE = {
    "id": "cafe24-standard",
    "name": "카페24 표준 양식",
    "marketplace": "cafe24",
    "mappings": [
        {"sourceField": "product_name", "targetField": "상품명", "transformer": "toString", "required": True, "options": {"maxLength": 100}},
        {"sourceField": "price", "targetField": "판매가", "transformer": "toPrice", "required": True, "validator": "positive"},
        {"sourceField": "original_price", "targetField": "정가", "transformer": "toPrice", "defaultValue": 0},
        {"sourceField": "category", "targetField": "카테고리", "transformer": "toCategory", "options": {"categoryMap": "category"}, "defaultValue": "기타"},
        {"sourceField": "brand", "targetField": "브랜드", "transformer": "toBrand", "options": {"maxLength": 50}},
        {"sourceField": "description", "targetField": "상품설명", "transformer": "toString", "options": {"maxLength": 1000}},
        {"sourceField": "images", "targetField": "이미지URL", "transformer": "toArray", "options": {"separator": ",", "unique": True}},
        {"sourceField": "stock", "targetField": "재고수량", "transformer": "toNumber", "defaultValue": 0, "validator": "positive"},
        {"sourceField": "is_sale", "targetField": "판매상태", "transformer": "toBoolean", "defaultValue": True},
        {"sourceField": "weight", "targetField": "무게", "transformer": "toNumber", "defaultValue": 0},
        {"sourceField": "shipping_fee", "targetField": "배송비", "transformer": "toPrice", "defaultValue": 0},
        {"sourceField": "origin_country", "targetField": "원산지", "transformer": "toString", "defaultValue": "상품상세참조"},
        {"sourceField": "material", "targetField": "소재", "transformer": "toString", "defaultValue": "상품상세참조"},
        {"sourceField": "color", "targetField": "색상", "transformer": "toString"},
        {"sourceField": "size", "targetField": "사이즈", "transformer": "toString"},
    ],
    "metadata": {
        "version": "1.0",
        "description": "카페24 쇼핑몰 표준 상품 등록 양식",
        "requiredFields": ["상품명", "판매가"],
        "encoding": "UTF-8",
        "delimiter": ",",
    },
}

NAVER_PROFILE = {
    "id": "naver-shopping",
    "name": "네이버 쇼핑 상품등록",
    "marketplace": "naver",
    "mappings": [
        {"sourceField": "product_name", "targetField": "상품명", "transformer": "toString", "required": True, "options": {"maxLength": 50}},
        {"sourceField": "price", "targetField": "판매가격", "transformer": "toPrice", "required": True, "validator": "positive"},
        {"sourceField": "category", "targetField": "카테고리ID", "transformer": "toString", "required": True},
        {"sourceField": "brand", "targetField": "브랜드", "transformer": "toBrand", "required": True},
        {"sourceField": "model", "targetField": "모델명", "transformer": "toString"},
        {"sourceField": "images", "targetField": "대표이미지URL", "transformer": "toString", "required": True, "validator": "url"},
        {"sourceField": "additional_images", "targetField": "추가이미지URL", "transformer": "toArray", "options": {"separator": "|"}},
        {"sourceField": "shipping_fee", "targetField": "배송비", "transformer": "toPrice", "defaultValue": 0},
        {"sourceField": "delivery_type", "targetField": "배송방법", "transformer": "toString", "defaultValue": "택배"},
        {"sourceField": "origin_country", "targetField": "제조국", "transformer": "toString", "defaultValue": "대한민국"},
        {"sourceField": "as_info", "targetField": "A/S정보", "transformer": "toString", "defaultValue": "판매자 직접 A/S"},
    ],
    "metadata": {
        "version": "1.0",
        "description": "네이버 쇼핑 상품 등록 양식",
        "requiredFields": ["상품명", "판매가격", "카테고리ID", "브랜드", "대표이미지URL"],
        "encoding": "UTF-8",
        "delimiter": "\t",
    },
}

COUPANG_PROFILE = {
    "id": "coupang-seller",
    "name": "쿠팡 셀러 상품등록",
    "marketplace": "coupang",
    "mappings": [
        {"sourceField": "product_name", "targetField": "상품명", "transformer": "toString", "required": True, "options": {"maxLength": 80}},
        {"sourceField": "brand", "targetField": "브랜드", "transformer": "toBrand", "required": True},
        {"sourceField": "category_code", "targetField": "카테고리코드", "transformer": "toString", "required": True},
        {"sourceField": "price", "targetField": "판매가", "transformer": "toPrice", "required": True, "validator": "positive"},
        {"sourceField": "discount_price", "targetField": "할인가", "transformer": "toPrice", "defaultValue": 0},
        {"sourceField": "stock", "targetField": "재고수량", "transformer": "toNumber", "required": True, "validator": "positive"},
        {"sourceField": "main_image", "targetField": "대표이미지", "transformer": "toUrl", "required": True, "validator": "url"},
        {"sourceField": "detail_images", "targetField": "상세이미지", "transformer": "toArray", "options": {"separator": ","}},
        {"sourceField": "description", "targetField": "상품상세", "transformer": "toString", "options": {"maxLength": 2000}},
        {"sourceField": "keywords", "targetField": "검색키워드", "transformer": "toArray", "options": {"separator": ",", "unique": True}},
        {"sourceField": "adult_product", "targetField": "성인상품여부", "transformer": "toBoolean", "defaultValue": False},
        {"sourceField": "parallel_import", "targetField": "병행수입여부", "transformer": "toBoolean", "defaultValue": False},
        {"sourceField": "overseas_purchase", "targetField": "해외구매대행여부", "transformer": "toBoolean", "defaultValue": False},
    ],
    "metadata": {
        "version": "1.0",
        "description": "쿠팡 셀러 상품 등록 양식",
        "requiredFields": ["상품명", "브랜드", "카테고리코드", "판매가", "재고수량", "대표이미지"],
        "encoding": "UTF-8",
        "delimiter": ",",
    },
}

ZIGZAG_PROFILE = {
    "id": "zigzag-fashion",
    "name": "지그재그 패션 상품등록",
    "marketplace": "zigzag",
    "mappings": [
        {"sourceField": "product_name", "targetField": "상품명", "transformer": "toString", "required": True, "options": {"maxLength": 60}},
        {"sourceField": "price", "targetField": "정가", "transformer": "toPrice", "required": True, "validator": "positive"},
        {"sourceField": "sale_price", "targetField": "할인가", "transformer": "toPrice", "defaultValue": 0},
        {"sourceField": "category", "targetField": "카테고리", "transformer": "toCategory", "options": {"categoryMap": "category"}, "required": True},
        {"sourceField": "style", "targetField": "스타일", "transformer": "toString"},
        {"sourceField": "color", "targetField": "색상", "transformer": "toString"},
        {"sourceField": "size_info", "targetField": "사이즈정보", "transformer": "toString", "defaultValue": "FREE"},
        {"sourceField": "material", "targetField": "소재정보", "transformer": "toString", "defaultValue": "상품상세참조"},
        {"sourceField": "season", "targetField": "시즌", "transformer": "toString", "defaultValue": "사계절"},
        {"sourceField": "main_image", "targetField": "메인이미지URL", "transformer": "toUrl", "required": True, "validator": "url"},
        {"sourceField": "sub_images", "targetField": "서브이미지URL", "transformer": "toArray", "options": {"separator": ","}},
        {"sourceField": "model_size", "targetField": "모델착용사이즈", "transformer": "toString"},
        {"sourceField": "fit_type", "targetField": "핏타입", "transformer": "toString", "defaultValue": "노멀핏"},
        {"sourceField": "thickness", "targetField": "두께감", "transformer": "toString", "defaultValue": "보통"},
        {"sourceField": "elasticity", "targetField": "신축성", "transformer": "toString", "defaultValue": "보통"},
        {"sourceField": "lining", "targetField": "안감여부", "transformer": "toBoolean", "defaultValue": False},
        {"sourceField": "transparency", "targetField": "비침여부", "transformer": "toBoolean", "defaultValue": False},
    ],
    "metadata": {
        "version": "1.0",
        "description": "지그재그 패션 상품 등록 양식",
        "requiredFields": ["상품명", "정가", "카테고리", "메인이미지URL"],
        "encoding": "UTF-8",
        "delimiter": ",",
        "fashionSpecific": True,
    },
}

BUILTIN_PROFILE_DEFINITIONS = [CAFE24_PROFILE, NAVER_PROFILE, COUPANG_PROFILE, ZIGZAG_PROFILE]


def builtin_profiles() -> List[MappingProfile]:
    return [profile_from_dict(d) for d in BUILTIN_PROFILE_DEFINITIONS]


def iter_profiles(paths: Iterable[Path]) -> Iterable[MappingProfile]:
    for p in paths:
        if p.is_dir():
            for f in sorted(p.glob("*.json")):
                yield from load_profiles_file(f)
        else:
            yield from load_profiles_file(p)
