from __future__ import annotations
import re
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Type

from pydantic import Field, ValidationError, model_validator

from .errors import InvalidValidatorOptions, UnknownValidator
from .normalize import is_missing
from .options import OptionsModel


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)
PHONE_RE = re.compile(r"^[\d\-+().\s]+$")


# --- option models ---
class ValidatorOptions(OptionsModel):
    pass


class NoValidatorOptions(ValidatorOptions):
    pass


class MinLengthOptions(ValidatorOptions):
    min_length: int = Field(alias="minLength", ge=0)


class MaxLengthOptions(ValidatorOptions):
    max_length: int = Field(alias="maxLength", ge=0)


class RangeOptions(ValidatorOptions):
    min: Optional[float] = None
    max: Optional[float] = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "RangeOptions":
        if self.min is None and self.max is None:
            raise ValueError("range needs min, max or both")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"min {self.min} is greater than max {self.max}")
        return self


# --- registry ---
@dataclass(frozen=True)
class Validator:
    name: str
    func: Callable[..., bool]
    options_model: Type[ValidatorOptions]

    def parse_options(self, raw: Optional[Mapping[str, Any]] = None) -> Optional[ValidatorOptions]:
        if self.options_model is NoValidatorOptions:
            if raw:
                raise InvalidValidatorOptions(f"{self.name} takes no options, got {dict(raw)!r}")
            return None
        if isinstance(raw, self.options_model):
            return raw
        try:
            return self.options_model.model_validate(dict(raw or {}))
        except ValidationError as e:
            raise InvalidValidatorOptions(f"Invalid options for {self.name}: {e}") from e

    def __call__(self, value: Any, options: Any = None) -> bool:
        opts = self.parse_options(options)
        if opts is None:
            return bool(self.func(value))
        return bool(self.func(value, opts))


_REGISTRY: Dict[str, Validator] = {}
VALIDATORS: Mapping[str, Validator] = MappingProxyType(_REGISTRY)


def validator(name: str, options_model: Type[ValidatorOptions] = NoValidatorOptions):
    def decorator(func):
        _REGISTRY[name] = Validator(name=name, func=func, options_model=options_model)
        return func

    return decorator


def get_validator(name: str) -> Validator:
    try:
        return VALIDATORS[name]
    except KeyError:
        raise UnknownValidator(name) from None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


@validator("required")
def required(value: Any) -> bool:
    return not is_missing(value)


@validator("positive")
def positive(value: Any) -> bool:
    return _is_number(value) and value > 0


@validator("email")
def email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_RE.match(value))


@validator("url")
def url(value: Any) -> bool:
    return isinstance(value, str) and bool(URL_RE.match(value))


@validator("phone")
def phone(value: Any) -> bool:
    return isinstance(value, str) and bool(PHONE_RE.match(value)) and any(c.isdigit() for c in value)


@validator("minLength", MinLengthOptions)
def min_length(value: Any, options: MinLengthOptions) -> bool:
    return isinstance(value, str) and len(value) >= options.min_length


@validator("maxLength", MaxLengthOptions)
def max_length(value: Any, options: MaxLengthOptions) -> bool:
    return isinstance(value, str) and len(value) <= options.max_length


@validator("range", RangeOptions)
def in_range(value: Any, options: RangeOptions) -> bool:
    if not _is_number(value):
        return False
    if options.min is not None and value < options.min:
        return False
    if options.max is not None and value > options.max:
        return False
    return True
