from __future__ import annotations
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional


class MappingError(Exception):
    """Base error for the mapping engine."""


class TransformError(MappingError):
    """A transformer rejected or could not coerce a raw value."""

    def __init__(self, transformer: str, value: Any, reason: str):
        self.transformer = transformer
        self.value = value
        self.reason = reason
        super().__init__(f"{transformer}: {reason} (value={value!r})")


# --- configuration defects, raised while loading/registering profiles ---
class ProfileError(MappingError):
    pass


class InvalidProfile(ProfileError):
    pass


class UnknownTransformer(ProfileError):
    def __init__(self, name: str, target_field: str = ""):
        self.name = name
        self.target_field = target_field
        where = f" (target field {target_field!r})" if target_field else ""
        super().__init__(f"Unknown transformer {name!r}{where}")


class UnknownValidator(ProfileError):
    def __init__(self, name: str, target_field: str = ""):
        self.name = name
        self.target_field = target_field
        where = f" (target field {target_field!r})" if target_field else ""
        super().__init__(f"Unknown validator {name!r}{where}")


class InvalidTransformerOptions(ProfileError):
    pass


class InvalidValidatorOptions(ProfileError):
    pass


class DuplicateTargetField(ProfileError):
    pass


class UnreachableRequiredField(ProfileError):
    pass


# --- registry lookups ---
class RegistryError(MappingError):
    pass


class DuplicateProfile(RegistryError):
    pass


class RegistryFrozen(RegistryError):
    pass


class ProfileNotFound(RegistryError, LookupError):
    pass


class UnknownMarketplace(RegistryError, LookupError):
    pass


class ErrorKind(str, Enum):
    missing_required_field = "MissingRequiredField"
    transformation_failed = "TransformationFailed"
    validation_failed = "ValidationFailed"


@dataclass(frozen=True)
class FieldError:
    """One field-level failure. Carried as data in a TransformResult, never raised."""

    kind: ErrorKind
    source_field: str
    target_field: str
    reason: str
    fatal: bool = True
    transformer: Optional[str] = None
    validator: Optional[str] = None
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d

    def __str__(self) -> str:
        return f"{self.target_field}: {self.kind.value} - {self.reason}"


class WarningKind(str, Enum):
    value_truncated = "ValueTruncated"
    term_passed_through = "TermPassedThrough"
    default_applied = "DefaultApplied"


@dataclass(frozen=True)
class FieldWarning:
    """Non-fatal note on how a field was produced; the field itself succeeded or was defaulted."""

    kind: WarningKind
    source_field: str
    target_field: str
    reason: str
    transformer: Optional[str] = None
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d

    def __str__(self) -> str:
        return f"{self.target_field}: {self.kind.value} - {self.reason}"
