"""
Transformation engine: apply a MappingProfile to scraped product records.

``transform`` is a pure function of ``(record, profile)``. Each field mapping
is processed on its own; a failing field is reported as a ``FieldError`` and
never stops the other fields. The result always carries the record built so
far, so batch callers can keep partial rows for operator review.
Lossy but successful steps (default used, truncation, unmapped vocabulary
term) are kept as ``FieldWarning`` records next to the errors.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import ErrorKind, FieldError, FieldWarning, TransformError, WarningKind
from .normalize import is_missing
from .profiles import FieldMapping, MappingProfile
from .transformers import get_transformer
from .validators import get_validator


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformResult:
    success: bool
    record: Dict[str, Any]
    errors: Tuple[FieldError, ...] = ()
    profile_id: str = ""
    warnings: Tuple[FieldWarning, ...] = ()

    @property
    def fatal_errors(self) -> List[FieldError]:
        return [e for e in self.errors if e.fatal]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "profile_id": self.profile_id,
            "record": dict(self.record),
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass(frozen=True)
class BatchResult:
    results: Tuple[TransformResult, ...]
    success_count: int = 0
    failure_count: int = 0

    @property
    def success(self) -> bool:
        return self.failure_count == 0

    @property
    def records(self) -> List[Dict[str, Any]]:
        return [r.record for r in self.results]

    def error_report(self) -> List[Dict[str, Any]]:
        # Rows are 1-based, as operators see them in spreadsheets
        out = []
        for idx, r in enumerate(self.results, start=1):
            for e in r.errors:
                out.append({"row": idx, **e.to_dict()})
        return out

    def warning_report(self) -> List[Dict[str, Any]]:
        out = []
        for idx, r in enumerate(self.results, start=1):
            for w in r.warnings:
                out.append({"row": idx, **w.to_dict()})
        return out

    @property
    def warning_count(self) -> int:
        return sum(len(r.warnings) for r in self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "warning_count": self.warning_count,
            "results": [r.to_dict() for r in self.results],
        }


def _is_fatal(mapping: FieldMapping, required_targets: frozenset) -> bool:
    return mapping.required or mapping.target_field in required_targets


def _warn(warnings: Optional[List[FieldWarning]], mapping: FieldMapping, kind: WarningKind, reason: str, transformer: Optional[str] = None, value: Any = None) -> None:
    if warnings is None:
        return
    warnings.append(FieldWarning(
        kind=kind,
        source_field=mapping.source_field,
        target_field=mapping.target_field,
        reason=reason,
        transformer=transformer,
        value=value,
    ))


def apply_mapping(
    record: Mapping[str, Any],
    mapping: FieldMapping,
    required_targets: frozenset = frozenset(),
    warnings: Optional[List[FieldWarning]] = None,
) -> Tuple[bool, Any, FieldError | None]:
    """Run one field mapping.

    Returns ``(present, value, error)``: ``present`` is False when the field is
    left out of the output, either because it failed or because an optional
    source value was missing. Non-fatal notes (default used, truncation,
    unmapped vocabulary term) are appended to ``warnings`` when given.
    """
    raw = record.get(mapping.source_field)
    if is_missing(raw):
        if mapping.has_default:
            raw = mapping.default_value
            _warn(warnings, mapping, WarningKind.default_applied, f"source value missing, used default {raw!r}", value=raw)
        elif mapping.required:
            return False, None, FieldError(
                kind=ErrorKind.missing_required_field,
                source_field=mapping.source_field,
                target_field=mapping.target_field,
                reason=f"required source field '{mapping.source_field}' is empty",
                fatal=True,
            )
        else:
            return False, None, None

    fatal = _is_fatal(mapping, required_targets)
    notes: List[Tuple[WarningKind, str]] = []
    try:
        value = get_transformer(mapping.transformer)(raw, mapping.options, notes)
    except TransformError as e:
        return False, None, FieldError(
            kind=ErrorKind.transformation_failed,
            source_field=mapping.source_field,
            target_field=mapping.target_field,
            reason=e.reason,
            fatal=fatal,
            transformer=mapping.transformer,
            value=raw,
        )

    for kind, reason in notes:
        _warn(warnings, mapping, kind, reason, transformer=mapping.transformer, value=raw)

    if mapping.validator and not get_validator(mapping.validator)(value, mapping.validator_options):
        return False, None, FieldError(
            kind=ErrorKind.validation_failed,
            source_field=mapping.source_field,
            target_field=mapping.target_field,
            reason=f"value failed '{mapping.validator}' check",
            fatal=fatal,
            validator=mapping.validator,
            value=value,
        )
    return True, value, None


def transform(record: Mapping[str, Any], profile: MappingProfile) -> TransformResult:
    required_targets = frozenset(profile.metadata.required_fields)
    out: Dict[str, Any] = {}
    errors: List[FieldError] = []
    warnings: List[FieldWarning] = []

    for mapping in profile.mappings:
        present, value, err = apply_mapping(record, mapping, required_targets, warnings)
        if err is not None:
            log.debug(f"[{profile.id}] {err}")
            errors.append(err)
        if present:
            out[mapping.target_field] = value

    # Required targets that are absent without an error of their own
    reported = {e.target_field for e in errors}
    for mapping in profile.mappings:
        tgt = mapping.target_field
        if tgt in required_targets and tgt not in out and tgt not in reported:
            errors.append(FieldError(
                kind=ErrorKind.missing_required_field,
                source_field=mapping.source_field,
                target_field=tgt,
                reason=f"'{tgt}' is required by profile '{profile.id}' but has no value",
                fatal=True,
            ))

    success = not any(e.fatal for e in errors) and all(t in out for t in required_targets)
    for w in warnings:
        log.debug(f"[{profile.id}] {w}")
    return TransformResult(success=success, record=out, errors=tuple(errors), profile_id=profile.id, warnings=tuple(warnings))


def transform_many(records: Iterable[Mapping[str, Any]], profile: MappingProfile) -> BatchResult:
    results = [transform(r, profile) for r in records]
    ok = sum(1 for r in results if r.success)
    batch = BatchResult(results=tuple(results), success_count=ok, failure_count=len(results) - ok)
    log.info(f"[{profile.id}] transformed {len(results)} records: {ok} ok, {batch.failure_count} failed, {batch.warning_count} warnings")
    return batch
