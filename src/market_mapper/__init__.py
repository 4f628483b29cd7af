"""
Scraped product → marketplace export mapper.

This package provides modular building blocks for:
- Translating category and brand vocabulary between source and marketplace terms
- Converting and validating individual fields with named transformers/validators
- Declaring per-marketplace mapping profiles and looking them up
- Transforming product records into marketplace export rows with per-field errors
- Reading scraped product files and writing delimited export files

Public API:
- vocabulary.VocabularyTable, vocabulary.CATEGORY_TABLE, vocabulary.BRAND_TABLE
- transformers.TRANSFORMERS, transformers.get_transformer
- validators.VALIDATORS, validators.get_validator
- profiles.MappingProfile, profiles.FieldMapping, profiles.profile_from_dict, profiles.builtin_profiles
- registry.ProfileRegistry, registry.build_registry
- engine.transform, engine.transform_many, engine.TransformResult (errors and warnings)
- errors.FieldError, errors.FieldWarning
- io.read_any_rows, io.write_export, io.analyze_csv
"""

from . import errors, vocabulary, normalize, options, transformers, validators, profiles, registry, engine, io  # re-export modules
from .engine import transform, transform_many, TransformResult, BatchResult
from .errors import FieldError, FieldWarning
from .profiles import FieldMapping, MappingProfile, ProfileMetadata
from .registry import ProfileRegistry, build_registry

__all__ = [
    "errors",
    "vocabulary",
    "normalize",
    "options",
    "transformers",
    "validators",
    "profiles",
    "registry",
    "engine",
    "io",
    "transform",
    "transform_many",
    "TransformResult",
    "BatchResult",
    "FieldError",
    "FieldWarning",
    "FieldMapping",
    "MappingProfile",
    "ProfileMetadata",
    "ProfileRegistry",
    "build_registry",
]
