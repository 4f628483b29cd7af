#!/usr/bin/env python3
"""Self-test for the vocabulary tables and built-in profiles.

No input files required. Validates load-time checks and category round trips.
"""
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'src'))

from market_mapper.profiles import builtin_profiles  # type: ignore
from market_mapper.transformers import get_transformer  # type: ignore
from market_mapper.vocabulary import BRAND_TABLE, CATEGORY_TABLE  # type: ignore


def main() -> int:
    assert CATEGORY_TABLE.is_bijective(), CATEGORY_TABLE.collisions()
    assert BRAND_TABLE.is_bijective(), BRAND_TABLE.collisions()
    to_category = get_transformer('toCategory')
    for src, _ in CATEGORY_TABLE:
        assert to_category(to_category(src)) == src, src
    for p in builtin_profiles():
        targets = set(p.target_fields)
        assert set(p.metadata.required_fields) <= targets, p.id
    print('Self-test ok: vocabulary tables are bijective and built-in profiles load')
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
