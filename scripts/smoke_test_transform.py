#!/usr/bin/env python3
"""Basic smoke test for the mapping engine.

Runs a sample scraped product through every built-in profile and writes one
export file per marketplace. No input files or network needed.
"""
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'src'))

from market_mapper.engine import transform_many  # type: ignore
from market_mapper.io import write_export  # type: ignore
from market_mapper.registry import build_registry  # type: ignore


SAMPLE = {
    'product_name': 'Oversized Cotton Shirt',
    'price': '₩39,000',
    'category': '상의',
    'category_code': '50000803',
    'brand': 'uniqlo',
    'images': 'https://cdn.example.com/p/1.jpg',
    'main_image': 'cdn.example.com/p/1.jpg',
    'stock': '12',
    'color': 'white',
}


def main() -> int:
    registry = build_registry()
    out_dir = ROOT / 'data' / 'output'
    failed = 0
    for profile in registry.profiles():
        batch = transform_many([SAMPLE], profile)
        result = batch.results[0]
        if not result.success:
            failed += 1
            print(f"[{profile.id}] FAILED:")
            for e in result.fatal_errors:
                print(f"  - {e}")
            continue
        ext = 'tsv' if profile.metadata.delimiter == '\t' else 'csv'
        out_path = out_dir / f'smoke_{profile.marketplace}.{ext}'
        write_export(out_path, batch.records, profile)
        print(f"[{profile.id}] ok: {len(result.record)} fields -> {out_path}")
    if failed:
        print(f"Smoke test failed: {failed} profile(s) rejected the sample")
        return 1
    print("Smoke test ok")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
