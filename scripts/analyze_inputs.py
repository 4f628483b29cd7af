#!/usr/bin/env python3
import sys
from pathlib import Path
from collections import Counter

sys.path.append(str(Path(__file__).resolve().parents[1] / 'src'))
from market_mapper.io import analyze_csv, read_rows  # type: ignore
from market_mapper.vocabulary import CATEGORY_TABLE  # type: ignore


def main():
    root = Path(sys.argv[1] if len(sys.argv) > 1 else 'data/input')
    files = sorted(p for p in root.glob('*') if p.suffix.lower() in ('.csv', '.tsv', '.txt'))
    rows = []
    layouts = Counter()
    print('Files considered:')
    for p in files:
        layout = analyze_csv(p)
        layouts[layout.fingerprint] += 1
        delim = 'TAB' if layout.delimiter == '\t' else layout.delimiter
        print(f'- {p.name}: encoding={layout.encoding} delimiter={delim} columns={len(layout.headers)} layout={layout.fingerprint[:8]}')
        rows.extend(read_rows(p))

    c_cat = Counter([(r.get('category') or '').strip() for r in rows])
    c_has_price = sum(1 for r in rows if (r.get('price') or '').strip())
    c_has_brand = sum(1 for r in rows if (r.get('brand') or '').strip())
    c_has_image = sum(1 for r in rows if (r.get('images') or r.get('main_image') or '').strip())

    print(f"\nDistinct layouts: {len(layouts)}")
    print(f"Total input rows: {len(rows)}")
    print(f"Rows with price: {c_has_price}")
    print(f"Rows with brand: {c_has_brand}")
    print(f"Rows with an image: {c_has_image}")

    print('\nTop category values:')
    for k, v in c_cat.most_common(20):
        mark = '' if not k or k in CATEGORY_TABLE else '  (unmapped)'
        print(f'- {k or "(missing)"}: {v}{mark}')


if __name__ == '__main__':
    main()
