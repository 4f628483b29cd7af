from __future__ import annotations
import csv
import hashlib
import io
import json
import logging
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .engine import BatchResult
from .profiles import MappingProfile
from .transformers import ArrayOptions


log = logging.getLogger(__name__)

DELIMITERS = [",", "\t", ";", "|"]
# Fields a scraped product sheet is expected to carry; used to find the header row
KNOWN_SOURCE_FIELDS = {"product_name", "price", "category", "brand", "images", "main_image", "description"}
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t")


@dataclass(frozen=True)
class CsvLayout:
    headers: List[str]
    delimiter: str
    encoding: str
    line_count: int
    fingerprint: str


def decode_bytes(raw: bytes) -> Tuple[str, str]:
    """Return (encoding, text). BOMs win; then strict UTF-8; then CP949 (EUC-KR superset)."""
    if raw.startswith(b"\xef\xbb\xbf"):
        return "UTF-8", raw[3:].decode("utf-8")
    if raw.startswith(b"\xff\xfe"):
        return "UTF-16LE", raw[2:].decode("utf-16-le")
    if raw.startswith(b"\xfe\xff"):
        return "UTF-16BE", raw[2:].decode("utf-16-be")
    try:
        return "UTF-8", raw.decode("utf-8")
    except UnicodeDecodeError:
        pass
    return "CP949", raw.decode("cp949", errors="replace")


def count_outside_quotes(line: str, delimiter: str) -> int:
    count = 0
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            count += 1
    return count


def detect_delimiter(line: str, candidates: Sequence[str] = DELIMITERS) -> str:
    best, best_count = ",", 0
    for d in candidates:
        n = count_outside_quotes(line, d)
        if n > best_count:
            best, best_count = d, n
    return best


def fingerprint(headers: Iterable[str], delimiter: str, encoding: str) -> str:
    """Stable id for a sheet layout: same columns + delimiter + encoding -> same hash."""
    norm = sorted(h.strip().lower() for h in headers)
    data = "|".join(norm) + f"|{delimiter}|{encoding}"
    return hashlib.md5(data.encode("utf-8")).hexdigest()


def sniff_delimiter(lines: Sequence[str], limit: int = 20) -> str:
    """Delimiter of the header row: the first line naming two known product
    fields under some candidate delimiter. Falls back to counting on the first line.
    """
    for line in lines[:limit]:
        for d in DELIMITERS:
            cells = {c.strip().strip('"').lower() for c in line.split(d)}
            if len(cells & KNOWN_SOURCE_FIELDS) >= 2:
                return d
    return detect_delimiter(lines[0]) if lines else ","


def _read_table(input_path: Path) -> Tuple[str, str, List[List[str]]]:
    encoding, text = decode_bytes(input_path.read_bytes())
    lines = [ln for ln in text.splitlines() if ln.strip()]
    if not lines:
        return encoding, ",", []
    delimiter = sniff_delimiter(lines)
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    return encoding, delimiter, [row for row in reader]


def _find_header(table: List[List[str]]) -> int:
    # Tolerates preface lines (export banners etc.) above the real header
    for i, row in enumerate(table):
        lower = {c.strip().lower() for c in row}
        if len(lower & KNOWN_SOURCE_FIELDS) >= 2:
            return i
    for i, row in enumerate(table):
        if any(c.strip() for c in row):
            return i
    return -1


def _rows_to_dicts(table: List[List[str]]) -> List[Dict[str, str]]:
    header_idx = _find_header(table)
    if header_idx == -1:
        return []
    header = [c.strip() for c in table[header_idx]]
    rows: List[Dict[str, str]] = []
    for raw in table[header_idx + 1 :]:
        if not raw or not any(str(c).strip() for c in raw):
            continue
        d: Dict[str, str] = {}
        for i, name in enumerate(header):
            if not name:
                continue
            d[name] = raw[i].strip() if i < len(raw) else ""
        rows.append(d)
    return rows


def analyze_csv(input_path: Path) -> CsvLayout:
    encoding, delimiter, table = _read_table(input_path)
    header_idx = _find_header(table)
    if header_idx == -1:
        raise ValueError(f"CSV file is empty: {input_path}")
    headers = [c.strip() for c in table[header_idx]]
    return CsvLayout(
        headers=headers,
        delimiter=delimiter,
        encoding=encoding,
        line_count=len(table),
        fingerprint=fingerprint(headers, delimiter, encoding),
    )


def read_rows(input_path: Path) -> list:
    """Read a scraped-product CSV/TSV into dict rows.

    Encoding and delimiter are detected; the header row is the first row
    naming at least two known product fields, else the first non-empty row.
    """
    encoding, delimiter, table = _read_table(input_path)
    rows = _rows_to_dicts(table)
    log.debug(f"read_rows: {input_path.name} encoding={encoding} delimiter={delimiter!r} rows={len(rows)}")
    return rows


def _val_to_str(v: Any) -> str:
    # Spreadsheet numeric cells: 15000.0 -> '15000'
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, numbers.Number):
        if float(v).is_integer():
            return str(int(v))
        return str(v)
    return "" if v is None else str(v)


def _read_rows_xlsx(input_path: Path) -> list:
    try:
        from openpyxl import load_workbook
    except ImportError:
        raise RuntimeError("openpyxl is required to read .xlsx workbooks") from None
    wb = load_workbook(filename=str(input_path), read_only=True, data_only=True)
    all_rows: list = []
    try:
        for ws in wb.worksheets:
            table = [[_val_to_str(v) for v in row] for row in ws.iter_rows(values_only=True)]
            all_rows.extend(_rows_to_dicts(table))
    finally:
        wb.close()
    return all_rows


def _read_rows_xls(input_path: Path) -> list:
    try:
        import xlrd
    except ImportError:
        raise RuntimeError("xlrd is required to read .xls files") from None
    book = xlrd.open_workbook(str(input_path))
    all_rows: list = []
    for sheet in book.sheets():
        table = [
            [_val_to_str(sheet.cell_value(r, c)) for c in range(sheet.ncols)]
            for r in range(sheet.nrows)
        ]
        all_rows.extend(_rows_to_dicts(table))
    return all_rows


def read_json_rows(input_path: Path) -> list:
    data = json.loads(input_path.read_text(encoding="utf-8"))
    if isinstance(data, Mapping):
        data = data.get("records") or data.get("products") or []
    if not isinstance(data, list):
        raise ValueError(f"{input_path}: expected a list of product objects")
    return [dict(r) for r in data if isinstance(r, Mapping)]


def read_any_rows(input_path: Path) -> list:
    ext = input_path.suffix.lower()
    if ext in (".xlsx", ".xlsm", ".xltx", ".xltm"):
        return _read_rows_xlsx(input_path)
    if ext == ".xls":
        return _read_rows_xls(input_path)
    if ext == ".json":
        return read_json_rows(input_path)
    # .csv, .tsv, .txt and anything else
    return read_rows(input_path)


def format_cell(value: Any, list_sep: str = ",", formula_guard: bool = True) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, (list, tuple)):
        text = list_sep.join(str(v) for v in value)
    else:
        text = str(value)
    # Numbers and booleans are never quoted; text and joined lists are
    if formula_guard and isinstance(value, (str, list, tuple)) and text.startswith(FORMULA_PREFIXES):
        text = "'" + text
    return text


def _list_separator(profile: MappingProfile, target_field: str) -> str:
    m = profile.mapping_for(target_field)
    if m is not None and isinstance(m.options, ArrayOptions):
        return m.options.separator
    return ","


def export_rows(records: Iterable[Mapping[str, Any]], profile: MappingProfile, formula_guard: bool = True) -> List[List[str]]:
    headers = profile.target_fields
    seps = {h: _list_separator(profile, h) for h in headers}
    out = [list(headers)]
    for rec in records:
        out.append([format_cell(rec.get(h), seps[h], formula_guard) for h in headers])
    return out


def write_export(output_path: Path, records: Iterable[Mapping[str, Any]], profile: MappingProfile, formula_guard: bool = True) -> int:
    """Write records in profile field order using the profile's delimiter and encoding."""
    md = profile.metadata
    rows = export_rows(records, profile, formula_guard)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", newline="", encoding=md.encoding) as f:
        writer = csv.writer(f, delimiter=md.delimiter)
        writer.writerows(rows)
    log.info(f"Wrote {len(rows) - 1} {profile.marketplace} rows to {output_path}")
    return len(rows) - 1


def write_error_report(output_path: Path, batch: BatchResult, profile_id: Optional[str] = None) -> None:
    report = {
        "profile_id": profile_id,
        "success_count": batch.success_count,
        "failure_count": batch.failure_count,
        "warning_count": batch.warning_count,
        "errors": batch.error_report(),
        "warnings": batch.warning_report(),
    }
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(report, ensure_ascii=False, indent=2, default=str), encoding="utf-8")
