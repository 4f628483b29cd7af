#!/usr/bin/env python3
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from market_mapper.engine import transform_many
from market_mapper.io import read_any_rows, write_error_report, write_export
from market_mapper.registry import ProfileRegistry, build_registry


log = logging.getLogger("market_export")

INPUT_EXTS = {".csv", ".tsv", ".txt", ".json", ".xlsx", ".xlsm", ".xls"}


# --------------------------------------------
# Env loader
# --------------------------------------------

def load_env_file(env_path: Optional[str]) -> None:
    """Load simple KEY=VALUE lines into os.environ. Ignores comments and blank lines."""
    if not env_path:
        return
    p = Path(env_path)
    if not p.exists():
        return
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        log.warning(f"Could not read env file {p}: {e}")
        return
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")
        if key:
            os.environ[key] = val


def _split_paths(value: str) -> List[Path]:
    return [Path(p) for p in value.split(os.pathsep) if p.strip()]


def select_profile(registry: ProfileRegistry, profile_id: str, marketplace: str):
    if profile_id:
        return registry.get_by_id(profile_id)
    if marketplace:
        found = registry.get_by_marketplace(marketplace)
        if len(found) > 1:
            log.warning(f"Marketplace {marketplace} has {len(found)} profiles; using {found[0].id}")
        return found[0]
    raise SystemExit("Either --profile or --marketplace is required")


def collect_inputs(args) -> list:
    rows: list = []
    if args.input_dir:
        root = Path(args.input_dir)
        if not root.exists():
            raise FileNotFoundError(f"Input directory not found: {root}")
        for p in sorted(root.iterdir()):
            if p.is_file() and p.suffix.lower() in INPUT_EXTS:
                rows.extend(read_any_rows(p))
    elif args.input:
        p = Path(args.input)
        if not p.exists():
            raise FileNotFoundError(f"Input file not found: {p}")
        rows.extend(read_any_rows(p))
    else:
        raise SystemExit("Either --input or --input-dir is required")
    if args.limit and args.limit > 0:
        rows = rows[: args.limit]
    return rows


def print_profiles(registry: ProfileRegistry) -> None:
    for p in registry.profiles():
        delim = "TAB" if p.metadata.delimiter == "\t" else p.metadata.delimiter
        print(f"{p.id:<20} {p.marketplace:<10} fields={len(p.mappings):<3} delimiter={delim} {p.name}")


def main(argv: Optional[List[str]] = None) -> int:
    # Load .env from project root and CWD first so defaults come from env
    project_env = Path(__file__).resolve().parent.parent / ".env"
    load_env_file(str(project_env))
    load_env_file(str(Path.cwd() / ".env"))

    # Early parse to pick up --env-file, then load it
    env_only = argparse.ArgumentParser(add_help=False)
    env_only.add_argument("--env-file", default="")
    early_args, remaining = env_only.parse_known_args(argv)
    load_env_file(early_args.env_file or None)

    parser = argparse.ArgumentParser(description="Transform scraped product files into marketplace export files.", parents=[env_only])
    parser.add_argument("--input", help="Path to a single scraped product file (csv/tsv/json/xlsx/xls)")
    parser.add_argument("--input-dir", default="", help="Directory of product files to combine")
    parser.add_argument("--output", help="Path to the marketplace export file")
    parser.add_argument("--errors", default="", help="Path to the JSON error report (default: <output>.errors.json)")
    parser.add_argument("--profile", default=os.getenv("MAPPER_PROFILE", ""), help="Mapping profile id (e.g. cafe24-standard)")
    parser.add_argument("--marketplace", default=os.getenv("MAPPER_MARKETPLACE", ""), help="Marketplace name; uses its first profile")
    parser.add_argument("--profiles", default=os.getenv("MAPPER_PROFILES", ""), help=f"Extra JSON profile files or directories, separated by '{os.pathsep}'")
    parser.add_argument("--limit", type=int, default=int(os.getenv("MAPPER_LIMIT", "0")), help="Only process the first N records; 0 means no limit")
    parser.add_argument("--only-valid", action="store_true", help="Write only records that transformed successfully")
    parser.add_argument("--no-formula-guard", action="store_true", help="Do not prefix cells starting with = + - @ with a quote")
    parser.add_argument("--strict", action="store_true", help="Exit with status 2 when any record fails")
    parser.add_argument("--list-profiles", action="store_true", help="List available profiles and exit")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug logging")
    args = parser.parse_args(remaining)

    level = getattr(logging, os.getenv("MAPPER_LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")

    registry = build_registry(_split_paths(args.profiles))
    if args.list_profiles:
        print_profiles(registry)
        return 0
    if not args.output:
        raise SystemExit("--output is required")

    profile = select_profile(registry, args.profile, args.marketplace)
    rows = collect_inputs(args)
    log.info(f"Transforming {len(rows)} records with profile {profile.id}")
    batch = transform_many(rows, profile)

    records = [r.record for r in batch.results if r.success] if args.only_valid else batch.records
    output_path = Path(args.output)
    written = write_export(output_path, records, profile, formula_guard=not args.no_formula_guard)
    errors_path = Path(args.errors) if args.errors else output_path.with_suffix(output_path.suffix + ".errors.json")
    write_error_report(errors_path, batch, profile.id)

    print(f"Wrote {written} {profile.marketplace} rows to {output_path} ({batch.success_count} ok, {batch.failure_count} failed)")
    if batch.failure_count:
        print(f"Error report: {errors_path}")
    if args.strict and batch.failure_count:
        return 2
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
