#!/usr/bin/env python3
"""
Plan Quality Report

Computes per-resource coverage, plan analytics and recommendations for a
saved plan and optionally writes the JSON export document.

Houses are merged from the public registry first, then from each private
registry; the first record seen for a houseId wins.

Usage:
    python plan_report.py data/sample_plan.json --houses data/sample_houses.json
    python plan_report.py plan.json --houses houses.json --database db.json
    python plan_report.py plan.json --houses houses.json --export out.json
"""

import argparse
import json
import sys
from pathlib import Path

from coverage_lib import CoverageAnalyzer
from plan_analytics import (
    build_plan_export,
    export_file_name,
    generate_recommendations,
    print_analytics_summary,
    summarize,
)
from records import DATA_DIR, flatten_database_records, plan_resources, resource_position

DEFAULT_HOUSES = DATA_DIR / "sample_houses.json"


def load_plan(path) -> dict:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Plan file not found: '{path}'")
    with open(path, "r") as f:
        plan = json.load(f)
    if not isinstance(plan, dict):
        raise ValueError(f"Invalid plan file '{path}'. Expected a JSON object.")
    return plan


def load_database(path) -> dict:
    """Load a private registry document (or a bare JSON array of records)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Database file not found: '{path}'")
    with open(path, "r") as f:
        content = json.load(f)
    if isinstance(content, list):
        return {"id": path.stem, "name": path.stem, "data": content}
    if isinstance(content, dict):
        content.setdefault("id", path.stem)
        return content
    raise ValueError(f"Invalid database file '{path}'.")


def build_analyzer(houses_path, database_paths) -> CoverageAnalyzer:
    analyzer = CoverageAnalyzer()
    analyzer.load_houses(houses_path)

    if database_paths:
        databases = [load_database(p) for p in database_paths]
        private_houses = flatten_database_records(databases)
        before = len(analyzer.houses)
        analyzer.add_houses(private_houses)
        print(f"Merged {len(analyzer.houses) - before} houses from "
              f"{len(databases)} private database(s)")
    return analyzer


def main():
    parser = argparse.ArgumentParser(description="Plan quality report")
    parser.add_argument("plan", help="Path to a saved plan (JSON object)")
    parser.add_argument("--houses", default=str(DEFAULT_HOUSES),
                        help="Public house registry (JSON array)")
    parser.add_argument("--database", action="append", default=[],
                        help="Private registry file; may be repeated")
    parser.add_argument("--export", nargs="?", const="",
                        help="Write the JSON export (default file name if no path given)")
    args = parser.parse_args()

    try:
        plan = load_plan(args.plan)
        analyzer = build_analyzer(args.houses, args.database)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    unplaced = [r for r in plan_resources(plan) if None in resource_position(r)]
    if unplaced:
        print(f"Warning: {len(unplaced)} resource(s) have no position and cover no houses")

    stats = analyzer.compute_plan_coverage(plan)
    analytics = summarize(plan_resources(plan))
    recommendations = generate_recommendations(analytics)
    print_analytics_summary(plan, stats, analytics, recommendations)

    coverage = analyzer.compute_basic_coverage(plan)
    print(f"\nResidents within reach of any facility: {coverage['covered']:,.0f} / "
          f"{coverage['total']:,.0f} ({coverage['coverage_pct']:.2f}%)")
    print(f"Houses covered: {coverage['houses_covered']} / {coverage['houses_total']}")

    uncovered = analyzer.find_uncovered_houses(plan)
    if uncovered:
        ids = [str(h.get("houseId")) for h in uncovered[:10] if isinstance(h, dict)]
        more = f" (+{len(uncovered) - 10} more)" if len(uncovered) > 10 else ""
        print(f"Uncovered houses: {len(uncovered)} - {', '.join(ids)}{more}")

    if args.export is not None:
        out_path = Path(args.export or export_file_name(plan))
        document = build_plan_export(plan, analyzer.houses)
        with open(out_path, "w") as f:
            json.dump(document, f, indent=2, default=str)
        print(f"\n✅ Export saved to: {out_path}")


if __name__ == "__main__":
    main()
