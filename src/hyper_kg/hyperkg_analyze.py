#!/usr/bin/env python3
"""
hyperkg_analyze.py

CLI entry point: path → knowledge graph → report (and optional JSON export)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from hyper_kg.config import Settings
from hyper_kg.errors import HyperKGError
from hyper_kg.hyperkg import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_FILE_PATTERNS
from hyper_kg.kg import AnalysisReport, HyperKG
from hyper_kg.log import configure_logging


def add_analysis_args(p: argparse.ArgumentParser) -> None:
    """Options shared by every command that analyses a path first."""
    p.add_argument("path", help="Root file or directory to analyze")
    p.add_argument(
        "--no-recursive",
        dest="recursive",
        action="store_false",
        help="Do not descend into subdirectories",
    )
    p.add_argument(
        "--no-content",
        dest="include_content",
        action="store_false",
        help="Do not keep source text on nodes",
    )
    p.add_argument("--max-depth", type=int, default=10, help="Directory depth limit (default: 10)")
    p.add_argument(
        "--include",
        action="append",
        default=None,
        metavar="GLOB",
        help="Include pattern, repeatable (default: common source extensions)",
    )
    p.add_argument(
        "--exclude",
        action="append",
        default=None,
        metavar="GLOB",
        help="Exclude pattern, repeatable (default: node_modules, dist, .git, coverage)",
    )
    p.add_argument("--timeout", type=float, default=None, help="Walk time budget in seconds")
    p.add_argument("--model", default=None, help="Projection weights (.npy) (default: $HYPERKG_MODEL)")


def analyze_from_args(args: argparse.Namespace) -> tuple[HyperKG, AnalysisReport]:
    """
    Configure logging, build a :class:`HyperKG` and analyse ``args.path``.

    Exits with status 1 on a fatal analysis error.
    """
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    kg = HyperKG(settings, model=args.model)
    try:
        report = kg.analyze(
            args.path,
            recursive=args.recursive,
            include_content=args.include_content,
            max_depth=args.max_depth,
            file_patterns=args.include or DEFAULT_FILE_PATTERNS,
            exclude_patterns=args.exclude or DEFAULT_EXCLUDE_PATTERNS,
            timeout=args.timeout,
        )
    except (HyperKGError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    return kg, report


def main() -> None:
    p = argparse.ArgumentParser(
        description="Build a hyperbolic knowledge graph of a source tree and print a report."
    )
    add_analysis_args(p)
    p.add_argument("--out", default=None, help="Write the exported graph as JSON to this file")
    p.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = p.parse_args()

    kg, report = analyze_from_args(args)

    print(report.to_json() if args.json else report)

    if args.out:
        graph = kg.graph(report.graph_id)
        graph.save(Path(args.out))
        print(f"OK: graph={report.graph_id} json={args.out}", file=sys.stderr)


if __name__ == "__main__":
    main()
