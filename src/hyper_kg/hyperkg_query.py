#!/usr/bin/env python3
"""
hyperkg_query.py

CLI entry point: analyse a path, then run one query against the new graph.

Graphs are not persisted between processes, so every invocation
re-analyses the tree.
"""

from __future__ import annotations

import argparse

from hyper_kg.hyperkg_analyze import add_analysis_args, analyze_from_args
from hyper_kg.query import DEFAULT_LIMIT, QUERY_TYPES


def main() -> None:
    p = argparse.ArgumentParser(description="Query the knowledge graph of a source tree.")
    add_analysis_args(p)
    p.add_argument("--q", required=True, help="Query text")
    p.add_argument(
        "--type",
        default="similarity",
        choices=QUERY_TYPES,
        help="Query mode (default: similarity)",
    )
    p.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Maximum results (default: 10)")
    p.add_argument("--json", action="store_true", help="Print results as JSON")
    args = p.parse_args()

    kg, report = analyze_from_args(args)
    result = kg.query(args.q, type=args.type, limit=args.limit, graph_id=report.graph_id)

    if args.json:
        print(result.to_json())
    else:
        result.print_summary()


if __name__ == "__main__":
    main()
