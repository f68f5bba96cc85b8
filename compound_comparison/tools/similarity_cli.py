#!/usr/bin/env python
"""
compound-search: find compounds at least N% Tanimoto-similar to a library compound.

Runs the same threshold search with one or more execution strategies and reports,
per strategy, the number of matches and the elapsed time.

Examples
--------
# Run every strategy at 70% similarity
compound-search 46209006 library.csv -t 0.7

# Only the scan strategy, write hits + metadata sidecar
compound-search 46209006 library.csv -t 0.8 --strategy scan -o hits.csv

# Use a precomputed fingerprint-count table and run strategies concurrently
compound-search 46209006 library.parquet -t 0.5 --counts counts.csv -j 3 --timeout 30

# List available strategies
compound-search --list-strategies

Exit status: 0 on success, 1 on search errors, 2 on usage errors, 3 when
strategies return different match sets.
"""

import argparse
import sys
from pathlib import Path

from compound_comparison.config import load_config
from compound_comparison.core.io import write_table
from compound_comparison.core.metadata import write_run_metadata
from compound_comparison.core.printing import print_banner, print_section
from compound_comparison.errors import SearchError
from compound_comparison.similarity import (
    SEARCH_STRATEGIES,
    FrequencyIndex,
    QueryOrchestrator,
    as_threshold,
)
from compound_comparison.store import TableCompoundStore

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_MISMATCH = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compound-search",
        description="Threshold Tanimoto similarity search over compound fingerprints",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "query",
        nargs="?",
        help="Identifier of the query compound in the library",
    )
    parser.add_argument(
        "library",
        nargs="?",
        help="Compound library table (CSV, TSV, or Parquet) with a fingerprint column",
    )
    parser.add_argument(
        "-t", "--threshold",
        type=float,
        help="Similarity threshold in (0, 1]",
    )

    # Strategy options
    parser.add_argument(
        "-s", "--strategy",
        action="append",
        choices=sorted(SEARCH_STRATEGIES),
        help="Strategy to run; repeat for several (default: all)",
    )
    parser.add_argument(
        "--pipeline-prefix",
        action="store_true",
        help="Also apply the prefix filter in the first aggregate pipeline stage",
    )
    parser.add_argument(
        "--config",
        help="JSON file with search settings (strategies, n_jobs, timeout, ...)",
    )

    # Library layout
    parser.add_argument(
        "--counts",
        help="Fingerprint-count table (Fingerprint, Count); computed from the library if omitted",
    )
    parser.add_argument("--id-col", help="Compound id column (default: auto-detect)")
    parser.add_argument("--smiles-col", help="SMILES column (default: auto-detect)")
    parser.add_argument("--fp-col", help="Fingerprint list column (default: auto-detect)")
    parser.add_argument("--count-col", help="Fingerprint count column (default: auto-detect)")

    # Output options
    parser.add_argument(
        "-o", "--output",
        help="Write matches to this table (CSV/TSV/Parquet) plus a metadata sidecar",
    )

    # Performance options
    parser.add_argument(
        "-j", "--jobs",
        type=int,
        default=None,
        help="Run strategies concurrently with N threads (default: 1, sequential)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Abort when the strategies take longer than this many seconds in total",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar while verifying scan candidates",
    )

    # Info options
    parser.add_argument(
        "--list-strategies",
        action="store_true",
        help="List available search strategies",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_strategies:
        _list_strategies()
        return EXIT_OK

    if not args.query or not args.library:
        parser.error("Query compound id and library are required")
    if args.threshold is None:
        parser.error("--threshold is required")

    try:
        config = load_config(args.config).replace(
            strategies=tuple(args.strategy) if args.strategy else None,
            n_jobs=args.jobs,
            timeout=args.timeout,
            show_progress=True if args.progress else None,
            pipeline_prefix=True if args.pipeline_prefix else None,
        )
    except (OSError, ValueError) as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return EXIT_ERROR

    try:
        # Reject a bad threshold before the library is even read
        as_threshold(args.threshold)
        return _run_search(args, config)
    except (SearchError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


def _list_strategies():
    """Print available search strategies."""
    print("\nAvailable search strategies:\n")
    print(f"{'Strategy':<15} {'Description'}")
    print("-" * 70)
    for name, desc in SEARCH_STRATEGIES.items():
        print(f"{name:<15} {desc}")
    print()


def _run_search(args, config):
    """Load the library, run the query and report per-strategy results."""
    if args.verbose:
        print(f"Library: {args.library}", file=sys.stderr)
        print(f"Strategies: {', '.join(config.strategies)}", file=sys.stderr)

    store = TableCompoundStore.from_table(
        args.library,
        id_col=args.id_col,
        label_col=args.smiles_col,
        fp_col=args.fp_col,
        count_col=args.count_col,
    )

    with store:
        frequencies = None
        if args.counts:
            frequencies = FrequencyIndex.from_table(args.counts)
        if args.verbose:
            print(f"Loaded {len(store)} compounds", file=sys.stderr)

        orchestrator = QueryOrchestrator(store, frequency_index=frequencies, config=config)
        report = orchestrator.run(args.query, args.threshold)

    query = report.query
    bounds = report.bounds
    print_banner(
        f"Trying to find {float(query.threshold) * 100:g}% similar compounds for "
        f"{query.item.item_id} ( {query.item.label} )"
    )
    print(f"Compound has {query.size} unique fingerprints")
    print(
        f"Candidate size range [{bounds.min_size}, {bounds.max_size}], "
        f"prefix of {len(bounds.prefix)} fingerprints\n"
    )

    for r in report.reports:
        print_section(f"Executing using {r.strategy} ...")
        print(f"{r.n_matches} matching compounds")
        print(f"Total time for {r.strategy}: {r.elapsed_ms:.1f} ms\n")

    df = report.to_dataframe()

    if args.output:
        output_path = Path(args.output)
        write_table(df, str(output_path))
        sidecar = write_run_metadata(
            tool="compound-search",
            output_table_path=output_path,
            input_path=args.library,
            parameters={
                "query": query.item.item_id,
                "threshold": float(query.threshold),
                "counts_table": args.counts,
                **config.to_dict(),
            },
            results={
                "min_size": bounds.min_size,
                "max_size": bounds.max_size,
                "prefix_size": len(bounds.prefix),
                "consistent": report.consistent,
                "strategies": report.summary_dataframe().to_dict(orient="records"),
            },
        )
        print(f"Results saved to {output_path}", file=sys.stderr)
        if args.verbose:
            print(f"Metadata saved to {sidecar}", file=sys.stderr)
    elif args.verbose and not df.empty:
        print(df.to_string(index=False))

    mismatches = report.mismatches()
    if mismatches:
        for a, b in mismatches:
            print(f"Warning: strategies '{a}' and '{b}' returned different matches", file=sys.stderr)
        return EXIT_MISMATCH

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
