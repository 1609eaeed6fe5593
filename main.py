#!/usr/bin/env python3
"""
Strip Nesting Optimizer
=======================
Main entry point: optimizes a strip packing instance and writes the
resulting layouts, a JSON report and optionally a benchmark CSV row.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from config import Config, DEFAULT_OPTIMIZER_CONFIG, OptimizerConfig
from instance_io import load_instance
from listener import SolutionListener
from optimizer import run_batch
from reports import summarize_runs, write_batch_report, write_benchmark_csv
from svg_exporter import SvgExporter, check_export_modes
from terminator import SignalTerminator
from utils import ensure_directory, setup_logging

# Setup logging
logger = logging.getLogger(__name__)


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be a non-negative integer, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Strip Nesting Optimizer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s swim.json                             # 600s run with default settings
  %(prog)s swim.json --time-limit 60 --seed 42   # Short reproducible run
  %(prog)s swim.json --runs 8 --early-termination --benchmark
  %(prog)s swim.json --live-svg                  # Keep a live SVG of the search
        """
    )

    parser.add_argument(
        "instance",
        help="Path to a strip packing instance (JSON)"
    )

    parser.add_argument(
        "--time-limit", "-t",
        type=float,
        help="Total time limit per run in seconds, split 80/20 between exploration "
             "and compression (default: the phase limits of the configuration, 600 in total)"
    )

    parser.add_argument(
        "--seed", "-s",
        type=non_negative_int,
        help="Random seed (a random seed is drawn and logged when omitted)"
    )

    parser.add_argument(
        "--runs", "-n",
        type=int,
        default=1,
        help="Number of independent runs (default: 1)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Candidate evaluation workers per separator"
    )

    parser.add_argument(
        "--min-separation",
        type=float,
        default=0.0,
        help="Minimum distance required between items (default: 0)"
    )

    parser.add_argument(
        "--early-termination", "-e",
        action="store_true",
        help="Stop exploration after repeated failures and use failure based shrink decay"
    )

    parser.add_argument(
        "--output", "-o",
        default="output/",
        help="Output directory for results (default: output/)"
    )

    parser.add_argument(
        "--live-svg",
        action="store_true",
        help="Overwrite a live SVG on every report"
    )

    parser.add_argument(
        "--only-final-svg",
        action="store_true",
        help="Only export the final SVG of each run"
    )

    parser.add_argument(
        "--benchmark",
        action="store_true",
        help=f"Append a row to {Config.EXPORT['benchmark_csv']} in the output directory"
    )

    parser.add_argument(
        "--config",
        help="Path to configuration file (JSON or YAML)"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser


def build_config(args: argparse.Namespace) -> OptimizerConfig:
    """Optimizer configuration from the config file and command line overrides."""
    check_export_modes(args.live_svg, args.only_final_svg)

    config = OptimizerConfig.from_file(args.config) if args.config else DEFAULT_OPTIMIZER_CONFIG
    if args.time_limit is not None:
        config = config.with_time_limit(args.time_limit)
    if args.early_termination:
        config = config.with_early_termination()
    if args.workers is not None:
        config = config.with_workers(args.workers)
    return config


def build_listener(args: argparse.Namespace, instance_name: str, run_id: int) -> SolutionListener:
    output_dir = Path(args.output)
    return SvgExporter(
        final_path=output_dir / f"final_{instance_name}_{run_id}.svg",
        intermediate_dir=None if args.only_final_svg else output_dir / f"sols_{instance_name}_{run_id}",
        live_path=output_dir / f".live_{instance_name}_{run_id}.svg" if args.live_svg else None
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    if args.verbose:
        setup_logging("DEBUG")
    else:
        setup_logging("INFO")

    try:
        config = build_config(args)
        output_dir = ensure_directory(args.output)
        instance = load_instance(args.instance, min_separation=args.min_separation)

        interrupt = SignalTerminator.with_interrupt_handler()
        start_time = time.time()

        results = run_batch(
            instance,
            config,
            n_runs=args.runs,
            seed=args.seed,
            cancel_event=interrupt.cancel_event,
            listener_factory=lambda run_id: build_listener(args, instance.name, run_id)
        )

        running_time_ms = int((time.time() - start_time) * 1000)
        write_batch_report(results, instance, output_dir / f"report_{instance.name}.json")

        if args.benchmark:
            write_benchmark_csv(
                output_dir / Config.EXPORT['benchmark_csv'],
                seed=results[0].seed,
                early_termination=args.early_termination,
                running_time_ms=running_time_ms
            )

        summary = summarize_runs(results)

        # Print results
        print("\n" + "="*60)
        print("NESTING RESULTS")
        print("="*60)
        print(f"Instance: {instance.name} ({instance.n_items} items)")
        print(f"Runs: {summary['runs']} ({summary['feasible_runs']} feasible)")
        if summary['feasible_runs']:
            density = summary['final_density']
            print(f"Density: best {density['max']:.3%}, mean {density['mean']:.3%}")
            print(f"Narrowest strip: {summary['strip_width']['min']:.4f}")
        print(f"Running Time: {running_time_ms / 1000:.1f}s")
        print("="*60)

    except Exception as e:
        logger.error(f"Error: {e}", exc_info=args.verbose)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
