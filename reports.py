"""
reports.py - Benchmark Reporting
================================
Benchmark CSV logging and summaries of batch results.
"""

import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from models import Instance
from optimizer import RunResult
from utils import calculate_statistics, ensure_directory, get_cpu_model, get_git_commit_hash, save_json


logger = logging.getLogger(__name__)

BENCHMARK_HEADER = ['Timestamp', 'CPU', 'CommitHash', 'Seed', 'EarlyTermination', 'RunningTime']


def write_benchmark_csv(filepath: Union[str, Path], seed: Optional[int], early_termination: bool,
                        running_time_ms: int, cpu: Optional[str] = None,
                        commit_hash: Optional[str] = None) -> Path:
    """
    Append one semicolon separated benchmark row, writing the header first
    when the file does not exist yet.
    """
    filepath = Path(filepath)
    ensure_directory(filepath.parent)
    write_header = not filepath.exists()

    row = [
        datetime.now(timezone.utc).isoformat(),
        cpu if cpu is not None else get_cpu_model(),
        commit_hash if commit_hash is not None else get_git_commit_hash(),
        seed if seed is not None else 0,
        str(early_termination).lower(),
        running_time_ms,
    ]

    with open(filepath, 'a', newline='') as f:
        writer = csv.writer(f, delimiter=';')
        if write_header:
            writer.writerow(BENCHMARK_HEADER)
        writer.writerow(row)

    logger.info(f"Benchmark row appended to {filepath}")
    return filepath


def summarize_runs(results: List[RunResult]) -> Dict[str, Any]:
    """Statistics over the final results of a batch."""
    feasible = [r for r in results if r.feasible]
    return {
        'runs': len(results),
        'feasible_runs': len(feasible),
        'final_density': calculate_statistics([r.final_density for r in feasible]),
        'explore_density': calculate_statistics([r.explore_density for r in feasible]),
        'density_gain': calculate_statistics([r.density_gain for r in feasible]),
        'strip_width': calculate_statistics([r.final.strip_width for r in feasible]),
    }


def run_to_dict(result: RunResult, instance: Instance) -> Dict[str, Any]:
    """JSON-friendly view of one run, including the final poses."""
    return {
        'run_id': result.run_id,
        'seed': result.seed,
        'feasible': result.feasible,
        'strip_width': result.final.strip_width,
        'explore_density': round(result.explore_density, 6),
        'final_density': round(result.final_density, 6),
        'exploration_time': round(result.exploration_time, 3),
        'compression_time': round(result.compression_time, 3),
        'exploration_stop': result.exploration_stop,
        'compression_stop': result.compression_stop,
        'n_explored_solutions': len(result.explored_solutions),
        'placements': [
            {'item_id': instance.items[index].id, 'index': index,
             'x': pose.x, 'y': pose.y, 'rotation': pose.rotation}
            for index, pose in result.final.poses()
        ],
    }


def write_batch_report(results: List[RunResult], instance: Instance,
                       filepath: Union[str, Path]) -> Dict[str, Any]:
    """Write the batch summary and every run to a JSON file."""
    report = {
        'instance': instance.name,
        'n_items': instance.n_items,
        'strip_height': instance.strip_height,
        'summary': summarize_runs(results),
        'runs': [run_to_dict(r, instance) for r in results],
    }
    save_json(report, filepath)
    logger.info(f"Batch report saved to {filepath}")
    return report
