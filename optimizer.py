"""
optimizer.py - Optimization Driver
==================================
Runs construction, exploration and compression for one instance, and runs
batches of independent seeded runs in parallel.

Each run owns its RNG chain, terminator, layouts and separators. Runs
share only the read-only instance and, in a batch, the cancel flag.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional
import logging
import threading
import time

from collision import CollisionEngine
from compression import CompressionResult, compression_phase
from config import DEFAULT_OPTIMIZER_CONFIG, OptimizerConfig
from exploration import ExplorationResult, exploration_phase
from lbf_builder import LBFBuilder
from listener import DummySolutionListener, ReportKind, SolutionListener
from models import Instance, Solution
from rng_chain import RngChain
from separator import Separator
from terminator import BasicTerminator, SignalTerminator, Terminator
from utils import available_cpu_count

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Everything an external driver needs from one run."""
    run_id: int
    seed: int
    exploration: ExplorationResult
    compression: Optional[CompressionResult]
    final: Solution
    explore_density: float
    final_density: float
    exploration_time: float
    compression_time: float
    exploration_stop: Optional[str] = None
    compression_stop: Optional[str] = None

    @property
    def feasible(self) -> bool:
        return self.final.feasible

    @property
    def density_gain(self) -> float:
        return self.final_density - self.explore_density

    @property
    def explored_solutions(self) -> List[Solution]:
        return self.exploration.solutions


def optimize(instance: Instance,
             config: OptimizerConfig = DEFAULT_OPTIMIZER_CONFIG,
             listener: Optional[SolutionListener] = None,
             terminator: Optional[Terminator] = None,
             rng_chain: Optional[RngChain] = None,
             run_id: int = 0) -> RunResult:
    """
    Run one full optimization.

    Both phases get a fresh deadline from the same terminator. Compression
    only runs when exploration found a feasible layout; otherwise the best
    infeasible layout is reported as final.
    """
    listener = listener or DummySolutionListener()
    terminator = terminator or BasicTerminator()
    rng_chain = rng_chain or RngChain(config.rng_seed)

    # Fixed spawn order keeps every phase reproducible from the seed
    builder_rng = rng_chain.spawn()
    explore_rng = rng_chain.spawn()
    compress_rng = rng_chain.spawn()

    engine = CollisionEngine(instance, config.relative_area_tolerance)
    builder = LBFBuilder(instance, builder_rng, config.builder_samples, engine,
                         initial_density=config.initial_density)
    layout = builder.construct()

    expl_separator = Separator(instance, layout, explore_rng,
                               config.exploration.separator_config, engine)
    terminator.new_timeout(config.exploration.time_limit)
    exploration = exploration_phase(instance, expl_separator, listener, terminator,
                                    config.exploration)
    exploration_stop = terminator.kill_reason()
    explore_solution = exploration.best

    compression = None
    compression_stop = None
    start_compression = time.monotonic()

    if exploration.found_feasible:
        cmpr_separator = Separator(instance, expl_separator.layout.clone(), compress_rng,
                                   config.compression.separator_config, engine)
        terminator.new_timeout(config.compression.time_limit)
        compression = compression_phase(instance, cmpr_separator, explore_solution, listener,
                                        terminator, config.compression)
        compression_stop = terminator.kill_reason()
        final = compression.solution
    else:
        final = explore_solution
        listener.report(ReportKind.FINAL, final, instance)

    compression_time = time.monotonic() - start_compression
    explore_density = explore_solution.density(instance)
    final_density = final.density(instance)

    logger.info(
        f"[{run_id}] finished, expl: {explore_density:.3%} ({exploration.elapsed:.0f}s), "
        f"cmpr: {final_density:.3%} (+{final_density - explore_density:.3%}) "
        f"({compression_time:.0f}s)"
    )

    return RunResult(
        run_id=run_id,
        seed=rng_chain.seed,
        exploration=exploration,
        compression=compression,
        final=final,
        explore_density=explore_density,
        final_density=final_density,
        exploration_time=exploration.elapsed,
        compression_time=compression_time,
        exploration_stop=exploration_stop,
        compression_stop=compression_stop
    )


def runs_in_parallel(config: OptimizerConfig, n_runs: int, max_parallel: Optional[int] = None) -> int:
    """Concurrent runs so that runs times candidate workers fits the available logical CPUs."""
    if max_parallel is None:
        n_workers = config.exploration.separator_config.n_workers
        max_parallel = available_cpu_count() // n_workers
    return max(1, min(max_parallel, n_runs))


def run_batch(instance: Instance,
              config: OptimizerConfig = DEFAULT_OPTIMIZER_CONFIG,
              n_runs: int = 1,
              seed: Optional[int] = None,
              max_parallel: Optional[int] = None,
              cancel_event: Optional[threading.Event] = None,
              listener_factory: Optional[Callable[[int], SolutionListener]] = None) -> List[RunResult]:
    """
    Run `n_runs` independent optimizations and return their results in run order.

    Every run gets its own RNG sub-chain, spawned here in run order before
    any run starts, so results do not depend on scheduling.
    """
    if n_runs < 1:
        raise ValueError(f"n_runs must be >= 1, got {n_runs}")

    root = RngChain(seed if seed is not None else config.rng_seed)
    chains = root.spawn_chains(n_runs)
    cancel_event = cancel_event if cancel_event is not None else threading.Event()
    n_parallel = runs_in_parallel(config, n_runs, max_parallel)

    logger.info(f"Starting {n_runs} runs of {instance.name}, {n_parallel} at a time")

    def run(run_id: int) -> RunResult:
        listener = listener_factory(run_id) if listener_factory else None
        terminator = SignalTerminator(cancel_event)
        return optimize(instance, config, listener, terminator, chains[run_id], run_id)

    with ThreadPoolExecutor(max_workers=n_parallel) as executor:
        results = list(executor.map(run, range(n_runs)))

    return results
