"""
exploration.py - Exploration Phase
==================================
Drives the Separator from the constructed layout toward a feasible one and
then toward progressively narrower feasible layouts.

State machine:
    SEARCHING --(feasible found)--> REFINING --(kill | failure budget)--> DONE
    SEARCHING self-loops on failed attempts; once the failure budget is
    exceeded the strip is widened (backoff) and the counter reset.
"""

import bisect
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
import logging
import time

from config import Config, ExplorationConfig
from listener import ReportKind, SolutionListener
from models import Instance, Solution
from separator import Separator
from terminator import Terminator

logger = logging.getLogger(__name__)


class SearchState(Enum):
    SEARCHING = "searching"
    REFINING = "refining"
    DONE = "done"


@dataclass
class ExplorationResult:
    """
    Outcome of the exploration phase.

    `solutions` holds the feasible layouts in the order they were recorded
    (density strictly increasing). When nothing feasible was found it holds
    only the lowest-loss infeasible layout and `found_feasible` is False.
    """
    solutions: List[Solution]
    found_feasible: bool
    n_attempts: int = 0
    n_failed: int = 0
    n_backoffs: int = 0
    elapsed: float = 0.0

    @property
    def best(self) -> Solution:
        return self.solutions[-1]


class InfeasiblePool:
    """Failed attempts at the current width, ordered by total loss and capped at `capacity`."""

    def __init__(self, bias: float, capacity: int = Config.EXPLORATION['pool_size']):
        self.bias = bias
        self.capacity = capacity
        self._losses: List[float] = []
        self._solutions: List[Solution] = []

    def __len__(self) -> int:
        return len(self._solutions)

    def add(self, solution: Solution):
        """Insert in loss order; when full, the highest-loss member is dropped."""
        position = bisect.bisect_right(self._losses, solution.total_loss)
        if position >= self.capacity:
            return
        self._losses.insert(position, solution.total_loss)
        self._solutions.insert(position, solution)
        if len(self._solutions) > self.capacity:
            self._losses.pop()
            self._solutions.pop()

    def clear(self):
        self._losses.clear()
        self._solutions.clear()

    def choose(self, rng) -> Solution:
        """Pick a member, biased toward low loss (bias 1 is uniform)."""
        index = int(len(self._solutions) * rng.random() ** self.bias)
        return self._solutions[min(index, len(self._solutions) - 1)]


def exploration_phase(instance: Instance, separator: Separator, listener: SolutionListener,
                      terminator: Terminator, config: ExplorationConfig) -> ExplorationResult:
    """
    Run the exploration phase until the terminator fires or, with a failure
    budget configured, refinement stops making progress.
    """
    start = time.monotonic()
    solutions: List[Solution] = []
    pool = InfeasiblePool(config.pool_bias, config.pool_size)
    best_infeasible: Optional[Solution] = None
    max_failed = config.max_conseq_failed_attempts

    state = SearchState.SEARCHING
    n_attempts = 0
    n_failed = 0
    n_backoffs = 0
    conseq_failed = 0

    logger.info(f"Exploration started at width {separator.strip_width:.4f}")

    def record_feasible(solution: Solution):
        density = solution.density(instance)
        if not solutions or density > solutions[-1].density(instance):
            solutions.append(solution)
            listener.report(ReportKind.EXPL_IMPROVING, solution, instance)
            logger.info(f"Feasible at width {solution.strip_width:.4f} (density {density:.3%})")
        else:
            listener.report(ReportKind.EXPL_FEASIBLE, solution, instance)

    def shrink_from(solution: Solution):
        pool.clear()
        separator.change_strip_width(solution.strip_width * (1.0 - config.shrink_step))

    initial = separator.snapshot()
    if initial.feasible:
        record_feasible(initial)
        state = SearchState.REFINING
        shrink_from(initial)

    while state is not SearchState.DONE and not terminator.is_kill():
        feasible = separator.run_until(terminator, config.attempt_steps)
        n_attempts += 1
        solution = separator.snapshot()

        if feasible:
            record_feasible(solution)
            state = SearchState.REFINING
            conseq_failed = 0
            shrink_from(solution)
            continue

        n_failed += 1
        conseq_failed += 1
        listener.report(ReportKind.EXPL_INFEASIBLE, solution, instance)
        if best_infeasible is None or solution.total_loss < best_infeasible.total_loss:
            best_infeasible = solution
        pool.add(solution)

        if max_failed is not None and conseq_failed > max_failed:
            if state is SearchState.REFINING:
                logger.info(f"No progress after {conseq_failed} attempts, ending exploration")
                state = SearchState.DONE
                break

            n_backoffs += 1
            conseq_failed = 0
            pool.clear()
            new_width = separator.strip_width * (1.0 + config.backoff_ratio)
            logger.info(f"Backing off to width {new_width:.4f}")
            separator.change_strip_width(new_width)
            continue

        separator.rollback(pool.choose(separator.rng))

    elapsed = time.monotonic() - start

    if solutions:
        separator.rollback(solutions[-1])
        found_feasible = True
        logger.info(
            f"Exploration finished in {elapsed:.1f}s: width {solutions[-1].strip_width:.4f}, "
            f"density {solutions[-1].density(instance):.3%}"
        )
    else:
        solutions = [best_infeasible or initial]
        separator.rollback(solutions[0])
        found_feasible = False
        logger.warning(
            f"Exploration found no feasible layout in {elapsed:.1f}s "
            f"(best loss {solutions[0].total_loss:.6g})"
        )

    return ExplorationResult(
        solutions=solutions,
        found_feasible=found_feasible,
        n_attempts=n_attempts,
        n_failed=n_failed,
        n_backoffs=n_backoffs,
        elapsed=elapsed
    )
