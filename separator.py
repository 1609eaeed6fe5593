"""
separator.py - Overlap Separation by Local Search
=================================================
The Separator repeatedly moves one colliding item: it draws a batch of
candidate poses, scores them (optionally fanned out over a worker pool),
refines the best one and commits it when the acceptance policy agrees.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
import logging

import numpy as np

from collision import CollisionEngine
from config import SeparatorConfig
from models import Instance, Layout, Pose, Solution
from policies import create_acceptance_policy, create_item_selector
from quantify import item_losses, pose_loss, total_loss
from sample import refine_coord_descent, sample_poses
from terminator import Terminator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepResult:
    """Outcome of one Separator step."""
    item_index: Optional[int]
    pose: Optional[Pose]
    loss_before: float
    loss_after: float
    accepted: bool


class CandidateEvaluator:
    """
    Scores candidate poses for one item.

    With more than one worker the candidates are split into contiguous
    chunks and scored concurrently. Workers only read the layout, which the
    calling thread does not touch until every chunk is back, so the result
    is identical to a serial evaluation.
    """

    def __init__(self, engine: CollisionEngine, n_workers: int = 1):
        self.engine = engine
        self.n_workers = n_workers

    def _evaluate_chunk(self, layout: Layout, index: int, chunk: Sequence[Pose]) -> np.ndarray:
        return np.array([pose_loss(self.engine, layout, index, pose) for pose in chunk], dtype=float)

    def evaluate(self, layout: Layout, index: int, candidates: Sequence[Pose]) -> np.ndarray:
        """Loss of every candidate, in candidate order."""
        if self.n_workers <= 1 or len(candidates) < 2:
            return self._evaluate_chunk(layout, index, candidates)

        edges = np.linspace(0, len(candidates), min(self.n_workers, len(candidates)) + 1).astype(int)
        chunks = [candidates[a:b] for a, b in zip(edges[:-1], edges[1:])]

        with ThreadPoolExecutor(max_workers=len(chunks)) as executor:
            results = list(executor.map(
                lambda chunk: self._evaluate_chunk(layout, index, chunk), chunks
            ))
        return np.concatenate(results)

    def best(self, layout: Layout, index: int, candidates: Sequence[Pose]) -> Tuple[int, float]:
        """Position and loss of the lowest-loss candidate; ties go to the earliest."""
        losses = self.evaluate(layout, index, candidates)
        best = int(np.argmin(losses))
        return best, float(losses[best])


class Separator:
    """
    Local search engine resolving overlap in a layout it owns.

    A step never fails: when no better pose is found the layout is simply
    left unchanged, and callers count their own unsuccessful attempts.
    """

    def __init__(self, instance: Instance, layout: Layout, rng: np.random.Generator,
                 config: SeparatorConfig, engine: Optional[CollisionEngine] = None):
        if layout.instance is not instance:
            raise ValueError(f"Layout belongs to instance {layout.instance.name}, not {instance.name}")

        self.instance = instance
        self.layout = layout
        self.rng = rng
        self.config = config
        self.engine = engine or CollisionEngine(instance)
        self.evaluator = CandidateEvaluator(self.engine, config.n_workers)
        self.selector = create_item_selector(config)
        self.acceptance = create_acceptance_policy(config)
        self.sample_config = config.sample_config

        self.n_steps = 0
        self.n_accepted = 0
        self._losses: Optional[np.ndarray] = None

    # ------------------------------------------------------------------
    # Loss bookkeeping
    # ------------------------------------------------------------------

    def item_losses(self) -> np.ndarray:
        if self._losses is None:
            self._losses = item_losses(self.engine, self.layout)
        return self._losses

    def _invalidate(self):
        self._losses = None

    def is_feasible(self) -> bool:
        return self.layout.is_complete and not np.any(self.item_losses() > 0)

    def total_loss(self) -> float:
        if self.is_feasible():
            return 0.0
        return total_loss(self.engine, self.layout)

    @property
    def strip_width(self) -> float:
        return self.layout.strip_width

    def density(self, instance: Optional[Instance] = None) -> float:
        """Item area over the strip area in use."""
        instance = instance or self.instance
        return instance.total_item_area / (self.layout.strip_width * instance.strip_height)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def step(self) -> StepResult:
        """Try to move one colliding item to a better pose."""
        losses = self.item_losses()
        index = self.selector.select(losses, self.rng)
        self.n_steps += 1

        if index is None:
            return StepResult(None, None, 0.0, 0.0, False)

        item = self.instance.items[index]
        current_loss = float(losses[index])
        candidates = sample_poses(
            item, self.layout.strip_width, self.instance.strip_height,
            self.rng, self.sample_config, current=self.layout.pose(index)
        )

        best_index, best_loss = self.evaluator.best(self.layout, index, candidates)
        best_pose = candidates[best_index]

        if self.config.coord_descent_evals > 0 and 0.0 < best_loss < float('inf'):
            best_pose, best_loss = refine_coord_descent(
                lambda pose: pose_loss(self.engine, self.layout, index, pose),
                best_pose, best_loss,
                init_step=self.config.coord_descent_init_step * item.diameter,
                min_step=self.config.coord_descent_min_step * item.diameter,
                max_evals=self.config.coord_descent_evals
            )

        accepted = self.acceptance.accept(current_loss, best_loss, self.rng)
        if accepted:
            self.layout.place(index, best_pose)
            self._invalidate()
            self.n_accepted += 1

        return StepResult(index, best_pose, current_loss, best_loss, accepted)

    def run_until(self, terminator: Terminator, max_steps: Optional[int] = None) -> bool:
        """
        Step until the layout is feasible, the terminator fires or
        `max_steps` steps were taken. Returns whether the layout is feasible.
        """
        n_steps = 0
        while not self.is_feasible():
            if terminator.is_kill() or (max_steps is not None and n_steps >= max_steps):
                logger.debug(f"Separation stopped after {n_steps} steps, loss {self.total_loss():.6g}")
                return False
            self.step()
            n_steps += 1

        if n_steps:
            logger.debug(f"Separated in {n_steps} steps at width {self.layout.strip_width:.4f}")
        return True

    # ------------------------------------------------------------------
    # Layout management
    # ------------------------------------------------------------------

    def snapshot(self) -> Solution:
        return Solution(self.layout.snapshot(), self.total_loss())

    def rollback(self, solution: Solution):
        """Restore the layout captured in `solution`."""
        self.layout.restore(solution.layout_snapshot)
        self._invalidate()

    def change_strip_width(self, new_width: float, split_position: Optional[float] = None):
        """Resize the strip; items right of a (random) split position follow the moving edge."""
        if split_position is None:
            split_position = float(self.rng.uniform(0.0, min(new_width, self.layout.strip_width)))
        self.layout.change_strip_width(new_width, split_position)
        self._invalidate()
