"""
sample.py - Candidate Pose Sampling
===================================
Draws finite candidate pose sequences for one item (uniform over the
strip, or jittered around its current pose) and refines a pose by
coordinate descent on the loss.
"""

from typing import Callable, List, Optional, Tuple

import numpy as np

from config import SampleConfig
from models import FULL_TURN, Item, Pose


def translation_range(bounds: Tuple[float, float, float, float],
                      strip_width: float,
                      strip_height: float) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """
    Reference point ranges keeping a shape with reference-centred `bounds`
    inside the strip. Collapses to the left/bottom edge when the shape is
    larger than the strip along that axis.
    """
    minx, miny, maxx, maxy = bounds
    x_lo, x_hi = -minx, strip_width - maxx
    y_lo, y_hi = -miny, strip_height - maxy
    return (x_lo, max(x_lo, x_hi)), (y_lo, max(y_lo, y_hi))


def sample_rotation(item: Item, rng: np.random.Generator) -> float:
    if item.continuous_rotation:
        return float(rng.uniform(0.0, FULL_TURN))
    rotations = item.allowed_rotations
    return float(rotations[rng.integers(len(rotations))])


def container_sample(item: Item, strip_width: float, strip_height: float,
                     rng: np.random.Generator) -> Pose:
    """A pose drawn uniformly over the strip."""
    rotation = sample_rotation(item, rng)
    (x_lo, x_hi), (y_lo, y_hi) = translation_range(item.rotated_bounds(rotation), strip_width, strip_height)
    return Pose(float(rng.uniform(x_lo, x_hi)), float(rng.uniform(y_lo, y_hi)), rotation)


def focused_sample(item: Item, current: Pose, strip_width: float, strip_height: float,
                   rng: np.random.Generator, radius: float, rotation_radius: float) -> Pose:
    """A pose jittered around `current`, clipped to the strip."""
    if item.continuous_rotation:
        rotation = float((current.rotation + rng.normal(0.0, rotation_radius)) % FULL_TURN)
    elif rng.random() < 0.5:
        rotation = sample_rotation(item, rng)
    else:
        rotation = current.rotation

    sigma = radius * item.diameter
    (x_lo, x_hi), (y_lo, y_hi) = translation_range(item.rotated_bounds(rotation), strip_width, strip_height)
    x = float(np.clip(rng.normal(current.x, sigma), x_lo, x_hi))
    y = float(np.clip(rng.normal(current.y, sigma), y_lo, y_hi))
    return Pose(x, y, rotation)


def sample_poses(item: Item, strip_width: float, strip_height: float,
                 rng: np.random.Generator, config: SampleConfig,
                 current: Optional[Pose] = None) -> Tuple[Pose, ...]:
    """
    Draw the candidate sequence for one item.

    Container samples come first, then focused samples around `current`
    (skipped when the item has no current pose). The returned tuple can be
    iterated any number of times.
    """
    poses: List[Pose] = [
        container_sample(item, strip_width, strip_height, rng)
        for _ in range(config.n_container_samples)
    ]
    if current is not None:
        poses.extend(
            focused_sample(item, current, strip_width, strip_height, rng,
                           config.focus_radius, config.rotation_radius)
            for _ in range(config.n_focused_samples)
        )
    return tuple(poses)


def refine_coord_descent(evaluate: Callable[[Pose], float], pose: Pose, loss: float,
                         init_step: float, min_step: float,
                         max_evals: int) -> Tuple[Pose, float]:
    """
    Axis-aligned descent: move along the first improving axis direction,
    halve the step when none improves. Deterministic for a given start.
    """
    directions = [(1.0, 0.0), (-1.0, 0.0), (0.0, 1.0), (0.0, -1.0)]
    step = init_step
    n_evals = 0

    while loss > 0.0 and step >= min_step and n_evals < max_evals:
        improved = False
        for k, (dx, dy) in enumerate(directions):
            candidate = pose.translated(dx * step, dy * step)
            candidate_loss = evaluate(candidate)
            n_evals += 1
            if candidate_loss < loss:
                pose, loss = candidate, candidate_loss
                improved = True
                # Keep pushing the same way first
                directions.insert(0, directions.pop(k))
                break
            if n_evals >= max_evals:
                break
        if not improved:
            step /= 2.0

    return pose, loss
