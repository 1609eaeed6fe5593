"""
quantify.py - Placement Loss
============================
Pure scoring of poses against a layout. A loss is the summed overlap area
with other placed items plus the area reaching outside the strip; it is
zero exactly when the placement is feasible. Scoring never draws random
numbers, so repeated evaluations of the same layout agree exactly.
"""

from typing import Tuple

import numpy as np

from collision import CollisionEngine
from models import Layout, Pose

# Relative slack when comparing an item's height with the strip height
HEIGHT_TOLERANCE = 1e-9


def pose_terms(engine: CollisionEngine, layout: Layout, index: int, pose: Pose) -> Tuple[float, float]:
    """
    Overlap and boundary parts of the loss of item `index` at `pose`.

    Returns (inf, inf) when the item is taller than the strip in this
    rotation, since no translation can ever make it fit.
    """
    instance = layout.instance
    shape = pose.apply(instance.collision_shapes[index])

    if instance.min_separation > 0:
        bounds = pose.apply(instance.items[index].shape).bounds
    else:
        bounds = shape.bounds

    if bounds[3] - bounds[1] > instance.strip_height * (1 + HEIGHT_TOLERANCE):
        return float('inf'), float('inf')

    boundary = engine.boundary_violation(bounds, layout.strip_width, instance.strip_height)

    mask = engine.candidates(shape.bounds, layout.collision_bounds)
    mask[index] = False
    if mask.any():
        overlap = float(engine.overlap(shape, layout.shapes[mask]).sum())
    else:
        overlap = 0.0

    return overlap, boundary


def pose_loss(engine: CollisionEngine, layout: Layout, index: int, pose: Pose) -> float:
    """Loss of placing item `index` at `pose` against every other placed item."""
    overlap, boundary = pose_terms(engine, layout, index, pose)
    return overlap + boundary


def item_loss(engine: CollisionEngine, layout: Layout, index: int) -> float:
    """Loss contributed by item `index` at its current pose."""
    return pose_loss(engine, layout, index, layout.pose(index))


def item_losses(engine: CollisionEngine, layout: Layout) -> np.ndarray:
    """Per-item loss; unplaced items score zero."""
    losses = np.zeros(layout.instance.n_items)
    for index in layout.placed_indices:
        losses[index] = item_loss(engine, layout, index)
    return losses


def total_loss(engine: CollisionEngine, layout: Layout) -> float:
    """Sum of pairwise overlaps (each pair once) and all boundary violations."""
    total_overlap = 0.0
    total_boundary = 0.0
    for index in layout.placed_indices:
        overlap, boundary = pose_terms(engine, layout, index, layout.pose(index))
        total_overlap += overlap
        total_boundary += boundary
    return total_overlap / 2 + total_boundary


def is_feasible(engine: CollisionEngine, layout: Layout) -> bool:
    return layout.is_complete and total_loss(engine, layout) == 0.0
