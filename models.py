"""
models.py - Core Data Models for Strip Nesting
===============================================
Defines the instance, layout and solution structures shared by all phases.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple
import math
import time

import numpy as np
from shapely import affinity
from shapely.geometry import Polygon

# Continuous rotation is sampled over a full turn
FULL_TURN = 360.0


# ============================================================================
# INSTANCE
# ============================================================================

@dataclass(frozen=True)
class Pose:
    """Rotation (degrees, about the item's reference point) followed by a translation."""
    x: float
    y: float
    rotation: float = 0.0

    def apply(self, shape: Polygon) -> Polygon:
        """Transform a reference-centred shape into this pose."""
        if self.rotation:
            shape = affinity.rotate(shape, self.rotation, origin=(0, 0))
        return affinity.translate(shape, xoff=self.x, yoff=self.y)

    def translated(self, dx: float, dy: float) -> Pose:
        return Pose(self.x + dx, self.y + dy, self.rotation)


@dataclass(frozen=True)
class Item:
    """
    A rigid polygonal item to be nested.

    The shape is normalized so that its centroid sits at the origin; poses
    place that reference point. `allowed_rotations` of None means any
    rotation is allowed.
    """
    id: int
    shape: Polygon
    allowed_rotations: Optional[Tuple[float, ...]] = (0.0,)

    @property
    def area(self) -> float:
        return self.shape.area

    @property
    def continuous_rotation(self) -> bool:
        return self.allowed_rotations is None

    @property
    def diameter(self) -> float:
        """Largest extent of the shape, used to scale local perturbations."""
        minx, miny, maxx, maxy = self.shape.bounds
        return math.hypot(maxx - minx, maxy - miny)

    @property
    def bounding_size(self) -> float:
        """Sort key for largest-first construction."""
        return self.shape.convex_hull.area * self.diameter

    def rotated(self, rotation: float) -> Polygon:
        if not rotation:
            return self.shape
        return affinity.rotate(self.shape, rotation, origin=(0, 0))

    def rotated_bounds(self, rotation: float) -> Tuple[float, float, float, float]:
        return self.rotated(rotation).bounds


@dataclass(frozen=True)
class Instance:
    """
    An immutable strip packing problem.

    Shared read-only by every phase and worker of a run.
    """
    name: str
    strip_height: float
    items: Tuple[Item, ...]
    min_separation: float = 0.0
    collision_shapes: Tuple[Polygon, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.strip_height <= 0:
            raise ValueError(f"Strip height must be positive, got {self.strip_height}")
        if not self.items:
            raise ValueError(f"Instance {self.name} has no items")
        if self.min_separation < 0:
            raise ValueError(f"Minimum separation must be >= 0, got {self.min_separation}")

        object.__setattr__(self, 'items', tuple(self.items))

        # Items are inflated by half the separation so touching inflated shapes keep the full gap
        if self.min_separation > 0:
            shapes = tuple(
                item.shape.buffer(self.min_separation / 2, join_style="mitre", mitre_limit=10.0)
                for item in self.items
            )
        else:
            shapes = tuple(item.shape for item in self.items)
        object.__setattr__(self, 'collision_shapes', shapes)

    @property
    def n_items(self) -> int:
        return len(self.items)

    @property
    def total_item_area(self) -> float:
        return sum(item.area for item in self.items)

    @property
    def mean_item_area(self) -> float:
        return self.total_item_area / self.n_items


# ============================================================================
# LAYOUT
# ============================================================================

@dataclass(frozen=True)
class LayoutSnapshot:
    """Immutable capture of a layout's strip width and poses."""
    instance_name: str
    strip_width: float
    poses: Tuple[Optional[Pose], ...]


class Layout:
    """
    Mutable mapping from item index to pose inside a strip.

    Owned by exactly one Separator (or the builder) at a time; phases hand
    layouts over through `clone()`.
    """

    def __init__(self, instance: Instance, strip_width: float):
        if strip_width <= 0:
            raise ValueError(f"Strip width must be positive, got {strip_width}")
        self.instance = instance
        self.strip_width = float(strip_width)

        n = instance.n_items
        self._poses: List[Optional[Pose]] = [None] * n
        # Transformed collision shapes and their bounds; NaN bounds never pass overlap prefilters
        self._shapes = np.empty(n, dtype=object)
        self._collision_bounds = np.full((n, 4), np.nan)
        self._bounds = np.full((n, 4), np.nan)

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def place(self, index: int, pose: Pose):
        """Place (or move) item `index` at `pose`."""
        shape = pose.apply(self.instance.collision_shapes[index])
        minx, miny, maxx, maxy = self.instance.items[index].rotated_bounds(pose.rotation)

        self._poses[index] = pose
        self._shapes[index] = shape
        self._collision_bounds[index] = shape.bounds
        self._bounds[index] = (minx + pose.x, miny + pose.y, maxx + pose.x, maxy + pose.y)

    def pose(self, index: int) -> Optional[Pose]:
        return self._poses[index]

    def is_placed(self, index: int) -> bool:
        return self._poses[index] is not None

    @property
    def placed_indices(self) -> List[int]:
        return [i for i, pose in enumerate(self._poses) if pose is not None]

    @property
    def is_complete(self) -> bool:
        return all(pose is not None for pose in self._poses)

    @property
    def shapes(self) -> np.ndarray:
        """Collision shapes of placed items (None for unplaced)."""
        return self._shapes

    @property
    def collision_bounds(self) -> np.ndarray:
        return self._collision_bounds

    @property
    def bounds(self) -> np.ndarray:
        """Bounds of the un-inflated item shapes, shape (n_items, 4)."""
        return self._bounds

    # ------------------------------------------------------------------
    # Strip resizing
    # ------------------------------------------------------------------

    def change_strip_width(self, new_width: float, split_position: float):
        """
        Resize the strip, moving every item lying entirely right of
        `split_position` by the width difference.
        """
        if new_width <= 0:
            raise ValueError(f"Strip width must be positive, got {new_width}")
        delta = new_width - self.strip_width

        for index in self.placed_indices:
            if self._bounds[index, 0] >= split_position:
                self.place(index, self._poses[index].translated(delta, 0.0))

        self.strip_width = float(new_width)

    # ------------------------------------------------------------------
    # Metrics and hand-off
    # ------------------------------------------------------------------

    def density(self) -> float:
        """Total item area over the strip area currently in use."""
        return self.instance.total_item_area / (self.strip_width * self.instance.strip_height)

    def snapshot(self) -> LayoutSnapshot:
        return LayoutSnapshot(
            instance_name=self.instance.name,
            strip_width=self.strip_width,
            poses=tuple(self._poses)
        )

    def restore(self, snapshot: LayoutSnapshot):
        """Reset this layout to a previously captured snapshot."""
        if snapshot.instance_name != self.instance.name or len(snapshot.poses) != self.instance.n_items:
            raise ValueError(
                f"Snapshot of instance {snapshot.instance_name} does not match {self.instance.name}"
            )
        self.strip_width = snapshot.strip_width
        for index, pose in enumerate(snapshot.poses):
            if pose is None:
                self._poses[index] = None
                self._shapes[index] = None
                self._collision_bounds[index] = np.nan
                self._bounds[index] = np.nan
            else:
                self.place(index, pose)

    def clone(self) -> Layout:
        other = Layout.__new__(Layout)
        other.instance = self.instance
        other.strip_width = self.strip_width
        other._poses = list(self._poses)
        other._shapes = self._shapes.copy()
        other._collision_bounds = self._collision_bounds.copy()
        other._bounds = self._bounds.copy()
        return other

    def __repr__(self) -> str:
        return (
            f"Layout(instance={self.instance.name}, width={self.strip_width:.3f}, "
            f"placed={len(self.placed_indices)}/{self.instance.n_items})"
        )


# ============================================================================
# SOLUTION
# ============================================================================

@dataclass(frozen=True)
class Solution:
    """Immutable capture of a layout together with its total loss."""
    layout_snapshot: LayoutSnapshot
    total_loss: float
    timestamp: float = field(default_factory=time.time)

    @property
    def strip_width(self) -> float:
        return self.layout_snapshot.strip_width

    @property
    def feasible(self) -> bool:
        return self.total_loss == 0.0

    def density(self, instance: Instance) -> float:
        return instance.total_item_area / (self.strip_width * instance.strip_height)

    def poses(self) -> Iterable[Tuple[int, Pose]]:
        for index, pose in enumerate(self.layout_snapshot.poses):
            if pose is not None:
                yield index, pose

    def item_shapes(self, instance: Instance) -> Dict[int, Polygon]:
        """Un-inflated item shapes keyed by item index."""
        return {index: pose.apply(instance.items[index].shape) for index, pose in self.poses()}
