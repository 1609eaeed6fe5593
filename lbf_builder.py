"""
lbf_builder.py - Largest-First Construction
===========================================
Greedy construction of the initial layout. Items are placed largest first,
each at the lowest-loss pose among edge-aligned anchors next to the items
already placed and a batch of random strip samples. Earlier items are
never revisited, so the result is fast but usually still overlapping.
"""

from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np

from collision import CollisionEngine
from config import SampleConfig
from models import Instance, Item, Layout, Pose
from quantify import pose_loss, total_loss
from sample import sample_poses
from utils import timer

logger = logging.getLogger(__name__)

# Slack when checking that an anchored item stays inside the strip
ANCHOR_TOLERANCE = 1e-9


class ItemDoesNotFitError(ValueError):
    """An item has no pose with finite loss, e.g. it is taller than the strip."""
    pass


class LBFBuilder:
    """
    Largest-first greedy builder.

    Args:
        instance: Problem to build a layout for
        rng: Generator for the random part of each item's candidates
        sample_config: Number of random candidates per item
        engine: Collision engine (one is created if omitted)
        strip_width: Starting width; derived from `initial_density` if omitted
        initial_density: Target fill ratio of the starting strip
    """

    def __init__(self, instance: Instance, rng: np.random.Generator,
                 sample_config: SampleConfig,
                 engine: Optional[CollisionEngine] = None,
                 strip_width: Optional[float] = None,
                 initial_density: float = 0.5):
        self.instance = instance
        self.rng = rng
        self.sample_config = sample_config
        self.engine = engine or CollisionEngine(instance)
        self.strip_width = strip_width or self.default_strip_width(instance, initial_density)

    @staticmethod
    def anchor_rotations(item: Item) -> Tuple[float, ...]:
        if item.continuous_rotation:
            return (0.0, 90.0)
        return item.allowed_rotations

    @classmethod
    def default_strip_width(cls, instance: Instance, initial_density: float) -> float:
        """Width giving `initial_density`, but never narrower than the widest item."""
        width = instance.total_item_area / (instance.strip_height * initial_density)
        for item in instance.items:
            narrowest = min(
                bounds[2] - bounds[0]
                for bounds in (item.rotated_bounds(r) for r in cls.anchor_rotations(item))
            )
            width = max(width, narrowest + instance.min_separation)
        return width

    def placement_order(self) -> List[int]:
        """Item indices by decreasing bounding size; equal sizes keep instance order."""
        return sorted(
            range(self.instance.n_items),
            key=lambda i: self.instance.items[i].bounding_size,
            reverse=True
        )

    def _anchor_poses(self, layout: Layout, index: int) -> List[Pose]:
        """Bottom-left ordered poses touching the strip corner or an already placed item."""
        item = self.instance.items[index]
        sep = self.instance.min_separation
        width, height = layout.strip_width, self.instance.strip_height

        corners = {(0.0, 0.0)}
        for placed in layout.placed_indices:
            ex1, ey1, ex2, ey2 = layout.bounds[placed]
            corners.update([
                (ex2 + sep, ey1),      # right of, bottom aligned
                (ex1, ey2 + sep),      # above, left aligned
                (ex2 + sep, 0.0),      # right of, on the floor
            ])

        poses = []
        for rotation in self.anchor_rotations(item):
            minx, miny, maxx, maxy = item.rotated_bounds(rotation)
            for cx, cy in corners:
                if (cx + maxx - minx <= width * (1 + ANCHOR_TOLERANCE)
                        and cy + maxy - miny <= height * (1 + ANCHOR_TOLERANCE)):
                    poses.append((cx, cy, Pose(float(cx - minx), float(cy - miny), rotation)))

        poses.sort(key=lambda entry: (entry[0], entry[1], entry[2].rotation))
        return [pose for _, _, pose in poses]

    def candidates(self, layout: Layout, index: int) -> Sequence[Pose]:
        item = self.instance.items[index]
        random_poses = sample_poses(
            item, layout.strip_width, self.instance.strip_height, self.rng, self.sample_config
        )
        return self._anchor_poses(layout, index) + list(random_poses)

    @timer
    def construct(self) -> Layout:
        """Place every item once and return the resulting layout."""
        layout = Layout(self.instance, self.strip_width)

        for index in self.placement_order():
            candidates = self.candidates(layout, index)
            losses = np.array([pose_loss(self.engine, layout, index, pose) for pose in candidates])
            best = int(np.argmin(losses))

            if not np.isfinite(losses[best]):
                raise ItemDoesNotFitError(
                    f"Item {self.instance.items[index].id} does not fit in a strip of "
                    f"height {self.instance.strip_height}"
                )

            layout.place(index, candidates[best])

        logger.info(
            f"Constructed initial layout: width {layout.strip_width:.4f}, "
            f"loss {total_loss(self.engine, layout):.6g}"
        )
        return layout
