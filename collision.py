"""
collision.py - Collision Queries
================================
Thin wrapper over shapely answering the two questions the optimizer asks:
how much does a shape overlap a set of placed shapes, and how far does an
item's bounding box reach outside the strip.
"""

from typing import Tuple

import numpy as np
import shapely

from models import Instance


class CollisionEngine:
    """Overlap and boundary-violation queries with an area tolerance."""

    def __init__(self, instance: Instance, relative_area_tolerance: float = 1e-5):
        self.instance = instance
        self.area_tolerance = relative_area_tolerance * instance.mean_item_area

    def candidates(self, bounds: Tuple[float, float, float, float],
                   placed_bounds: np.ndarray) -> np.ndarray:
        """Mask of placed shapes whose bounds strictly overlap `bounds`."""
        minx, miny, maxx, maxy = bounds
        return (
            (placed_bounds[:, 0] < maxx) & (placed_bounds[:, 2] > minx) &
            (placed_bounds[:, 1] < maxy) & (placed_bounds[:, 3] > miny)
        )

    def overlap(self, shape: shapely.Geometry, others: np.ndarray) -> np.ndarray:
        """Intersection area between `shape` and each of `others`; tolerance-level areas are zero."""
        if len(others) == 0:
            return np.zeros(0)
        areas = shapely.area(shapely.intersection(shape, others))
        areas[areas <= self.area_tolerance] = 0.0
        return areas

    def boundary_violation(self, bounds: Tuple[float, float, float, float],
                           strip_width: float, strip_height: float) -> float:
        """Area of the bounding box lying outside the strip [0, width] x [0, height]."""
        minx, miny, maxx, maxy = bounds
        box_area = (maxx - minx) * (maxy - miny)
        inside_w = max(0.0, min(maxx, strip_width) - max(minx, 0.0))
        inside_h = max(0.0, min(maxy, strip_height) - max(miny, 0.0))
        violation = box_area - inside_w * inside_h
        if violation <= self.area_tolerance:
            return 0.0
        return violation
