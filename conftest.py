"""
Shared test fixtures: small instances whose optimal layouts are known.
"""

import numpy as np
import pytest
from shapely.geometry import box

from config import SeparatorConfig
from models import Instance, Item, Layout, Pose


def centred_box(width, height):
    return box(-width / 2, -height / 2, width / 2, height / 2)


@pytest.fixture
def make_instance():
    """Factory building an instance of centred rectangles."""
    def _make(sizes, strip_height, rotations=(0.0,), min_separation=0.0, name="test"):
        items = tuple(
            Item(id=i, shape=centred_box(w, h), allowed_rotations=rotations)
            for i, (w, h) in enumerate(sizes)
        )
        return Instance(name=name, strip_height=strip_height, items=items,
                        min_separation=min_separation)
    return _make


@pytest.fixture
def three_rectangles(make_instance):
    return make_instance([(2.0, 1.0), (1.5, 1.0), (1.0, 1.0)], strip_height=2.0, name="three_rectangles")


@pytest.fixture
def two_squares(make_instance):
    return make_instance([(1.0, 1.0), (1.0, 1.0)], strip_height=1.0, name="two_squares")


@pytest.fixture
def overlapping_squares(two_squares):
    """Two unit squares overlapping by half their width in a strip of width 3."""
    layout = Layout(two_squares, 3.0)
    layout.place(0, Pose(0.5, 0.5))
    layout.place(1, Pose(1.0, 0.5))
    return layout


@pytest.fixture
def separator_config():
    return SeparatorConfig(samples_per_worker=16, coord_descent_evals=64)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
