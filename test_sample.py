"""
Test Candidate Sampling
=======================
"""

import numpy as np
import pytest

from config import SampleConfig
from models import Pose
from sample import container_sample, focused_sample, refine_coord_descent, sample_poses, translation_range


def test_container_samples_stay_inside_strip(three_rectangles, rng):
    item = three_rectangles.items[0]
    for _ in range(200):
        pose = container_sample(item, 5.0, three_rectangles.strip_height, rng)
        minx, miny, maxx, maxy = pose.apply(item.shape).bounds
        assert minx >= -1e-9 and maxx <= 5.0 + 1e-9
        assert miny >= -1e-9 and maxy <= 2.0 + 1e-9


def test_translation_range_collapses_when_too_wide():
    (x_lo, x_hi), (y_lo, y_hi) = translation_range((-1.0, -0.5, 1.0, 0.5), 1.5, 2.0)
    assert x_lo == x_hi == 1.0
    assert (y_lo, y_hi) == (0.5, 1.5)


def test_sample_counts_and_order(three_rectangles, rng):
    """Container samples come first, focused samples only with a current pose."""
    config = SampleConfig(n_container_samples=5, n_focused_samples=3, focus_radius=0.01)
    item = three_rectangles.items[1]
    current = Pose(2.0, 1.0)

    poses = sample_poses(item, 5.0, 2.0, rng, config, current=current)
    assert len(poses) == 8
    assert all(abs(p.x - current.x) < 0.5 for p in poses[5:])
    assert list(poses) == list(poses)

    assert len(sample_poses(item, 5.0, 2.0, rng, config)) == 5


def test_discrete_rotations_only(make_instance, rng):
    instance = make_instance([(2.0, 1.0)], strip_height=3.0, rotations=(0.0, 90.0))
    config = SampleConfig(n_container_samples=50, n_focused_samples=50)
    poses = sample_poses(instance.items[0], 6.0, 3.0, rng, config, current=Pose(2.0, 1.0, 90.0))
    assert {p.rotation for p in poses} <= {0.0, 90.0}


def test_continuous_rotation_jitter(make_instance, rng):
    instance = make_instance([(2.0, 1.0)], strip_height=3.0, rotations=None)
    item = instance.items[0]
    rotations = [
        focused_sample(item, Pose(2.0, 1.5, 10.0), 6.0, 3.0, rng, 0.1, 5.0).rotation
        for _ in range(100)
    ]
    assert all(0.0 <= r < 360.0 for r in rotations)
    assert len(set(rotations)) > 1


def test_same_seed_same_samples(three_rectangles):
    config = SampleConfig(n_container_samples=10)
    item = three_rectangles.items[0]
    first = sample_poses(item, 5.0, 2.0, np.random.default_rng(7), config)
    second = sample_poses(item, 5.0, 2.0, np.random.default_rng(7), config)
    assert first == second


def test_coord_descent_finds_zero_region():
    """Descends into a narrow zero-loss interval of a piecewise linear loss."""
    def loss(pose):
        return max(0.0, 1.0 - pose.x) + max(0.0, pose.x - 1.001)

    pose, value = refine_coord_descent(loss, Pose(0.3, 0.0), loss(Pose(0.3, 0.0)),
                                       init_step=0.1, min_step=1e-6, max_evals=200)
    assert value == 0.0
    assert 1.0 <= pose.x <= 1.001


def test_coord_descent_respects_eval_budget():
    calls = []

    def loss(pose):
        calls.append(pose)
        return abs(pose.x - 100.0) + 1.0

    refine_coord_descent(loss, Pose(0.0, 0.0), loss(Pose(0.0, 0.0)), 1.0, 1e-6, max_evals=10)
    assert len(calls) == 11


def test_coord_descent_keeps_non_improvable_pose():
    pose, value = refine_coord_descent(lambda p: 1.0 + p.x ** 2 + p.y ** 2, Pose(0.0, 0.0), 1.0,
                                       init_step=0.5, min_step=0.01, max_evals=100)
    assert pose == Pose(0.0, 0.0)
    assert value == pytest.approx(1.0)
