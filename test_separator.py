"""
Test Separator Local Search
===========================
Step semantics, worker pool equivalence and reproducibility.
"""

import numpy as np
import pytest

from collision import CollisionEngine
from config import SampleConfig, SeparatorConfig
from models import Layout, Pose
from sample import sample_poses
from separator import CandidateEvaluator, Separator
from terminator import BasicTerminator


def test_separates_overlapping_squares(two_squares, overlapping_squares, separator_config, rng):
    separator = Separator(two_squares, overlapping_squares, rng, separator_config)
    assert not separator.is_feasible()
    assert separator.total_loss() == pytest.approx(0.5)

    terminator = BasicTerminator()
    terminator.new_timeout(30.0)
    assert separator.run_until(terminator)
    assert separator.is_feasible()
    assert separator.total_loss() == 0.0
    assert separator.snapshot().feasible


def test_step_on_feasible_layout_is_a_no_op(two_squares, overlapping_squares, separator_config, rng):
    overlapping_squares.place(1, Pose(2.0, 0.5))
    separator = Separator(two_squares, overlapping_squares, rng, separator_config)
    result = separator.step()
    assert result.item_index is None
    assert not result.accepted


def test_greedy_step_never_increases_loss(two_squares, overlapping_squares, separator_config, rng):
    separator = Separator(two_squares, overlapping_squares, rng, separator_config)
    for _ in range(10):
        before = separator.total_loss()
        result = separator.step()
        assert separator.total_loss() <= before + 1e-12
        if result.accepted:
            assert result.loss_after < result.loss_before


def test_zero_timeout_takes_no_step(two_squares, overlapping_squares, separator_config, rng):
    separator = Separator(two_squares, overlapping_squares, rng, separator_config)
    terminator = BasicTerminator()
    terminator.new_timeout(0.0)
    assert not separator.run_until(terminator)
    assert separator.n_steps == 0


def test_max_steps_bounds_an_attempt(two_squares, separator_config, rng):
    layout = Layout(two_squares, 1.5)
    layout.place(0, Pose(0.5, 0.5))
    layout.place(1, Pose(1.0, 0.5))
    separator = Separator(two_squares, layout, rng, separator_config)

    terminator = BasicTerminator()
    terminator.new_timeout(30.0)
    assert not separator.run_until(terminator, max_steps=5)
    assert separator.n_steps == 5


@pytest.mark.parametrize("n_workers", [2, 3, 8])
def test_worker_pool_matches_serial(three_rectangles, rng, n_workers):
    """Parallel evaluation of the same candidates picks the same winner."""
    layout = Layout(three_rectangles, 4.0)
    layout.place(0, Pose(1.0, 0.5))
    layout.place(1, Pose(1.5, 1.0))
    layout.place(2, Pose(1.0, 1.5))

    candidates = sample_poses(three_rectangles.items[2], 4.0, 2.0, rng,
                              SampleConfig(n_container_samples=37, n_focused_samples=0))
    engine = CollisionEngine(three_rectangles)

    serial = CandidateEvaluator(engine, 1)
    parallel = CandidateEvaluator(engine, n_workers)

    assert np.array_equal(serial.evaluate(layout, 2, candidates), parallel.evaluate(layout, 2, candidates))
    assert serial.best(layout, 2, candidates) == parallel.best(layout, 2, candidates)


def test_ties_go_to_first_candidate(three_rectangles):
    layout = Layout(three_rectangles, 10.0)
    evaluator = CandidateEvaluator(CollisionEngine(three_rectangles), 4)
    candidates = [Pose(5.0, 1.0), Pose(6.0, 1.0), Pose(7.0, 1.0)]
    assert evaluator.best(layout, 0, candidates) == (0, 0.0)


def _accepted_poses(instance, layout, seed, config, n_steps=25):
    separator = Separator(instance, layout.clone(), np.random.default_rng(seed), config)
    poses = []
    for _ in range(n_steps):
        result = separator.step()
        if result.accepted:
            poses.append((result.item_index, result.pose))
    return poses, separator.layout.snapshot()


def test_same_seed_same_accepted_poses(two_squares):
    layout = Layout(two_squares, 1.8)
    layout.place(0, Pose(0.5, 0.5))
    layout.place(1, Pose(0.9, 0.5))
    config = SeparatorConfig(samples_per_worker=8)

    first = _accepted_poses(two_squares, layout, 99, config)
    second = _accepted_poses(two_squares, layout, 99, config)
    assert first == second

    parallel = _accepted_poses(two_squares, layout, 99, SeparatorConfig(n_workers=2, samples_per_worker=4))
    assert parallel == first


def test_change_strip_width_invalidates_losses(two_squares, overlapping_squares, separator_config, rng):
    overlapping_squares.place(1, Pose(2.5, 0.5))
    separator = Separator(two_squares, overlapping_squares, rng, separator_config)
    assert separator.is_feasible()

    separator.change_strip_width(2.5, split_position=2.9)
    assert not separator.is_feasible()
    assert separator.density() == pytest.approx(2.0 / 2.5)


def test_layout_of_another_instance_rejected(three_rectangles, overlapping_squares, separator_config, rng):
    with pytest.raises(ValueError):
        Separator(three_rectangles, overlapping_squares, rng, separator_config)
