"""
Test Separator Policies
=======================
Item selection and acceptance rules.
"""

import numpy as np

from config import SeparatorConfig
from policies import (
    EscapeAcceptance,
    GreedyAcceptance,
    OverlapWeightedSelector,
    RoundRobinSelector,
    create_acceptance_policy,
    create_item_selector,
)


def test_round_robin_cycles_colliding_items(rng):
    selector = RoundRobinSelector()
    losses = np.array([0.0, 1.0, 0.0, 2.0, 3.0])
    picks = [selector.select(losses, rng) for _ in range(4)]
    assert picks == [1, 3, 4, 1]


def test_no_colliding_item(rng):
    losses = np.zeros(3)
    assert RoundRobinSelector().select(losses, rng) is None
    assert OverlapWeightedSelector().select(losses, rng) is None


def test_weighted_selection_favours_heavy_items(rng):
    selector = OverlapWeightedSelector()
    losses = np.array([0.0, 0.1, 9.9])
    picks = [selector.select(losses, rng) for _ in range(500)]
    assert 0 not in picks
    assert picks.count(2) > picks.count(1)


def test_infinite_loss_goes_first(rng):
    selector = OverlapWeightedSelector()
    losses = np.array([5.0, np.inf, 1.0])
    assert all(selector.select(losses, rng) == 1 for _ in range(20))


def test_greedy_needs_strict_improvement(rng):
    policy = GreedyAcceptance()
    assert policy.accept(1.0, 0.5, rng)
    assert not policy.accept(1.0, 1.0, rng)
    assert not policy.accept(1.0, 2.0, rng)


def test_escape_acceptance_rate(rng):
    policy = EscapeAcceptance(0.3)
    accepted = sum(policy.accept(1.0, 2.0, rng) for _ in range(4000))
    assert 0.25 < accepted / 4000 < 0.35
    assert not policy.accept(1.0, np.inf, rng)


def test_policy_factories():
    assert isinstance(create_item_selector(SeparatorConfig(item_selection='round_robin')), RoundRobinSelector)
    assert isinstance(create_item_selector(SeparatorConfig()), OverlapWeightedSelector)
    assert isinstance(create_acceptance_policy(SeparatorConfig()), GreedyAcceptance)
    assert isinstance(
        create_acceptance_policy(SeparatorConfig(acceptance='escape', escape_probability=0.1)),
        EscapeAcceptance
    )
