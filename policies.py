"""
policies.py - Separator Search Policies
=======================================
Pluggable rules for which item a Separator step moves and whether a
non-improving candidate may still be accepted.
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from config import SeparatorConfig


# ============================================================================
# ITEM SELECTION
# ============================================================================

class ItemSelector(ABC):
    """Chooses the item to move among those contributing loss."""

    @abstractmethod
    def select(self, losses: np.ndarray, rng: np.random.Generator) -> Optional[int]:
        """Index of the item to move, or None when no item has loss."""
        pass


class RoundRobinSelector(ItemSelector):
    """Cycles through colliding items in index order."""

    def __init__(self):
        self._cursor = -1

    def select(self, losses: np.ndarray, rng: np.random.Generator) -> Optional[int]:
        colliding = np.flatnonzero(losses > 0)
        if len(colliding) == 0:
            return None
        after = colliding[colliding > self._cursor]
        self._cursor = int(after[0]) if len(after) else int(colliding[0])
        return self._cursor


class OverlapWeightedSelector(ItemSelector):
    """Draws a colliding item with probability proportional to its loss."""

    def select(self, losses: np.ndarray, rng: np.random.Generator) -> Optional[int]:
        colliding = np.flatnonzero(losses > 0)
        if len(colliding) == 0:
            return None
        weights = losses[colliding]
        if not np.all(np.isfinite(weights)):
            # Items that can never fit where they are go first
            colliding = colliding[~np.isfinite(weights)]
            weights = np.ones(len(colliding))
        return int(rng.choice(colliding, p=weights / weights.sum()))


# ============================================================================
# ACCEPTANCE
# ============================================================================

class AcceptancePolicy(ABC):
    """Decides whether the best candidate replaces the current pose."""

    @abstractmethod
    def accept(self, current_loss: float, candidate_loss: float, rng: np.random.Generator) -> bool:
        pass


class GreedyAcceptance(AcceptancePolicy):
    """Only strict improvements."""

    def accept(self, current_loss: float, candidate_loss: float, rng: np.random.Generator) -> bool:
        return candidate_loss < current_loss


class EscapeAcceptance(AcceptancePolicy):
    """Strict improvements, plus finite non-improving moves with a small probability."""

    def __init__(self, probability: float):
        self.probability = probability

    def accept(self, current_loss: float, candidate_loss: float, rng: np.random.Generator) -> bool:
        if candidate_loss < current_loss:
            return True
        if not np.isfinite(candidate_loss) or self.probability <= 0.0:
            return False
        return bool(rng.random() < self.probability)


def create_item_selector(config: SeparatorConfig) -> ItemSelector:
    if config.item_selection == 'round_robin':
        return RoundRobinSelector()
    return OverlapWeightedSelector()


def create_acceptance_policy(config: SeparatorConfig) -> AcceptancePolicy:
    if config.acceptance == 'escape':
        return EscapeAcceptance(config.escape_probability)
    return GreedyAcceptance()
