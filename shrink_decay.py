"""
shrink_decay.py - Compression Step Decay Policies
=================================================
Rules that shrink the compression step after failed (or timed) attempts.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Union


class ShrinkDecay(ABC):
    """Decides the next compression step size."""

    @abstractmethod
    def initial_step(self, configured_step: float) -> float:
        """Step used for the first shrink attempt."""
        pass

    @abstractmethod
    def next_step(self, step: float, success: bool, progress: float) -> float:
        """
        Compute the step for the next attempt.

        Args:
            step: Step used in the attempt that just finished
            success: Whether the narrower strip was made feasible
            progress: Fraction (0-1) of the phase's time budget already used

        Returns:
            Step ratio for the next attempt
        """
        pass


@dataclass(frozen=True)
class FailureBasedDecay(ShrinkDecay):
    """Multiplies the step by `ratio` after every failed attempt."""
    ratio: float = 0.9

    def __post_init__(self):
        if not 0.0 < self.ratio < 1.0:
            raise ValueError(f"Failure decay ratio must be in (0, 1), got {self.ratio}")

    def initial_step(self, configured_step: float) -> float:
        return configured_step

    def next_step(self, step: float, success: bool, progress: float) -> float:
        if success:
            return step
        return step * self.ratio


@dataclass(frozen=True)
class TimeBasedDecay(ShrinkDecay):
    """Interpolates linearly from `max_step` to `min_step` over the phase budget."""
    max_step: float = 0.005
    min_step: float = 0.0001

    def __post_init__(self):
        if not 0.0 < self.min_step <= self.max_step < 1.0:
            raise ValueError(
                f"Time decay requires 0 < min_step <= max_step < 1, "
                f"got min={self.min_step}, max={self.max_step}"
            )

    def initial_step(self, configured_step: float) -> float:
        return self.max_step

    def next_step(self, step: float, success: bool, progress: float) -> float:
        progress = min(max(progress, 0.0), 1.0)
        return self.max_step - (self.max_step - self.min_step) * progress


def parse_shrink_decay(value: Union[ShrinkDecay, Dict[str, Any]]) -> ShrinkDecay:
    """Build a decay policy from a config dict such as {'type': 'failure_based', 'ratio': 0.9}."""
    if isinstance(value, ShrinkDecay):
        return value

    params = dict(value)
    kind = params.pop('type', 'failure_based')

    if kind == 'failure_based':
        return FailureBasedDecay(**params)
    elif kind == 'time_based':
        return TimeBasedDecay(**params)
    else:
        raise ValueError(f"Unknown shrink decay type: {kind}")
