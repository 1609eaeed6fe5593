"""
rng_chain.py - Deterministic Random Number Streams
==================================================
One root seed (given or drawn, always logged) spawns independently seeded
child generators for each phase and each parallel run. Children are
spawned once, at task creation, and never shared between tasks.
"""

from typing import List, Optional
import logging

import numpy as np

from config import ConfigurationError

logger = logging.getLogger(__name__)


class RngChain:
    """Root of a tree of independent numpy generators."""

    def __init__(self, seed: Optional[int] = None, log_seed: bool = True):
        if seed is None:
            seed = int(np.random.SeedSequence().entropy) % (2 ** 64)
            if log_seed:
                logger.info(f"No seed provided, using: {seed}")
        elif seed < 0:
            raise ConfigurationError(f"Seed must be a non-negative integer, got {seed}")
        elif log_seed:
            logger.info(f"Using provided seed: {seed}")

        self.seed = int(seed)
        self._sequence = np.random.SeedSequence(self.seed)

    @classmethod
    def _from_sequence(cls, sequence: np.random.SeedSequence, seed: int) -> 'RngChain':
        chain = cls.__new__(cls)
        chain.seed = seed
        chain._sequence = sequence
        return chain

    def spawn(self) -> np.random.Generator:
        """Next independent generator in this chain."""
        child, = self._sequence.spawn(1)
        return np.random.default_rng(child)

    def spawn_chain(self) -> 'RngChain':
        """Independent sub-chain for one parallel task, sharing the root seed for reporting."""
        child, = self._sequence.spawn(1)
        return RngChain._from_sequence(child, self.seed)

    def spawn_chains(self, n: int) -> List['RngChain']:
        return [self.spawn_chain() for _ in range(n)]
