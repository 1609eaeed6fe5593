"""
compression.py - Compression Phase
==================================
Shrinks the strip of a feasible layout step by step. Each proposal narrows
the strip and gives the Separator a short attempt deadline; a successful
attempt is kept, a failed one is rolled back and the shrink step decays.
Separator success is not monotone in width, so this is a diminishing-step
search rather than a bisection.
"""

from dataclasses import dataclass
from typing import Optional
import logging
import time

from config import CompressionConfig
from listener import ReportKind, SolutionListener
from models import Instance, Solution
from separator import Separator
from terminator import AttemptTerminator, Terminator

logger = logging.getLogger(__name__)


@dataclass
class CompressionResult:
    solution: Solution
    n_accepted: int = 0
    n_failed: int = 0
    final_step: float = 0.0
    elapsed: float = 0.0


def phase_progress(start: float, deadline: Optional[float]) -> float:
    """Fraction of the armed phase deadline already used, in [0, 1]."""
    if deadline is None or deadline <= start:
        return 0.0
    return min(1.0, max(0.0, (time.monotonic() - start) / (deadline - start)))


def compression_phase(instance: Instance, separator: Separator, init: Solution,
                      listener: SolutionListener, terminator: Terminator,
                      config: CompressionConfig) -> CompressionResult:
    """
    Compress `init` until the terminator fires or the shrink step becomes
    negligible. The returned solution is feasible and never wider than `init`.
    """
    if not init.feasible:
        raise ValueError(f"Compression needs a feasible layout, got loss {init.total_loss:.6g}")

    start = time.monotonic()
    deadline = terminator.timeout_at()
    decay = config.shrink_decay

    separator.rollback(init)
    best = init
    step = decay.initial_step(config.shrink_step)
    n_accepted = 0
    n_failed = 0

    logger.info(f"Compression started at width {init.strip_width:.4f}")

    while not terminator.is_kill() and step >= config.min_shrink_step:
        separator.change_strip_width(best.strip_width * (1.0 - step))
        attempt = AttemptTerminator(terminator, config.attempt_time_limit)
        success = separator.run_until(attempt, config.attempt_steps)

        if success:
            best = separator.snapshot()
            n_accepted += 1
            listener.report(ReportKind.CMPR_FEASIBLE, best, instance)
            logger.info(
                f"Compressed to width {best.strip_width:.4f} "
                f"(density {best.density(instance):.3%}, step {step:.5f})"
            )
        else:
            separator.rollback(best)
            n_failed += 1
            logger.debug(f"Shrink of {step:.5f} failed")

        step = decay.next_step(step, success, phase_progress(start, deadline))

    elapsed = time.monotonic() - start
    listener.report(ReportKind.FINAL, best, instance)
    logger.info(
        f"Compression finished in {elapsed:.1f}s: width {best.strip_width:.4f}, "
        f"{n_accepted} accepted, {n_failed} failed"
    )

    return CompressionResult(
        solution=best,
        n_accepted=n_accepted,
        n_failed=n_failed,
        final_step=step,
        elapsed=elapsed
    )
