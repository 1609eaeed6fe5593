"""
listener.py - Solution Reporting
================================
Listeners are notified synchronously with immutable solutions at the
report points of both phases. A slow listener slows the run down.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Tuple

from models import Instance, Solution


class ReportKind(Enum):
    """Report points of the optimizer."""
    EXPL_IMPROVING = "expl_i"
    EXPL_FEASIBLE = "expl_f"
    EXPL_INFEASIBLE = "expl_nf"
    CMPR_FEASIBLE = "cmpr"
    FINAL = "final"

    @property
    def suffix(self) -> str:
        return self.value


class SolutionListener(ABC):
    """Receives solutions as they are produced."""

    @abstractmethod
    def report(self, kind: ReportKind, solution: Solution, instance: Instance):
        pass


class DummySolutionListener(SolutionListener):
    """Ignores every report."""

    def report(self, kind: ReportKind, solution: Solution, instance: Instance):
        pass


class RecordingListener(SolutionListener):
    """Keeps every report in memory, in order."""

    def __init__(self):
        self.reports: List[Tuple[ReportKind, Solution]] = []

    def report(self, kind: ReportKind, solution: Solution, instance: Instance):
        self.reports.append((kind, solution))

    def of_kind(self, kind: ReportKind) -> List[Solution]:
        return [solution for k, solution in self.reports if k == kind]

    @property
    def kinds(self) -> List[ReportKind]:
        return [kind for kind, _ in self.reports]


class CompositeListener(SolutionListener):
    """Forwards every report to several listeners in order."""

    def __init__(self, *listeners: SolutionListener):
        self.listeners = list(listeners)

    def report(self, kind: ReportKind, solution: Solution, instance: Instance):
        for listener in self.listeners:
            listener.report(kind, solution, instance)
