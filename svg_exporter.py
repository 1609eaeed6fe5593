"""
SVG Exporter Module
===================
Renders solutions to SVG with matplotlib and exports them from the
optimizer's report points.
"""

from pathlib import Path
from typing import Optional, Union
import logging

from matplotlib.figure import Figure
from matplotlib.patches import Polygon as MplPolygon
from matplotlib.patches import Rectangle as MplRectangle
import numpy as np

from config import Config, ConfigurationError
from listener import ReportKind, SolutionListener
from models import Instance, Solution

logger = logging.getLogger(__name__)


def check_export_modes(live: bool, only_final: bool):
    """Live and only-final export cannot be combined."""
    if live and only_final:
        raise ConfigurationError("Live SVG export and only-final SVG export are mutually exclusive")


def render_solution(solution: Solution, instance: Instance, title: str = "") -> Figure:
    """
    Draw the strip and every placed item of a solution.

    Uses the object-oriented matplotlib API (no pyplot state), so figures can
    be rendered from worker threads.
    """
    export = Config.EXPORT
    width, height = solution.strip_width, instance.strip_height

    fig_width = export['figure_width']
    fig_height = max(1.5, fig_width * height / width)
    fig = Figure(figsize=(fig_width, fig_height), dpi=export['dpi'])
    ax = fig.add_subplot(1, 1, 1)

    ax.add_patch(MplRectangle((0, 0), width, height, facecolor=export['strip_color'],
                              edgecolor='black', linewidth=1.0))

    face = export['item_color'] if solution.feasible else export['infeasible_color']
    for shape in solution.item_shapes(instance).values():
        ax.add_patch(MplPolygon(np.asarray(shape.exterior.coords), closed=True,
                                facecolor=face, edgecolor=export['item_edge_color'],
                                linewidth=0.5))
        for interior in shape.interiors:
            ax.add_patch(MplPolygon(np.asarray(interior.coords), closed=True,
                                    facecolor=export['strip_color'], edgecolor=export['item_edge_color'],
                                    linewidth=0.5))

    margin = 0.02 * max(width, height)
    ax.set_xlim(-margin, width + margin)
    ax.set_ylim(-margin, height + margin)
    ax.set_aspect('equal')
    ax.axis('off')
    ax.set_title(
        f"{title}  width: {width:.3f}  density: {solution.density(instance):.2%}",
        fontsize=10
    )
    return fig


def write_svg(solution: Solution, instance: Instance, path: Union[str, Path], title: str = "") -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig = render_solution(solution, instance, title)
    fig.savefig(path, format='svg', bbox_inches='tight')
    return path


class SvgExporter(SolutionListener):
    """
    Listener writing solutions as SVG files.

    Args:
        final_path: File receiving the final solution
        intermediate_dir: Directory receiving one numbered file per report
            (improving exploration reports excluded); old SVGs are removed
        live_path: File overwritten on every report
    """

    def __init__(self, final_path: Optional[Union[str, Path]] = None,
                 intermediate_dir: Optional[Union[str, Path]] = None,
                 live_path: Optional[Union[str, Path]] = None):
        self.final_path = Path(final_path) if final_path else None
        self.intermediate_dir = Path(intermediate_dir) if intermediate_dir else None
        self.live_path = Path(live_path) if live_path else None
        self.svg_counter = 0

        if self.intermediate_dir is not None and self.intermediate_dir.is_dir():
            for old_file in self.intermediate_dir.glob('*.svg'):
                old_file.unlink()

    def report(self, kind: ReportKind, solution: Solution, instance: Instance):
        file_name = f"{self.svg_counter}_{solution.strip_width:.3f}_{kind.suffix}"

        if self.live_path is not None:
            write_svg(solution, instance, self.live_path, file_name)

        if self.intermediate_dir is not None and kind is not ReportKind.EXPL_IMPROVING:
            write_svg(solution, instance, self.intermediate_dir / f"{file_name}.svg", file_name)
            self.svg_counter += 1

        if self.final_path is not None and kind is ReportKind.FINAL:
            write_svg(solution, instance, self.final_path, self.final_path.stem)
            logger.info(f"Final layout saved to {self.final_path}")
