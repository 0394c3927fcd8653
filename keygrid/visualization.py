# keygrid/visualization.py
"""
Layout rendering.

Draws every key as its rotated outline, coloured by logical row and
labelled with its "row,col" address, so a derived grid can be checked
against the physical layout at a glance.
"""
from pathlib import Path
from typing import Optional, Union

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.patches import Polygon
import seaborn as sns

from keygrid.utils.config import VisualizationConfig
from keygrid.data import KeyboardLayout
from keygrid.geometry import key_center, key_polygon, keys_bounding_box
from keygrid.utils.logging import LoggingManager
logger = LoggingManager.getLogger(__name__)

class LayoutVisualizer:
    """Plots keyboard layouts with their logical addresses."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def plot_layout(self, layout: KeyboardLayout, title: Optional[str] = None) -> Figure:
        """Create a figure of the layout; keys without a row are drawn grey."""
        (min_x, min_y), (max_x, max_y) = keys_bounding_box(layout.keys)
        width = max(max_x - min_x, 1.0)
        height = max(max_y - min_y, 1.0)
        fig_width = self.config.figure_width
        fig, ax = plt.subplots(figsize=(fig_width, max(fig_width * height / width, 2.0)))

        colors = sns.color_palette(self.config.palette, max(layout.n_rows, 1))
        for key in layout.keys:
            color = colors[key.row % len(colors)] if key.row >= 0 else (0.8, 0.8, 0.8)
            outline = key_polygon(key, inset=self.config.key_padding)
            ax.add_patch(Polygon(outline, closed=True, facecolor=color,
                                 edgecolor='black', linewidth=0.8, alpha=0.8))
            cx, cy = key_center(key)
            ax.text(cx, cy, f"{key.row},{key.col}", ha='center', va='center',
                    fontsize=8, rotation=-key.r)

        ax.set_xlim(min_x - 0.5, max_x + 0.5)
        ax.set_ylim(max_y + 0.5, min_y - 0.5)  # screen coordinates, y down
        ax.set_aspect('equal')
        ax.axis('off')
        ax.set_title(title or f"{layout.name}: {layout.n_rows} rows x {layout.n_cols} cols")
        fig.tight_layout()
        return fig

    def save(self, fig: Figure, file_path: Union[str, Path]) -> Path:
        """Save figure and close it."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(file_path, dpi=self.config.dpi, bbox_inches='tight')
        plt.close(fig)
        logger.info(f"Saved layout plot to {file_path}")
        return file_path
