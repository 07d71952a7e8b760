"""
Chart rendering for strategic frameworks and company comparisons.

Charts are standalone ``Figure`` objects on an Agg canvas (no pyplot) and
are returned as base64 encoded PNG strings.
"""

import base64
import io
import logging
import math
import textwrap
from typing import Any, Dict, List, Mapping, Sequence

import matplotlib
import numpy as np
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.patches import Circle

from insightflow.services.report_builder import bcg_metric

logger = logging.getLogger(__name__)


CHART_DPI = 120

SWOT_QUADRANTS = (
    ("strengths", "Strengths", "#2e7d32"),
    ("weaknesses", "Weaknesses", "#c62828"),
    ("opportunities", "Opportunities", "#1565c0"),
    ("threats", "Threats", "#ef6c00"),
)

PESTEL_PANELS = (
    ("political", "Political"),
    ("economic", "Economic"),
    ("social", "Social"),
    ("technological", "Technological"),
    ("environmental", "Environmental"),
    ("legal", "Legal"),
)

MCKINSEY_OUTER = ("strategy", "structure", "systems", "style", "staff", "skills")

# BCG quadrant boundaries
BCG_SHARE_SPLIT = 0.5
BCG_GROWTH_SPLIT = 10.0

COMPANY_COLORS = ("#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd")


def new_figure(figsize: tuple[float, float], nrows: int = 1, ncols: int = 1, polar: bool = False):
    """
    A figure bound to its own Agg canvas, and its axes.

    Returns:
        (figure, axes) where axes is a single Axes for a 1x1 grid, else an
        array of Axes
    """
    fig = Figure(figsize=figsize)
    FigureCanvasAgg(fig)
    axes = fig.subplots(nrows, ncols, subplot_kw={"polar": True} if polar else None)
    return fig, axes


def figure_to_base64(fig: Figure) -> str:
    """Render a figure to base64 PNG."""
    buffer = io.BytesIO()
    fig.savefig(buffer, format='png', dpi=CHART_DPI, bbox_inches='tight')
    buffer.seek(0)
    return base64.b64encode(buffer.read()).decode('utf-8')


def decode_png(image_base64: str) -> bytes:
    return base64.b64decode(image_base64)


def _wrap(text: str, width: int = 22) -> str:
    return "\n".join(textwrap.wrap(str(text), width)) or str(text)


def _bullets(items: Sequence[Any]) -> str:
    return "\n".join(f"• {_wrap(item, 30)}" for item in items) if items else "No data"


def _product_metrics(product: Any) -> tuple[float, float]:
    share = bcg_metric(product, "market_share", "marketShare") or 0.0
    growth = bcg_metric(product, "growth_rate", "growthRate") or 0.0
    return share, growth


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


class VisualizationService:
    """Draws framework and comparison charts as base64 PNG strings."""

    def generate_swot_chart(self, swot: Mapping[str, List[str]], company_name: str = "") -> str:
        fig, axes = new_figure((10, 8), 2, 2)
        for ax, (key, title, color) in zip(axes.flat, SWOT_QUADRANTS):
            ax.set_facecolor(color)
            ax.patch.set_alpha(0.15)
            ax.set_title(title, fontsize=14, fontweight='bold', color=color)
            ax.text(0.05, 0.95, _bullets(swot.get(key, [])), va='top', ha='left',
                    fontsize=11, transform=ax.transAxes)
            ax.set_xticks([])
            ax.set_yticks([])
        fig.suptitle(f"SWOT Analysis{': ' + company_name if company_name else ''}",
                     fontsize=16, fontweight='bold')
        fig.tight_layout()
        return figure_to_base64(fig)

    def generate_pestel_chart(self, pestel: Mapping[str, List[str]], company_name: str = "") -> str:
        fig, axes = new_figure((14, 8), 2, 3)
        cmap = matplotlib.colormaps['Set2']
        for index, (ax, (key, title)) in enumerate(zip(axes.flat, PESTEL_PANELS)):
            color = cmap(index)
            ax.set_facecolor(color)
            ax.patch.set_alpha(0.3)
            ax.set_title(title, fontsize=13, fontweight='bold')
            ax.text(0.05, 0.95, _bullets(pestel.get(key, [])), va='top', ha='left',
                    fontsize=10, transform=ax.transAxes)
            ax.set_xticks([])
            ax.set_yticks([])
        fig.suptitle(f"PESTEL Analysis{': ' + company_name if company_name else ''}",
                     fontsize=16, fontweight='bold')
        fig.tight_layout()
        return figure_to_base64(fig)

    def generate_porter_chart(self, forces: Mapping[str, List[str]], company_name: str = "") -> str:
        # Force positions around the central rivalry box
        layout = {
            "rivalry": ((0.5, 0.5), "Competitive Rivalry", "#c62828"),
            "new_entrants": ((0.5, 0.87), "Threat of New Entrants", "#1565c0"),
            "substitutes": ((0.5, 0.13), "Threat of Substitutes", "#6a1b9a"),
            "supplier_power": ((0.13, 0.5), "Supplier Power", "#2e7d32"),
            "buyer_power": ((0.87, 0.5), "Buyer Power", "#ef6c00"),
        }

        fig, ax = new_figure((12, 10))
        ax.set_xlim(0, 1)
        ax.set_ylim(0, 1)
        ax.axis('off')

        center = layout["rivalry"][0]
        for key, ((x, y), title, color) in layout.items():
            body = "\n".join(_wrap(item, 20) for item in forces.get(key, [])) or "No data"
            ax.text(x, y, f"{title}\n\n{body}", ha='center', va='center', fontsize=10,
                    bbox=dict(boxstyle='round,pad=0.8', facecolor=color, alpha=0.2, edgecolor=color))
            if key != "rivalry":
                ax.annotate("", xy=center, xytext=(x, y),
                            arrowprops=dict(arrowstyle='->', color=color, lw=2, shrinkA=45, shrinkB=60))

        ax.set_title(f"Porter's Five Forces{': ' + company_name if company_name else ''}",
                     fontsize=16, fontweight='bold')
        return figure_to_base64(fig)

    def generate_bcg_chart(self, products: Mapping[str, Mapping[str, Any]], company_name: str = "") -> str:
        fig, ax = new_figure((10, 8))
        ax.set_xlim(0, 2)
        ax.set_ylim(0, 20)
        ax.axvline(BCG_SHARE_SPLIT, color='gray', linestyle='--')
        ax.axhline(BCG_GROWTH_SPLIT, color='gray', linestyle='--')

        for (x, y), label in (((1.25, 19), "Stars"), ((0.25, 19), "Question Marks"),
                              ((1.25, 1), "Cash Cows"), ((0.25, 1), "Dogs")):
            ax.text(x, y, label, ha='center', va='center', fontsize=13,
                    fontweight='bold', color='dimgray')

        for index, (name, product) in enumerate(products.items()):
            share, growth = _product_metrics(product)
            color = COMPANY_COLORS[index % len(COMPANY_COLORS)]
            ax.scatter(share, growth, s=400, color=color, alpha=0.7, edgecolors='black')
            ax.annotate(name, (share, growth), textcoords='offset points', xytext=(0, 14),
                        ha='center', fontsize=10)

        ax.set_xlabel("Relative Market Share")
        ax.set_ylabel("Market Growth Rate (%)")
        ax.set_title(f"BCG Matrix{': ' + company_name if company_name else ''}",
                     fontsize=16, fontweight='bold')
        return figure_to_base64(fig)

    def generate_mckinsey_chart(self, elements: Mapping[str, Any], company_name: str = "") -> str:
        fig, ax = new_figure((10, 10))
        ax.set_xlim(-1.5, 1.5)
        ax.set_ylim(-1.5, 1.5)
        ax.set_aspect('equal')
        ax.axis('off')

        positions = {}
        for index, key in enumerate(MCKINSEY_OUTER):
            angle = math.pi / 2 - index * 2 * math.pi / len(MCKINSEY_OUTER)
            positions[key] = (math.cos(angle), math.sin(angle))
        positions["shared_values"] = (0.0, 0.0)

        keys = list(positions)
        for i, first in enumerate(keys):
            for second in keys[i + 1:]:
                (x1, y1), (x2, y2) = positions[first], positions[second]
                ax.plot([x1, x2], [y1, y2], color='lightgray', lw=1, zorder=1)

        for key, (x, y) in positions.items():
            is_center = key == "shared_values"
            title = key.replace("_", " ").title()
            ax.add_patch(Circle((x, y), 0.32 if is_center else 0.28,
                                color='#0d8abc' if is_center else '#90caf9', zorder=2))
            ax.text(x, y, f"{title}\n{_wrap(elements.get(key, ''), 16)}", ha='center', va='center',
                    fontsize=9, zorder=3, color='white' if is_center else 'black')

        ax.set_title(f"McKinsey 7S Model{': ' + company_name if company_name else ''}",
                     fontsize=16, fontweight='bold')
        return figure_to_base64(fig)

    def generate_radar_chart(self, metrics: Mapping[str, Mapping[str, float]]) -> str:
        """
        Radar chart over market share, growth, sentiment and stability.

        Values are scaled to 0-1: share / 2, growth / 20, sentiment / 100 and
        stability as 1 - risk / 10.
        """
        labels = ["Market Share", "Growth Rate", "Sentiment", "Stability (1 - risk)"]
        angles = np.linspace(0, 2 * np.pi, len(labels), endpoint=False).tolist()
        angles += angles[:1]

        fig, ax = new_figure((8, 8), polar=True)
        for index, (company, values) in enumerate(metrics.items()):
            scaled = [
                _clamp01(values.get("market_share", 0.0) / 2),
                _clamp01(values.get("growth_rate", 0.0) / 20),
                _clamp01(values.get("sentiment_score", 0.0) / 100),
                _clamp01(1 - values.get("risk_rating", 0.0) / 10),
            ]
            scaled += scaled[:1]
            color = COMPANY_COLORS[index % len(COMPANY_COLORS)]
            ax.plot(angles, scaled, color=color, linewidth=2, label=company)
            ax.fill(angles, scaled, color=color, alpha=0.15)

        ax.set_xticks(angles[:-1])
        ax.set_xticklabels(labels)
        ax.set_ylim(0, 1)
        ax.legend(loc='upper right', bbox_to_anchor=(1.3, 1.1))
        ax.set_title("Company Comparison", fontsize=15, fontweight='bold', pad=20)
        return figure_to_base64(fig)

    def generate_bar_graph(self, metrics: Mapping[str, Mapping[str, float]]) -> str:
        """Grouped bars; sentiment is divided by 10 to share the axis with the other metrics."""
        labels = ["Market Share", "Growth Rate", "Sentiment (/10)", "Risk Rating"]
        companies = list(metrics)
        x = np.arange(len(labels))
        width = 0.8 / max(1, len(companies))

        fig, ax = new_figure((11, 6))
        for index, company in enumerate(companies):
            values = metrics[company]
            heights = [
                values.get("market_share", 0.0),
                values.get("growth_rate", 0.0),
                values.get("sentiment_score", 0.0) / 10,
                values.get("risk_rating", 0.0),
            ]
            ax.bar(x + index * width - 0.4 + width / 2, heights, width, label=company,
                   color=COMPANY_COLORS[index % len(COMPANY_COLORS)])

        ax.set_xticks(x)
        ax.set_xticklabels(labels)
        ax.set_ylabel("Value")
        ax.legend()
        ax.set_title("Key Metrics by Company", fontsize=15, fontweight='bold')
        ax.grid(axis='y', alpha=0.3)
        return figure_to_base64(fig)

    def generate_scatter_plot(self, metrics: Mapping[str, Mapping[str, float]]) -> str:
        """Risk (x) against growth (y), bubble area from market share."""
        fig, ax = new_figure((10, 7))
        for index, (company, values) in enumerate(metrics.items()):
            risk = values.get("risk_rating", 0.0)
            growth = values.get("growth_rate", 0.0)
            size = 100 + 600 * max(0.0, values.get("market_share", 0.0))
            ax.scatter(risk, growth, s=size, alpha=0.6, edgecolors='black',
                       color=COMPANY_COLORS[index % len(COMPANY_COLORS)], label=company)
            ax.annotate(company, (risk, growth), textcoords='offset points', xytext=(0, 12), ha='center')

        ax.set_xlim(0, 10)
        ax.set_xlabel("Risk Rating (0-10)")
        ax.set_ylabel("Growth Rate (%)")
        ax.set_title("Risk vs Growth", fontsize=15, fontweight='bold')
        ax.grid(alpha=0.3)
        return figure_to_base64(fig)

    def generate_framework_charts(self, frameworks: Dict[str, Any], company_name: str) -> Dict[str, str]:
        """
        Render every framework present in ``frameworks``.

        Args:
            frameworks: Keys swot_lists, pestel_lists, porter_forces,
                bcg_matrix, mckinsey_7s

        Returns:
            Matching ``*_image`` keys; a chart that fails to render is
            logged and omitted
        """
        renderers = (
            ("swot_lists", "swot_image", self.generate_swot_chart),
            ("pestel_lists", "pestel_image", self.generate_pestel_chart),
            ("porter_forces", "porter_image", self.generate_porter_chart),
            ("bcg_matrix", "bcg_image", self.generate_bcg_chart),
            ("mckinsey_7s", "mckinsey_image", self.generate_mckinsey_chart),
        )
        images: Dict[str, str] = {}
        for source_key, image_key, render in renderers:
            data = frameworks.get(source_key)
            if not data:
                continue
            try:
                images[image_key] = render(data, company_name)
            except Exception as e:
                logger.error(
                    f"Failed to render {image_key}",
                    extra={"company_name": company_name, "error": str(e)},
                    exc_info=True
                )
        return images
