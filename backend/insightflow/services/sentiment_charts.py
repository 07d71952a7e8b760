"""
Sentiment trend charts.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

import matplotlib.dates as mdates

from insightflow.services.visualization import COMPANY_COLORS, figure_to_base64, new_figure

logger = logging.getLogger(__name__)


def _parse_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


def series_points(
    time_series: List[Mapping[str, Any]],
    field: str = "sentiment_score",
) -> List[Tuple[datetime, float]]:
    """
    (time, value) pairs for plotting, bucketed to three-hour slots.

    Points with an unparseable date or value are skipped; a later point in
    the same slot replaces an earlier one.
    """
    buckets: Dict[datetime, float] = {}
    for point in time_series or []:
        moment = _parse_date(point.get("date"))
        if moment is None:
            logger.warning("Skipping point with invalid date", extra={"date": str(point.get("date"))})
            continue
        try:
            score = float(point.get(field))
        except (TypeError, ValueError):
            continue
        slot = moment.replace(hour=(moment.hour // 3) * 3, minute=0, second=0, microsecond=0)
        buckets[slot] = score
    return sorted(buckets.items())


def _style_time_axis(ax) -> None:
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%b %d"))
    ax.set_xlabel("Date")
    ax.set_ylabel("Score (0-100)")
    ax.grid(True, color="#d3d3d3")
    ax.figure.autofmt_xdate()


class SentimentChartService:
    """Line charts over sentiment time series."""

    def generate_trend_chart(self, analysis: Mapping[str, Any]) -> Optional[str]:
        """
        Sentiment trend for one company.

        Returns:
            Base64 PNG, or None when no point can be plotted
        """
        points = series_points(analysis.get("time_series") or [])
        if not points:
            logger.warning("No plottable points for trend chart",
                           extra={"company_name": analysis.get("company_name")})
            return None

        fig, ax = new_figure((10, 6))
        ax.plot([p[0] for p in points], [p[1] for p in points],
                color="#4682b4", linewidth=2.5, marker="o", label="Sentiment Score")
        ax.set_ylim(0, 100)

        risk = series_points(analysis.get("time_series") or [], field="risk_rating")
        lines, labels = ax.get_legend_handles_labels()
        if risk:
            risk_ax = ax.twinx()
            risk_ax.plot([p[0] for p in risk], [p[1] for p in risk],
                         color="#c62828", linewidth=1.5, linestyle="--", marker="s", label="Risk Rating")
            risk_ax.set_ylabel("Risk (0-10)")
            risk_ax.set_ylim(0, 10)
            risk_lines, risk_labels = risk_ax.get_legend_handles_labels()
            lines, labels = lines + risk_lines, labels + risk_labels

        ax.set_title(f"Sentiment Trend - {analysis.get('company_name', '')}")
        ax.legend(lines, labels, loc="upper left")
        _style_time_axis(ax)
        return figure_to_base64(fig)

    def generate_comparison_chart(self, companies_data: Mapping[str, Mapping[str, Any]]) -> Optional[str]:
        """
        One line per company.

        Returns:
            Base64 PNG, or None when no company has plottable points
        """
        fig, ax = new_figure((10, 6))
        plotted = 0
        for company, analysis in companies_data.items():
            points = series_points(analysis.get("time_series") or [])
            if not points:
                continue
            ax.plot([p[0] for p in points], [p[1] for p in points],
                    color=COMPANY_COLORS[plotted % len(COMPANY_COLORS)],
                    linewidth=2.0, marker="o", label=company)
            plotted += 1

        if plotted == 0:
            return None

        ax.set_title("Sentiment Comparison")
        ax.legend()
        _style_time_axis(ax)
        return figure_to_base64(fig)
