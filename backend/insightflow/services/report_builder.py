"""
Plain-text company report export.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

RULE = "=" * 80
SUBRULE = "-" * 80


def report_filename(company_name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]", "_", company_name or "company") + "_analysis.txt"


def bcg_metric(metrics: Any, snake: str, camel: str) -> Optional[float]:
    """
    A BCG metric of one product as a float, read under either key spelling.

    None when the product entry is not a mapping or the value is missing or
    not numeric.
    """
    if not isinstance(metrics, Mapping):
        return None
    value = metrics.get(snake)
    if value is None:
        value = metrics.get(camel)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def bcg_category(market_share: float, growth_rate: float) -> str:
    """BCG quadrant for a product (share split 0.5, growth split 10%)."""
    if market_share > 0.5 and growth_rate > 10:
        return "STAR"
    if market_share > 0.5:
        return "CASH COW"
    if growth_rate > 10:
        return "QUESTION MARK"
    return "DOG"


def strip_html(text: str) -> str:
    text = re.sub(r"<br\s*/?>", "\n", text or "", flags=re.IGNORECASE)
    return re.sub(r"<[^>]+>", "", text).strip()


def _section(lines: List[str], number: int, title: str) -> None:
    lines.append("")
    lines.append(f"{number}. {title.upper()}")
    lines.append(SUBRULE)


def _list_block(lines: List[str], data: Any, keys: List[str]) -> None:
    if not isinstance(data, Mapping) or not data:
        lines.append("No data available.")
        return
    for key in keys:
        lines.append(f"{key.replace('_', ' ').title()}:")
        items = data.get(key) or []
        if not items:
            lines.append("  - None identified")
        for item in items:
            lines.append(f"  - {item}")


def build_company_report(analysis: Dict[str, Any], generated_at: datetime | None = None) -> str:
    """
    Render an analysis as a downloadable text report.

    Args:
        analysis: Analysis dict (snake_case keys, as returned by the API)
        generated_at: Timestamp printed in the header (defaults to now)

    Returns:
        Report text with nine numbered sections
    """
    company_name = analysis.get("company_name") or "Unknown Company"
    generated_at = generated_at or datetime.utcnow()

    lines = [
        RULE,
        f"COMPANY ANALYSIS REPORT: {company_name}",
        f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')} UTC",
        RULE,
    ]

    _section(lines, 1, "Executive Summary")
    summaries = analysis.get("summaries") or []
    if summaries:
        for summary in summaries:
            lines.append(str(summary))
            lines.append("")
    else:
        lines.append("No summary available.")

    _section(lines, 2, "Strategic Recommendations")
    lines.append(analysis.get("strategy_recommendations") or "No recommendations available.")

    _section(lines, 3, "SWOT Analysis")
    _list_block(lines, analysis.get("swot_lists") or {},
                ["strengths", "weaknesses", "opportunities", "threats"])

    _section(lines, 4, "PESTEL Analysis")
    _list_block(lines, analysis.get("pestel_lists") or {},
                ["political", "economic", "social", "technological", "environmental", "legal"])

    _section(lines, 5, "Porter's Five Forces")
    _list_block(lines, analysis.get("porter_forces") or {},
                ["rivalry", "new_entrants", "substitutes", "buyer_power", "supplier_power"])

    _section(lines, 6, "BCG Matrix")
    bcg = analysis.get("bcg_matrix")
    if not isinstance(bcg, Mapping) or not bcg:
        bcg = {}
        lines.append("No data available.")
    for product, metrics in bcg.items():
        share = bcg_metric(metrics, "market_share", "marketShare") or 0.0
        growth = bcg_metric(metrics, "growth_rate", "growthRate") or 0.0
        lines.append(
            f"  - {product}: market share {share:.2f}, growth rate {growth:.1f}% "
            f"[{bcg_category(share, growth)}]"
        )

    _section(lines, 7, "McKinsey 7S")
    mckinsey = analysis.get("mckinsey_7s")
    if not isinstance(mckinsey, Mapping) or not mckinsey:
        mckinsey = {}
        lines.append("No data available.")
    for key, value in mckinsey.items():
        lines.append(f"  - {key.replace('_', ' ').title()}: {value}")

    _section(lines, 8, "LinkedIn Analysis")
    lines.append(strip_html(analysis.get("linkedin_analysis") or "") or "No LinkedIn analysis available.")

    _section(lines, 9, "Sources")
    sources = analysis.get("sources") or []
    if not sources:
        lines.append("No sources recorded.")
    for index, source in enumerate(sources, 1):
        lines.append(f"  {index}. {source}")

    lines.append("")
    lines.append(RULE)
    return "\n".join(lines) + "\n"
