"""
Multi-company comparison.

Turns two to five stored analyses into per-company metrics, industry
benchmarks (plain averages), rule-based insight sentences and model-written
investment recommendations.
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from insightflow.prompts import (
    COMBINED_TEMPLATE,
    INVESTMENT_RECOMMENDATION_TEMPLATE,
    RISK_TEMPLATE,
    SENTIMENT_TEMPLATE,
)
from insightflow.services.interfaces.llm_client import ILLMClient
from insightflow.services.llm_client import LLMServiceError
from insightflow.services.report_builder import bcg_metric
from insightflow.services.response_parser import extract_json_object

logger = logging.getLogger(__name__)


DEFAULT_SENTIMENT = 50.0
DEFAULT_RISK = 5.0

NEGATIVE_WORDS = ("risk", "threat", "challenge", "problem", "issue", "weakness", "decline", "loss", "fail")
POSITIVE_WORDS = ("growth", "opportunity", "strength", "success", "profit", "gain", "advantage", "leadership")
RISK_WORDS = ("threat", "risk", "challenge")

RECOMMENDATION_FALLBACK = (
    "Investment recommendations could not be generated at this time due to a technical issue. "
    "Please analyze the metrics manually for investment insights."
)

_SWOT_SECTIONS = (("Strengths", "strengths"), ("Weaknesses", "weaknesses"),
                  ("Opportunities", "opportunities"), ("Threats", "threats"))
_PESTEL_SECTIONS = (("Political", "political"), ("Economic", "economic"), ("Social", "social"),
                    ("Technological", "technological"), ("Environmental", "environmental"),
                    ("Legal", "legal"))


def count_words(text: str, words: Sequence[str]) -> int:
    """Case-insensitive whole-word occurrence count, summed over ``words``."""
    lowered = text.lower()
    return sum(len(re.findall(rf"\b{re.escape(word)}\b", lowered)) for word in words)


def heuristic_sentiment(text: str) -> float:
    score = 50 + len(text) // 1000 - count_words(text, NEGATIVE_WORDS) * 5 + count_words(text, POSITIVE_WORDS) * 3
    return float(min(100, max(0, score)))


def heuristic_risk(text: str) -> float:
    return min(10.0, max(0.0, count_words(text, RISK_WORDS) / 2.0))


def average_bcg(bcg: Optional[Mapping[str, Any]]) -> Dict[str, float]:
    """
    Mean market share and growth across a BCG matrix.

    Products missing a metric count as 0 for that metric. An empty matrix
    yields zeros.
    """
    if not isinstance(bcg, Mapping) or not bcg:
        return {"market_share": 0.0, "growth_rate": 0.0}
    shares = [bcg_metric(m, "market_share", "marketShare") or 0.0 for m in bcg.values()]
    growths = [bcg_metric(m, "growth_rate", "growthRate") or 0.0 for m in bcg.values()]
    return {
        "market_share": sum(shares) / len(shares),
        "growth_rate": sum(growths) / len(growths),
    }


def performance_indicator(actual: float, benchmark: float, risk: bool = False) -> str:
    """
    Describe a value relative to its benchmark.

    Differences under 0.1 count as "At benchmark level". The percentage is
    relative to the benchmark; a zero benchmark reports 100%.
    """
    diff = actual - benchmark
    if abs(diff) < 0.1:
        return "At benchmark level"
    percentage = abs(diff / benchmark) * 100 if benchmark else 100.0
    if risk:
        return f"Higher risk (+{percentage:.1f}%)" if diff > 0 else f"Lower risk (-{percentage:.1f}%)"
    return f"Above benchmark (+{percentage:.1f}%)" if diff > 0 else f"Below benchmark (-{percentage:.1f}%)"


def prepare_analysis_text(analysis: Mapping[str, Any]) -> str:
    """Flatten summaries, SWOT, PESTEL and LinkedIn text for scoring prompts."""
    parts: List[str] = []

    summaries = analysis.get("summaries") or []
    if summaries:
        parts.append("Company Summaries:\n")
        for summary in summaries:
            parts.append(f"- {summary}\n")
        parts.append("\n")

    for title, key, sections in (("SWOT Analysis", "swot_lists", _SWOT_SECTIONS),
                                 ("PESTEL Analysis", "pestel_lists", _PESTEL_SECTIONS)):
        data = analysis.get(key)
        if not isinstance(data, Mapping):
            continue
        parts.append(f"{title}:\n")
        for label, field in sections:
            items = data.get(field) or []
            if items:
                parts.append(f"{label}: {', '.join(str(i) for i in items)}\n")
        parts.append("\n")

    linkedin = analysis.get("linkedin_analysis")
    if isinstance(linkedin, str) and linkedin.strip():
        parts.append(f"LinkedIn Intelligence:\n{linkedin}\n\n")

    return "".join(parts)


def generate_bcg_insights(analyses: Sequence[Mapping[str, Any]]) -> List[str]:
    insights: List[str] = []
    for analysis in analyses:
        company = analysis.get("company_name")
        bcg = analysis.get("bcg_matrix")
        if not isinstance(bcg, Mapping):
            continue

        best, worst = None, None
        highest, lowest = -1.0, float("inf")
        for product, metrics in bcg.items():
            growth = bcg_metric(metrics, "growth_rate", "growthRate")
            if growth is None:
                continue
            if growth > highest:
                highest, best = growth, product
            if growth < lowest:
                lowest, worst = growth, product

        if best is not None:
            insights.append(
                f"{company}'s {best} shows the highest growth potential at {highest:.1f}%, "
                f"making it a key growth driver."
            )
        if worst is not None and worst != best:
            insights.append(
                f"{company}'s {worst} has the lowest growth rate at {lowest:.1f}%, "
                f"potentially requiring strategic attention."
            )
    return insights


def generate_metric_insights(
    company_names: Sequence[str],
    metrics: Sequence[Mapping[str, float]],
    benchmarks: Mapping[str, float],
) -> List[str]:
    insights: List[str] = []
    avg_growth = benchmarks["avg_growth_rate"]
    avg_sentiment = benchmarks["avg_sentiment_score"]
    avg_risk = benchmarks["avg_risk_rating"]
    avg_share = benchmarks["avg_market_share"]

    for company, m in zip(company_names, metrics):
        growth = m["growth_rate"]
        if growth > avg_growth + 2:
            insights.append(
                f"{company} shows above-average growth ({growth:.1f}% vs industry avg {avg_growth:.1f}%), "
                f"indicating strong market positioning."
            )
        elif growth < avg_growth - 2:
            insights.append(
                f"{company} shows below-average growth ({growth:.1f}% vs industry avg {avg_growth:.1f}%), "
                f"which may indicate market challenges."
            )
        elif abs(growth - avg_growth) < 0.1:
            insights.append(
                f"{company} has growth rate aligned with industry average ({growth:.1f}%), "
                f"suggesting stable market performance."
            )

        sentiment = m["sentiment_score"]
        if sentiment > avg_sentiment + 7:
            insights.append(
                f"{company} has positive market sentiment ({sentiment:.0f}/100 vs industry avg "
                f"{avg_sentiment:.0f}/100), suggesting strong investor confidence."
            )
        elif sentiment < avg_sentiment - 7:
            insights.append(
                f"{company} has below-average market sentiment ({sentiment:.0f}/100 vs industry avg "
                f"{avg_sentiment:.0f}/100), which may warrant investigation."
            )

        risk = m["risk_rating"]
        if risk > avg_risk + 1:
            insights.append(
                f"{company} carries higher-than-average risk ({risk:.1f}/10 vs industry avg {avg_risk:.1f}/10), "
                f"requiring careful risk management strategies."
            )
        elif risk < avg_risk - 1:
            insights.append(
                f"{company} appears to be lower risk than peers ({risk:.1f}/10 vs industry avg {avg_risk:.1f}/10), "
                f"indicating stable operations."
            )

        share = m["market_share"]
        if share > avg_share + 0.3:
            insights.append(
                f"{company} has above-average market share ({share:.1f}% vs industry avg {avg_share:.1f}%), "
                f"indicating strong market presence."
            )
        elif share < avg_share - 0.3:
            insights.append(
                f"{company} has below-average market share ({share:.1f}% vs industry avg {avg_share:.1f}%), "
                f"suggesting opportunities for market expansion."
            )
    return insights


def generate_pairwise_insights(
    company_names: Sequence[str],
    metrics: Sequence[Mapping[str, float]],
) -> List[str]:
    """Head-to-head sentences, only for exactly two companies."""
    if len(company_names) != 2 or len(metrics) != 2:
        return []

    (first, second), (m1, m2) = company_names, metrics
    insights: List[str] = []

    sentiment_diff = m1["sentiment_score"] - m2["sentiment_score"]
    if abs(sentiment_diff) >= 5:
        leader, follower = (first, second) if sentiment_diff > 0 else (second, first)
        high, low = (m1, m2) if sentiment_diff > 0 else (m2, m1)
        insights.append(
            f"{leader} has higher market sentiment than {follower} "
            f"({high['sentiment_score']:.0f} vs {low['sentiment_score']:.0f} points), "
            f"indicating better market perception."
        )

    risk_diff = m1["risk_rating"] - m2["risk_rating"]
    if abs(risk_diff) >= 0.5:
        safer, riskier = (first, second) if risk_diff < 0 else (second, first)
        low, high = (m1, m2) if risk_diff < 0 else (m2, m1)
        insights.append(
            f"{safer} appears less risky than {riskier} "
            f"({low['risk_rating']:.1f} vs {high['risk_rating']:.1f} risk rating), "
            f"suggesting more stable operations."
        )
    return insights


def format_metrics_data(
    company_names: Sequence[str],
    metrics: Sequence[Mapping[str, float]],
    benchmarks: Mapping[str, float],
) -> str:
    """Render metrics and benchmark comparisons as the recommendation prompt input."""
    lines = [
        "COMPARATIVE ANALYSIS DATA:",
        "",
        "Industry Benchmarks:",
        f"- Average Market Share: {benchmarks['avg_market_share']:.2f}%",
        f"- Average Growth Rate: {benchmarks['avg_growth_rate']:.2f}%",
        f"- Average Risk Rating: {benchmarks['avg_risk_rating']:.2f}/10",
        f"- Average Sentiment Score: {benchmarks['avg_sentiment_score']:.1f}/100",
        "",
        "Individual Company Metrics:",
    ]
    for index, (company, m) in enumerate(zip(company_names, metrics), 1):
        lines.extend([
            f"{index}. {str(company).upper()}:",
            f"   - Market Share: {m['market_share']:.2f}%",
            f"   - Growth Rate: {m['growth_rate']:.2f}%",
            f"   - Risk Rating: {m['risk_rating']:.1f}/10",
            f"   - Sentiment Score: {m['sentiment_score']:.1f}/100",
            "   - Performance vs Benchmark:",
            f"     * Market Share: {performance_indicator(m['market_share'], benchmarks['avg_market_share'])}",
            f"     * Growth Rate: {performance_indicator(m['growth_rate'], benchmarks['avg_growth_rate'])}",
            f"     * Risk Rating: "
            f"{performance_indicator(m['risk_rating'], benchmarks['avg_risk_rating'], risk=True)}",
            f"     * Sentiment: "
            f"{performance_indicator(m['sentiment_score'], benchmarks['avg_sentiment_score'])}",
            "",
        ])
    return "\n".join(lines) + "\n"


class ComparisonService:
    """
    Computes comparisons between analysed companies.

    Attributes:
        llm_client: Model used for scoring and recommendations
    """

    def __init__(self, llm_client: ILLMClient):
        self.llm_client = llm_client

    async def _score_single(self, template: str, company_name: str, text: str) -> float:
        reply = await self.llm_client.generate_from_template(
            template, {"company_name": company_name, "information": text}
        )
        return float(reply.strip())

    async def calculate_scores(self, company_name: str, analysis_text: str) -> Dict[str, float]:
        """
        Sentiment (0-100) and risk (0-10) for one company.

        Uses the combined prompt first. If the model is unavailable, or the
        reply carries a score that is not a number, each score is requested
        separately and falls back to keyword heuristics. A reply without a
        JSON object keeps the defaults (50 and 5).
        """
        scores = {"sentiment_score": DEFAULT_SENTIMENT, "risk_rating": DEFAULT_RISK}
        variables = {"company_name": company_name, "information": analysis_text}

        try:
            reply = await self.llm_client.generate_from_template(COMBINED_TEMPLATE, variables)
        except LLMServiceError as e:
            logger.warning(
                "Combined scoring failed, scoring separately",
                extra={"company_name": company_name, "error": str(e)}
            )
            return await self._score_separately(company_name, analysis_text)

        parsed = extract_json_object(reply) or {}
        try:
            for key in ("sentiment_score", "risk_rating"):
                if key in parsed:
                    scores[key] = float(parsed[key])
        except (TypeError, ValueError):
            logger.warning(
                "Combined scores are not numeric, scoring separately",
                extra={"company_name": company_name, "reply": reply[:200]}
            )
            return await self._score_separately(company_name, analysis_text)
        return scores

    async def _score_separately(self, company_name: str, analysis_text: str) -> Dict[str, float]:
        try:
            sentiment = await self._score_single(SENTIMENT_TEMPLATE, company_name, analysis_text)
        except (LLMServiceError, ValueError):
            sentiment = heuristic_sentiment(analysis_text)
        try:
            risk = await self._score_single(RISK_TEMPLATE, company_name, analysis_text)
        except (LLMServiceError, ValueError):
            risk = heuristic_risk(analysis_text)
        return {"sentiment_score": sentiment, "risk_rating": risk}

    async def generate_investment_recommendations(
        self,
        company_names: Sequence[str],
        metrics: Sequence[Mapping[str, float]],
        benchmarks: Mapping[str, float],
    ) -> str:
        try:
            return await self.llm_client.generate_from_template(
                INVESTMENT_RECOMMENDATION_TEMPLATE,
                {"metrics_data": format_metrics_data(company_names, metrics, benchmarks)},
                extended=True,
            )
        except LLMServiceError as e:
            logger.error("Failed to generate investment recommendations", extra={"error": str(e)})
            return RECOMMENDATION_FALLBACK

    async def compute_comparison(self, analyses: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Compare analysed companies.

        Args:
            analyses: Analysis dicts (snake_case keys)

        Returns:
            Dict with metrics (list aligned with company_names), benchmarks,
            insights, investment_recommendations and company_names
        """
        company_names: List[str] = []
        metrics: List[Dict[str, float]] = []

        for analysis in analyses:
            company_name = analysis.get("company_name") or "Unknown"
            company_names.append(company_name)

            scores = await self.calculate_scores(company_name, prepare_analysis_text(analysis))
            metrics.append({**average_bcg(analysis.get("bcg_matrix")), **scores})

        count = len(metrics) or 1
        benchmarks = {
            "avg_market_share": sum(m["market_share"] for m in metrics) / count,
            "avg_growth_rate": sum(m["growth_rate"] for m in metrics) / count,
            "avg_sentiment_score": sum(m["sentiment_score"] for m in metrics) / count,
            "avg_risk_rating": sum(m["risk_rating"] for m in metrics) / count,
        }

        insights = generate_bcg_insights(analyses)
        insights += generate_metric_insights(company_names, metrics, benchmarks)
        insights += generate_pairwise_insights(company_names, metrics)

        recommendations = await self.generate_investment_recommendations(company_names, metrics, benchmarks)

        logger.info(
            "Comparison computed",
            extra={"companies": company_names, "insight_count": len(insights)}
        )

        return {
            "metrics": metrics,
            "benchmarks": benchmarks,
            "insights": insights,
            "investment_recommendations": recommendations,
            "company_names": company_names,
        }


def metrics_by_company(comparison: Mapping[str, Any]) -> Dict[str, Dict[str, float]]:
    """Pair each metrics dict with its company name for charting."""
    return dict(zip(comparison.get("company_names") or [], comparison.get("metrics") or []))
