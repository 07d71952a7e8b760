"""
Sentiment trend analysis.

``compute_trends`` and ``detect_significant_events`` are pure functions
over scored points; ``SentimentTrendService`` loads the points from the
database and caches the assembled analysis per query.
"""

import logging
import math
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from insightflow.core.database import async_session_maker
from insightflow.models.sentiment import SentimentData
from insightflow.repositories.sentiment import SentimentRepository

logger = logging.getLogger(__name__)


MINIMUM_DATA_POINTS = 2


def _epoch_seconds(timestamp: Any) -> float:
    if isinstance(timestamp, datetime):
        return timestamp.timestamp() if timestamp.tzinfo else (timestamp - datetime(1970, 1, 1)).total_seconds()
    parsed = datetime.fromisoformat(str(timestamp))
    return _epoch_seconds(parsed)


def compute_trends(points: Sequence[SentimentData]) -> Dict[str, float]:
    """
    Average, volatility and slope of the sentiment scores.

    Volatility is the sample standard deviation. Slope is the least-squares
    slope of score against seconds since the first point (score per second).
    Both are 0 when they cannot be computed.
    """
    if not points:
        return {"average_score": 0.0, "volatility": 0.0, "slope": 0.0}

    scores = [float(p.sentiment_score) for p in points]
    n = len(scores)
    average = sum(scores) / n

    volatility = 0.0
    if n >= 2:
        volatility = math.sqrt(sum((s - average) ** 2 for s in scores) / (n - 1))

    slope = 0.0
    if n >= 2:
        base = _epoch_seconds(points[0].timestamp)
        xs = [_epoch_seconds(p.timestamp) - base for p in points]
        mean_x = sum(xs) / n
        spread = sum((x - mean_x) ** 2 for x in xs)
        if spread > 0:
            slope = sum((x - mean_x) * (s - average) for x, s in zip(xs, scores)) / spread

    return {"average_score": average, "volatility": volatility, "slope": slope}


def detect_significant_events(
    points: Sequence[SentimentData],
    average: Optional[float] = None,
    volatility: Optional[float] = None,
) -> List[Dict[str, Any]]:
    """
    Find spikes and trend reversals.

    A spike is a score further than two standard deviations from the mean.
    A reversal is a change of direction between consecutive score steps
    whose new step exceeds half the volatility.
    """
    if average is None or volatility is None:
        trends = compute_trends(points)
        average, volatility = trends["average_score"], trends["volatility"]

    ordered = sorted(points, key=lambda p: _epoch_seconds(p.timestamp))
    events: List[Dict[str, Any]] = []

    for i, point in enumerate(ordered):
        score = float(point.sentiment_score)

        if abs(score - average) > 2 * volatility:
            events.append({
                "timestamp": str(point.timestamp),
                "event_type": "POSITIVE_SPIKE" if score > average else "NEGATIVE_SPIKE",
                "sentiment_score": score,
                "deviation": abs(score - average),
                "source": point.source_type,
            })

        if i >= 2:
            previous_slope = float(ordered[i - 1].sentiment_score) - float(ordered[i - 2].sentiment_score)
            current_slope = score - float(ordered[i - 1].sentiment_score)
            if current_slope * previous_slope < 0 and abs(current_slope) > volatility / 2:
                events.append({
                    "timestamp": str(point.timestamp),
                    "event_type": "TREND_REVERSAL_UP" if current_slope > 0 else "TREND_REVERSAL_DOWN",
                    "sentiment_score": score,
                    "slope_change": abs(current_slope - previous_slope),
                    "source": point.source_type,
                })

    return events


def _cache_key(company_name: str, days: int, sources: Optional[Sequence[str]]) -> Tuple[str, int, Optional[Tuple[str, ...]]]:
    return company_name.strip().lower(), days, tuple(sorted(sources)) if sources else None


class SentimentTrendService:
    """
    Trend analysis over stored sentiment data.

    Attributes:
        session_factory: Callable returning an AsyncSession context manager
        cache_ttl_seconds: Maximum age of a cached analysis
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = async_session_maker,
        cache_ttl_seconds: float = 3600.0,
    ):
        self.session_factory = session_factory
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cache: Dict[Tuple, Tuple[float, Dict[str, Any]]] = {}

    def invalidate(self, company_name: Optional[str] = None) -> None:
        """Drop cached analyses for one company, or all of them."""
        if company_name is None:
            self._cache.clear()
            return
        name = company_name.strip().lower()
        for key in [k for k in self._cache if k[0] == name]:
            del self._cache[key]

    async def analyze_trends(
        self,
        company_name: str,
        days: int = 30,
        sources: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """
        Build the trend analysis for a company.

        Args:
            company_name: Company to analyse
            days: Look-back window in days
            sources: Restrict to these source types (all when empty)

        Returns:
            Dict with time_series, overall_trends, source_specific_trends,
            significant_events and counts
        """
        key = _cache_key(company_name, days, sources)
        cached = self._cache.get(key)
        if cached and time.monotonic() - cached[0] < self.cache_ttl_seconds:
            return cached[1]

        since = (datetime.utcnow() - timedelta(days=days)).isoformat()
        async with self.session_factory() as session:
            points = await SentimentRepository(session).list_for_company(company_name, since)

        if sources:
            points = [p for p in points if p.source_type in sources]
        points = [p for p in points if p.sentiment_score > 0 and p.risk_rating >= 0]

        by_source: Dict[str, List[SentimentData]] = {}
        for point in points:
            by_source.setdefault(point.source_type, []).append(point)

        overall = compute_trends(points)
        analysis = {
            "company_name": company_name,
            "time_period_days": days,
            "data_point_count": len(points),
            "time_series": [
                {
                    "date": p.timestamp,
                    "sentiment_score": p.sentiment_score,
                    "risk_rating": p.risk_rating,
                    "source": p.source_type,
                }
                for p in points
            ],
            "overall_trends": overall,
            "source_specific_trends": {
                source: compute_trends(source_points) for source, source_points in by_source.items()
            },
            "significant_events": detect_significant_events(
                points, overall["average_score"], overall["volatility"]
            ),
            "analysis_timestamp": datetime.utcnow().isoformat(),
        }

        self._cache[key] = (time.monotonic(), analysis)
        logger.debug(
            "Computed sentiment trends",
            extra={"company_name": company_name, "days": days, "data_points": len(points)}
        )
        return analysis
