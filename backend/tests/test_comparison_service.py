"""
Tests for ComparisonService and its helpers.

Tests cover:
- Keyword heuristics and BCG averaging
- Benchmark indicators
- Insight rules (growth, sentiment, risk, share, head-to-head)
- Score fallbacks when the model fails
- compute_comparison end to end with a mocked model
"""

import pytest
from unittest.mock import AsyncMock

from insightflow.prompts import (
    COMBINED_TEMPLATE,
    INVESTMENT_RECOMMENDATION_TEMPLATE,
    RISK_TEMPLATE,
    SENTIMENT_TEMPLATE,
)
from insightflow.services.comparison_service import (
    RECOMMENDATION_FALLBACK,
    ComparisonService,
    average_bcg,
    count_words,
    format_metrics_data,
    generate_bcg_insights,
    generate_metric_insights,
    generate_pairwise_insights,
    heuristic_risk,
    heuristic_sentiment,
    metrics_by_company,
    performance_indicator,
    prepare_analysis_text,
)
from insightflow.services.llm_client import LLMServiceError


def _metrics(share, growth, sentiment, risk):
    return {"market_share": share, "growth_rate": growth, "sentiment_score": sentiment, "risk_rating": risk}


def _benchmarks(metrics):
    n = len(metrics)
    return {
        "avg_market_share": sum(m["market_share"] for m in metrics) / n,
        "avg_growth_rate": sum(m["growth_rate"] for m in metrics) / n,
        "avg_sentiment_score": sum(m["sentiment_score"] for m in metrics) / n,
        "avg_risk_rating": sum(m["risk_rating"] for m in metrics) / n,
    }


class TestHeuristics:
    """Tests for the keyword fallbacks."""

    def test_count_words_is_whole_word_and_case_insensitive(self):
        assert count_words("Risk, risky RISK and risks", ["risk"]) == 2

    def test_heuristic_sentiment(self):
        """
        Arrange: 1 negative word, 2 positive words, short text
        Act: Score
        Assert: 50 - 5 + 6 = 51
        """
        assert heuristic_sentiment("Strong growth and profit despite one problem") == 51.0

    def test_heuristic_sentiment_counts_length_and_clamps(self):
        assert heuristic_sentiment("x" * 3000) == 53.0
        assert heuristic_sentiment("loss " * 30) == 0.0

    def test_heuristic_risk(self):
        assert heuristic_risk("threat risk challenge risk") == 2.0
        assert heuristic_risk("risk " * 40) == 10.0


class TestAverageBcg:
    """Tests for average_bcg."""

    def test_mixed_key_styles(self):
        bcg = {
            "A": {"market_share": 0.4, "growth_rate": 10},
            "B": {"marketShare": 0.6, "growthRate": 20},
        }

        assert average_bcg(bcg) == {"market_share": 0.5, "growth_rate": 15.0}

    def test_empty_matrix_is_zero(self):
        assert average_bcg({}) == {"market_share": 0.0, "growth_rate": 0.0}
        assert average_bcg(None) == {"market_share": 0.0, "growth_rate": 0.0}


class TestPerformanceIndicator:
    """Tests for performance_indicator."""

    def test_at_benchmark(self):
        assert performance_indicator(10.05, 10.0) == "At benchmark level"

    def test_above_and_below(self):
        assert performance_indicator(12.0, 10.0) == "Above benchmark (+20.0%)"
        assert performance_indicator(8.0, 10.0) == "Below benchmark (-20.0%)"

    def test_risk_wording(self):
        assert performance_indicator(6.0, 5.0, risk=True) == "Higher risk (+20.0%)"
        assert performance_indicator(4.0, 5.0, risk=True) == "Lower risk (-20.0%)"

    def test_zero_benchmark(self):
        assert performance_indicator(1.0, 0.0) == "Above benchmark (+100.0%)"


class TestInsights:
    """Tests for the rule-based insight generators."""

    def test_bcg_insights_best_and_worst(self):
        analyses = [{
            "company_name": "Tesla",
            "bcg_matrix": {
                "Model Y": {"market_share": 0.8, "growth_rate": 25},
                "Solar": {"market_share": 0.1, "growth_rate": 3},
            },
        }]

        insights = generate_bcg_insights(analyses)

        assert len(insights) == 2
        assert "Tesla's Model Y shows the highest growth potential at 25.0%" in insights[0]
        assert "Tesla's Solar has the lowest growth rate at 3.0%" in insights[1]

    def test_bcg_single_product_only_best(self):
        analyses = [{"company_name": "Ford", "bcg_matrix": {"F-150": {"market_share": 0.9, "growth_rate": 4}}}]

        assert len(generate_bcg_insights(analyses)) == 1

    def test_metric_insights_thresholds(self):
        """
        Arrange: A leads on growth, sentiment and share and has lower risk
        Act: Generate metric insights
        Assert: Both sides of each rule fire
        """
        metrics = [_metrics(1.0, 20.0, 80.0, 2.0), _metrics(0.2, 5.0, 40.0, 7.0)]
        benchmarks = _benchmarks(metrics)

        insights = generate_metric_insights(["A", "B"], metrics, benchmarks)
        text = "\n".join(insights)

        assert "A shows above-average growth" in text
        assert "B shows below-average growth" in text
        assert "A has positive market sentiment" in text
        assert "B has below-average market sentiment" in text
        assert "B carries higher-than-average risk" in text
        assert "A appears to be lower risk than peers" in text
        assert "A has above-average market share" in text
        assert "B has below-average market share" in text

    def test_aligned_growth(self):
        metrics = [_metrics(0.5, 10.0, 50.0, 5.0), _metrics(0.5, 10.0, 50.0, 5.0)]

        insights = generate_metric_insights(["A", "B"], metrics, _benchmarks(metrics))

        assert len(insights) == 2
        assert all("aligned with industry average" in i for i in insights)

    def test_pairwise_only_for_two_companies(self):
        m = [_metrics(0.5, 10, 70, 3), _metrics(0.5, 10, 60, 5), _metrics(0.5, 10, 50, 7)]

        assert generate_pairwise_insights(["A", "B", "C"], m) == []

    def test_pairwise_sentiment_and_risk(self):
        m = [_metrics(0.5, 10, 60, 6), _metrics(0.5, 10, 70, 3)]

        insights = generate_pairwise_insights(["A", "B"], m)

        assert insights[0].startswith("B has higher market sentiment than A (70 vs 60 points)")
        assert insights[1].startswith("B appears less risky than A (3.0 vs 6.0 risk rating)")

    def test_pairwise_below_thresholds(self):
        m = [_metrics(0.5, 10, 60, 5.0), _metrics(0.5, 10, 64, 5.4)]

        assert generate_pairwise_insights(["A", "B"], m) == []


class TestTextHelpers:
    """Tests for prompt text builders."""

    def test_prepare_analysis_text(self):
        analysis = {
            "summaries": ["EV maker"],
            "swot_lists": {"strengths": ["Brand"], "weaknesses": []},
            "linkedin_analysis": "Hiring",
        }

        text = prepare_analysis_text(analysis)

        assert "Company Summaries:\n- EV maker\n" in text
        assert "SWOT Analysis:\nStrengths: Brand\n" in text
        assert "Weaknesses" not in text
        assert "LinkedIn Intelligence:\nHiring" in text
        assert "PESTEL" not in text

    def test_format_metrics_data(self):
        metrics = [_metrics(0.6, 12.0, 70.0, 4.0), _metrics(0.4, 8.0, 50.0, 6.0)]

        text = format_metrics_data(["Tesla", "Ford"], metrics, _benchmarks(metrics))

        assert "COMPARATIVE ANALYSIS DATA:" in text
        assert "1. TESLA:" in text
        assert "2. FORD:" in text
        assert "Growth Rate: Above benchmark (+20.0%)" in text
        assert "Risk Rating: Higher risk (+20.0%)" in text

    def test_metrics_by_company(self):
        comparison = {"company_names": ["A", "B"], "metrics": [{"x": 1}, {"x": 2}]}

        assert metrics_by_company(comparison) == {"A": {"x": 1}, "B": {"x": 2}}


@pytest.mark.asyncio
class TestCalculateScores:
    """Tests for ComparisonService.calculate_scores."""

    async def test_combined_json_reply(self, mock_llm):
        mock_llm.generate_from_template.return_value = '{"sentiment_score": 72, "risk_rating": 3.5}'
        service = ComparisonService(mock_llm)

        scores = await service.calculate_scores("Tesla", "text")

        assert scores == {"sentiment_score": 72.0, "risk_rating": 3.5}
        assert mock_llm.generate_from_template.call_args.args[0] == COMBINED_TEMPLATE

    async def test_unparseable_reply_keeps_defaults(self, mock_llm):
        mock_llm.generate_from_template.return_value = "Sentiment is fairly positive."
        service = ComparisonService(mock_llm)

        scores = await service.calculate_scores("Tesla", "text")

        assert scores == {"sentiment_score": 50.0, "risk_rating": 5.0}

    async def test_separate_prompts_after_combined_failure(self, mock_llm):
        """
        Arrange: Combined call fails, separate calls return bare numbers
        Act: Score
        Assert: Separate results are used
        """
        mock_llm.generate_from_template.side_effect = [LLMServiceError("down"), "64", " 2.5 "]
        service = ComparisonService(mock_llm)

        scores = await service.calculate_scores("Tesla", "text")

        assert scores == {"sentiment_score": 64.0, "risk_rating": 2.5}
        assert mock_llm.generate_from_template.await_count == 3

    async def test_non_numeric_combined_scores_use_separate_prompts(self, mock_llm):
        """
        Arrange: Combined reply is JSON but a score is not a number
        Act: Score
        Assert: Both scores come from the separate prompts
        """
        mock_llm.generate_from_template.side_effect = [
            '{"sentiment_score": "very positive", "risk_rating": 4}', "81", "2",
        ]
        service = ComparisonService(mock_llm)

        scores = await service.calculate_scores("Tesla", "text")

        assert scores == {"sentiment_score": 81.0, "risk_rating": 2.0}
        templates = [call.args[0] for call in mock_llm.generate_from_template.call_args_list]
        assert templates == [COMBINED_TEMPLATE, SENTIMENT_TEMPLATE, RISK_TEMPLATE]

    async def test_non_numeric_combined_scores_fall_back_to_heuristics(self, mock_llm):
        mock_llm.generate_from_template.side_effect = [
            '{"sentiment_score": 70, "risk_rating": null}', LLMServiceError("down"), LLMServiceError("down"),
        ]
        service = ComparisonService(mock_llm)
        text = "growth threat"

        scores = await service.calculate_scores("Tesla", text)

        assert scores == {"sentiment_score": heuristic_sentiment(text), "risk_rating": heuristic_risk(text)}

    async def test_heuristics_when_model_unavailable(self, mock_llm):
        mock_llm.generate_from_template.side_effect = LLMServiceError("down")
        service = ComparisonService(mock_llm)
        text = "growth growth threat"

        scores = await service.calculate_scores("Tesla", text)

        assert scores["sentiment_score"] == heuristic_sentiment(text)
        assert scores["risk_rating"] == heuristic_risk(text)

    async def test_non_numeric_single_reply_uses_heuristic(self, mock_llm):
        mock_llm.generate_from_template.side_effect = [LLMServiceError("down"), "about seventy", "3"]
        service = ComparisonService(mock_llm)

        scores = await service.calculate_scores("Tesla", "plain text")

        assert scores["sentiment_score"] == heuristic_sentiment("plain text")
        assert scores["risk_rating"] == 3.0


@pytest.mark.asyncio
class TestComputeComparison:
    """Tests for ComparisonService.compute_comparison."""

    async def test_full_comparison(self):
        """
        Arrange: Two analyses, model returns scores then recommendations
        Act: Compute
        Assert: Metrics, benchmarks, insights and recommendations assembled
        """
        llm = AsyncMock()
        llm.generate_from_template.side_effect = [
            '{"sentiment_score": 80, "risk_rating": 2}',
            '{"sentiment_score": 60, "risk_rating": 6}',
            "Buy Tesla.",
        ]
        service = ComparisonService(llm)
        analyses = [
            {"company_name": "Tesla", "bcg_matrix": {"Model Y": {"market_share": 0.8, "growth_rate": 20}}},
            {"company_name": "Ford", "bcg_matrix": {"F-150": {"marketShare": 0.6, "growthRate": 4}}},
        ]

        result = await service.compute_comparison(analyses)

        assert result["company_names"] == ["Tesla", "Ford"]
        assert result["metrics"][0] == _metrics(0.8, 20.0, 80.0, 2.0)
        assert result["metrics"][1] == _metrics(0.6, 4.0, 60.0, 6.0)
        assert result["benchmarks"]["avg_growth_rate"] == pytest.approx(12.0)
        assert result["benchmarks"]["avg_sentiment_score"] == pytest.approx(70.0)
        assert result["investment_recommendations"] == "Buy Tesla."
        assert any("Tesla has higher market sentiment than Ford" in i for i in result["insights"])

        last_call = llm.generate_from_template.call_args
        assert last_call.args[0] == INVESTMENT_RECOMMENDATION_TEMPLATE
        assert last_call.kwargs["extended"] is True

    async def test_recommendation_fallback(self):
        llm = AsyncMock()
        llm.generate_from_template.side_effect = [
            '{"sentiment_score": 50, "risk_rating": 5}',
            '{"sentiment_score": 50, "risk_rating": 5}',
            LLMServiceError("timeout"),
        ]
        service = ComparisonService(llm)

        result = await service.compute_comparison([{"company_name": "A"}, {"company_name": "B"}])

        assert result["investment_recommendations"] == RECOMMENDATION_FALLBACK
        assert result["metrics"][0]["market_share"] == 0.0
