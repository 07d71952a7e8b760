"""
Prompt templates for company analysis.

This module contains the template strings sent to the language model.
"""

from .analysis import (
    BCG_TEMPLATE,
    COMBINED_TEMPLATE,
    DIFF_WITH_RAG_TEMPLATE,
    INVESTMENT_RECOMMENDATION_TEMPLATE,
    LINKEDIN_ANALYSIS_TEMPLATE,
    MCKINSEY_TEMPLATE,
    PESTEL_TEMPLATE,
    PORTER_TEMPLATE,
    RAG_QUERY_TEMPLATE,
    RISK_TEMPLATE,
    SENTIMENT_TEMPLATE,
    SUMMARY_TEMPLATE,
    SWOT_TEMPLATE,
    render_template,
)

__all__ = [
    "BCG_TEMPLATE",
    "COMBINED_TEMPLATE",
    "DIFF_WITH_RAG_TEMPLATE",
    "INVESTMENT_RECOMMENDATION_TEMPLATE",
    "LINKEDIN_ANALYSIS_TEMPLATE",
    "MCKINSEY_TEMPLATE",
    "PESTEL_TEMPLATE",
    "PORTER_TEMPLATE",
    "RAG_QUERY_TEMPLATE",
    "RISK_TEMPLATE",
    "SENTIMENT_TEMPLATE",
    "SUMMARY_TEMPLATE",
    "SWOT_TEMPLATE",
    "render_template",
]
