"""
Analysis Prompt Templates

Templates use ``{{name}}`` placeholders and are filled with
``render_template``. Framework prompts ask the model for a bare JSON object;
scoring prompts ask for a single number (or a two-key JSON object).
"""

import re
from typing import Any, Dict

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


LINKEDIN_ANALYSIS_TEMPLATE = (
    "You are a strategic intelligence expert. Analyze the LinkedIn information about {{company_name}}. "
    "Provide a structured summary with sections: I. Company Overview, II. Recent Activities, "
    "III. Market Presence, IV. Additional Insights. Use the provided content, even if incomplete or noisy. "
    "If no relevant data is found, provide a generic analysis based on the company name.\n"
    "Content: {{content}}"
)

SUMMARY_TEMPLATE = (
    "You are an experienced strategic analyst specializing in competitor analysis.\n"
    "Here is the extracted content about {{company_name}}:\n{{content}}\n\n"
    "Analyze ONLY the information related to {{company_name}} from the provided content. "
    "Ignore any information about other companies mentioned in the text. "
    "Give only the key strategic elements of {{company_name}} specifically "
    "(target, positioning, strengths, weaknesses). "
    "Always respond in English and focus strictly on {{company_name}}."
)

DIFF_WITH_RAG_TEMPLATE = (
    "You are Fred, an expert in strategic marketing and competitive differentiation.\n"
    "Internal context (from RAG for our company):\n{{rag_context}}\n\n"
    "External context (monitoring of competitor {{competitor_name}} and similar others):\n"
    "{{competitor_summary}}\n\n"
    "Based on this, propose 3 concrete differentiation axes for our company "
    "(described in the RAG context) against {{competitor_name}} and its peers.\n"
    "Always respond in English and use clear, professional business language."
)

RAG_QUERY_TEMPLATE = (
    "You are a business analyst answering questions from a document.\n"
    "Relevant excerpts:\n{{rag_context}}\n\n"
    "Question: {{query}}\n\n"
    "Answer using only the excerpts above. If they do not contain the answer, say so. "
    "Always respond in English."
)

SWOT_TEMPLATE = (
    "You are a strategy expert. For the company '{{company_name}}', "
    "provide exactly 5 strengths, 5 weaknesses, 5 opportunities, and 5 threats. "
    "Each item must contain 1 to 2 words maximum, without commas or conjunctions. "
    "Respond only with a JSON object with 4 keys: "
    "strengths, weaknesses, opportunities, threats."
)

PESTEL_TEMPLATE = (
    "You are a strategy expert. For the company '{{company_name}}', "
    "provide exactly 5 political, 5 economic, 5 social, "
    "5 technological, 5 environmental, and 5 legal factors. "
    "Each item must contain 1 to 2 words maximum, without commas or conjunctions. "
    "Respond only with a JSON object with 6 keys: "
    "political, economic, social, technological, environmental, legal."
)

PORTER_TEMPLATE = (
    "You are an expert in strategic analysis. For the company \"{{company_name}}\", "
    "analyze Porter's Five Forces. For each of the five forces (including central competitive rivalry), "
    "provide exactly 3 factors of 1-2 words each. "
    "Respond ONLY with a JSON object containing these five keys: "
    "`rivalry`, `new_entrants`, `substitutes`, `buyer_power`, `supplier_power`."
)

BCG_TEMPLATE = (
    "You are an expert in strategic analysis. For the company \"{{company_name}}\", "
    "identify exactly 4 products/services developed or owned by {{company_name}} (each named in 1-2 words). "
    "Do not include products from competitors or unrelated companies "
    "(e.g., for OpenAI, exclude Jasper or LLaMA; for Tesla, exclude Rivian or Lucid). "
    "Position each product on the BCG Matrix with exactly two keys: "
    "`market_share` (a number between 0 and 2) and `growth_rate` (a number between 0 and 20). "
    "Respond ONLY with a JSON object where each key is a product name and each value is an object "
    "with `market_share` and `growth_rate`. "
    "Examples: "
    "For OpenAI: {\"ChatGPT\": {\"market_share\": 1.0, \"growth_rate\": 15.0}, "
    "\"DALL-E\": {\"market_share\": 0.5, \"growth_rate\": 10.0}, "
    "\"Codex\": {\"market_share\": 0.8, \"growth_rate\": 12.0}, "
    "\"Whisper\": {\"market_share\": 0.3, \"growth_rate\": 8.0}} "
    "For Tesla: {\"Model 3\": {\"market_share\": 1.5, \"growth_rate\": 10.0}, "
    "\"Model Y\": {\"market_share\": 1.2, \"growth_rate\": 12.0}, "
    "\"Cybertruck\": {\"market_share\": 0.4, \"growth_rate\": 15.0}, "
    "\"Powerwall\": {\"market_share\": 0.6, \"growth_rate\": 8.0}} "
    "For Google: {\"Search Engine\": {\"market_share\": 1.8, \"growth_rate\": 5.0}, "
    "\"Google Cloud\": {\"market_share\": 0.7, \"growth_rate\": 18.0}, "
    "\"YouTube\": {\"market_share\": 1.6, \"growth_rate\": 10.0}, "
    "\"Pixel Phone\": {\"market_share\": 0.3, \"growth_rate\": 12.0}} "
    "For Amazon: {\"AWS\": {\"market_share\": 1.4, \"growth_rate\": 15.0}, "
    "\"Prime Video\": {\"market_share\": 0.8, \"growth_rate\": 10.0}, "
    "\"Kindle\": {\"market_share\": 1.0, \"growth_rate\": 5.0}, "
    "\"Echo Devices\": {\"market_share\": 0.9, \"growth_rate\": 8.0}} "
    "For Microsoft: {\"Azure\": {\"market_share\": 1.0, \"growth_rate\": 18.0}, "
    "\"Windows\": {\"market_share\": 1.7, \"growth_rate\": 5.0}, "
    "\"Office 365\": {\"market_share\": 1.5, \"growth_rate\": 10.0}, "
    "\"Surface\": {\"market_share\": 0.4, \"growth_rate\": 12.0}}"
)

MCKINSEY_TEMPLATE = (
    "You are an expert in strategic analysis. For the company \"{{company_name}}\", "
    "analyze the McKinsey 7S Model. For each of the 7 elements, provide exactly 1-2 words. "
    "Respond ONLY with a JSON object containing seven keys: "
    "`strategy`, `structure`, `systems`, `style`, `staff`, `skills`, `shared_values`."
)

SENTIMENT_TEMPLATE = (
    "Analyze the sentiment of the following business information about {{company_name}}. "
    "Consider factors like market position, financial health, competitive landscape, and recent news. "
    "Provide a sentiment score between 0 (very negative) and 100 (very positive). "
    "Respond ONLY with a number between 0 and 100.\n\n"
    "Information to analyze:\n{{information}}"
)

RISK_TEMPLATE = (
    "Analyze the business risk of {{company_name}} based on the following information. "
    "Consider financial stability, market competition, regulatory environment, technological disruption, "
    "and operational factors. Provide a risk rating between 0 (very low risk) and 10 (very high risk). "
    "Respond ONLY with a number between 0 and 10.\n\n"
    "Information to analyze:\n{{information}}"
)

COMBINED_TEMPLATE = (
    "Analyze the following business information about {{company_name}} and provide:\n"
    "1. A sentiment score between 0-100 (0=very negative, 100=very positive)\n"
    "2. A risk rating between 0-10 (0=very low risk, 10=very high risk)\n"
    "Respond ONLY with a JSON object in this exact format:\n"
    "{\"sentiment_score\": 75, \"risk_rating\": 3.5}\n\n"
    "Information to analyze:\n{{information}}"
)

INVESTMENT_RECOMMENDATION_TEMPLATE = (
    "You are a strategic business analyst. Based on the following comparative metrics, "
    "provide investment and strategic choice recommendations. Explain why someone would choose "
    "one company over another based on these specific metrics:\n\n"
    "{{metrics_data}}\n\n"
    "Focus on:\n"
    "1. Market share advantages and growth potential\n"
    "2. Risk profiles and stability factors\n"
    "3. Market sentiment and investor confidence\n"
    "4. Strategic positioning for different investment goals\n\n"
    "Provide clear, actionable insights about which company might be preferred for different "
    "scenarios (growth-focused, stability-focused, market leadership, etc.). "
    "Be specific about the metrics and provide concrete reasoning. "
    "Always respond in English and in a professional business tone."
)


def render_template(template: str, variables: Dict[str, Any]) -> str:
    """
    Fill ``{{name}}`` placeholders.

    Args:
        template: Template text
        variables: Values by placeholder name (converted with ``str``)

    Returns:
        Rendered prompt

    Raises:
        KeyError: If the template references a name missing from ``variables``

    Example:
        >>> render_template("Hello {{name}}", {"name": "Tesla"})
        'Hello Tesla'
    """
    def _substitute(match: re.Match) -> str:
        key = match.group(1)
        if key not in variables:
            raise KeyError(f"Missing template variable: {key}")
        value = variables[key]
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_substitute, template)
