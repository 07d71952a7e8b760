"""
Coercion of free-text model replies into framework dictionaries.

Models asked for "only JSON" still wrap answers in prose, code fences or
trailing commas. ``parse_json_response`` digs the object out and, when
nothing usable is found, returns a canned fallback for the analysis type.
"""

import copy
import json
import logging
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


SWOT_KEYS = ("strengths", "weaknesses", "opportunities", "threats")
PESTEL_KEYS = ("political", "economic", "social", "technological", "environmental", "legal")
PORTER_KEYS = ("rivalry", "new_entrants", "substitutes", "buyer_power", "supplier_power")
MCKINSEY_KEYS = ("strategy", "structure", "systems", "style", "staff", "skills", "shared_values")

LIST_FRAMEWORK_KEYS = {
    "swot": SWOT_KEYS,
    "pestel": PESTEL_KEYS,
    "porter": PORTER_KEYS,
}

FALLBACKS: Dict[str, Dict[str, Any]] = {
    "swot": {
        "strengths": ["Market presence", "Brand recognition", "Innovation"],
        "weaknesses": ["Limited data", "Analysis constraints", "Information gaps"],
        "opportunities": ["Market expansion", "Technology adoption", "Strategic partnerships"],
        "threats": ["Competition", "Market volatility", "Regulatory changes"],
    },
    "pestel": {
        "political": ["Trade policy", "Government stability", "Tax policy"],
        "economic": ["Interest rates", "Inflation", "Consumer spending"],
        "social": ["Demographics", "Consumer trends", "Work culture"],
        "technological": ["Digital transformation", "Automation", "R&D investment"],
        "environmental": ["Sustainability", "Carbon footprint", "Resource usage"],
        "legal": ["Data privacy", "Compliance", "Intellectual property"],
    },
    "porter": {
        "rivalry": ["Established competitors", "Price pressure", "Market saturation"],
        "new_entrants": ["Capital requirements", "Brand loyalty", "Economies of scale"],
        "substitutes": ["Alternative products", "Switching costs", "Price performance"],
        "buyer_power": ["Customer choice", "Price sensitivity", "Volume purchases"],
        "supplier_power": ["Supplier concentration", "Input costs", "Switching costs"],
    },
    "bcg": {
        "Core Product": {"market_share": 0.5, "growth_rate": 8.0},
        "Growth Product": {"market_share": 0.8, "growth_rate": 12.0},
        "New Initiative": {"market_share": 0.3, "growth_rate": 15.0},
        "Legacy Service": {"market_share": 0.6, "growth_rate": 6.0},
    },
    "mckinsey": {
        "strategy": "Focus on core competencies and market differentiation",
        "structure": "Organizational efficiency and clear reporting lines",
        "systems": "Technology integration and process optimization",
        "shared_values": "Innovation, customer focus, and excellence",
        "style": "Collaborative leadership and adaptive management",
        "staff": "Skilled workforce development and retention",
        "skills": "Core capabilities and competitive advantages",
    },
}

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
# Python's re has no recursion; this matches objects nested up to three levels
_BALANCED_OBJECT = re.compile(r"\{(?:[^{}]|\{(?:[^{}]|\{[^{}]*\})*\})*\}", re.DOTALL)
_GREEDY_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def get_fallback(analysis_type: str) -> Dict[str, Any]:
    """Return a fresh copy of the canned result for ``analysis_type``."""
    return copy.deepcopy(FALLBACKS.get(analysis_type, {}))


def clean_json_candidate(candidate: str) -> str:
    """Collapse whitespace and drop trailing commas before ``}`` or ``]``."""
    candidate = re.sub(r"\s+", " ", candidate).strip()
    return _TRAILING_COMMA.sub(r"\1", candidate)


def _candidates(text: str) -> List[str]:
    stripped = _FENCE.sub("", text).strip()
    found: List[str] = []

    balanced = _BALANCED_OBJECT.search(stripped)
    if balanced:
        found.append(balanced.group(0))

    greedy = _GREEDY_OBJECT.search(stripped)
    if greedy:
        found.append(greedy.group(0))

    start, end = stripped.find("{"), stripped.rfind("}")
    if start != -1 and end > start:
        found.append(stripped[start:end + 1])

    return found


def _load_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Find the first JSON object in a model reply.

    Tries the raw text, then each extracted candidate as-is and cleaned.

    Returns:
        Parsed dict, or None when nothing parses
    """
    if not text:
        return None

    direct = _load_object(text.strip())
    if direct is not None:
        return direct

    for candidate in _candidates(text):
        for attempt in (candidate, clean_json_candidate(candidate)):
            parsed = _load_object(attempt)
            if parsed is not None:
                return parsed
    return None


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = re.search(r"-?\d+(?:\.\d+)?", value)
        if match:
            return float(match.group(0))
    return None


def _metric(product: Dict[str, Any], snake: str, camel: str) -> Optional[float]:
    if snake in product:
        return _to_float(product[snake])
    if camel in product:
        return _to_float(product[camel])
    return None


def coerce_bcg(data: Dict[str, Any]) -> Dict[str, Dict[str, float]]:
    """
    Normalize a BCG reply to ``{product: {market_share, growth_rate}}``.

    Unwraps a single wrapper key such as ``{"products": {...}}``, accepts
    camelCase metric names and numeric strings, and drops products whose
    metrics cannot be read.
    """
    if len(data) == 1:
        inner = next(iter(data.values()))
        if isinstance(inner, dict) and inner and all(isinstance(v, dict) for v in inner.values()):
            data = inner

    products: Dict[str, Dict[str, float]] = {}
    for name, product in data.items():
        if not isinstance(product, dict):
            continue
        share = _metric(product, "market_share", "marketShare")
        growth = _metric(product, "growth_rate", "growthRate")
        if share is None or growth is None:
            continue
        products[str(name)] = {"market_share": share, "growth_rate": growth}
    return products


def _as_items(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return [str(value)]


def normalize_framework(data: Dict[str, Any], analysis_type: str) -> Dict[str, Any]:
    """
    Force a parsed reply into the fixed key set for its framework.

    List frameworks get every key with a (possibly empty) list. McKinsey
    keys missing from the reply take the canned sentence.
    """
    if analysis_type in LIST_FRAMEWORK_KEYS:
        lowered = {str(k).lower(): v for k, v in data.items()}
        return {key: _as_items(lowered.get(key)) for key in LIST_FRAMEWORK_KEYS[analysis_type]}

    if analysis_type == "mckinsey":
        lowered = {str(k).lower(): v for k, v in data.items()}
        fallback = FALLBACKS["mckinsey"]
        result = {}
        for key in MCKINSEY_KEYS:
            value = lowered.get(key)
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            result[key] = str(value).strip() if value else fallback[key]
        return result

    if analysis_type == "bcg":
        return coerce_bcg(data)

    return data


def parse_json_response(text: str, analysis_type: str) -> Dict[str, Any]:
    """
    Parse a model reply for one framework.

    Args:
        text: Raw model output
        analysis_type: swot, pestel, porter, bcg or mckinsey

    Returns:
        Normalized framework dict, or the type's fallback when the reply
        holds no usable JSON
    """
    parsed = extract_json_object(text)
    if parsed is None:
        logger.warning(
            "Could not parse model reply as JSON, using fallback",
            extra={"analysis_type": analysis_type, "response_length": len(text or "")}
        )
        return get_fallback(analysis_type)

    result = normalize_framework(parsed, analysis_type)
    if analysis_type == "bcg" and not result:
        logger.warning("BCG reply had no usable products, using fallback")
        return get_fallback("bcg")
    return result
