"""
Normalization of model output into the estimate wire schema.

The model is asked for strict JSON but does not always comply, so parsing
goes through json-repair, and every field is validated before it reaches a
client. Totals are recomputed from items whenever items are present.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from json_repair import repair_json

from estimator.models.estimate import MACRO_FIELDS, EstimateSource

logger = logging.getLogger(__name__)

ALLOWED_SOURCES = {source.value for source in EstimateSource}

# Tolerances before a model/computed totals mismatch is worth logging
CALORIE_TOLERANCE = 1.0
MACRO_TOLERANCE = 0.5


class NormalizationError(ValueError):
    """Model output could not be turned into a valid estimate."""


def repair_llm_json(raw_content: str, provider: str = "unknown") -> Optional[Dict[str, Any]]:
    """
    Repair and parse potentially malformed JSON from LLM output.

    Uses json-repair library to fix common issues like:
    - Control characters in strings
    - Trailing commas
    - Missing quotes

    Returns:
        Parsed dict if successful, None if repair failed
    """
    if not raw_content or not raw_content.strip():
        return None

    try:
        repaired = repair_json(raw_content, return_objects=True)
    except Exception as e:
        logger.warning(f"[{provider}] JSON repair failed: {e}")
        return None

    if isinstance(repaired, dict):
        return repaired

    # LLM might wrap the object in an array
    if isinstance(repaired, list):
        dicts_in_list = [item for item in repaired if isinstance(item, dict)]
        for d in dicts_in_list:
            if any(k in d for k in ("totals", "items", "calories", "source")):
                logger.info(f"[{provider}] JSON repair: found estimate object in array")
                return d

    logger.warning(f"[{provider}] JSON repair returned non-dict: {type(repaired)}")
    return None


def _to_number(value: Any) -> Optional[float]:
    """Coerce a JSON value to a finite float, or None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _clamp_confidence(value: Any) -> Optional[float]:
    number = _to_number(value)
    if number is None:
        return None
    return min(max(number, 0.0), 1.0)


def normalize_items(raw_items: Any) -> List[Dict[str, Any]]:
    """Validate the per-item breakdown. An absent or empty list yields []."""
    if not isinstance(raw_items, list) or not raw_items:
        return []

    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise NormalizationError("OpenAI returned invalid item data.")
        name = raw.get("name").strip() if isinstance(raw.get("name"), str) else ""
        grams = _to_number(raw.get("grams"))
        if not name or grams is None or grams <= 0:
            raise NormalizationError("OpenAI returned invalid item data.")

        macros = {field: _to_number(raw.get(field)) for field in MACRO_FIELDS}
        if any(value is None or value < 0 for value in macros.values()):
            raise NormalizationError("OpenAI returned invalid numeric values.")

        item: Dict[str, Any] = {"name": name, "grams": grams, **macros}
        confidence = _clamp_confidence(raw.get("confidence"))
        if confidence is not None:
            item["confidence"] = confidence
        if isinstance(raw.get("notes"), str):
            item["notes"] = raw["notes"]
        items.append(item)
    return items


def normalize_totals(result: Dict[str, Any]) -> Optional[Dict[str, float]]:
    """Model-reported totals, from "totals" or the flat legacy fields."""
    source = result.get("totals") if isinstance(result.get("totals"), dict) else result
    totals = {field: _to_number(source.get(field)) for field in MACRO_FIELDS}
    if any(value is None or value < 0 for value in totals.values()):
        return None
    return totals


def compute_totals_from_items(items: List[Dict[str, Any]]) -> Dict[str, float]:
    """Sum item macros, rounded to 2 decimal places."""
    return {
        field: round(sum(item[field] for item in items), 2) for field in MACRO_FIELDS
    }


def _log_totals_mismatch(model_totals: Dict[str, float], computed: Dict[str, float]) -> None:
    for field in MACRO_FIELDS:
        tolerance = CALORIE_TOLERANCE if field == "calories" else MACRO_TOLERANCE
        if abs(model_totals[field] - computed[field]) > tolerance:
            logger.info(f"Totals mismatch - model: {model_totals}, computed: {computed}")
            return


def normalize_result(result: Dict[str, Any], require_items: bool = False) -> Dict[str, Any]:
    """
    Validate model output and build the result payload sent to clients.

    Raises:
        NormalizationError: with a user-facing message if the output is unusable
    """
    if result.get("error"):
        raise NormalizationError(str(result["error"]))

    source = result.get("source")
    if not isinstance(source, str) or source not in ALLOWED_SOURCES:
        raise NormalizationError("Missing required field: source")

    notes = result.get("notes")
    if not isinstance(notes, str):
        raise NormalizationError("Missing required field: notes")

    items = normalize_items(result.get("items"))
    if require_items and not items:
        raise NormalizationError("Missing required field: items")

    model_totals = normalize_totals(result)
    if items:
        totals = compute_totals_from_items(items)
        if model_totals:
            _log_totals_mismatch(model_totals, totals)
    elif model_totals:
        totals = model_totals
    else:
        raise NormalizationError("Missing required field: totals")

    normalized: Dict[str, Any] = {"totals": totals, "source": source, "notes": notes}
    if items:
        normalized["items"] = items
    confidence = _clamp_confidence(result.get("confidence"))
    if confidence is not None:
        normalized["confidence"] = confidence
    food_name = result.get("food_name")
    if isinstance(food_name, str) and food_name.strip():
        normalized["food_name"] = food_name.strip()
    return normalized
