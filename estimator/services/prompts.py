"""
Prompt text and prompt builders for macro estimation.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from estimator.models.request import ItemInput


# =============================================================================
# INSTRUCTIONS
# =============================================================================

ESTIMATE_INSTRUCTIONS = (
    "You are a nutrition estimation assistant. Return only valid JSON. "
    "All numeric fields are numbers without units. Calories must be in kcal; "
    "if the label shows kJ, first look for kcal; if kcal is absent, convert kJ to kcal (kJ / 4.184). "
    "Protein, carbs, and fat must be grams. "
    "If the input is unclear, estimate a typical portion and explain assumptions in notes."
)

ITEMIZED_OUTPUT_RULES = [
    "Return JSON with fields in this exact order:",
    "items, totals, source, food_name, notes.",
    "items must be an array matching the input order. Each item must include:",
    "name, grams, calories, protein, carbs, fat, confidence, notes (confidence/notes optional).",
    "totals must be the sum of all items (calories, protein, carbs, fat).",
    "food_name is optional; use a short name if identifiable.",
]

FREEFORM_OUTPUT_RULES = [
    "IMPORTANT: Always identify and itemize each distinct food in the input.",
    "Return JSON with fields in this exact order:",
    "items, totals, source, food_name, notes.",
    "items must be an array where each item represents one food component. Each item must include:",
    "name (food name), grams (estimated weight in grams), calories, protein, carbs, fat.",
    "confidence and notes are optional per item.",
    "If the input contains multiple foods (e.g., 'chicken with rice and salad'), create separate items for each.",
    "If the input is a single food (e.g., 'apple'), create one item.",
    "For photos: identify each visible food component separately with estimated gram weights.",
    "totals must be the exact sum of all items (calories, protein, carbs, fat).",
    "food_name is optional; use a combined short name if multiple items.",
]


# =============================================================================
# WEIGHT PARSING
# =============================================================================

WEIGHT_PATTERN = re.compile(
    r"(\d+(?:\.\d+)?)\s*(g|gram|grams|kg|oz|lb|lbs|pound|pounds)\b", re.IGNORECASE
)

GRAMS_PER_UNIT = {
    "g": 1.0,
    "gram": 1.0,
    "grams": 1.0,
    "kg": 1000.0,
    "oz": 28.3495,
    "lb": 453.592,
    "lbs": 453.592,
    "pound": 453.592,
    "pounds": 453.592,
}


@dataclass
class ParsedWeight:
    """A weight mentioned in free text"""

    value: float
    unit: str
    grams: Optional[float] = None


def normalize_to_grams(value: float, unit: str) -> Optional[float]:
    factor = GRAMS_PER_UNIT.get(unit.lower())
    return value * factor if factor is not None else None


def extract_weight(text: str) -> Optional[ParsedWeight]:
    """Find the first "<number> <unit>" weight in `text`."""
    match = WEIGHT_PATTERN.search(text)
    if not match:
        return None
    value = float(match.group(1))
    unit = match.group(2).lower()
    return ParsedWeight(value=value, unit=unit, grams=normalize_to_grams(value, unit))


# =============================================================================
# PROMPT BUILDER
# =============================================================================


def _format_number(value: float) -> str:
    return f"{value:g}"


def build_prompt(
    text: str,
    items: List[ItemInput],
    weight: Optional[ParsedWeight],
    input_type: str,
    image_path: str,
) -> str:
    """Build the user prompt for one estimate request."""
    if weight:
        weight_line = f"Parsed weight: {_format_number(weight.value)} {weight.unit}"
        if weight.grams:
            weight_line += f" (~{round(weight.grams)} g)"
    else:
        weight_line = "Parsed weight: none"

    if items:
        item_lines = ["Food items (use grams exactly, preserve order):"] + [
            f"{index}. {item.name} - {_format_number(item.grams)} g"
            for index, item in enumerate(items, start=1)
        ]
    else:
        item_lines = ["Food items: [none - identify from text/image]"]

    output_rules = ITEMIZED_OUTPUT_RULES if items else FREEFORM_OUTPUT_RULES

    return "\n".join([
        "Task: estimate calories (kcal) and macros (grams) from the input.",
        "Units: calories must be kcal. If a label shows kJ, first look for kcal on the label; "
        "if no kcal value is present, convert kJ to kcal using kcal = kJ / 4.184.",
        "Macros must be grams; output numbers only (no units).",
        "If a nutrition label is present, prioritize it over visual estimation.",
        "Handle labels in any language; translate as needed to identify calories, protein, carbs, fat.",
        "Prefer per-100g values first. If per-100g exists, never use per-portion values.",
        "If weight is parsed, scale per-100g values to that weight.",
        "If only a food photo is available, estimate a typical portion and explain assumptions in notes.",
        *output_rules,
        "Notes must be a short string (can be empty).",
        "Set source to one of: food_photo, label_photo, text, unknown.",
        f"Input type: {input_type}",
        f"User text: {text or '[none]'}",
        f"Image path: {image_path or '[none]'}",
        *item_lines,
        weight_line,
    ])


def temperature_for(input_type: str) -> float:
    """Labels are transcribed, so they get a deterministic temperature."""
    return 0.0 if input_type == "label_photo" else 0.2
