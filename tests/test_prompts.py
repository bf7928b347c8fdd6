"""Tests for weight parsing and prompt building."""

import pytest

from estimator.models.request import ItemInput
from estimator.services.prompts import (
    build_prompt,
    extract_weight,
    normalize_to_grams,
    temperature_for,
)


@pytest.mark.parametrize(
    "text,value,unit,grams",
    [
        ("150g chicken", 150, "g", 150),
        ("half a 1.5 kg melon", 1.5, "kg", 1500),
        ("steak 8 OZ", 8, "oz", 8 * 28.3495),
        ("2 lbs of grapes", 2, "lbs", 2 * 453.592),
    ],
)
def test_extract_weight(text, value, unit, grams):
    weight = extract_weight(text)
    assert weight.value == value
    assert weight.unit == unit
    assert weight.grams == pytest.approx(grams)


def test_extract_weight_requires_unit_boundary():
    assert extract_weight("2 eggs") is None
    assert extract_weight("100 grammar lessons") is None


def test_normalize_to_grams_unknown_unit():
    assert normalize_to_grams(3, "cups") is None


def test_prompt_with_items_preserves_order():
    prompt = build_prompt(
        "", [ItemInput(name="rice", grams=150), ItemInput(name="chicken", grams=120.5)],
        None, "text", "",
    )
    assert "Food items (use grams exactly, preserve order):" in prompt
    assert "1. rice - 150 g" in prompt
    assert "2. chicken - 120.5 g" in prompt
    assert "items must be an array matching the input order." in prompt
    assert "Parsed weight: none" in prompt


def test_prompt_without_items_asks_to_itemize():
    weight = extract_weight("200 g yogurt")
    prompt = build_prompt("200 g yogurt", [], weight, "text", "")
    assert "IMPORTANT: Always identify and itemize each distinct food in the input." in prompt
    assert "Food items: [none - identify from text/image]" in prompt
    assert "Parsed weight: 200 g (~200 g)" in prompt
    assert "User text: 200 g yogurt" in prompt
    assert "Image path: [none]" in prompt


def test_label_photos_use_zero_temperature():
    assert temperature_for("label_photo") == 0.0
    assert temperature_for("photo") == 0.2
