"""
Macro estimate models.

MacroEstimate is the authoritative, immutable result of one analysis.
EstimatePayload is the loose wire shape it is decoded from: the backend may
send totals either nested under "totals" or flat at the top level.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

MACRO_FIELDS = ("calories", "protein", "carbs", "fat")


class EstimateSource(str, Enum):
    FOOD_PHOTO = "food_photo"
    LABEL_PHOTO = "label_photo"
    TEXT = "text"
    UNKNOWN = "unknown"


class InputType(str, Enum):
    """How the user described the food."""
    TEXT = "text"
    PHOTO = "photo"
    PHOTO_TEXT = "photo_text"
    LABEL_PHOTO = "label_photo"


class MacroTotals(BaseModel):
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)


class MacroItemEstimate(BaseModel):
    """Per-item breakdown inside an estimate"""
    model_config = ConfigDict(frozen=True)

    name: str
    grams: float
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    notes: Optional[str] = None


class MacroEstimate(BaseModel):
    """Final macro estimate for a meal"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    source: EstimateSource
    food_name: Optional[str] = Field(default=None, alias="foodName")
    notes: str
    items: List[MacroItemEstimate] = Field(default_factory=list)

    @property
    def totals(self) -> MacroTotals:
        return MacroTotals(
            calories=self.calories, protein=self.protein, carbs=self.carbs, fat=self.fat
        )

    def scaled(self, multiplier: float) -> "MacroEstimate":
        """Return a copy with the four macros multiplied (label per-100 g scaling)."""
        if multiplier <= 0:
            raise ValueError("multiplier must be positive")
        return self.model_copy(
            update={field: getattr(self, field) * multiplier for field in MACRO_FIELDS}
        )


class EstimatePayload(BaseModel):
    """Wire shape of a result frame or a non-streaming estimate response"""
    model_config = ConfigDict(populate_by_name=True)

    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    totals: Optional[MacroTotals] = None
    confidence: Optional[float] = None
    source: Optional[str] = None
    food_name: Optional[str] = Field(default=None, alias="foodName")
    notes: Optional[str] = None
    items: Optional[List[MacroItemEstimate]] = None
    error: Optional[str] = None

    @property
    def legacy_totals(self) -> Optional[MacroTotals]:
        values = [self.calories, self.protein, self.carbs, self.fat]
        if any(value is None for value in values):
            return None
        try:
            return MacroTotals(
                calories=self.calories, protein=self.protein, carbs=self.carbs, fat=self.fat
            )
        except ValidationError:
            return None

    def to_estimate(self) -> Optional[MacroEstimate]:
        """Build a MacroEstimate, or None if required fields are missing or invalid."""
        if self.source is None or self.notes is None:
            return None
        totals = self.totals or self.legacy_totals
        if totals is None:
            return None
        try:
            return MacroEstimate(
                **totals.model_dump(),
                confidence=self.confidence,
                source=self.source,
                food_name=self.food_name,
                notes=self.notes,
                items=self.items or [],
            )
        except ValidationError:
            return None


class PartialEstimate(BaseModel):
    """Best-effort numbers pulled from an incomplete model response"""
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None

    def is_empty(self) -> bool:
        return all(getattr(self, field) is None for field in MACRO_FIELDS)

    def merge_into(self, current: dict, locked: frozenset = frozenset()) -> dict:
        """
        Return a copy of `current` updated with every matched field.

        Unmatched fields keep their current value (absence is never zero),
        and fields named in `locked` (hand-edited by the user) are never
        overwritten.
        """
        merged = dict(current)
        for field in MACRO_FIELDS:
            value = getattr(self, field)
            if value is None or field in locked:
                continue
            merged[field] = value
        return merged
