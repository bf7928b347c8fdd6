from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class ItemInput(BaseModel):
    """A named food with a known weight"""
    name: str
    grams: float


class EstimateRequest(BaseModel):
    """Body of POST /api/ai-estimate (camelCase on the wire)"""
    text: Optional[str] = None
    items: Optional[List[ItemInput]] = None
    image_path: Optional[str] = Field(default=None, alias="imagePath")
    input_type: str = Field(default="text", alias="inputType")
    model: Optional[str] = None
    stream: Optional[bool] = None

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {"text": "2 eggs and toast", "inputType": "text", "stream": True},
                {
                    "imagePath": "user-id/entry-id.jpg",
                    "inputType": "label_photo",
                    "items": [{"name": "granola", "grams": 45}],
                },
            ]
        },
    )

    def to_wire(self) -> dict:
        """Serialize with wire aliases, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
