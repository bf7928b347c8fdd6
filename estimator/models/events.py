"""
Typed events decoded from the estimate SSE stream.

DecodedEvent is a closed union discriminated by `type`; the decoder only ever
produces these four variants.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from estimator.models.estimate import MacroEstimate


class AnalysisStage(str, Enum):
    """Coarse progress of one analysis, as shown to the user"""
    IDLE = "idle"
    PREPARING = "preparing"
    UPLOADING = "uploading"
    REQUESTING_MODEL = "requesting_model"
    STREAMING = "streaming"
    FINALIZING = "finalizing"

    @classmethod
    def from_wire(cls, value: str) -> "AnalysisStage":
        """Map a stage string received over the wire; unknown values become PREPARING."""
        try:
            stage = cls(value)
        except ValueError:
            return cls.PREPARING
        # idle is a local state, the server never reports it
        return cls.PREPARING if stage is cls.IDLE else stage

    @property
    def title(self) -> str:
        return _STAGE_TITLES[self]


_STAGE_TITLES = {
    AnalysisStage.IDLE: "",
    AnalysisStage.PREPARING: "Preparing...",
    AnalysisStage.UPLOADING: "Uploading photo...",
    AnalysisStage.REQUESTING_MODEL: "Contacting AI...",
    AnalysisStage.STREAMING: "Estimating...",
    AnalysisStage.FINALIZING: "Finalizing...",
}


class StatusEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["status"] = "status"
    stage: str


class DeltaEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["delta"] = "delta"
    text: str = Field(min_length=1)


class ResultEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["result"] = "result"
    estimate: MacroEstimate


class ErrorEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["error"] = "error"
    message: str


DecodedEvent = Annotated[
    Union[StatusEvent, DeltaEvent, ResultEvent, ErrorEvent],
    Field(discriminator="type"),
]

TERMINAL_EVENTS = (ResultEvent, ErrorEvent)
