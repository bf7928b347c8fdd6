"""
Caller-side state for one meal analysis.

Consumes the decoded event stream and keeps what a screen needs to render:
the current stage, a short preview of the model output, provisional macro
values, and finally the authoritative estimate.
"""

import logging
from contextlib import aclosing
from typing import Dict, Optional, Set

from estimator.client.analysis import AnalysisClient
from estimator.client.errors import AnalysisError, RemoteError
from estimator.models.estimate import MACRO_FIELDS, EstimateSource, MacroEstimate
from estimator.models.events import (
    TERMINAL_EVENTS,
    AnalysisStage,
    DeltaEvent,
    ErrorEvent,
    ResultEvent,
    StatusEvent,
)
from estimator.models.request import EstimateRequest
from estimator.services.partial import StreamBuffer

logger = logging.getLogger(__name__)


class AnalysisSession:
    def __init__(self, client: AnalysisClient, buffer: Optional[StreamBuffer] = None):
        self.client = client
        self.buffer = buffer or StreamBuffer()
        self.reset()

    def reset(self) -> None:
        self.stage = AnalysisStage.IDLE
        self.preview = ""
        self.partial: Dict[str, float] = {}
        self.estimate: Optional[MacroEstimate] = None
        self.error_message: Optional[str] = None
        self.show_items = False
        self._base_estimate: Optional[MacroEstimate] = None
        self._edited: Set[str] = set()
        self.buffer.reset()

    def edit_field(self, field: str, value: float) -> None:
        """Record a hand-edited macro; streamed values will not overwrite it."""
        if field not in MACRO_FIELDS:
            raise ValueError(f"Unknown macro field: {field}")
        self._edited.add(field)
        self.partial[field] = value

    async def run(self, request: EstimateRequest) -> Optional[MacroEstimate]:
        """Stream one estimate, falling back to a plain request if no result arrives."""
        self.reset()
        self.show_items = bool(request.items)

        try:
            self.stage = AnalysisStage.REQUESTING_MODEL
            terminal_seen = False
            async with aclosing(self.client.analyze_stream(request)) as events:
                async for event in events:
                    if terminal_seen:
                        logger.warning(f"Ignoring '{event.type}' event after terminal event")
                        continue
                    self._apply(event)
                    terminal_seen = isinstance(event, TERMINAL_EVENTS)

            if self.estimate is None:
                logger.info("Stream ended without a result; requesting estimate directly")
                self._set_estimate(await self.client.analyze(request))
                self.stage = AnalysisStage.IDLE
        except AnalysisError as e:
            logger.warning(f"Analysis failed: {e}")
            self.error_message = e.user_message
            self.stage = AnalysisStage.IDLE
            self.preview = ""

        return self.estimate

    def _apply(self, event) -> None:
        if isinstance(event, StatusEvent):
            self.stage = AnalysisStage.from_wire(event.stage)
        elif isinstance(event, DeltaEvent):
            self.stage = AnalysisStage.STREAMING
            self.preview = self.buffer.append(event.text)
            # Itemized requests keep totals in sync with the items instead
            if not self.show_items:
                self.partial = self.buffer.partial().merge_into(
                    self.partial, locked=frozenset(self._edited)
                )
        elif isinstance(event, ResultEvent):
            self.stage = AnalysisStage.FINALIZING
            self._set_estimate(event.estimate)
        elif isinstance(event, ErrorEvent):
            raise RemoteError(event.message)

    def _set_estimate(self, estimate: MacroEstimate) -> None:
        self.estimate = estimate
        self._base_estimate = estimate
        self.preview = ""
        self.show_items = bool(estimate.items)

    def apply_label_scaling(self, grams: float) -> Optional[MacroEstimate]:
        """Scale a per-100 g label estimate to the eaten weight."""
        base = self._base_estimate
        if base is None or base.source != EstimateSource.LABEL_PHOTO:
            return self.estimate
        if grams <= 0:
            return self.estimate
        self.estimate = base.scaled(grams / 100.0)
        return self.estimate
