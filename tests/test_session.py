"""Tests for the caller-side analysis session."""

import pytest

from estimator.client.errors import NetworkError
from estimator.client.session import AnalysisSession
from estimator.models.estimate import MacroEstimate
from estimator.models.events import (
    AnalysisStage,
    DeltaEvent,
    ErrorEvent,
    ResultEvent,
    StatusEvent,
)
from estimator.models.request import EstimateRequest, ItemInput


def make_estimate(**overrides):
    data = {"calories": 300, "protein": 20, "carbs": 30, "fat": 10, "source": "text", "notes": ""}
    data.update(overrides)
    return MacroEstimate(**data)


class FakeClient:
    def __init__(self, events=(), fallback=None, fail_after=None):
        self.events = list(events)
        self.fallback = fallback
        self.fail_after = fail_after
        self.analyze_calls = 0
        self.stream_closed = False

    async def analyze_stream(self, request):
        try:
            for event in self.events:
                # Callables run between events, like user input arriving mid-stream
                if callable(event):
                    event()
                    continue
                yield event
            if self.fail_after:
                raise self.fail_after
        finally:
            self.stream_closed = True

    async def analyze(self, request):
        self.analyze_calls += 1
        return self.fallback


REQUEST = EstimateRequest(text="pasta")


@pytest.mark.asyncio
async def test_run_collects_result_and_clears_preview():
    client = FakeClient([
        StatusEvent(stage="requesting_model"),
        DeltaEvent(text='{"totals": {"calories": 300'),
        ResultEvent(estimate=make_estimate()),
    ])
    session = AnalysisSession(client)

    estimate = await session.run(REQUEST)

    assert estimate.calories == 300
    assert session.stage is AnalysisStage.FINALIZING
    assert session.preview == ""
    assert session.partial == {"calories": 300}
    assert client.analyze_calls == 0


@pytest.mark.asyncio
async def test_unknown_stage_maps_to_preparing():
    client = FakeClient()
    session = AnalysisSession(client)
    stages = []
    client.events = [
        StatusEvent(stage="thinking"),
        lambda: stages.append(session.stage),
        StatusEvent(stage="streaming"),
        lambda: stages.append(session.stage),
        ResultEvent(estimate=make_estimate()),
    ]

    await session.run(REQUEST)

    assert stages == [AnalysisStage.PREPARING, AnalysisStage.STREAMING]


@pytest.mark.asyncio
async def test_partial_values_respect_hand_edits():
    client = FakeClient(fallback=make_estimate())
    session = AnalysisSession(client)
    client.events = [
        DeltaEvent(text='{"calories": 410, '),
        lambda: session.edit_field("calories", 350),
        DeltaEvent(text='"protein": 22, "calories": 999'),
    ]

    await session.run(REQUEST)

    assert session.partial == {"calories": 350, "protein": 22}


@pytest.mark.asyncio
async def test_itemized_request_skips_partial_totals():
    client = FakeClient([
        DeltaEvent(text='{"calories": 410'),
        ResultEvent(estimate=make_estimate()),
    ])
    session = AnalysisSession(client)
    await session.run(EstimateRequest(items=[ItemInput(name="rice", grams=100)]))
    assert session.partial == {}


@pytest.mark.asyncio
async def test_stream_without_result_uses_fallback():
    client = FakeClient([DeltaEvent(text="...")], fallback=make_estimate(calories=123))
    session = AnalysisSession(client)

    estimate = await session.run(REQUEST)

    assert estimate.calories == 123
    assert client.analyze_calls == 1
    assert session.stage is AnalysisStage.IDLE


@pytest.mark.asyncio
async def test_remote_error_event_sets_message():
    client = FakeClient([ErrorEvent(message="OpenAI returned invalid JSON.")])
    session = AnalysisSession(client)

    assert await session.run(REQUEST) is None
    assert session.error_message == "OpenAI returned invalid JSON."
    assert session.stage is AnalysisStage.IDLE
    assert client.analyze_calls == 0


@pytest.mark.asyncio
async def test_error_event_closes_the_stream_before_returning():
    client = FakeClient([
        ErrorEvent(message="No food found"),
        DeltaEvent(text="never read"),
    ])
    session = AnalysisSession(client)

    await session.run(REQUEST)

    assert session.error_message == "No food found"
    assert client.stream_closed


@pytest.mark.asyncio
async def test_events_after_result_are_ignored():
    client = FakeClient([
        ResultEvent(estimate=make_estimate()),
        DeltaEvent(text='{"calories": 999'),
        ErrorEvent(message="late error"),
    ])
    session = AnalysisSession(client)

    estimate = await session.run(REQUEST)

    assert estimate.calories == 300
    assert session.error_message is None
    assert session.partial == {}


@pytest.mark.asyncio
async def test_transport_failure_shows_generic_message():
    client = FakeClient([DeltaEvent(text="x")], fail_after=NetworkError("offline"))
    session = AnalysisSession(client)

    assert await session.run(REQUEST) is None
    assert session.error_message.startswith("Network error: offline.")
    assert session.preview == ""


@pytest.mark.asyncio
async def test_label_scaling_uses_base_estimate():
    client = FakeClient([ResultEvent(estimate=make_estimate(source="label_photo"))])
    session = AnalysisSession(client)
    await session.run(REQUEST)

    assert session.apply_label_scaling(50).calories == 150
    # Scaling is always from the per-100 g base, never compounded
    assert session.apply_label_scaling(200).calories == 600
    assert session.apply_label_scaling(0).calories == 600


@pytest.mark.asyncio
async def test_label_scaling_ignored_for_other_sources():
    client = FakeClient([ResultEvent(estimate=make_estimate())])
    session = AnalysisSession(client)
    await session.run(REQUEST)
    assert session.apply_label_scaling(50).calories == 300


def test_edit_field_rejects_unknown_names():
    session = AnalysisSession(FakeClient())
    with pytest.raises(ValueError):
        session.edit_field("sugar", 1)
