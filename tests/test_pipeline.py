from __future__ import annotations

import logging
from typing import Any

import pytest

from curator import CurationStage
from errors import CollaboratorError, ContractViolation, PipelineError
from fakes import FakeSearcher, RecordingTracer, ScriptedGenerator, search_results
from models import CuratedRecord, ResearchRecord
from pipeline import run_pipeline, summarize_input
from researcher import ResearchStage
from stage import Stage
from tracing import Tracer


class EchoStage(Stage):
    """Appends its name to a string record."""

    def __init__(self, name: str, calls: list[str], fail_times: int = 0):
        super().__init__(generator=None)
        self.name = name
        self.calls = calls
        self.fail_times = fail_times

    def execute(self, record: Any) -> Any:
        self.calls.append(self.name)
        if self.fail_times:
            self.fail_times -= 1
            raise CollaboratorError(f"{self.name} backend unavailable")
        return f"{record}>{self.name}"


def test_stages_run_in_order_and_chain_records() -> None:
    calls: list[str] = []
    stages = [EchoStage("a", calls), EchoStage("b", calls), EchoStage("c", calls)]

    assert run_pipeline(stages, "topic") == "topic>a>b>c"
    assert calls == ["a", "b", "c"]


def test_failure_stops_the_run_and_closes_the_failing_span() -> None:
    calls: list[str] = []
    tracer = RecordingTracer()
    stages = [EchoStage("one", calls), EchoStage("two", calls, fail_times=1), EchoStage("three", calls)]

    with pytest.raises(PipelineError) as excinfo:
        run_pipeline(stages, "Edge AI", tracer=tracer)

    assert calls == ["one", "two"]
    assert excinfo.value.stage_name == "two"
    assert excinfo.value.topic == "Edge AI"
    assert excinfo.value.kind == "CollaboratorError"
    assert isinstance(excinfo.value.__cause__, CollaboratorError)
    assert str(excinfo.value) == (
        "Stage 'two' failed for topic 'Edge AI': CollaboratorError: two backend unavailable"
    )

    assert [span.name for span in tracer.ended] == ["one", "two"]
    failed = tracer.ended[1]
    assert failed.closed
    assert failed.error == "CollaboratorError: two backend unavailable"
    assert failed.outputs is None
    assert tracer.ended[0].outputs == {"record": "Edge AI>one"}


def test_contract_violation_is_wrapped_with_stage_identity() -> None:
    searcher = FakeSearcher(search_results(2))
    stages = [
        ResearchStage(ScriptedGenerator({"summary": "s"}), searcher),
        CurationStage(ScriptedGenerator([{"relevanceScore": 9}])),
    ]

    with pytest.raises(PipelineError) as excinfo:
        run_pipeline(stages, "AI")

    assert excinfo.value.stage_name == "curator"
    assert excinfo.value.kind == "ContractViolation"
    assert isinstance(excinfo.value.cause, ContractViolation)


def test_research_and_curation_chain_end_to_end() -> None:
    tracer = RecordingTracer()
    scores = [{"relevanceScore": 9, "reason": "r"}, {"relevanceScore": 3, "reason": "r"}]
    stages = [
        ResearchStage(ScriptedGenerator({"summary": "s"}), FakeSearcher(search_results(2))),
        CurationStage(ScriptedGenerator(scores, {"curatedSummary": "c", "suggestedAngles": []})),
    ]

    result = run_pipeline(stages, "AI", tracer=tracer)

    assert isinstance(result, CuratedRecord)
    assert [r.title for r in result.selected_results] == ["Result 0"]
    assert tracer.ended[1].inputs["input"] == {"record_type": "ResearchRecord", "summary": "s"}
    assert tracer.ended[1].outputs["record"]["selected_results"][0]["relevance_score"] == 9


def test_retry_reruns_failing_stage_with_backoff() -> None:
    calls: list[str] = []
    sleeps: list[float] = []
    tracer = RecordingTracer()
    stages = [EchoStage("flaky", calls, fail_times=2), EchoStage("next", calls)]

    result = run_pipeline(stages, "t", tracer=tracer, max_attempts=3, retry_backoff_seconds=0.5, sleep=sleeps.append)

    assert result == "t>flaky>next"
    assert calls == ["flaky", "flaky", "flaky", "next"]
    assert sleeps == [0.5, 1.0]
    assert [span.inputs["attempt"] for span in tracer.ended[:3]] == [1, 2, 3]


def test_retry_gives_up_after_max_attempts() -> None:
    calls: list[str] = []

    with pytest.raises(PipelineError):
        run_pipeline([EchoStage("x", calls, fail_times=5)], "t", max_attempts=2, sleep=lambda _: None)

    assert calls == ["x", "x"]


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        run_pipeline([], "t", max_attempts=0)


def test_tracer_failures_never_fail_the_run() -> None:
    class BrokenTracer(Tracer):
        def _on_start(self, span):
            raise ConnectionError("tracing backend down")

        def _on_end(self, span):
            raise ConnectionError("tracing backend down")

    calls: list[str] = []

    assert run_pipeline([EchoStage("a", calls)], "t", tracer=BrokenTracer()) == "t>a"


def test_summarize_input() -> None:
    assert summarize_input("AI") == {"record_type": "topic", "topic": "AI"}
    record = ResearchRecord(topic="AI", search_results=(), summary="x" * 500)
    summary = summarize_input(record)
    assert summary["record_type"] == "ResearchRecord"
    assert len(summary["summary"]) == 200


def test_unserialisable_output_still_closes_span() -> None:
    class OpaqueStage(Stage):
        name = "opaque"

        def __init__(self) -> None:
            super().__init__(generator=None)

        def execute(self, record: Any) -> Any:
            return object()

    tracer = RecordingTracer()

    result = run_pipeline([OpaqueStage()], "t", tracer=tracer)

    assert len(tracer.ended) == 1
    assert tracer.ended[0].closed
    assert tracer.ended[0].outputs == {"record": repr(result)}


def test_span_inputs_and_logs_carry_display_name(caplog: pytest.LogCaptureFixture) -> None:
    tracer = RecordingTracer()
    stages = [ResearchStage(ScriptedGenerator({"summary": "s"}), FakeSearcher([]))]

    with caplog.at_level(logging.INFO, logger="pipeline"):
        run_pipeline(stages, "AI", tracer=tracer)

    assert tracer.ended[0].name == "researcher"
    assert tracer.ended[0].inputs["display_name"] == "Topic Researcher"
    assert "Running Topic Researcher (attempt 1)" in caplog.text
