from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

from config import PipelineConfig
from fakes import RecordingTracer
from tracing import CompositeTracer, JsonlTracer, LangSmithTracer, LoggingTracer, Tracer, tracer_from_config


def test_span_lifecycle() -> None:
    tracer = RecordingTracer()

    span = tracer.start_span("writer", {"topic": "AI"})
    assert not span.closed
    assert span.duration_seconds is None

    tracer.end_span(span, error=ValueError("bad draft"))

    assert span.closed
    assert span.error == "ValueError: bad draft"
    assert span.duration_seconds >= 0
    assert tracer.started == [span] and tracer.ended == [span]


def test_jsonl_tracer_appends_one_line_per_span(tmp_path: Path) -> None:
    path = tmp_path / "traces" / "spans.jsonl"
    tracer = JsonlTracer(path)

    for name in ("researcher", "curator"):
        span = tracer.start_span(name, {"topic": "AI"})
        tracer.end_span(span, outputs={"record": {"topic": "AI"}})

    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [line["name"] for line in lines] == ["researcher", "curator"]
    assert lines[0]["outputs"] == {"record": {"topic": "AI"}}
    assert lines[0]["end_time"] is not None


def test_composite_tracer_isolates_child_failures() -> None:
    class Exploding(Tracer):
        def _on_end(self, span):
            raise OSError("disk full")

    healthy = RecordingTracer()
    tracer = CompositeTracer([Exploding(), healthy])

    span = tracer.start_span("editor", {})
    tracer.end_span(span)

    assert healthy.ended == [span]


def test_langsmith_tracer_posts_and_patches_runs() -> None:
    response = MagicMock()
    with patch("tracing.requests.post", return_value=response) as mock_post, \
         patch("tracing.requests.patch", return_value=response) as mock_patch:
        tracer = LangSmithTracer(api_key="ls-key", project="blog-bot", endpoint="https://ls.example/")
        span = tracer.start_span("critiquer", {"topic": "AI"})
        tracer.end_span(span, outputs={"record": {}})

    assert mock_post.call_args.args[0] == "https://ls.example/runs"
    assert mock_post.call_args.kwargs["headers"]["x-api-key"] == "ls-key"
    posted = json.loads(mock_post.call_args.kwargs["data"])
    assert posted["id"] == span.id
    assert posted["session_name"] == "blog-bot"
    assert mock_patch.call_args.args[0] == f"https://ls.example/runs/{span.id}"
    assert json.loads(mock_patch.call_args.kwargs["data"])["outputs"] == {"record": {}}


def test_tracer_from_config() -> None:
    assert isinstance(tracer_from_config(PipelineConfig()), LoggingTracer)

    tracer = tracer_from_config(PipelineConfig(trace_file="spans.jsonl", langsmith_api_key="k"))

    assert isinstance(tracer, CompositeTracer)
    assert [type(child) for child in tracer.tracers] == [LoggingTracer, JsonlTracer, LangSmithTracer]
