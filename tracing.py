"""Per-stage observability spans and the sinks that receive them.

The orchestrator opens one span per stage execution and closes it with either
the stage's output record or its error. Sinks are fire-and-forget from the
pipeline's point of view: the orchestrator logs and ignores their failures.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import requests

from config import PipelineConfig

LOGGER = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 10


@dataclass
class Span:
    """One traced stage invocation."""

    name: str
    inputs: dict[str, Any]
    run_type: str = "chain"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    outputs: dict[str, Any] | None = None
    error: str | None = None

    @property
    def closed(self) -> bool:
        return self.end_time is not None

    @property
    def duration_seconds(self) -> float | None:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "run_type": self.run_type,
            "inputs": self.inputs,
            "outputs": self.outputs,
            "error": self.error,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
        }


class Tracer:
    """Base tracer: builds spans and hands them to _on_start/_on_end hooks."""

    def start_span(self, name: str, inputs: dict[str, Any], run_type: str = "chain") -> Span:
        span = Span(name=name, inputs=inputs, run_type=run_type)
        self._on_start(span)
        return span

    def end_span(
        self,
        span: Span,
        outputs: dict[str, Any] | None = None,
        error: BaseException | None = None,
    ) -> None:
        span.end_time = datetime.now(UTC)
        span.outputs = outputs
        span.error = None if error is None else f"{type(error).__name__}: {error}"
        self._on_end(span)

    def _on_start(self, span: Span) -> None:
        pass

    def _on_end(self, span: Span) -> None:
        pass


class NullTracer(Tracer):
    """Discards every span."""


class LoggingTracer(Tracer):
    def _on_start(self, span: Span) -> None:
        LOGGER.info("Span started: name=%s topic=%s", span.name, span.inputs.get("topic"))

    def _on_end(self, span: Span) -> None:
        if span.error:
            LOGGER.warning(
                "Span failed: name=%s duration=%.2fs error=%s",
                span.name,
                span.duration_seconds or 0.0,
                span.error,
            )
        else:
            LOGGER.info("Span finished: name=%s duration=%.2fs", span.name, span.duration_seconds or 0.0)


class JsonlTracer(Tracer):
    """Appends every closed span to a JSON-lines file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _on_end(self, span: Span) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(span.to_dict(), default=str) + "\n")


class LangSmithTracer(Tracer):
    """Posts spans as LangSmith runs (POST on start, PATCH on end)."""

    def __init__(self, api_key: str, project: str, endpoint: str):
        self.api_key = api_key
        self.project = project
        self.endpoint = endpoint.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {"x-api-key": self.api_key, "Content-Type": "application/json"}

    def _on_start(self, span: Span) -> None:
        payload = {
            "id": span.id,
            "name": span.name,
            "run_type": span.run_type,
            "inputs": span.inputs,
            "start_time": span.start_time.isoformat(),
            "session_name": self.project,
        }
        response = requests.post(
            f"{self.endpoint}/runs",
            headers=self._headers(),
            data=json.dumps(payload, default=str),
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()

    def _on_end(self, span: Span) -> None:
        payload: dict[str, Any] = {"end_time": span.end_time.isoformat() if span.end_time else None}
        if span.outputs is not None:
            payload["outputs"] = span.outputs
        if span.error is not None:
            payload["error"] = span.error
        response = requests.patch(
            f"{self.endpoint}/runs/{span.id}",
            headers=self._headers(),
            data=json.dumps(payload, default=str),
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        response.raise_for_status()


class CompositeTracer(Tracer):
    """Fans spans out to several tracers; one sink failing does not starve the others."""

    def __init__(self, tracers: Iterable[Tracer]):
        self.tracers = list(tracers)

    def _on_start(self, span: Span) -> None:
        for tracer in self.tracers:
            try:
                tracer._on_start(span)
            except Exception as exc:
                LOGGER.warning("Tracer %s failed on span start: %s", type(tracer).__name__, exc)

    def _on_end(self, span: Span) -> None:
        for tracer in self.tracers:
            try:
                tracer._on_end(span)
            except Exception as exc:
                LOGGER.warning("Tracer %s failed on span end: %s", type(tracer).__name__, exc)


def tracer_from_config(config: PipelineConfig) -> Tracer:
    """Logging always; JSON-lines file and LangSmith when configured."""
    tracers: list[Tracer] = [LoggingTracer()]
    if config.trace_file:
        tracers.append(JsonlTracer(config.trace_file))
    if config.langsmith_api_key:
        tracers.append(
            LangSmithTracer(
                api_key=config.langsmith_api_key,
                project=config.langsmith_project,
                endpoint=config.langsmith_endpoint,
            )
        )
    return tracers[0] if len(tracers) == 1 else CompositeTracer(tracers)
