"""Sequential pipeline orchestrator.

Stages run strictly in order, each receiving the previous stage's record (the
first receives the topic). Every stage execution is wrapped in a telemetry
span. The first failure stops the run: the span is closed with the error, the
remaining stages never execute, and the caller gets a PipelineError naming the
stage and topic. No state survives between runs.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from errors import PipelineError
from models import record_to_dict
from stage import Stage
from tracing import NullTracer, Span, Tracer

LOGGER = logging.getLogger(__name__)


def summarize_input(record: Any) -> dict[str, Any]:
    """Small, loggable description of a stage's input record."""
    if isinstance(record, str):
        return {"record_type": "topic", "topic": record}
    summary: dict[str, Any] = {"record_type": type(record).__name__}
    for attr in ("title", "summary", "curated_summary", "overall_score"):
        value = getattr(record, attr, None)
        if value is None:
            continue
        if isinstance(value, str) and len(value) > 200:
            value = value[:199] + "…"
        summary[attr] = value
    return summary


def _open_span(tracer: Tracer, name: str, inputs: dict[str, Any]) -> Span | None:
    try:
        return tracer.start_span(name, inputs)
    except Exception as exc:
        LOGGER.warning("Tracer failed to open span for stage=%s: %s", name, exc)
        return None


def _close_span(tracer: Tracer, span: Span | None, output: Any = None, error: BaseException | None = None) -> None:
    if span is None:
        return
    outputs = None
    if error is None:
        try:
            outputs = {"record": record_to_dict(output)}
        except Exception as exc:
            LOGGER.warning("Could not serialise output of stage=%s for tracing: %s", span.name, exc)
            outputs = {"record": repr(output)}
    try:
        tracer.end_span(span, outputs=outputs, error=error)
    except Exception as exc:
        LOGGER.warning("Tracer failed to close span for stage=%s: %s", span.name, exc)


def _run_stage(
    stage: Stage,
    record: Any,
    topic: str,
    tracer: Tracer,
    max_attempts: int,
    retry_backoff_seconds: float,
    sleep: Callable[[float], None],
) -> Any:
    inputs = {
        "stage": stage.name,
        "display_name": stage.display_name,
        "topic": topic,
        "input": summarize_input(record),
    }
    delay = retry_backoff_seconds
    attempt = 1

    while True:
        LOGGER.info("Running %s (attempt %s) for topic=%r", stage.display_name, attempt, topic)
        span = _open_span(tracer, stage.name, {**inputs, "attempt": attempt})
        started = time.monotonic()
        try:
            output = stage.execute(record)
        except Exception as exc:
            _close_span(tracer, span, error=exc)
            if attempt >= max_attempts:
                LOGGER.error("Stage %s failed for topic=%r: %s", stage.name, topic, exc)
                raise PipelineError(stage.name, topic, exc) from exc
            LOGGER.warning(
                "Stage %s failed on attempt %s/%s, retrying in %.1fs: %s",
                stage.name,
                attempt,
                max_attempts,
                delay,
                exc,
            )
            sleep(delay)
            delay *= 2
            attempt += 1
            continue

        _close_span(tracer, span, output=output)
        LOGGER.info("Stage %s finished in %.2fs", stage.name, time.monotonic() - started)
        return output


def run_pipeline(
    stages: Sequence[Stage],
    topic: str,
    tracer: Tracer | None = None,
    max_attempts: int = 1,
    retry_backoff_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """Run stages in order against topic and return the last stage's record.

    max_attempts > 1 re-executes a failing stage with exponential backoff; the
    default of 1 means one attempt per stage.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    tracer = tracer or NullTracer()

    LOGGER.info("Pipeline starting: topic=%r stages=%s", topic, [stage.name for stage in stages])
    record: Any = topic
    for stage in stages:
        record = _run_stage(stage, record, topic, tracer, max_attempts, retry_backoff_seconds, sleep)
    LOGGER.info("Pipeline complete: topic=%r", topic)
    return record
