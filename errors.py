"""Error taxonomy shared by the extractor, the stages and the orchestrator."""

from __future__ import annotations

from collections.abc import Sequence

_SNIPPET_LEN = 200


def _snippet(text: str, max_len: int = _SNIPPET_LEN) -> str:
    value = text.strip().replace("\n", " ")
    return value if len(value) <= max_len else value[:max_len] + "..."


class PipelineBaseError(RuntimeError):
    """Root of every error raised by the blog pipeline."""


class ExtractionError(PipelineBaseError):
    """Model text never yielded valid JSON after every recovery strategy."""

    def __init__(self, raw: str, attempted_strategies: Sequence[str]):
        self.raw = raw
        self.attempted_strategies = tuple(attempted_strategies)
        super().__init__(
            f"No JSON value recovered after strategies {', '.join(self.attempted_strategies)}. "
            f"Snippet: {_snippet(raw)}"
        )


class ContractViolation(PipelineBaseError):
    """Parsed JSON is missing required fields or has the wrong kinds."""

    def __init__(self, shape_name: str, problems: Sequence[str]):
        self.shape_name = shape_name
        self.problems = tuple(problems)
        super().__init__(f"{shape_name} response violates its contract: {'; '.join(self.problems)}")

    @property
    def missing_or_invalid_fields(self) -> tuple[str, ...]:
        return tuple(problem.split(":", 1)[0] for problem in self.problems)


class CollaboratorError(PipelineBaseError):
    """Generator, search or publication sink failure. The original error is chained."""


class ConfigurationError(PipelineBaseError):
    """A required credential or setting is missing or malformed."""


class PipelineError(PipelineBaseError):
    """A stage failed; carries the stage identity and topic for the caller."""

    def __init__(self, stage_name: str, topic: str, cause: BaseException):
        self.stage_name = stage_name
        self.topic = topic
        self.cause = cause
        super().__init__(
            f"Stage '{stage_name}' failed for topic '{topic}': {self.kind}: {cause}"
        )

    @property
    def kind(self) -> str:
        return type(self.cause).__name__
