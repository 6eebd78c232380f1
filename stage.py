"""Stage base class and the collaborator interfaces stages depend on."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from contracts import Shape, validate, validate_sequence
from errors import ContractViolation, ExtractionError
from json_extract import extract_with_attempt
from models import SearchResult

LOGGER = logging.getLogger(__name__)


class Generator(Protocol):
    def generate(self, prompt: str) -> str: ...


class Searcher(Protocol):
    def search(self, query: str, max_results: int) -> list[SearchResult]: ...


class Stage:
    """One ordered unit of the content pipeline.

    Subclasses set ``name`` (the stage identity used in spans and errors) and
    implement ``execute``. A stage keeps only its fixed configuration, so one
    instance can serve any number of runs. Any extraction, contract or
    collaborator failure propagates immediately; there is no partial record.
    """

    name = "stage"
    display_name = "Stage"

    def __init__(self, generator: Generator):
        self.generator = generator

    def execute(self, record: Any) -> Any:
        raise NotImplementedError

    def _generate_json(self, prompt: str, label: str, preserve_field: str | None) -> Any:
        raw = self.generator.generate(prompt)
        try:
            value, attempt = extract_with_attempt(raw, preserve_field)
        except ExtractionError as exc:
            LOGGER.warning(
                "Stage %s: %s response held no JSON (strategies=%s)",
                self.name,
                label,
                ", ".join(exc.attempted_strategies),
            )
            raise
        LOGGER.debug("Stage %s: %s response parsed via strategy=%s", self.name, label, attempt.strategy)
        return value

    def ask(self, prompt: str, shape: Shape, preserve_field: str | None = None) -> dict[str, Any]:
        """One generation call whose answer must be a JSON object matching shape."""
        value = self._generate_json(prompt, shape.name, preserve_field)
        try:
            return validate(shape, value)
        except ContractViolation as exc:
            LOGGER.warning("Stage %s: %s", self.name, exc)
            raise

    def ask_sequence(self, prompt: str, item_shape: Shape) -> list[dict[str, Any]]:
        """One generation call whose answer must be a JSON array of item_shape objects."""
        value = self._generate_json(prompt, item_shape.name, None)
        try:
            return validate_sequence(item_shape, value)
        except ContractViolation as exc:
            LOGGER.warning("Stage %s: %s", self.name, exc)
            raise
