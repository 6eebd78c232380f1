"""Research stage: web search plus a research summary for the topic."""

from __future__ import annotations

import logging

from contracts import STRING, Field, Shape
from models import ResearchRecord, SearchResult
from stage import Generator, Searcher, Stage

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 5

SUMMARY_SHAPE = Shape("research_summary", (Field("summary", STRING),))


def build_summary_prompt(topic: str, results: list[SearchResult]) -> str:
    sources = "\n".join(f"{result.title}\n{result.snippet}\n" for result in results)
    return f"""Based on these search results about "{topic}", provide a comprehensive summary that could be used as research for writing a blog post:

{sources or "No search results were found."}

You must respond with a valid JSON object using this exact structure:
{{
    "summary": "your comprehensive research summary"
}}

Remember: Your entire response must be a valid JSON object."""


class ResearchStage(Stage):
    name = "researcher"
    display_name = "Topic Researcher"

    def __init__(self, generator: Generator, searcher: Searcher, max_results: int = DEFAULT_MAX_RESULTS):
        super().__init__(generator)
        self.searcher = searcher
        self.max_results = max_results

    def execute(self, topic: str) -> ResearchRecord:
        results = self.searcher.search(f"{topic} blog article research", self.max_results)
        if not isinstance(results, list):
            LOGGER.warning("Search returned %s instead of a list; treating as empty", type(results).__name__)
            results = []
        results = results[: self.max_results]
        if len(results) < self.max_results:
            LOGGER.info("Search returned %s of %s requested results", len(results), self.max_results)

        answer = self.ask(build_summary_prompt(topic, results), SUMMARY_SHAPE, preserve_field="summary")
        return ResearchRecord(topic=topic, search_results=tuple(results), summary=answer["summary"])
