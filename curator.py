"""Curation stage: score search results, keep the relevant ones, suggest angles."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from contracts import NUMBER, SEQUENCE, STRING, Field, Shape
from errors import ContractViolation
from models import CuratedRecord, ResearchRecord, ScoredResult, SearchResult
from stage import Generator, Stage

LOGGER = logging.getLogger(__name__)

RELEVANCE_THRESHOLD = 7
NO_REASON = "No reason provided"

SCORE_ITEM_SHAPE = Shape(
    "relevance_score",
    (
        Field("title", STRING, required=False),
        Field("relevanceScore", NUMBER),
        Field("reason", STRING),
    ),
)

CURATION_SHAPE = Shape(
    "curation",
    (
        Field("curatedSummary", STRING),
        Field("suggestedAngles", SEQUENCE, items=STRING),
    ),
)


def build_scoring_prompt(topic: str, results: Sequence[SearchResult]) -> str:
    listing = "\n".join(
        f"Title: {result.title}\nContent: {result.snippet}\nURL: {result.link}\n---" for result in results
    )
    return f"""You are a content curator evaluating search results for a blog post about "{topic}".
For each result, analyze its relevance, credibility, and uniqueness. Rate each on a scale of 0-10 and provide a brief reason.

You must respond with a valid JSON array containing one object per result, in the same order as the results:
[
    {{
        "title": "exact title from the result",
        "relevanceScore": number between 0 and 10,
        "reason": "brief explanation"
    }},
    ...
]

Here are the results to evaluate:
{listing}

Remember: Your entire response must be a valid JSON array."""


def build_curation_prompt(topic: str, selected: Sequence[ScoredResult]) -> str:
    listing = "\n".join(
        f"Title: {result.title}\nContent: {result.snippet}\n"
        f"Relevance: {result.relevance_score}\nReason: {result.reason}\n---"
        for result in selected
    )
    return f"""Based on these highly relevant search results about "{topic}", create a focused summary and suggest unique angles for the blog post.

You must respond with a valid JSON object using this exact structure:
{{
    "curatedSummary": "your detailed summary here",
    "suggestedAngles": ["angle 1", "angle 2", "angle 3"]
}}

Here are the selected results:
{listing or "No result scored high enough; rely on general knowledge of the topic."}

Remember: Your entire response must be a valid JSON object."""


def score_results(
    results: Sequence[SearchResult],
    scores: Sequence[dict[str, Any]],
    missing_score_policy: str = "zero",
) -> list[ScoredResult]:
    """Pair results with model scores by position.

    A result with no score entry gets relevance 0 under the "zero" policy
    (logged, never silent) and fails the stage under the "fail" policy.
    """
    if len(scores) > len(results):
        LOGGER.debug("Ignoring %s surplus score entries", len(scores) - len(results))

    scored: list[ScoredResult] = []
    for index, result in enumerate(results):
        if index < len(scores):
            relevance = scores[index]["relevanceScore"]
            reason = scores[index]["reason"]
        elif missing_score_policy == "fail":
            raise ContractViolation(
                SCORE_ITEM_SHAPE.name, [f"[{index}]: no score returned for {result.title!r}"]
            )
        else:
            LOGGER.warning("No score returned for result %s (%r); scoring it 0", index, result.title)
            relevance, reason = 0, NO_REASON
        scored.append(
            ScoredResult(
                title=result.title,
                snippet=result.snippet,
                link=result.link,
                relevance_score=relevance,
                reason=reason,
            )
        )
    return scored


def select_results(scored: Sequence[ScoredResult], threshold: float = RELEVANCE_THRESHOLD) -> list[ScoredResult]:
    """Keep results scoring >= threshold, highest first; ties keep retrieval order."""
    kept = [result for result in scored if result.relevance_score >= threshold]
    return sorted(kept, key=lambda result: result.relevance_score, reverse=True)


class CurationStage(Stage):
    name = "curator"
    display_name = "Content Curator"

    def __init__(
        self,
        generator: Generator,
        relevance_threshold: float = RELEVANCE_THRESHOLD,
        missing_score_policy: str = "zero",
    ):
        super().__init__(generator)
        self.relevance_threshold = relevance_threshold
        self.missing_score_policy = missing_score_policy

    def execute(self, record: ResearchRecord) -> CuratedRecord:
        results = list(record.search_results)
        if results:
            scores = self.ask_sequence(build_scoring_prompt(record.topic, results), SCORE_ITEM_SHAPE)
            scored = score_results(results, scores, self.missing_score_policy)
        else:
            LOGGER.info("No search results to score for topic=%r", record.topic)
            scored = []

        selected = select_results(scored, self.relevance_threshold)
        LOGGER.info(
            "Curation kept %s of %s results (threshold=%s)", len(selected), len(scored), self.relevance_threshold
        )

        curation = self.ask(build_curation_prompt(record.topic, selected), CURATION_SHAPE)
        return CuratedRecord(
            topic=record.topic,
            selected_results=tuple(selected),
            curated_summary=curation["curatedSummary"],
            suggested_angles=tuple(curation["suggestedAngles"]),
        )
