"""Drafting stage: plan a structure, then write the full post in markdown."""

from __future__ import annotations

import json

from contracts import SEQUENCE, STRING, Field, Shape
from models import CuratedRecord, DraftMetadata, DraftRecord, OutlineSection
from stage import Generator, Stage
from text_metrics import WORDS_PER_MINUTE, reading_time, word_count

OUTLINE_SECTION_SHAPE = Shape(
    "outline_section",
    (
        Field("section", STRING),
        Field("key_points", SEQUENCE, items=STRING),
    ),
)

STRUCTURE_SHAPE = Shape(
    "post_structure",
    (
        Field("title", STRING),
        Field("targetAudience", STRING),
        Field("outline", SEQUENCE, items=OUTLINE_SECTION_SHAPE),
    ),
)

DRAFT_SHAPE = Shape(
    "post_draft",
    (
        Field("content", STRING),
        Field("keyTakeaways", SEQUENCE, required=False, items=STRING),
    ),
)


def build_structure_prompt(record: CuratedRecord) -> str:
    angles = "\n".join(record.suggested_angles)
    return f"""You are a professional blog writer creating a post about "{record.topic}".
Based on the following curated information and suggested angles, create a blog post structure and title.

Curated Summary:
{record.curated_summary}

Suggested Angles:
{angles}

You must respond with a valid JSON object using this exact structure:
{{
    "title": "engaging blog post title",
    "targetAudience": "description of target audience",
    "outline": [
        {{
            "section": "section name",
            "key_points": ["point 1", "point 2", ...]
        }},
        ...
    ]
}}

Remember: Your entire response must be a valid JSON object."""


def build_writing_prompt(record: CuratedRecord, structure: dict[str, object]) -> str:
    sources = "\n".join(
        f"Title: {result.title}\nContent: {result.snippet}\nRelevance: {result.relevance_score}\n"
        f"Reason: {result.reason}\nURL: {result.link}\n---"
        for result in record.selected_results
    )
    return f"""You are writing a professional blog post about "{record.topic}".
Use the following structure and source material to write a comprehensive, engaging post.

Title: {structure["title"]}
Target Audience: {structure["targetAudience"]}

Structure:
{json.dumps(structure["outline"], indent=2)}

Source Material:
{sources}

You must respond with a valid JSON object using this exact structure:
{{
    "content": "full blog post content in markdown format",
    "keyTakeaways": ["key point 1", "key point 2", "key point 3"]
}}

Guidelines:
1. Write in a clear, engaging style
2. Include relevant statistics and quotes from sources
3. Use markdown formatting for headers, lists, etc.
4. Aim for ~1000-1500 words
5. Include proper attribution for sources
6. Break up text with subheadings for readability

Remember: Your entire response must be a valid JSON object."""


class WritingStage(Stage):
    name = "writer"
    display_name = "Blog Writer"

    def __init__(self, generator: Generator, words_per_minute: int = WORDS_PER_MINUTE):
        super().__init__(generator)
        self.words_per_minute = words_per_minute

    def execute(self, record: CuratedRecord) -> DraftRecord:
        structure = self.ask(build_structure_prompt(record), STRUCTURE_SHAPE)
        draft = self.ask(build_writing_prompt(record, structure), DRAFT_SHAPE, preserve_field="content")

        content = draft["content"]
        metadata = DraftMetadata(
            word_count=word_count(content),
            reading_time=reading_time(content, self.words_per_minute),
            target_audience=structure["targetAudience"],
            key_takeaways=tuple(draft["keyTakeaways"]),
            sources=tuple(result.link for result in record.selected_results),
        )
        return DraftRecord(
            topic=record.topic,
            title=structure["title"],
            content=content,
            outline=tuple(
                OutlineSection(section=item["section"], key_points=tuple(item["key_points"]))
                for item in structure["outline"]
            ),
            metadata=metadata,
        )
