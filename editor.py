"""Revision stage: plan improvements from the critique, then rewrite the post."""

from __future__ import annotations

import json
from typing import Any

from contracts import BOOLEAN, OBJECT, SEQUENCE, STRING, Field, Shape
from models import CHANGE_TYPES, ChangeLogEntry, CritiqueRecord, RevisedMetadata, RevisedRecord
from stage import Generator, Stage
from text_metrics import WORDS_PER_MINUTE, reading_time, word_count

TITLE_CHANGES_SHAPE = Shape(
    "title_changes",
    (
        Field("shouldChange", BOOLEAN),
        Field("reason", STRING),
        Field("newTitle", STRING, required=False),
    ),
)

STRUCTURAL_CHANGE_SHAPE = Shape(
    "structural_change",
    (
        Field("type", STRING),
        Field("location", STRING),
        Field("change", STRING),
    ),
)

SEO_OPTIMIZATIONS_SHAPE = Shape(
    "seo_optimizations",
    (
        Field("keywords", SEQUENCE, items=STRING),
        Field("metaDescription", STRING),
    ),
)

IMPROVEMENT_PLAN_SHAPE = Shape(
    "improvement_plan",
    (
        Field("titleChanges", OBJECT, required=False, shape=TITLE_CHANGES_SHAPE),
        Field("structuralChanges", SEQUENCE, required=False, items=STRUCTURAL_CHANGE_SHAPE),
        Field("styleImprovements", SEQUENCE, required=False, items=STRING),
        Field("seoOptimizations", OBJECT, shape=SEO_OPTIMIZATIONS_SHAPE),
    ),
)

PLAN_SHAPE = Shape("revision_plan", (Field("improvementPlan", OBJECT, shape=IMPROVEMENT_PLAN_SHAPE),))

CHANGE_SHAPE = Shape(
    "change_log_entry",
    (
        Field("type", STRING, choices=CHANGE_TYPES),
        Field("description", STRING),
        Field("before", STRING, required=False),
        Field("after", STRING, required=False),
    ),
)

REVISION_SHAPE = Shape(
    "revision",
    (
        Field("title", STRING),
        Field("content", STRING),
        Field("keyTakeaways", SEQUENCE, required=False, items=STRING),
        Field("changeLog", SEQUENCE, items=CHANGE_SHAPE),
    ),
)


def build_planning_prompt(record: CritiqueRecord) -> str:
    draft = record.draft
    issues = "\n".join(
        f"- {issue.type.upper()} ({issue.severity.value}): {issue.issue}\n  Suggestion: {issue.suggestion}"
        for issue in record.content_issues
    )
    seo = {
        "keywordUsage": record.seo_analysis.keyword_usage,
        "headingStructure": record.seo_analysis.heading_structure,
        "metaDescription": record.seo_analysis.meta_description,
        "suggestedKeywords": list(record.seo_analysis.suggested_keywords),
    }
    return f"""You are a professional content editor improving a blog post about "{record.topic}".
Review the critique and plan improvements to the content.

Current Title: {draft.title}
Target Audience: {draft.metadata.target_audience}

Critique Overview:
- Overall Score: {record.overall_score}/10
- Strengths: {", ".join(record.feedback.strengths)}
- Weaknesses: {", ".join(record.feedback.weaknesses)}
- Suggestions: {", ".join(record.feedback.suggestions)}

Content Issues:
{issues or "No specific issues reported."}

SEO Analysis:
{json.dumps(seo, indent=2)}

Original Content:
{draft.content}

You must respond with a valid JSON object using this exact structure:
{{
    "improvementPlan": {{
        "titleChanges": {{
            "shouldChange": boolean,
            "reason": "reason for changing or keeping title",
            "newTitle": "new title if should change"
        }},
        "structuralChanges": [
            {{
                "type": "addition|modification|deletion",
                "location": "where in the content",
                "change": "what to change"
            }}
        ],
        "styleImprovements": [
            "improvement 1",
            "improvement 2"
        ],
        "seoOptimizations": {{
            "keywords": ["keyword 1", "keyword 2"],
            "metaDescription": "optimized meta description"
        }}
    }}
}}

Remember: Your entire response must be a valid JSON object."""


def build_editing_prompt(record: CritiqueRecord, plan: dict[str, Any]) -> str:
    return f"""You are improving a blog post based on the following improvement plan:
{json.dumps(plan, indent=2)}

Current Title: {record.draft.title}

Original Content:
{record.draft.content}

You must respond with a valid JSON object using this exact structure:
{{
    "title": "final title",
    "content": "improved content in markdown format",
    "keyTakeaways": ["key point 1", "key point 2", "key point 3"],
    "changeLog": [
        {{
            "type": "title|content|structure|seo",
            "description": "what was changed",
            "before": "original text if applicable",
            "after": "new text if applicable"
        }}
    ]
}}

Guidelines:
1. Maintain the original voice and style while improving clarity
2. Ensure all changes align with the critique feedback
3. Optimize for both readability and SEO
4. Keep the content focused and engaging
5. Preserve valuable original content while fixing issues
6. Use markdown formatting appropriately

Remember: Your entire response must be a valid JSON object."""


def build_change_log(entries: list[dict[str, Any]], old_title: str, new_title: str) -> tuple[ChangeLogEntry, ...]:
    """Model-reported changes, plus a title entry when the title moved but none was reported."""
    change_log = [
        ChangeLogEntry(
            type=entry["type"],
            description=entry["description"],
            before=entry["before"],
            after=entry["after"],
        )
        for entry in entries
    ]
    if new_title != old_title and not any(entry.type == "title" for entry in change_log):
        change_log.append(
            ChangeLogEntry(type="title", description="Title revised", before=old_title, after=new_title)
        )
    return tuple(change_log)


class RevisionStage(Stage):
    name = "editor"
    display_name = "Content Editor"

    def __init__(self, generator: Generator, words_per_minute: int = WORDS_PER_MINUTE):
        super().__init__(generator)
        self.words_per_minute = words_per_minute

    def execute(self, record: CritiqueRecord) -> RevisedRecord:
        plan = self.ask(build_planning_prompt(record), PLAN_SHAPE)
        revision = self.ask(build_editing_prompt(record, plan), REVISION_SHAPE, preserve_field="content")

        draft = record.draft
        seo = plan["improvementPlan"]["seoOptimizations"]
        content = revision["content"]
        metadata = RevisedMetadata(
            word_count=word_count(content),
            reading_time=reading_time(content, self.words_per_minute),
            target_audience=draft.metadata.target_audience,
            key_takeaways=tuple(revision["keyTakeaways"]) or draft.metadata.key_takeaways,
            sources=draft.metadata.sources,
            meta_description=seo["metaDescription"],
            keywords=tuple(seo["keywords"]),
        )
        return RevisedRecord(
            topic=record.topic,
            title=revision["title"],
            content=content,
            metadata=metadata,
            change_log=build_change_log(revision["changeLog"], draft.title, revision["title"]),
        )
