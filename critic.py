"""Critique stage: structured review of the draft."""

from __future__ import annotations

from contracts import NUMBER, OBJECT, SEQUENCE, STRING, Field, Shape
from models import (
    ISSUE_TYPES,
    CritiqueIssue,
    CritiqueRecord,
    DraftRecord,
    Feedback,
    SeoAnalysis,
    Severity,
)
from stage import Stage

FEEDBACK_SHAPE = Shape(
    "feedback",
    (
        Field("strengths", SEQUENCE, items=STRING),
        Field("weaknesses", SEQUENCE, items=STRING),
        Field("suggestions", SEQUENCE, items=STRING),
    ),
)

ISSUE_SHAPE = Shape(
    "content_issue",
    (
        Field("type", STRING, choices=ISSUE_TYPES),
        Field("severity", STRING, choices=tuple(severity.value for severity in Severity)),
        Field("location", STRING),
        Field("issue", STRING),
        Field("suggestion", STRING),
    ),
)

SEO_SHAPE = Shape(
    "seo_analysis",
    (
        Field("keywordUsage", STRING),
        Field("headingStructure", STRING),
        Field("metaDescription", STRING),
        Field("suggestedKeywords", SEQUENCE, items=STRING),
    ),
)

CRITIQUE_SHAPE = Shape(
    "critique",
    (
        Field("overallScore", NUMBER),
        Field("feedback", OBJECT, shape=FEEDBACK_SHAPE),
        Field("contentIssues", SEQUENCE, items=ISSUE_SHAPE),
        Field("seoAnalysis", OBJECT, shape=SEO_SHAPE),
    ),
)


def build_critique_prompt(draft: DraftRecord) -> str:
    metadata = draft.metadata
    takeaways = "\n".join(metadata.key_takeaways) or "No key takeaways provided"
    sources = "\n".join(metadata.sources) or "No sources provided"
    issue_types = ", ".join(f'"{issue_type}"' for issue_type in ISSUE_TYPES)
    return f"""You are a professional content critic reviewing a blog post about "{draft.topic}".
Analyze this content for structure, clarity, accuracy, style, SEO, and reader engagement.

Title: {draft.title}
Target Audience: {metadata.target_audience}
Content:
{draft.content}

Key Takeaways:
{takeaways}

Sources:
{sources}

You must respond with a valid JSON object using this exact structure:
{{
    "overallScore": number between 0 and 10,
    "feedback": {{
        "strengths": ["strength 1", "strength 2", ...],
        "weaknesses": ["weakness 1", "weakness 2", ...],
        "suggestions": ["suggestion 1", "suggestion 2", ...]
    }},
    "contentIssues": [
        {{
            "type": one of [{issue_types}],
            "severity": one of ["low", "medium", "high"],
            "location": "specific location in the content",
            "issue": "description of the issue",
            "suggestion": "specific suggestion for improvement"
        }}
    ],
    "seoAnalysis": {{
        "keywordUsage": "analysis of keyword usage and density",
        "headingStructure": "analysis of heading hierarchy and structure",
        "metaDescription": "suggested meta description for the blog post",
        "suggestedKeywords": ["keyword 1", "keyword 2", ...]
    }}
}}

Guidelines for critique:
1. Be specific and actionable in your feedback
2. Consider the target audience
3. Evaluate source usage and citation
4. Check for logical flow and transitions
5. Assess SEO optimization
6. Evaluate engagement factors

Remember: Your entire response must be a valid JSON object."""


class CritiqueStage(Stage):
    name = "critiquer"
    display_name = "Content Critiquer"

    def execute(self, record: DraftRecord) -> CritiqueRecord:
        critique = self.ask(build_critique_prompt(record), CRITIQUE_SHAPE)

        feedback = critique["feedback"]
        seo = critique["seoAnalysis"]
        return CritiqueRecord(
            topic=record.topic,
            draft=record,
            overall_score=critique["overallScore"],
            feedback=Feedback(
                strengths=tuple(feedback["strengths"]),
                weaknesses=tuple(feedback["weaknesses"]),
                suggestions=tuple(feedback["suggestions"]),
            ),
            content_issues=tuple(
                CritiqueIssue(
                    type=issue["type"],
                    severity=Severity(issue["severity"]),
                    location=issue["location"],
                    issue=issue["issue"],
                    suggestion=issue["suggestion"],
                )
                for issue in critique["contentIssues"]
            ),
            seo_analysis=SeoAnalysis(
                keyword_usage=seo["keywordUsage"],
                heading_structure=seo["headingStructure"],
                meta_description=seo["metaDescription"],
                suggested_keywords=tuple(seo["suggestedKeywords"]),
            ),
        )
