from __future__ import annotations

import pytest

from editor import RevisionStage, build_change_log
from errors import ContractViolation
from fakes import ScriptedGenerator, sample_critique

PLAN = {
    "improvementPlan": {
        "titleChanges": {"shouldChange": True, "reason": "weak", "newTitle": "Edge AI: A Field Guide"},
        "structuralChanges": [{"type": "addition", "location": "end", "change": "add outlook"}],
        "styleImprovements": ["shorter sentences"],
        "seoOptimizations": {"keywords": ["edge ai", "on-device"], "metaDescription": "A guide to edge AI"},
    }
}


def _revision(**overrides: object) -> dict:
    revision = {
        "title": "Edge AI: A Field Guide",
        "content": " ".join(["word"] * 210),
        "keyTakeaways": ["Run it locally"],
        "changeLog": [{"type": "content", "description": "Added outlook", "after": "Outlook section"}],
    }
    revision.update(overrides)
    return revision


def test_revision_record_merges_plan_and_rewrite() -> None:
    generator = ScriptedGenerator(PLAN, _revision())

    revised = RevisionStage(generator).execute(sample_critique())

    assert revised.topic == "Edge AI"
    assert revised.title == "Edge AI: A Field Guide"
    assert revised.metadata.word_count == 210
    assert revised.metadata.reading_time == 2
    assert revised.metadata.meta_description == "A guide to edge AI"
    assert revised.metadata.keywords == ("edge ai", "on-device")
    assert revised.metadata.key_takeaways == ("Run it locally",)
    assert revised.metadata.sources == ("https://a.example",)
    assert revised.metadata.target_audience == "Developers"


def test_title_change_is_always_logged() -> None:
    generator = ScriptedGenerator(PLAN, _revision())

    revised = RevisionStage(generator).execute(sample_critique())

    title_entries = [entry for entry in revised.change_log if entry.type == "title"]
    assert len(title_entries) == 1
    assert title_entries[0].before == "Edge AI in 2024"
    assert title_entries[0].after == "Edge AI: A Field Guide"


def test_reported_title_change_is_not_duplicated() -> None:
    entries = [{"type": "title", "description": "Sharper title", "before": "Old", "after": "New"}]

    change_log = build_change_log(entries, "Old", "New")

    assert len(change_log) == 1
    assert change_log[0].description == "Sharper title"


def test_unchanged_title_adds_no_entry() -> None:
    assert build_change_log([], "Same", "Same") == ()


def test_takeaways_fall_back_to_draft() -> None:
    generator = ScriptedGenerator(PLAN, _revision(keyTakeaways=None))

    revised = RevisionStage(generator).execute(sample_critique())

    assert revised.metadata.key_takeaways == ("Local inference is practical",)


def test_planning_prompt_lists_issues_and_rewrite_prompt_includes_plan() -> None:
    generator = ScriptedGenerator(PLAN, _revision())

    RevisionStage(generator).execute(sample_critique())

    assert "ACCURACY (high): No numbers" in generator.prompts[0]
    assert "add outlook" in generator.prompts[1]


def test_invalid_change_type_is_rejected() -> None:
    generator = ScriptedGenerator(PLAN, _revision(changeLog=[{"type": "tone", "description": "x"}]))

    with pytest.raises(ContractViolation, match=r"changeLog\[0\].type"):
        RevisionStage(generator).execute(sample_critique())


def test_plan_without_seo_optimizations_is_rejected() -> None:
    plan = {"improvementPlan": {"styleImprovements": []}}

    with pytest.raises(ContractViolation, match="improvementPlan.seoOptimizations: missing"):
        RevisionStage(ScriptedGenerator(plan)).execute(sample_critique())
