from __future__ import annotations

import pytest

from errors import ContractViolation
from fakes import ScriptedGenerator
from models import CuratedRecord, ScoredResult
from writer import WritingStage

CURATED = CuratedRecord(
    topic="Edge AI",
    selected_results=(
        ScoredResult(title="Chips", snippet="NPUs ship", link="https://a.example", relevance_score=9, reason="r"),
        ScoredResult(title="Apps", snippet="On-device", link="https://b.example", relevance_score=8, reason="r"),
    ),
    curated_summary="Edge AI is growing.",
    suggested_angles=("Privacy", "Latency"),
)

STRUCTURE = {
    "title": "Edge AI in 2024",
    "targetAudience": "Developers",
    "outline": [{"section": "Intro", "key_points": ["why", "what"]}, {"section": "Outlook", "key_points": []}],
}


def test_draft_metrics_are_computed_from_content() -> None:
    content = " ".join(["word"] * 450)
    generator = ScriptedGenerator(STRUCTURE, {"content": content, "keyTakeaways": ["one"]})

    draft = WritingStage(generator).execute(CURATED)

    assert draft.title == "Edge AI in 2024"
    assert draft.content == content
    assert draft.metadata.word_count == 450
    assert draft.metadata.reading_time == 3
    assert draft.metadata.target_audience == "Developers"
    assert draft.metadata.key_takeaways == ("one",)
    assert draft.metadata.sources == ("https://a.example", "https://b.example")
    assert draft.outline[0].section == "Intro"
    assert draft.outline[0].key_points == ("why", "what")


def test_second_call_sees_structure() -> None:
    generator = ScriptedGenerator(STRUCTURE, {"content": "Body"})

    draft = WritingStage(generator).execute(CURATED)

    assert len(generator.prompts) == 2
    assert "Title: Edge AI in 2024" in generator.prompts[1]
    assert "https://b.example" in generator.prompts[1]
    assert draft.metadata.key_takeaways == ()


def test_markdown_content_survives_broken_json() -> None:
    content = '# Edge AI\n\nModels "run" locally,\n- fast\n- private'
    raw = '```json\n{\n"content": "' + content + '",\n"keyTakeaways": ["fast",],\n}\n```'
    generator = ScriptedGenerator(STRUCTURE, raw)

    draft = WritingStage(generator).execute(CURATED)

    assert draft.content == content
    assert draft.metadata.key_takeaways == ("fast",)


def test_structure_without_title_fails() -> None:
    generator = ScriptedGenerator({"targetAudience": "Devs", "outline": []})

    with pytest.raises(ContractViolation, match="title: missing"):
        WritingStage(generator).execute(CURATED)

    assert len(generator.prompts) == 1


def test_custom_reading_rate() -> None:
    generator = ScriptedGenerator(STRUCTURE, {"content": " ".join(["w"] * 250)})

    draft = WritingStage(generator, words_per_minute=100).execute(CURATED)

    assert draft.metadata.reading_time == 3


def test_code_heavy_content_and_takeaways_survive_intact() -> None:
    content = (
        "## Reading config\n\n"
        'value = cfg["name"]\n\n'
        'print("}")\n\n'
        "Close every brace you open."
    )
    raw = '{"content": "' + content + '", "keyTakeaways": ["Subscripts are fine", "Braces too"]}'
    generator = ScriptedGenerator(STRUCTURE, raw)

    draft = WritingStage(generator).execute(CURATED)

    assert draft.content == content
    assert draft.metadata.key_takeaways == ("Subscripts are fine", "Braces too")
    assert draft.metadata.word_count == len(content.split())
