"""Publication stage: format the post for Jekyll and hand it to the publication sink."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import date
from typing import Protocol

from contracts import STRING, Field, Shape
from jekyll_sink import Publication
from models import PublishedMetadata, PublishedRecord, RevisedRecord, record_to_dict
from stage import Generator, Stage
from text_metrics import slugify

FORMAT_SHAPE = Shape(
    "formatted_post",
    (
        Field("formattedContent", STRING),
        Field("excerpt", STRING),
    ),
)


class PublicationSink(Protocol):
    def publish(self, document: str, slug: str, date: str, title: str | None = None) -> Publication: ...


def build_formatting_prompt(record: RevisedRecord) -> str:
    metadata = json.dumps(record_to_dict(record.metadata), indent=2)
    return f"""You are preparing a blog post for publication in Jekyll-compatible markdown format.
Create a properly formatted markdown file with frontmatter for the following content.

Title: {record.title}
Topic: {record.topic}
Metadata:
{metadata}

Content:
{record.content}

You must respond with a valid JSON object using this exact structure:
{{
    "formattedContent": "complete markdown content with Jekyll frontmatter",
    "excerpt": "brief excerpt for the blog post"
}}

Guidelines:
1. Include Jekyll frontmatter with layout: post
2. Add all metadata in the frontmatter
3. Format content in proper markdown
4. Generate a brief excerpt
5. Include proper attribution for sources
6. Add categories and tags based on keywords

Remember: Your entire response must be a valid JSON object."""


def build_front_matter(record: RevisedRecord, published_date: str, excerpt: str) -> str:
    # JSON strings are valid YAML double-quoted scalars.
    lines = [
        "---",
        "layout: post",
        f"title: {json.dumps(record.title)}",
        f"date: {published_date}",
        f"description: {json.dumps(record.metadata.meta_description)}",
        f"excerpt: {json.dumps(excerpt)}",
        f"tags: {json.dumps(list(record.metadata.keywords))}",
        f"reading_time: {record.metadata.reading_time}",
        "---",
    ]
    return "\n".join(lines) + "\n"


def ensure_front_matter(document: str, record: RevisedRecord, published_date: str, excerpt: str) -> str:
    """Prepend a front matter block when the formatted document has none."""
    if document.lstrip().startswith("---"):
        return document
    return f"{build_front_matter(record, published_date, excerpt)}\n{document}"


class PublicationStage(Stage):
    name = "publisher"
    display_name = "Content Publisher"

    def __init__(self, generator: Generator, sink: PublicationSink, clock: Callable[[], date] = date.today):
        super().__init__(generator)
        self.sink = sink
        self.clock = clock

    def execute(self, record: RevisedRecord) -> PublishedRecord:
        formatted = self.ask(build_formatting_prompt(record), FORMAT_SHAPE, preserve_field="formattedContent")

        published_date = self.clock().isoformat()
        document = ensure_front_matter(formatted["formattedContent"], record, published_date, formatted["excerpt"])
        publication = self.sink.publish(document, slugify(record.title), published_date, title=record.title)

        metadata = record.metadata
        return PublishedRecord(
            topic=record.topic,
            title=record.title,
            file_path=publication.path,
            published_date=published_date,
            url=publication.url,
            excerpt=formatted["excerpt"],
            metadata=PublishedMetadata(
                word_count=metadata.word_count,
                reading_time=metadata.reading_time,
                target_audience=metadata.target_audience,
                key_takeaways=metadata.key_takeaways,
                sources=metadata.sources,
                meta_description=metadata.meta_description,
                keywords=metadata.keywords,
                published_date=published_date,
                last_modified=published_date,
            ),
        )
