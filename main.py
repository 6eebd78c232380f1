"""CLI entrypoint for the blog bot: research -> curate -> write -> critique -> edit -> publish."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Callable, Sequence

from dotenv import load_dotenv

from anthropic_client import AnthropicGenerator
from config import PipelineConfig
from critic import CritiqueStage
from curator import CurationStage
from editor import RevisionStage
from errors import ConfigurationError, PipelineError
from jekyll_sink import JekyllSink
from llm_client import OpenAIGenerator
from models import record_to_dict
from pipeline import run_pipeline
from publisher import PublicationStage
from researcher import ResearchStage
from search_client import TavilySearchClient
from stage import Generator, Stage
from tracing import tracer_from_config
from writer import WritingStage

DEFAULT_TOPIC = "artificial intelligence trends 2024"

STAGE_NAMES = ("researcher", "curator", "writer", "critiquer", "editor", "publisher")

# None leaves the provider default; writing and formatting run warmer.
STAGE_TEMPERATURES: dict[str, float | None] = {
    "researcher": None,
    "curator": None,
    "writer": 0.7,
    "critiquer": None,
    "editor": None,
    "publisher": 1.0,
}


def make_generator(config: PipelineConfig, temperature: float | None) -> Generator:
    """One fresh generator per stage; raises ConfigurationError if the provider key is missing."""
    if config.llm_provider == "anthropic":
        return AnthropicGenerator.from_config(config, temperature=temperature)
    return OpenAIGenerator.from_config(config, temperature=temperature)


def build_stages(config: PipelineConfig, until: str | None = None) -> list[Stage]:
    """Construct the default stage list, optionally stopping after the stage named `until`.

    Every collaborator is constructed here, so missing credentials surface
    before any stage runs.
    """

    def generator(name: str) -> Generator:
        return make_generator(config, STAGE_TEMPERATURES[name])

    factories: list[tuple[str, Callable[[], Stage]]] = [
        (
            "researcher",
            lambda: ResearchStage(
                generator("researcher"),
                TavilySearchClient.from_config(config),
                max_results=config.search_max_results,
            ),
        ),
        (
            "curator",
            lambda: CurationStage(
                generator("curator"),
                relevance_threshold=config.relevance_threshold,
                missing_score_policy=config.missing_score_policy,
            ),
        ),
        ("writer", lambda: WritingStage(generator("writer"), words_per_minute=config.words_per_minute)),
        ("critiquer", lambda: CritiqueStage(generator("critiquer"))),
        ("editor", lambda: RevisionStage(generator("editor"), words_per_minute=config.words_per_minute)),
        ("publisher", lambda: PublicationStage(generator("publisher"), JekyllSink.from_config(config))),
    ]

    if until is not None and until not in STAGE_NAMES:
        raise ConfigurationError(f"Unknown stage {until!r}; expected one of {', '.join(STAGE_NAMES)}")

    stages: list[Stage] = []
    for name, factory in factories:
        stages.append(factory())
        if name == until:
            break
    return stages


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Research, write, review and publish a blog post on a topic")
    parser.add_argument("topic", nargs="?", default=DEFAULT_TOPIC, help="Topic for the blog post")
    parser.add_argument("--output-dir", default=None, help="Directory for published posts (default: _posts)")
    parser.add_argument("--github-username", default=None, help="Publish to <username>.github.io via git push")
    parser.add_argument("--repo-name", default=None, help="GitHub Pages repository name (default: blog)")
    parser.add_argument(
        "--until",
        choices=STAGE_NAMES,
        default=None,
        help="Stop after this stage and print its record",
    )
    parser.add_argument("--trace-file", default=None, help="Append one JSON line per stage span to this file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _apply_overrides(config: PipelineConfig, args: argparse.Namespace) -> PipelineConfig:
    overrides = {
        "output_dir": args.output_dir,
        "github_username": args.github_username,
        "repo_name": args.repo_name,
        "trace_file": args.trace_file,
    }
    return config.replace(**{key: value for key, value in overrides.items() if value is not None})


def main(argv: Sequence[str] | None = None) -> int:
    """Initialize config, build the stages and run the pipeline once."""
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        config = _apply_overrides(PipelineConfig.from_env(), args)
        stages = build_stages(config, until=args.until)
        result = run_pipeline(
            stages,
            args.topic,
            tracer=tracer_from_config(config),
            max_attempts=config.stage_max_attempts,
            retry_backoff_seconds=config.stage_retry_backoff_seconds,
        )
    except (ConfigurationError, PipelineError) as exc:
        logging.error("%s", exc)
        return 1

    print(json.dumps(record_to_dict(result), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
