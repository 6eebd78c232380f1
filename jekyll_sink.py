"""Jekyll publication sink: writes posts under _posts/ and optionally pushes to GitHub Pages."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from config import PipelineConfig
from errors import CollaboratorError

LOGGER = logging.getLogger(__name__)

JEKYLL_CONFIG_TEMPLATE = """title: AI-Generated Blog
description: Automatically generated blog posts using AI
author: {author}
theme: minima
plugins:
  - jekyll-feed
  - jekyll-seo-tag

permalink: /:year/:month/:day/:title/
markdown: kramdown
kramdown:
  input: GFM
  syntax_highlighter: rouge

defaults:
  -
    scope:
      path: ""
      type: "posts"
    values:
      layout: "post"
      author: {author}
"""

HOMEPAGE = """---
layout: home
title: Welcome to Our Blog
---

Welcome to our AI-generated blog! Here you'll find interesting articles about various topics.
"""


@dataclass(frozen=True, slots=True)
class Publication:
    """Where a published document ended up."""

    path: str
    url: str


class JekyllSink:
    """Publication sink: publish(document, slug, date) -> Publication.

    Without a GitHub username the post is only written to disk and the URL is a
    file:// URI. With one, the site root is bootstrapped as a GitHub Pages repo
    on first use and every post is committed and pushed to origin/main.
    """

    def __init__(
        self,
        output_dir: str = "_posts",
        site_root: str | Path = ".",
        github_username: str | None = None,
        repo_name: str = "blog",
        runner: Callable[..., Any] = subprocess.run,
    ):
        self.site_root = Path(site_root)
        self.output_dir = self.site_root / output_dir
        self.github_username = github_username
        self.repo_name = repo_name
        self._run = runner

    @classmethod
    def from_config(cls, config: PipelineConfig) -> JekyllSink:
        return cls(
            output_dir=config.output_dir,
            github_username=config.github_username,
            repo_name=config.repo_name,
        )

    def publish(self, document: str, slug: str, date: str, title: str | None = None) -> Publication:
        if self.github_username:
            self._initialize_github_pages()

        path = self.output_dir / f"{date}-{slug}.md"
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(document, encoding="utf-8")
        except OSError as exc:
            raise CollaboratorError(f"Could not write post to {path}: {exc}") from exc
        LOGGER.info("Wrote post to %s", path)

        if self.github_username:
            self._git("add", ".")
            self._git("commit", "-m", f"Published: {title or slug}")
            self._git("push", "origin", "main")
            LOGGER.info("Pushed %s to %s/%s", path.name, self.github_username, self.repo_name)

        return Publication(path=str(path), url=self.post_url(slug, date, path))

    def post_url(self, slug: str, date: str, path: Path) -> str:
        if self.github_username:
            return f"https://{self.github_username}.github.io/{self.repo_name}/{date.replace('-', '/')}/{slug}"
        return path.resolve().as_uri()

    def _initialize_github_pages(self) -> None:
        config_path = self.site_root / "_config.yml"
        index_path = self.site_root / "index.md"
        try:
            if not config_path.exists():
                config_path.write_text(JEKYLL_CONFIG_TEMPLATE.format(author=self.github_username), encoding="utf-8")
                LOGGER.info("Created Jekyll config at %s", config_path)
            if not index_path.exists():
                index_path.write_text(HOMEPAGE, encoding="utf-8")
        except OSError as exc:
            raise CollaboratorError(f"Could not bootstrap Jekyll site in {self.site_root}: {exc}") from exc

        try:
            self._git("status")
        except CollaboratorError:
            self._git("init")
            self._git(
                "remote",
                "add",
                "origin",
                f"https://github.com/{self.github_username}/{self.repo_name}.git",
            )

    def _git(self, *args: str) -> None:
        try:
            self._run(["git", *args], cwd=self.site_root, check=True, capture_output=True, text=True)
        except (subprocess.CalledProcessError, OSError) as exc:
            raise CollaboratorError(f"git {' '.join(args)} failed: {exc}") from exc
