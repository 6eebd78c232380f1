"""Tavily web search client used by the research stage."""

from __future__ import annotations

import logging
from typing import Any

import requests

from config import PipelineConfig
from errors import CollaboratorError
from models import SearchResult

TAVILY_API_URL = "https://api.tavily.com/search"
REQUEST_TIMEOUT_SECONDS = 30

LOGGER = logging.getLogger(__name__)


class TavilySearchClient:
    """search(query, max_results) -> list[SearchResult] over the Tavily REST API."""

    def __init__(self, api_key: str, timeout_seconds: float = REQUEST_TIMEOUT_SECONDS):
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(cls, config: PipelineConfig) -> TavilySearchClient:
        """Raises ConfigurationError right away when TAVILY_API_KEY is missing."""
        return cls(api_key=config.require("tavily_api_key"))

    def search(self, query: str, max_results: int) -> list[SearchResult]:
        payload = {
            "query": query,
            "max_results": max_results,
            "include_raw_content": False,
            "include_images": False,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        LOGGER.info("Searching Tavily: query=%r max_results=%s", query, max_results)
        try:
            response = requests.post(
                TAVILY_API_URL,
                headers=headers,
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as exc:
            raise CollaboratorError(f"Tavily search failed: {exc}") from exc
        except ValueError as exc:
            raise CollaboratorError("Tavily returned a non-JSON body") from exc

        return parse_search_payload(body)


def parse_search_payload(body: Any) -> list[SearchResult]:
    """Normalize a Tavily response body; malformed entries are skipped."""
    results = body.get("results") if isinstance(body, dict) else None
    if not isinstance(results, list):
        LOGGER.warning("Tavily response had no results list")
        return []

    parsed: list[SearchResult] = []
    for item in results:
        if not isinstance(item, dict):
            continue
        title = _as_text(item.get("title"))
        link = _as_text(item.get("url"))
        if not title and not link:
            continue
        parsed.append(SearchResult(title=title, snippet=_as_text(item.get("content")), link=link))
    return parsed


def _as_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""
