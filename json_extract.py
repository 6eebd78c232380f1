"""Recover structured JSON from free-form model output.

Generative backends give no structural guarantee: answers arrive wrapped in
prose, inside markdown fences, with trailing commas, over-escaped quotes or
literal newlines inside string values. ``extract`` runs an ordered cascade of
strategies, least destructive first, and returns the first successful parse.

Strategies
----------
direct        json.loads on the raw text, verbatim.
fenced_block  the first ```/```json fence: interior verbatim, then normalized.
bracket_scan  the first balanced {...} or [...] span: verbatim, then normalized.
              With a preserved field the outermost span is tried first.
normalized    the whole text normalized, then bracket-scanned again.

Passing ``preserve_field`` (e.g. "content") switches every normalized parse to
the field-preserving variant: the field's literal value is lifted out intact,
the remaining JSON is repaired and parsed, and the value is spliced back in.
A fenced block lacking that field is skipped as a sample quoted in the value.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from json import JSONDecodeError
from typing import Any

from errors import ExtractionError

LOGGER = logging.getLogger(__name__)

PLACEHOLDER = "__PRESERVED_FIELD_VALUE__"

_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\r?\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_CLOSERS = {"{": "}", "[": "]"}


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"


# Distinguishes "nothing parsed" from a legitimate JSON null.
MISSING: Any = _Missing()


@dataclass(frozen=True, slots=True)
class ExtractionAttempt:
    """Which strategy produced a parse, and from which candidate text."""

    strategy: str
    candidate: str
    value: Any


Strategy = Callable[[str, str | None], ExtractionAttempt | None]


# ---------------------------------------------------------------------------
# Normalization steps (pure string -> string)
# ---------------------------------------------------------------------------

def collapse_newlines(text: str) -> str:
    """Replace real and escaped newlines with a single space."""
    return re.sub(r"\\r\\n|\\n|\\r|\r\n|\n|\r", " ", text)


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def strip_trailing_commas(text: str) -> str:
    return re.sub(r",\s*([}\]])", r"\1", text)


def repair_quotes(text: str) -> str:
    """Collapse doubled quotes and unescape over-escaped quotes and backslashes."""
    text = re.sub(r'""([^"]+)""', r'"\1"', text)
    return text.replace('\\"', '"').replace("\\\\", "\\")


STRUCTURAL_STEPS: tuple[Callable[[str], str], ...] = (
    collapse_newlines,
    collapse_whitespace,
    strip_trailing_commas,
)
REPAIR_STEPS: tuple[Callable[[str], str], ...] = (repair_quotes,)


def normalize(text: str) -> str:
    """Apply every normalization step in order."""
    for step in STRUCTURAL_STEPS + REPAIR_STEPS:
        text = step(text)
    return text


def _normalized_candidates(text: str) -> Iterator[str]:
    # Structural repair first; quote/backslash repair only if still needed.
    for step in STRUCTURAL_STEPS:
        text = step(text)
    yield text
    for step in REPAIR_STEPS:
        text = step(text)
    yield text


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (JSONDecodeError, RecursionError):
        return MISSING


def find_fenced_block(text: str) -> str | None:
    match = _FENCE_RE.search(text)
    return match.group(1) if match else None


def _scan_balanced(text: str, start: int, *, string_aware: bool) -> str | None:
    opener = text[start]
    closer = _CLOSERS[opener]
    depth = 0
    in_str = False
    escape = False
    for index in range(start, len(text)):
        char = text[index]
        if in_str:
            if escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                in_str = False
            continue
        if string_aware and char == '"':
            in_str = True
            continue
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def find_bracket_spans(text: str) -> list[str]:
    """Return candidate spans for the first top-level {...} or [...] in text.

    A string-aware scan is tried first; a plain bracket count follows for text
    whose quoting is too broken to track string boundaries.
    """
    match = re.search(r"[\[{]", text)
    if match is None:
        return []
    spans: list[str] = []
    for string_aware in (True, False):
        span = _scan_balanced(text, match.start(), string_aware=string_aware)
        if span is not None and span not in spans:
            spans.append(span)
    return spans


def find_outermost_span(text: str) -> str | None:
    """From the first opening bracket to the last matching closing bracket."""
    match = re.search(r"[\[{]", text)
    if match is None:
        return None
    end = text.rfind(_CLOSERS[match.group()])
    if end < match.start():
        return None
    return text[match.start() : end + 1]


# A possible end of a string value: an unescaped quote followed by `, "key":` or a closing bracket.
_VALUE_END_RE = re.compile(r'(?<!\\)"(?=\s*,\s*"[^"\n]*"\s*:|\s*,?\s*[}\]])')


def _field_start(field: str) -> re.Pattern[str]:
    return re.compile(r'"' + re.escape(field) + r'"\s*:\s*"')


def _decode_literal(value: str) -> str:
    """Decode JSON escapes in a lifted field value, keeping literal newlines and bare quotes."""
    escaped = re.sub(r'(?<!\\)"', r'\\"', value)
    try:
        return json.loads(f'"{escaped}"', strict=False)
    except JSONDecodeError:
        return value


def _parse_remainder(remainder: str, field: str) -> dict[str, Any] | None:
    for candidate in _normalized_candidates(remainder):
        texts = [candidate]
        # Prose around the object: only the full outer span counts, never a sub-object.
        outermost = find_outermost_span(candidate)
        if outermost is not None and outermost != candidate:
            texts.append(outermost)
        for text in texts:
            value = _loads(text)
            if isinstance(value, dict) and value.get(field) == PLACEHOLDER:
                return value
    return None


def parse_preserving_field(text: str, field: str) -> Any:
    """Normalize and parse text while keeping one string field's value intact.

    Quotes and brackets inside the value make its end ambiguous, so every
    possible closing quote is tried: the field's value is swapped for a
    placeholder and the rest must parse as an object. The end leaving the most
    fields in that object wins; among equals, the latest end (longest value).
    """
    start = _field_start(field).search(text)
    if start is None:
        return MISSING

    ends = [match.start() for match in _VALUE_END_RE.finditer(text, start.end())]
    best: dict[str, Any] | None = None
    best_end = -1
    for end in reversed(ends):
        remainder = f'{text[: start.start()]}"{field}": "{PLACEHOLDER}"{text[end + 1 :]}'
        value = _parse_remainder(remainder, field)
        if value is not None and (best is None or len(value) > len(best)):
            best, best_end = value, end

    if best is None:
        return MISSING
    best[field] = _decode_literal(text[start.end() : best_end])
    return best


def parse_normalized(text: str, preserve_field: str | None = None) -> Any:
    if preserve_field:
        value = parse_preserving_field(text, preserve_field)
        if value is not MISSING:
            return value
    for candidate in _normalized_candidates(text):
        value = _loads(candidate)
        if value is not MISSING:
            return value
    return MISSING


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def direct_parse(raw: str, preserve_field: str | None = None) -> ExtractionAttempt | None:
    value = _loads(raw)
    if value is MISSING:
        return None
    return ExtractionAttempt(strategy="direct", candidate=raw, value=value)


def fenced_block_parse(raw: str, preserve_field: str | None = None) -> ExtractionAttempt | None:
    interior = find_fenced_block(raw)
    if interior is None:
        return None
    value = _loads(interior)
    if value is MISSING:
        value = parse_normalized(interior, preserve_field)
    if value is MISSING:
        return None
    if preserve_field and not (isinstance(value, dict) and preserve_field in value):
        # A fenced sample quoted inside the preserved field, not the answer itself.
        LOGGER.debug("Fenced block lacks field %s; skipping", preserve_field)
        return None
    return ExtractionAttempt(strategy="fenced_block", candidate=interior, value=value)


def bracket_scan_parse(raw: str, preserve_field: str | None = None) -> ExtractionAttempt | None:
    spans = find_bracket_spans(raw)
    if preserve_field:
        # Brackets and quotes inside the preserved value cut balanced spans short.
        outermost = find_outermost_span(raw)
        if outermost is not None:
            spans = [outermost] + [span for span in spans if span != outermost]
    for span in spans:
        value = _loads(span)
        if value is MISSING:
            value = parse_normalized(span, preserve_field)
        if value is not MISSING:
            return ExtractionAttempt(strategy="bracket_scan", candidate=span, value=value)
    return None


def normalized_parse(raw: str, preserve_field: str | None = None) -> ExtractionAttempt | None:
    value = parse_normalized(raw, preserve_field)
    if value is not MISSING:
        return ExtractionAttempt(strategy="normalized", candidate=raw, value=value)

    normalized = normalize(raw)
    for span in find_bracket_spans(normalized):
        value = _loads(span)
        if value is not MISSING:
            return ExtractionAttempt(strategy="normalized", candidate=span, value=value)
    return None


STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("direct", direct_parse),
    ("fenced_block", fenced_block_parse),
    ("bracket_scan", bracket_scan_parse),
    ("normalized", normalized_parse),
)


def extract_with_attempt(raw: str, preserve_field: str | None = None) -> tuple[Any, ExtractionAttempt]:
    """Run the strategy cascade and report which strategy won.

    Raises ExtractionError carrying the raw text and every strategy tried.
    """
    attempted: list[str] = []
    for name, strategy in STRATEGIES:
        attempted.append(name)
        attempt = strategy(raw, preserve_field)
        if attempt is not None:
            if name != "direct":
                LOGGER.debug("Recovered JSON with strategy=%s after %s", name, attempted[:-1])
            return attempt.value, attempt
        LOGGER.debug("Extraction strategy %s found nothing", name)

    LOGGER.debug("No JSON recovered from model output: %r", raw[:200])
    raise ExtractionError(raw=raw, attempted_strategies=attempted)


def extract(raw: str, preserve_field: str | None = None) -> Any:
    """Return the JSON value encoded somewhere in raw model output."""
    value, _ = extract_with_attempt(raw, preserve_field)
    return value
