"""
Source-Block Extractor - Separate answer text from its citation payload.

Search-capable models are instructed to finish every answer with a block
like::

    <!-- SOURCES_START -->
    [{"domain": "nasa.gov", "title": "...", "url": "...", "description": "..."}]
    <!-- SOURCES_END -->

The extractor turns a (possibly still streaming) buffer into the text a
reader should see plus the parsed list of sources. It runs on every chunk
the UI renders, so the common case (no marker yet) must stay cheap: no
block regex is executed unless the start marker is present.

Parsing the payload is best-effort by contract: a malformed block never
breaks rendering, it just yields no sources.
"""
import json
import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from atheron.core.logging_config import get_logger

logger = get_logger(__name__)

SOURCES_START = "<!-- SOURCES_START -->"
SOURCES_END = "<!-- SOURCES_END -->"

_BLOCK_RE = re.compile(re.escape(SOURCES_START) + r"([\s\S]*?)" + re.escape(SOURCES_END))
_CITATION_RE = re.compile(r"\[\d+\]")
_MULTI_SPACE_RE = re.compile(r" {2,}")

_SOURCE_FIELDS = ("domain", "title", "url", "description")


@dataclass(frozen=True)
class Source:
    """A single citation attached to an assistant answer."""
    domain: str = ""
    title: str = ""
    url: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Source":
        """Build from a decoded JSON record; missing fields become empty strings."""
        values = {}
        for name in _SOURCE_FIELDS:
            value = data.get(name)
            values[name] = "" if value is None else str(value)
        return cls(**values)

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class SourceExtraction:
    """Result of running the extractor over a buffer."""
    display_text: str
    sources: List[Source] = field(default_factory=list)

    @property
    def has_sources(self) -> bool:
        return bool(self.sources)


def parse_sources_best_effort(payload: str) -> List[Source]:
    """
    Parse the interior of a source block.

    Only payloads that look like a JSON array are parsed. Anything that
    fails to decode, is not a list, or holds non-object records is dropped
    silently (records that are objects still survive).

    Args:
        payload: Text between the start and end markers

    Returns:
        Sources in first-found order, possibly empty
    """
    payload = payload.strip()
    if not payload or not payload.startswith("["):
        return []

    try:
        decoded = json.loads(payload)
    except ValueError:
        logger.debug(f"Ignoring malformed source payload ({len(payload)} chars)")
        return []

    if not isinstance(decoded, list):
        return []

    return [Source.from_dict(item) for item in decoded if isinstance(item, dict)]


def _strip_citations(text: str) -> str:
    # "[1[2]]" only collapses completely after a second pass
    while True:
        text, count = _CITATION_RE.subn("", text)
        if not count:
            return text


def _remove_blocks(text: str, hide_unterminated: bool) -> str:
    text = _BLOCK_RE.sub("", text)
    if hide_unterminated:
        start = text.find(SOURCES_START)
        if start != -1:
            text = text[:start]
    return text


def _clean(text: str, hide_unterminated: bool) -> str:
    if SOURCES_START in text:
        text = _remove_blocks(text, hide_unterminated)
    # A stray end marker with no opener
    text = text.replace(SOURCES_END, "")
    text = _strip_citations(text)
    return _MULTI_SPACE_RE.sub(" ", text).strip()


def extract_sources(text: Optional[str], hide_unterminated: bool = True) -> SourceExtraction:
    """
    Split a buffer into display text and sources.

    Steps:
    1. No start marker: drop stray end markers, strip inline citations,
       collapse spaces, done.
    2. Start marker present: parse the first complete block (if any) and
       remove every complete block from the display text.
    3. A start marker whose end marker has not arrived yet hides the rest
       of the buffer when hide_unterminated is True, so half-written JSON
       never reaches the screen.

    Cleaning repeats until the text stops changing, which keeps the
    function idempotent on its own output.

    Args:
        text: Raw assistant text, complete or partial
        hide_unterminated: Hide everything from an unclosed start marker on

    Returns:
        SourceExtraction with cleaned text and parsed sources

    Example:
        >>> extract_sources("Light bends. [1]").display_text
        'Light bends.'
    """
    if not text:
        return SourceExtraction(display_text="")

    sources: List[Source] = []
    if SOURCES_START in text:
        match = _BLOCK_RE.search(text)
        if match:
            sources = parse_sources_best_effort(match.group(1))

    cleaned = _clean(text, hide_unterminated)
    while True:
        again = _clean(cleaned, hide_unterminated)
        if again == cleaned:
            break
        cleaned = again

    return SourceExtraction(display_text=cleaned, sources=sources)


def strip_source_block(text: Optional[str]) -> str:
    """
    Remove the source payload but keep the answer text as written.

    Used before persisting: stored content must not carry the wire
    delimiters, while inline formatting (markdown, LaTeX, spacing) is kept.
    """
    if not text:
        return ""
    if SOURCES_START in text:
        text = _remove_blocks(text, hide_unterminated=True)
    return text.replace(SOURCES_END, "").strip()
