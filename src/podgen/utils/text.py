"""
Text Utilities.

Small text helpers shared by the script formatters, the chunk planner
and the article enricher.

    strip_tags          remove ``[bracketed]`` delivery tags
    strip_annotations   remove ``[bracketed]`` and ``(parenthesized)`` notes
    word_count          whitespace-separated words
    estimate_seconds    speaking time at a given words-per-minute rate
    html_to_text        article text extraction from HTML (BeautifulSoup)
"""
from __future__ import annotations

import re
from typing import Iterable

from bs4 import BeautifulSoup

_TAG_RE = re.compile(r"\[[^\]]+\]\s*")
_PAREN_RE = re.compile(r"\([^)]+\)\s*")
_WS_RE = re.compile(r"\s+")

# elements whose content is never article text
_DROP_TAGS = ["script", "style", "noscript", "nav", "header", "footer", "aside"]

DEFAULT_WORDS_PER_MINUTE = 150


def strip_tags(text: str) -> str:
    """
    >>> strip_tags("[laughs] No way. [pause] Really?")
    'No way. Really?'
    """
    return _TAG_RE.sub("", text).strip()


def strip_annotations(text: str) -> str:
    """
    >>> strip_annotations("(sighs) Fine [excited] let's go")
    "Fine let's go"
    """
    return _PAREN_RE.sub("", _TAG_RE.sub("", text)).strip()


def collapse_ws(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def word_count(text: str) -> int:
    return len(text.split())


def estimate_seconds(texts: Iterable[str], words_per_minute: int = DEFAULT_WORDS_PER_MINUTE) -> float:
    """Speaking time for a sequence of texts, unrounded."""
    words = sum(word_count(t) for t in texts)
    return words / words_per_minute * 60.0


def html_to_text(markup: str, max_chars: int) -> str:
    """
    Reduce an HTML page to whitespace-collapsed text, keeping the first
    ``max_chars`` characters.
    """
    soup = BeautifulSoup(markup, "html.parser")
    for node in soup.find_all(_DROP_TAGS):
        node.decompose()
    return collapse_ws(soup.get_text(" ", strip=True))[:max_chars]
