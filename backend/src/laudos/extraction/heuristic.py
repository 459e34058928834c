"""Keyword-based excerpt extraction.

Local fallback used when no extraction endpoint is configured or when it
fails. Given the text of a petition or defense and a category, returns the
paragraphs that mention a category keyword, plus short neighbouring
paragraphs for context.
"""

import re
from dataclasses import dataclass
from typing import Iterable

from .lexicons import ExtractionCategory, get_lexicon

CONTEXT_MAX_CHARS = 200
CATEGORY_SEPARATOR = "\n\n---\n\n"

PARAGRAPH_BREAK = re.compile(r"\n{2,}|\r\n{2,}")
SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")
WHITESPACE = re.compile(r"\s+")


def split_paragraphs(text: str) -> list[str]:
    """Split on blank lines, dropping empty paragraphs."""
    return [p.strip() for p in PARAGRAPH_BREAK.split(text) if p.strip()]


def split_sentences(text: str) -> list[str]:
    """Split the whitespace-collapsed text on sentence-ending punctuation."""
    flat = WHITESPACE.sub(" ", text).strip()
    return [s.strip() for s in SENTENCE_BREAK.split(flat) if s.strip()]


def header_for(category: ExtractionCategory | str) -> str:
    return f"Trechos extraídos (tipo: {ExtractionCategory(category).value})"


@dataclass
class KeywordExtractor:
    """Extracts the excerpts of a text relevant to one category."""

    category: ExtractionCategory

    def __post_init__(self):
        self.category = ExtractionCategory(self.category)
        self.keywords = tuple(k.lower() for k in get_lexicon(self.category))

    def has_hit(self, fragment: str) -> bool:
        """Pure substring test against the lexicon."""
        lowered = fragment.lower()
        return any(keyword in lowered for keyword in self.keywords)

    def excerpts(self, text: str) -> list[str]:
        """Matching fragments in first-seen order, without duplicates."""
        if not text or not text.strip():
            return []

        paragraphs = split_paragraphs(text)
        hits: list[str] = []
        for i, paragraph in enumerate(paragraphs):
            if not self.has_hit(paragraph):
                continue
            hits.append(paragraph)
            prev = paragraphs[i - 1] if i > 0 else None
            nxt = paragraphs[i + 1] if i + 1 < len(paragraphs) else None
            if prev and len(prev) < CONTEXT_MAX_CHARS and not self.has_hit(prev):
                hits.append(prev)
            if nxt and len(nxt) < CONTEXT_MAX_CHARS and not self.has_hit(nxt):
                hits.append(nxt)

        if not hits:
            hits = [s for s in split_sentences(text) if self.has_hit(s)]

        return list(dict.fromkeys(hits))

    def extract(self, text: str) -> str:
        """Excerpts under a header line, or "" when nothing matches."""
        found = self.excerpts(text)
        if not found:
            return ""
        return "\n\n".join([header_for(self.category), "", *found])


def extract_by_category(text: str, category: ExtractionCategory | str) -> str:
    """Run the keyword extraction for a single category."""
    return KeywordExtractor(ExtractionCategory(category)).extract(text)


def extract_by_categories(text: str, categories: Iterable[ExtractionCategory | str]) -> str:
    """Run several categories and join the non-empty results."""
    results = [extract_by_category(text, category) for category in categories]
    return CATEGORY_SEPARATOR.join(r for r in results if r)
