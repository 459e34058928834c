"""Excerpt extraction pipeline.

Orchestrates the optional LLM endpoint and the local keyword heuristic,
category by category:

1. Ask the LLM endpoint (when configured) for the relevant excerpts
2. Re-filter its answer through the keyword heuristic
3. If that leaves nothing, run the heuristic over the raw text
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable

from ..logging import log_extraction_result
from .documents import CancellationToken, extract_document_text
from .heuristic import CATEGORY_SEPARATOR, extract_by_category
from .lexicons import ExtractionCategory
from .llm import LLMClient, get_llm_client

logger = logging.getLogger(__name__)

NO_EXCERPT_MESSAGE = "Nenhum trecho detectado"


@dataclass
class ExtractionConfig:
    """Configuration for the extraction pipeline."""

    enable_llm: bool = True
    enable_ocr: bool = True


@dataclass
class CategoryExtraction:
    """Excerpts of one category and how they were obtained."""

    category: str
    content: str
    method: str  # llm, heuristic, none


@dataclass
class ExtractionResult:
    """Combined outcome over all requested categories."""

    results: list[CategoryExtraction] = field(default_factory=list)
    source_chars: int = 0

    @property
    def content(self) -> str:
        return CATEGORY_SEPARATOR.join(r.content for r in self.results if r.content)

    @property
    def found(self) -> bool:
        return any(r.content for r in self.results)


class ExtractionPipeline:
    """Extracts category excerpts from text or uploaded documents."""

    def __init__(self, config: ExtractionConfig | None = None, llm: LLMClient | None = None):
        """Initialize the pipeline.

        Args:
            config: Pipeline configuration
            llm: LLM client (defaults to the shared one)
        """
        self.config = config or ExtractionConfig()
        self._llm = llm

    @property
    def llm(self) -> LLMClient:
        """Get the LLM client."""
        if self._llm is None:
            self._llm = get_llm_client()
        return self._llm

    async def extract_category(
        self,
        text: str,
        category: ExtractionCategory | str,
    ) -> CategoryExtraction:
        """Extract the excerpts of a single category."""
        category = ExtractionCategory(category)

        if self.config.enable_llm:
            answer = await self.llm.extract_initial(text, category.value)
            if answer:
                filtered = extract_by_category(answer, category)
                if filtered:
                    log_extraction_result(category.value, "llm", len(text), len(filtered))
                    return CategoryExtraction(category.value, filtered, "llm")

        content = extract_by_category(text, category)
        method = "heuristic" if content else "none"
        log_extraction_result(category.value, method, len(text), len(content))
        return CategoryExtraction(category.value, content, method)

    async def extract(
        self,
        text: str,
        categories: Iterable[ExtractionCategory | str],
        token: CancellationToken | None = None,
    ) -> ExtractionResult:
        """Extract the excerpts of every requested category.

        Raises:
            ExtractionCancelled: The token was cancelled between categories
        """
        result = ExtractionResult(source_chars=len(text or ""))
        for category in categories:
            if token is not None:
                token.raise_if_cancelled()
            result.results.append(await self.extract_category(text or "", category))
        if token is not None:
            token.raise_if_cancelled()
        return result

    async def document_text(
        self,
        content: bytes,
        filename: str,
        content_type: str | None = None,
        token: CancellationToken | None = None,
    ) -> str:
        """Text of an uploaded document, with OCR when it has no text layer."""
        text = await asyncio.to_thread(extract_document_text, content, filename, content_type, token)
        if not text and self.config.enable_ocr:
            if token is not None:
                token.raise_if_cancelled()
            logger.info(f"No text layer in {filename}, trying OCR")
            text = await self.llm.ocr(filename, content, content_type or "application/octet-stream") or ""
        return text

    async def extract_document(
        self,
        content: bytes,
        filename: str,
        categories: Iterable[ExtractionCategory | str],
        content_type: str | None = None,
        token: CancellationToken | None = None,
    ) -> ExtractionResult:
        """Read an uploaded document and extract its excerpts."""
        text = await self.document_text(content, filename, content_type, token)
        return await self.extract(text, categories, token)


def get_extraction_pipeline(config: ExtractionConfig | None = None) -> ExtractionPipeline:
    """Get an extraction pipeline instance.

    Args:
        config: Optional pipeline configuration

    Returns:
        ExtractionPipeline instance
    """
    return ExtractionPipeline(config)
