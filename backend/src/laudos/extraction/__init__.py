"""Excerpt extraction for petitions and defenses.

Pulls the passages relevant to insalubrity, periculosity or occupational
accident claims out of long legal texts, so the expert can fill the
initial-data and defense-data sections quickly.

Components:
- KeywordExtractor: Lexicon-based paragraph and sentence matching
- LLMClient: Optional third-party extraction, transcription, evaluation and OCR endpoints
- ExtractionPipeline: LLM first when configured, keyword heuristic as fallback
- extract_document_text: PDF (pdfplumber), DOCX (python-docx) and plain text
"""

from .documents import CancellationToken, ExtractionCancelled, extract_document_text
from .heuristic import KeywordExtractor, extract_by_categories, extract_by_category
from .lexicons import LEXICONS, ExtractionCategory
from .llm import LLMClient, get_llm_client
from .pipeline import (
    CategoryExtraction,
    ExtractionConfig,
    ExtractionPipeline,
    ExtractionResult,
    get_extraction_pipeline,
)

__all__ = [
    "CancellationToken",
    "ExtractionCancelled",
    "extract_document_text",
    "KeywordExtractor",
    "extract_by_categories",
    "extract_by_category",
    "LEXICONS",
    "ExtractionCategory",
    "LLMClient",
    "get_llm_client",
    "CategoryExtraction",
    "ExtractionConfig",
    "ExtractionPipeline",
    "ExtractionResult",
    "get_extraction_pipeline",
]
