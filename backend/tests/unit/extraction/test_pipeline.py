"""Unit tests for document reading and the extraction pipeline.

The LLM endpoints are mocked; document parsing uses real DOCX bytes
built with python-docx.

Run with: pytest tests/unit/extraction/test_pipeline.py -v
"""

import threading
from io import BytesIO

import docx
import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from laudos.extraction.documents import (
    CancellationToken,
    ExtractionCancelled,
    decode_text,
    detect_kind,
    extract_document_text,
)
from laudos.extraction.llm import LLMClient, pick_text
from laudos.extraction.pipeline import ExtractionConfig, ExtractionPipeline


def docx_bytes(*paragraphs: str) -> bytes:
    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def mock_llm(**answers) -> MagicMock:
    llm = MagicMock()
    llm.extract_initial = AsyncMock(return_value=answers.get("extract_initial"))
    llm.ocr = AsyncMock(return_value=answers.get("ocr"))
    return llm


class TestDocumentText:
    """Tests for reading uploaded documents."""

    @pytest.mark.parametrize("filename,content_type,expected", [
        ("inicial.pdf", None, "pdf"),
        ("arquivo", "application/pdf", "pdf"),
        ("contestacao.DOCX", None, "docx"),
        ("notas.txt", None, "text"),
        ("notas", "text/plain", "text"),
    ])
    def test_detect_kind(self, filename, content_type, expected):
        """Test classification by MIME type or extension."""
        assert detect_kind(filename, content_type) == expected

    def test_unsupported_kind(self):
        """Test that other formats are rejected."""
        with pytest.raises(ValueError, match="não suportado"):
            detect_kind("planilha.xlsx")

    def test_decode_latin1_fallback(self):
        """Test decoding of non-UTF-8 text."""
        assert decode_text("exposição".encode("latin-1")) == "exposição"
        assert decode_text("exposição".encode("utf-8")) == "exposição"

    def test_docx_paragraphs(self):
        """Test that DOCX paragraphs become blank-line separated blocks."""
        content = docx_bytes("Primeiro parágrafo.", "", "Segundo parágrafo.")

        text = extract_document_text(content, "peticao.docx")

        assert text == "Primeiro parágrafo.\n\nSegundo parágrafo."

    @pytest.mark.parametrize("filename", ["peticao.pdf", "peticao.docx"])
    def test_corrupt_file(self, filename):
        """Test that unreadable bytes are reported as a bad upload."""
        with pytest.raises(ValueError, match="Arquivo corrompido ou ilegível"):
            extract_document_text(b"not really a document", filename)

    def test_cancelled_token(self):
        """Test that a cancelled token stops the extraction."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(ExtractionCancelled):
            extract_document_text(b"texto", "notas.txt", token=token)


class TestExtractionPipeline:
    """Tests for the LLM-then-heuristic pipeline."""

    @pytest.mark.asyncio
    async def test_heuristic_when_llm_disabled(self):
        """Test the local path."""
        llm = mock_llm()
        pipeline = ExtractionPipeline(ExtractionConfig(enable_llm=False), llm=llm)

        result = await pipeline.extract("Havia ruído excessivo.", ["insalubridade"])

        assert result.found is True
        assert result.results[0].method == "heuristic"
        llm.extract_initial.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_llm_answer_is_refiltered(self):
        """Test that the LLM answer passes through the keyword filter."""
        llm = mock_llm(extract_initial="Trabalho com benzeno na linha 3.")
        pipeline = ExtractionPipeline(llm=llm)

        result = await pipeline.extract("texto original longo", ["insalubridade"])

        assert result.results[0].method == "llm"
        assert "Trabalho com benzeno na linha 3." in result.content

    @pytest.mark.asyncio
    async def test_llm_unusable_falls_back(self):
        """Test that an LLM answer without keywords falls back to the raw text."""
        llm = mock_llm(extract_initial="Nada relevante.")
        pipeline = ExtractionPipeline(llm=llm)

        result = await pipeline.extract("Exposição a calor no forno.", ["insalubridade"])

        assert result.results[0].method == "heuristic"
        assert "Exposição a calor no forno." in result.content

    @pytest.mark.asyncio
    async def test_nothing_found(self):
        """Test the empty outcome."""
        pipeline = ExtractionPipeline(ExtractionConfig(enable_llm=False), llm=mock_llm())

        result = await pipeline.extract("Texto neutro.", ["periculosidade"])

        assert result.found is False
        assert result.content == ""
        assert result.results[0].method == "none"

    @pytest.mark.asyncio
    async def test_cancel_between_categories(self):
        """Test that cancellation discards the partial result."""
        token = CancellationToken()
        token.cancel()
        pipeline = ExtractionPipeline(ExtractionConfig(enable_llm=False), llm=mock_llm())

        with pytest.raises(ExtractionCancelled):
            await pipeline.extract("Havia ruído.", ["insalubridade"], token)

    @pytest.mark.asyncio
    async def test_parsing_leaves_event_loop(self):
        """Test that document parsing runs in a worker thread."""
        loop_thread = threading.get_ident()
        seen = {}

        def parse(content, filename, content_type, token):
            seen["thread"] = threading.get_ident()
            return "Havia ruído contínuo."

        pipeline = ExtractionPipeline(ExtractionConfig(enable_llm=False), llm=mock_llm())
        with patch("laudos.extraction.pipeline.extract_document_text", side_effect=parse):
            text = await pipeline.document_text(b"%PDF", "inicial.pdf")

        assert text == "Havia ruído contínuo."
        assert seen["thread"] != loop_thread

    @pytest.mark.asyncio
    async def test_ocr_when_no_text_layer(self):
        """Test that an empty document is sent to OCR."""
        llm = mock_llm(ocr="Havia inflamável no tanque.")
        pipeline = ExtractionPipeline(ExtractionConfig(enable_llm=False), llm=llm)

        result = await pipeline.extract_document(b"", "digitalizado.txt", ["periculosidade"])

        assert result.found is True
        llm.ocr.assert_awaited_once()


class TestLLMClient:
    """Tests for the optional endpoint client."""

    def test_pick_text(self):
        """Test content key precedence and paragraph joining."""
        assert pick_text({"content": " texto "}) is None
        assert pick_text({"content": " texto "}, "content") == "texto"
        assert pick_text({"paragraphs": ["a", "b"]}, "content", "paragraphs") == "a\n\nb"
        assert pick_text({"items": ["a", "b"]}, "items") == "a\nb"
        assert pick_text("texto", "content") is None

    @pytest.mark.asyncio
    async def test_unconfigured_returns_none(self):
        """Test that an empty URL skips the call."""
        settings = MagicMock(llm_extract_url="", llm_timeout=5.0)
        with patch("laudos.extraction.llm.get_settings", return_value=settings):
            client = LLMClient()
            assert await client.extract_initial("texto", "insalubridade") is None

    @pytest.mark.asyncio
    async def test_error_status_returns_none(self):
        """Test that a failing endpoint yields None."""
        settings = MagicMock(llm_proofread_url="https://llm.example/proofread", llm_timeout=5.0)
        with patch("laudos.extraction.llm.get_settings", return_value=settings):
            client = LLMClient()
            client._http_client = httpx.AsyncClient(
                transport=httpx.MockTransport(lambda request: httpx.Response(502))
            )
            assert await client.proofread("texto") is None
            await client.close()

    @pytest.mark.asyncio
    async def test_extract_initial(self):
        """Test a successful extraction call."""
        settings = MagicMock(llm_extract_url="https://llm.example/extract", llm_timeout=5.0)
        with patch("laudos.extraction.llm.get_settings", return_value=settings):
            client = LLMClient()
            client._http_client = httpx.AsyncClient(
                transport=httpx.MockTransport(
                    lambda request: httpx.Response(200, json={"paragraphs": ["Há ruído.", "Há calor."]})
                )
            )
            assert await client.extract_initial("texto", "insalubridade") == "Há ruído.\n\nHá calor."
            await client.close()
