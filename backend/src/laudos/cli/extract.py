"""CLI commands for excerpt extraction.

Usage:
    laudos extract file inicial.pdf --category insalubridade --category periculosidade
    laudos extract file contestacao.docx --llm --json
"""

import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path

import click

from ..extraction.documents import extract_document_text
from ..extraction.heuristic import extract_by_categories
from ..extraction.lexicons import ExtractionCategory
from ..extraction.pipeline import NO_EXCERPT_MESSAGE, ExtractionConfig, get_extraction_pipeline
from ..logging import setup_logging

CATEGORIES = [c.value for c in ExtractionCategory]


@click.group(name="extract")
@click.option("-v", "--verbose", is_flag=True, help="Log at DEBUG level")
def cli(verbose: bool):
    """Excerpt extraction commands."""
    setup_logging("DEBUG" if verbose else None)


@cli.command(name="file")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--category", "-c", "categories", multiple=True, type=click.Choice(CATEGORIES),
              default=[ExtractionCategory.INSALUBRIDADE.value], help="Category to extract (repeatable)")
@click.option("--llm", is_flag=True, help="Use the configured LLM and OCR endpoints")
@click.option("--json", "as_json", is_flag=True, help="Print per-category results as JSON")
def extract_file(source: Path, categories: tuple[str, ...], llm: bool, as_json: bool) -> None:
    """Extract category excerpts from a PDF, DOCX or text file."""
    content = source.read_bytes()

    if llm or as_json:
        pipeline = get_extraction_pipeline(ExtractionConfig(enable_llm=llm, enable_ocr=llm))
        try:
            result = asyncio.run(pipeline.extract_document(content, source.name, categories))
        except ValueError as e:
            click.echo(str(e), err=True)
            sys.exit(1)
        if as_json:
            click.echo(json.dumps(
                {"found": result.found, "results": [asdict(r) for r in result.results]},
                ensure_ascii=False, indent=2,
            ))
            return
        text = result.content
    else:
        try:
            text = extract_by_categories(extract_document_text(content, source.name), categories)
        except ValueError as e:
            click.echo(str(e), err=True)
            sys.exit(1)

    click.echo(text or NO_EXCERPT_MESSAGE)
