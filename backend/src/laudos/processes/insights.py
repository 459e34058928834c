"""Dashboard statistics and editor progress for processes."""

from collections import Counter
from datetime import datetime
from typing import Any, Iterable

from ..reports.formatting import is_informed
from .models import ProcessProgress, ProcessRecord, ProcessStatistics, ProgressStep

PROGRESS_STEPS: tuple[tuple[str, str], ...] = (
    ("objective", "Objetivo"),
    ("methodology", "Metodologia"),
    ("workplace_characteristics", "Ambiente de Trabalho"),
    ("insalubrity_results", "Resultados de Insalubridade"),
    ("periculosity_results", "Resultados de Periculosidade"),
    ("conclusion", "Conclusão"),
)


def compute_statistics(rows: Iterable[dict[str, Any]]) -> ProcessStatistics:
    """Count processes by status and by creation month.

    Args:
        rows: Mappings with ``status`` and ``created_at``

    Returns:
        ProcessStatistics; ``active`` counts as in progress
    """
    stats = ProcessStatistics()
    monthly: Counter[str] = Counter()

    for row in rows:
        stats.total += 1
        status = row.get("status") or "pending"
        if status == "pending":
            stats.pending += 1
        elif status in ("in_progress", "active"):
            stats.in_progress += 1
        elif status == "completed":
            stats.completed += 1

        created_at = row.get("created_at")
        if isinstance(created_at, str):
            try:
                created_at = datetime.fromisoformat(created_at)
            except ValueError:
                created_at = None
        if created_at is not None:
            monthly[created_at.strftime("%Y-%m")] += 1

    stats.monthly = dict(sorted(monthly.items()))
    if stats.total:
        stats.completion_rate = round(stats.completed / stats.total * 100, 2)
    return stats


def compute_progress(process: ProcessRecord) -> ProcessProgress:
    """Check which editor steps of a process are filled in."""
    steps = [
        ProgressStep(key=key, label=label, completed=is_informed(getattr(process, key)))
        for key, label in PROGRESS_STEPS
    ]
    completed = sum(1 for step in steps if step.completed)
    return ProcessProgress(
        process_id=process.id,
        steps=steps,
        completed_steps=completed,
        total_steps=len(steps),
        progress=round(completed / len(steps) * 100, 2),
    )
