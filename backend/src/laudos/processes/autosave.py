"""Debounced autosave of process edits.

Editors send a field update on every keystroke. The buffer merges the
updates for each process and writes them with a single ``update_process``
call once the process has been quiet for the configured delay.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from ..config import get_settings
from .manager import ProcessManager, SessionExpiredError, get_process_manager

logger = logging.getLogger(__name__)


@dataclass
class PendingEdit:
    """Fields waiting to be written for one process."""

    user_id: str | None
    cpf: str | None
    fields: dict[str, Any] = field(default_factory=dict)
    timer: asyncio.TimerHandle | None = None


@dataclass
class FlushResult:
    """Outcome of one flush."""

    process_id: UUID
    saved: bool
    fields: list[str] = field(default_factory=list)
    error: str | None = None


class AutosaveBuffer:
    """Per-process debounce buffer in front of the process manager."""

    def __init__(
        self,
        manager: ProcessManager | None = None,
        delay: float | None = None,
    ):
        self._manager = manager or get_process_manager()
        self._delay = get_settings().autosave_delay_seconds if delay is None else delay
        self._pending: dict[UUID, PendingEdit] = {}
        self._tasks: set[asyncio.Task] = set()
        self._last_results: dict[UUID, FlushResult] = {}

    @property
    def delay(self) -> float:
        return self._delay

    def pending_fields(self, process_id: UUID) -> dict[str, Any]:
        edit = self._pending.get(process_id)
        return dict(edit.fields) if edit else {}

    def last_result(self, process_id: UUID) -> FlushResult | None:
        return self._last_results.get(process_id)

    def update(
        self,
        process_id: UUID,
        fields: dict[str, Any],
        user_id: str | None,
        cpf: str | None = None,
    ) -> None:
        """Queue field updates; later values for the same field win."""
        edit = self._pending.get(process_id)
        if edit is None:
            edit = PendingEdit(user_id=user_id, cpf=cpf)
            self._pending[process_id] = edit
        else:
            edit.user_id = user_id
            edit.cpf = cpf
        edit.fields.update(fields)

        if edit.timer is not None:
            edit.timer.cancel()
        loop = asyncio.get_running_loop()
        edit.timer = loop.call_later(self._delay, self._schedule_flush, process_id)

    def _schedule_flush(self, process_id: UUID) -> None:
        task = asyncio.ensure_future(self.flush(process_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def flush(self, process_id: UUID) -> FlushResult | None:
        """Write the pending fields of one process now.

        Returns:
            The flush outcome, or None if nothing was pending
        """
        edit = self._pending.pop(process_id, None)
        if edit is None:
            return None
        if edit.timer is not None:
            edit.timer.cancel()

        names = sorted(edit.fields)
        if not edit.user_id:
            logger.warning(f"Autosave of process {process_id} skipped: session expired")
            result = FlushResult(process_id, saved=False, fields=names, error="Sessão expirada")
        else:
            try:
                await self._manager.update_process(process_id, edit.fields, edit.user_id, edit.cpf)
                result = FlushResult(process_id, saved=True, fields=names)
            except SessionExpiredError as e:
                result = FlushResult(process_id, saved=False, fields=names, error=str(e))
            except Exception as e:
                logger.exception(f"Autosave of process {process_id} failed")
                result = FlushResult(process_id, saved=False, fields=names, error=str(e))

        self._last_results[process_id] = result
        return result

    async def close(self) -> list[FlushResult]:
        """Flush every pending process and wait for in-flight writes."""
        results = []
        for process_id in list(self._pending):
            result = await self.flush(process_id)
            if result is not None:
                results.append(result)
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        return results


# Singleton instance
_autosave_buffer: AutosaveBuffer | None = None


def get_autosave_buffer() -> AutosaveBuffer:
    """Get the autosave buffer singleton."""
    global _autosave_buffer
    if _autosave_buffer is None:
        _autosave_buffer = AutosaveBuffer()
    return _autosave_buffer
