"""In-app notifications for the expert.

Notifications are either created by the system (deadlines, schedule
confirmations) or as custom reminders by the user.
"""

import json
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import text

from .db import get_db_session
from .processes.manager import require_session
from .processes.models import parse_json_bag

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    DEADLINE = "deadline"
    REMINDER = "reminder"


class Notification(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: str
    title: str
    message: str | None = None
    type: str = NotificationType.INFO.value
    status: str = "pending"
    read: bool = False
    read_at: datetime | None = None
    process_id: UUID | None = None
    due_date: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None

    @field_validator("user_id", mode="before")
    @classmethod
    def _user_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata(cls, value: Any) -> dict[str, Any]:
        value = parse_json_bag(value)
        return value if isinstance(value, dict) else {}


class CreateNotificationRequest(BaseModel):
    """Request to create a custom notification."""

    title: str = Field(..., min_length=1, max_length=200)
    message: str | None = None
    type: NotificationType = NotificationType.INFO
    process_id: UUID | None = None
    due_date: date | datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def _title(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Título é obrigatório")
        return value.strip()


class NotificationService:
    """Reads and writes the ``notifications`` table for one user at a time."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_db_session

    async def list_notifications(
        self,
        user_id: str | None,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        user_id = require_session(user_id)
        where = "user_id = :user_id"
        if unread_only:
            where += " AND read = false"
        async with self._session_factory() as session:
            result = await session.execute(
                text(f"""
                SELECT * FROM notifications
                WHERE {where}
                ORDER BY created_at DESC
                LIMIT :limit
                """),
                {"user_id": user_id, "limit": limit},
            )
            return [Notification.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def create(
        self,
        request: CreateNotificationRequest,
        user_id: str | None,
    ) -> Notification:
        user_id = require_session(user_id)
        due = request.due_date
        if isinstance(due, date) and not isinstance(due, datetime):
            due = datetime.combine(due, datetime.min.time())

        notification = Notification(
            user_id=user_id,
            title=request.title,
            message=request.message,
            type=request.type.value,
            process_id=request.process_id,
            due_date=due,
            metadata=request.metadata,
            created_at=datetime.utcnow(),
        )
        async with self._session_factory() as session:
            await session.execute(
                text("""
                INSERT INTO notifications (
                    id, user_id, title, message, type, status, read,
                    process_id, due_date, metadata, created_at, updated_at
                ) VALUES (
                    :id, :user_id, :title, :message, :type, :status, false,
                    :process_id, :due_date, CAST(:metadata AS jsonb), :created_at, :created_at
                )
                """),
                {
                    "id": str(notification.id),
                    "user_id": user_id,
                    "title": notification.title,
                    "message": notification.message,
                    "type": notification.type,
                    "status": notification.status,
                    "process_id": str(notification.process_id) if notification.process_id else None,
                    "due_date": notification.due_date,
                    "metadata": json.dumps(notification.metadata, ensure_ascii=False, default=str),
                    "created_at": notification.created_at,
                },
            )
        logger.debug(f"Created notification {notification.id} for user {user_id}")
        return notification

    async def mark_read(self, notification_id: UUID, user_id: str | None) -> bool:
        """Mark one notification as read; False if it is not the user's."""
        user_id = require_session(user_id)
        async with self._session_factory() as session:
            result = await session.execute(
                text("""
                UPDATE notifications
                SET read = true, read_at = now(), updated_at = now()
                WHERE id = :id AND user_id = :user_id
                """),
                {"id": str(notification_id), "user_id": user_id},
            )
            return result.rowcount > 0

    async def mark_all_read(self, user_id: str | None) -> int:
        """Mark every unread notification as read; returns how many changed."""
        user_id = require_session(user_id)
        async with self._session_factory() as session:
            result = await session.execute(
                text("""
                UPDATE notifications
                SET read = true, read_at = now(), updated_at = now()
                WHERE user_id = :user_id AND read = false
                """),
                {"user_id": user_id},
            )
            return result.rowcount


# Singleton instance
_notification_service: NotificationService | None = None


def get_notification_service() -> NotificationService:
    """Get the notification service singleton."""
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
