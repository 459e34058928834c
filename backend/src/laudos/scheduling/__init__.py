"""Inspection scheduling: calendar exports, notices and schedule e-mails."""

from .calendar import (
    build_ics,
    build_schedule_message,
    google_calendar_url,
    normalize_whatsapp_phone,
    whatsapp_url,
)
from .email import ScheduleMailer, SendScheduleEmailRequest, get_schedule_mailer

__all__ = [
    "build_ics",
    "build_schedule_message",
    "google_calendar_url",
    "normalize_whatsapp_phone",
    "whatsapp_url",
    "ScheduleMailer",
    "SendScheduleEmailRequest",
    "get_schedule_mailer",
]
