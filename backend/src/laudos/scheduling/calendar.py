"""Calendar exports for scheduled inspections.

Builds Google Calendar deep links, iCalendar files and the plain-text
schedule notice sent to the parties. Inspection dates and times are stored
in local time and converted to UTC for the calendar formats.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable
from urllib.parse import quote
from zoneinfo import ZoneInfo

from ..config import get_settings
from ..processes.models import ProcessRecord
from ..reports.formatting import format_date, format_time

GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/u/0/r/eventedit"
MAPS_SEARCH_URL = "https://www.google.com/maps/search/"

DEFAULT_TIME = time(9, 0)
DEFAULT_DURATION_MINUTES = 60

ICS_DATETIME_FORMAT = "%Y%m%dT%H%M%SZ"
ICS_LINE_OCTETS = 75


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _parse_time(value: str | None) -> time:
    if not value:
        return DEFAULT_TIME
    parts = str(value).split(":")
    try:
        hour = int(parts[0])
        minute = int(parts[1]) if len(parts) > 1 else 0
        return time(hour, minute)
    except ValueError:
        return DEFAULT_TIME


def inspection_window(process: ProcessRecord) -> tuple[datetime, datetime] | None:
    """Start and end of the inspection in UTC, or None when not scheduled."""
    day = _parse_date(process.inspection_date)
    if day is None:
        return None
    tz = ZoneInfo(get_settings().schedule_timezone)
    start = datetime.combine(day, _parse_time(process.inspection_time), tzinfo=tz)
    duration = process.inspection_duration_minutes or DEFAULT_DURATION_MINUTES
    end = start + timedelta(minutes=duration)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def to_ics_datetime(value: datetime) -> str:
    """Format as UTC ``YYYYMMDDTHHMMSSZ``."""
    return value.astimezone(timezone.utc).strftime(ICS_DATETIME_FORMAT)


def event_title(process: ProcessRecord) -> str:
    return f"Vistoria — {process.process_number}"


def event_details(process: ProcessRecord) -> str:
    details = f"{process.claimant_name} vs {process.defendant_name}"
    if process.inspection_notes:
        details += f"\n\nObs: {process.inspection_notes}"
    return details


def google_calendar_url(process: ProcessRecord) -> str:
    """Google Calendar event-creation link for the inspection."""
    url = (
        f"{GOOGLE_CALENDAR_URL}?text={quote(event_title(process), safe='')}"
        f"&details={quote(event_details(process), safe='')}"
        f"&location={quote(process.inspection_address or '', safe='')}"
    )
    window = inspection_window(process)
    if window:
        start, end = window
        url += f"&dates={to_ics_datetime(start)}/{to_ics_datetime(end)}"
    return url


# =========================
# iCalendar
# =========================


def escape_ics_text(value: str) -> str:
    """Escape a TEXT value (RFC 5545 section 3.3.11)."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def fold_ics_line(line: str) -> list[str]:
    """Split a content line into chunks of at most 75 octets.

    Continuation chunks start with a single space, which counts towards
    their length. Multi-byte characters are never split.
    """
    chunks: list[str] = []
    current = ""
    limit = ICS_LINE_OCTETS
    for char in line:
        if len((current + char).encode("utf-8")) > limit:
            chunks.append(current)
            current = " " + char
        else:
            current += char
    chunks.append(current)
    return chunks


def _event_lines(process: ProcessRecord, stamp: str) -> list[str]:
    window = inspection_window(process)
    if window is None:
        return []
    start, end = window

    lines = [
        "BEGIN:VEVENT",
        f"UID:{process.id}@laudos",
        f"DTSTAMP:{stamp}",
        f"DTSTART:{to_ics_datetime(start)}",
        f"DTEND:{to_ics_datetime(end)}",
        f"SUMMARY:{escape_ics_text(event_title(process))}",
        f"DESCRIPTION:{escape_ics_text(event_details(process))}",
    ]
    if process.inspection_address:
        location = process.inspection_address
        if process.inspection_city:
            location += f", {process.inspection_city}"
        lines.append(f"LOCATION:{escape_ics_text(location)}")

    if process.inspection_reminder_minutes:
        lines.extend([
            "BEGIN:VALARM",
            "ACTION:DISPLAY",
            f"DESCRIPTION:{escape_ics_text('Lembrete: ' + event_title(process))}",
            f"TRIGGER:-PT{int(process.inspection_reminder_minutes)}M",
            "END:VALARM",
        ])
    lines.append("END:VEVENT")
    return lines


def build_ics(processes: Iterable[ProcessRecord], now: datetime | None = None) -> str:
    """iCalendar file with one VEVENT per scheduled inspection.

    Processes without an inspection date are skipped.
    """
    stamp = to_ics_datetime(now or datetime.now(timezone.utc))
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Laudos//Agenda de Vistorias//PT-BR",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]
    for process in processes:
        lines.extend(_event_lines(process, stamp))
    lines.append("END:VCALENDAR")

    folded = [chunk for line in lines for chunk in fold_ics_line(line)]
    return "\r\n".join(folded) + "\r\n"


# =========================
# Messages
# =========================


def build_schedule_message(process: ProcessRecord, contact_name: str | None = None) -> str:
    """Schedule notice for e-mail or WhatsApp."""
    name = (contact_name or "").strip()
    claimant = (process.claimant_name or "").strip()
    defendant = (process.defendant_name or "").strip()
    number = (process.process_number or "").strip()
    day = format_date(process.inspection_date) if process.inspection_date else ""
    hour = format_time(process.inspection_time) if process.inspection_time else ""
    address = (process.inspection_address or "").strip()

    lines = [f"Olá, {name}!" if name else "Olá!"]
    lines.append("Estou entrando em contato para agendar/confirmar a perícia.")
    if number or claimant or defendant:
        parties = " x ".join(p for p in (claimant, defendant) if p)
        lines.append(f"Processo: {' — '.join(p for p in (number, parties) if p)}")
    if day or hour:
        lines.append(f"Data/Horário: {' às '.join(p for p in (day, hour) if p)}")
    if address:
        lines.append(f"Local: {address}")
        lines.append(f"Maps: {MAPS_SEARCH_URL}?q={quote(address, safe='')}")
    lines.append("")
    lines.append("Por gentileza, confirme a disponibilidade. Obrigado(a)!")
    return "\n".join(lines).strip()


def normalize_whatsapp_phone(raw: str | None) -> str | None:
    """Digits with the Brazilian country code, or None when not a phone number."""
    digits = "".join(c for c in (raw or "") if c.isdigit())
    if not digits:
        return None
    if digits.startswith("55") and len(digits) in (12, 13):
        return digits
    if len(digits) in (10, 11):
        return f"55{digits}"
    if len(digits) in (12, 13):
        return digits
    return None


def whatsapp_url(phone: str, message: str) -> str:
    """wa.me link.

    Raises:
        ValueError: Invalid phone or empty message
    """
    normalized = normalize_whatsapp_phone(phone)
    if not normalized:
        raise ValueError("Telefone inválido. Informe um telefone com DDD (ex.: 11999999999).")
    if not message.strip():
        raise ValueError("Mensagem vazia")
    return f"https://wa.me/{normalized}?text={quote(message.strip(), safe='')}"
