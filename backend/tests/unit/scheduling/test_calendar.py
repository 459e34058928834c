"""Unit tests for calendar exports and schedule messages.

Run with: pytest tests/unit/scheduling/test_calendar.py -v
"""

from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from laudos.scheduling.calendar import (
    build_ics,
    build_schedule_message,
    fold_ics_line,
    google_calendar_url,
    normalize_whatsapp_phone,
    whatsapp_url,
)

STAMP = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestGoogleCalendar:
    """Tests for the event-creation link."""

    def test_dates_in_utc(self, full_process):
        """Test that local inspection time is converted to UTC."""
        query = parse_qs(urlparse(google_calendar_url(full_process)).query)

        assert query["text"] == ["Vistoria — 0001234-56.2023.5.02.0001"]
        assert query["details"] == ["Maria Souza vs Metalúrgica Alfa Ltda"]
        assert query["location"] == ["Rua das Indústrias, 100"]
        assert query["dates"] == ["20240315T173000Z/20240315T183000Z"]

    def test_unscheduled_has_no_dates(self, minimal_process):
        query = parse_qs(urlparse(google_calendar_url(minimal_process)).query)

        assert "dates" not in query

    def test_notes_in_details(self, full_process):
        process = full_process.model_copy(update={"inspection_notes": "Levar decibelímetro"})

        query = parse_qs(urlparse(google_calendar_url(process)).query)

        assert query["details"] == ["Maria Souza vs Metalúrgica Alfa Ltda\n\nObs: Levar decibelímetro"]


class TestICS:
    """Tests for the iCalendar export."""

    def test_single_event(self, full_process):
        """Test the event fields and CRLF line endings."""
        content = build_ics([full_process], now=STAMP)

        assert content.startswith("BEGIN:VCALENDAR\r\nVERSION:2.0\r\n")
        assert content.endswith("END:VCALENDAR\r\n")
        assert "\n" not in content.replace("\r\n", "")
        assert f"UID:{full_process.id}@laudos" in content
        assert "DTSTAMP:20240301T120000Z" in content
        assert "DTSTART:20240315T173000Z" in content
        assert "DTEND:20240315T183000Z" in content
        assert "LOCATION:Rua das Indústrias\\, 100\\, São Paulo" in content
        assert "BEGIN:VALARM" not in content

    def test_reminder_alarm(self, full_process):
        """Test that a reminder adds a display alarm."""
        process = full_process.model_copy(update={"inspection_reminder_minutes": 30})

        content = build_ics([process], now=STAMP)

        assert "BEGIN:VALARM\r\nACTION:DISPLAY\r\n" in content
        assert "TRIGGER:-PT30M" in content

    def test_unscheduled_processes_are_skipped(self, minimal_process, full_process):
        content = build_ics([minimal_process, full_process], now=STAMP)

        assert content.count("BEGIN:VEVENT") == 1

    def test_long_lines_are_folded(self, full_process):
        """Test that no physical line exceeds 75 octets."""
        process = full_process.model_copy(update={"inspection_notes": "Observação " * 30})

        content = build_ics([process], now=STAMP)

        lines = content.split("\r\n")
        assert all(len(line.encode("utf-8")) <= 75 for line in lines)
        assert any(line.startswith(" ") for line in lines)

    def test_fold_keeps_multibyte_characters(self):
        """Test that folding never splits a UTF-8 sequence."""
        chunks = fold_ics_line("DESCRIPTION:" + "ç" * 80)

        assert "".join(c[1:] if i else c for i, c in enumerate(chunks)) == "DESCRIPTION:" + "ç" * 80
        assert all(len(c.encode("utf-8")) <= 75 for c in chunks)


class TestMessages:
    """Tests for the schedule notice and WhatsApp links."""

    def test_schedule_message(self, full_process):
        """Test the notice lines."""
        message = build_schedule_message(full_process, contact_name="Dr. Pedro")

        lines = message.split("\n")
        assert lines[0] == "Olá, Dr. Pedro!"
        assert "Processo: 0001234-56.2023.5.02.0001 — Maria Souza x Metalúrgica Alfa Ltda" in lines
        assert "Data/Horário: 15/03/2024 às 14:30" in lines
        assert "Local: Rua das Indústrias, 100" in lines
        assert lines[-1] == "Por gentileza, confirme a disponibilidade. Obrigado(a)!"

    def test_message_without_schedule(self, minimal_process):
        message = build_schedule_message(minimal_process)

        assert message.startswith("Olá!\n")
        assert "Data/Horário" not in message
        assert "Maps:" not in message

    @pytest.mark.parametrize("raw,expected", [
        ("(11) 99999-9999", "5511999999999"),
        ("1133334444", "551133334444"),
        ("+55 11 99999-9999", "5511999999999"),
        ("99999", None),
        ("", None),
        (None, None),
    ])
    def test_normalize_phone(self, raw, expected):
        """Test country code handling."""
        assert normalize_whatsapp_phone(raw) == expected

    def test_whatsapp_url(self):
        assert whatsapp_url("11999999999", " Olá, tudo bem? ") == (
            "https://wa.me/5511999999999?text=Ol%C3%A1%2C%20tudo%20bem%3F"
        )

    def test_whatsapp_invalid_phone(self):
        with pytest.raises(ValueError, match="Telefone inválido"):
            whatsapp_url("123", "Olá")

    def test_whatsapp_empty_message(self):
        with pytest.raises(ValueError, match="Mensagem vazia"):
            whatsapp_url("11999999999", "   ")
