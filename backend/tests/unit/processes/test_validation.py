"""Unit tests for CPF, e-mail and record validation.

Run with: pytest tests/unit/processes/test_validation.py -v
"""

import pytest

from laudos.processes.insights import compute_progress, compute_statistics
from laudos.processes.validation import (
    clean_cpf,
    format_cpf,
    is_valid_cpf,
    is_valid_email,
    validate_business_rules,
    validate_cpf,
    validate_process,
)


class TestCpf:
    """Tests for CPF handling."""

    def test_valid_cpf(self):
        """Test a CPF with correct check digits, formatted or not."""
        assert validate_cpf("529.982.247-25") == (True, None)
        assert is_valid_cpf("52998224725")

    @pytest.mark.parametrize("cpf,message", [
        ("", "CPF é obrigatório"),
        (None, "CPF é obrigatório"),
        ("1234567890", "CPF deve ter 11 dígitos"),
        ("111.111.111-11", "CPF não pode ter todos os dígitos iguais"),
        ("529.982.247-26", "CPF inválido"),
    ])
    def test_invalid_cpf(self, cpf, message):
        """Test each rejection message."""
        assert validate_cpf(cpf) == (False, message)

    def test_clean_and_format(self):
        """Test digit stripping and the display mask."""
        assert clean_cpf("529.982.247-25") == "52998224725"
        assert format_cpf("52998224725") == "529.982.247-25"
        assert format_cpf("123") == "123"


class TestEmail:
    """Tests for e-mail checks."""

    @pytest.mark.parametrize("email,expected", [
        ("perito@example.com", True),
        ("  Perito@Example.COM ", True),
        ("perito@example", False),
        ("perito example@x.com", False),
        ("", False),
    ])
    def test_is_valid_email(self, email, expected):
        assert is_valid_email(email) is expected


class TestRecordValidation:
    """Tests for process, risk agent and questionnaire rules."""

    def test_complete_process(self, full_process):
        """Test that a well-formed process has no errors or warnings."""
        result = validate_process(full_process)

        assert result.is_valid is True
        assert result.errors == []
        assert result.warnings == []

    def test_missing_identity(self):
        """Test required identity fields."""
        result = validate_process({"process_number": " ", "claimant_name": "A"})

        assert result.is_valid is False
        assert "Número do processo é obrigatório" in result.errors
        assert "Nome da reclamada é obrigatório" in result.errors

    def test_bad_email_and_number_format(self, minimal_process):
        """Test that a malformed e-mail is an error and a non-CNJ number a warning."""
        data = minimal_process.model_dump()
        data.update(process_number="123", claimant_email="invalido")

        result = validate_process(data)

        assert "E-mail da reclamante inválido" in result.errors
        assert any("CNJ" in w for w in result.warnings)

    def test_risk_agent_rules(self):
        """Test numeric checks and the tolerance warning."""
        result = validate_business_rules("risk_agent", {
            "agent_name": "Ruído",
            "agent_type": "físico",
            "measurement_value": 90,
            "measurement_unit": "dB(A)",
            "tolerance_limit": 85,
            "tolerance_unit": "dB(A)",
        })

        assert result.is_valid is True
        assert result.warnings == ["Valor medido acima do limite de tolerância"]

    def test_risk_agent_negative_value(self):
        """Test that negative measurements are rejected."""
        result = validate_business_rules("risk_agent", {
            "agent_name": "Ruído", "agent_type": "físico", "measurement_value": -1,
        })

        assert "Valor medido não pode ser negativo" in result.errors

    def test_questionnaire_rules(self):
        """Test party and numbering checks."""
        result = validate_business_rules("questionnaire", {
            "party": "perito", "question": "", "question_number": 0,
        })

        assert result.is_valid is False
        assert len(result.errors) == 3
        assert result.warnings == ["Quesito sem resposta"]

    def test_unknown_entity(self):
        with pytest.raises(ValueError):
            validate_business_rules("document", {})


class TestInsights:
    """Tests for dashboard statistics and editor progress."""

    def test_statistics(self):
        """Test status buckets, monthly counts and completion rate."""
        stats = compute_statistics([
            {"status": "pending", "created_at": "2024-01-10T10:00:00"},
            {"status": "active", "created_at": "2024-01-20T10:00:00"},
            {"status": "completed", "created_at": "2024-02-01T10:00:00"},
            {"status": "completed", "created_at": None},
        ])

        assert stats.total == 4
        assert stats.pending == 1
        assert stats.in_progress == 1
        assert stats.completed == 2
        assert stats.monthly == {"2024-01": 2, "2024-02": 1}
        assert stats.completion_rate == 50.0

    def test_empty_statistics(self):
        assert compute_statistics([]).completion_rate == 0.0

    def test_progress(self, minimal_process, full_process):
        """Test step completion for empty and filled processes."""
        empty = compute_progress(minimal_process)
        filled = compute_progress(full_process)

        assert empty.completed_steps == 0
        assert empty.progress == 0.0
        assert filled.completed_steps == filled.total_steps == 6
        assert filled.progress == 100.0
