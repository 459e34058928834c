"""Input validation for processes and their related records.

CPF handling follows the Receita Federal check-digit rule; process numbers
are checked against the CNJ unified numbering format.
"""

import re
from typing import Any

from .models import Party, ProcessRecord, ValidationResult

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# NNNNNNN-DD.AAAA.J.TR.OOOO
CNJ_PATTERN = re.compile(r"^\d{7}-\d{2}\.\d{4}\.\d\.\d{2}\.\d{4}$")


# =========================
# CPF
# =========================


def clean_cpf(cpf: str | None) -> str:
    """Keep only the digits of a CPF."""
    return re.sub(r"\D", "", cpf or "")


def format_cpf(cpf: str | None) -> str:
    """Format a CPF as 000.000.000-00 (input returned as-is if not 11 digits)."""
    digits = clean_cpf(cpf)
    if len(digits) != 11:
        return cpf or ""
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def _check_digit(digits: str) -> int:
    weight = len(digits) + 1
    total = sum(int(d) * (weight - i) for i, d in enumerate(digits))
    remainder = 11 - (total % 11)
    return 0 if remainder >= 10 else remainder


def validate_cpf(cpf: str | None) -> tuple[bool, str | None]:
    """Validate a CPF.

    Returns:
        (is_valid, error message or None)
    """
    digits = clean_cpf(cpf)
    if not digits:
        return False, "CPF é obrigatório"
    if len(digits) != 11:
        return False, "CPF deve ter 11 dígitos"
    if len(set(digits)) == 1:
        return False, "CPF não pode ter todos os dígitos iguais"

    first = _check_digit(digits[:9])
    second = _check_digit(digits[:9] + str(first))
    if digits[9:] != f"{first}{second}":
        return False, "CPF inválido"
    return True, None


def is_valid_cpf(cpf: str | None) -> bool:
    return validate_cpf(cpf)[0]


# =========================
# E-mail
# =========================


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str | None) -> bool:
    return bool(EMAIL_PATTERN.match(normalize_email(email)))


# =========================
# Records
# =========================


def validate_process(process: ProcessRecord | dict[str, Any]) -> ValidationResult:
    """Validate a process before saving or generating a report.

    Missing identity fields and malformed e-mails are errors; gaps that only
    weaken the report are warnings.
    """
    data = process.model_dump() if isinstance(process, ProcessRecord) else dict(process)
    errors: list[str] = []
    warnings: list[str] = []

    for field, label in (
        ("process_number", "Número do processo"),
        ("claimant_name", "Nome da reclamante"),
        ("defendant_name", "Nome da reclamada"),
    ):
        if not str(data.get(field) or "").strip():
            errors.append(f"{label} é obrigatório")

    for field, label in (
        ("claimant_email", "E-mail da reclamante"),
        ("defendant_email", "E-mail da reclamada"),
    ):
        value = data.get(field)
        if value and not is_valid_email(value):
            errors.append(f"{label} inválido")

    number = str(data.get("process_number") or "").strip()
    if number and not CNJ_PATTERN.match(number):
        warnings.append("Número do processo fora do padrão CNJ (NNNNNNN-DD.AAAA.J.TR.OOOO)")
    if not str(data.get("court") or "").strip():
        warnings.append("Vara não informada")
    if not data.get("inspection_date"):
        warnings.append("Data da vistoria não agendada")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def _validate_risk_agent(data: dict[str, Any]) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []

    if not str(data.get("agent_name") or "").strip():
        errors.append("Nome do agente é obrigatório")
    if not str(data.get("agent_type") or "").strip():
        errors.append("Tipo do agente é obrigatório")

    value = data.get("measurement_value")
    limit = data.get("tolerance_limit")
    for field, label in ((value, "Valor medido"), (limit, "Limite de tolerância")):
        if field is not None:
            try:
                if float(field) < 0:
                    errors.append(f"{label} não pode ser negativo")
            except (TypeError, ValueError):
                errors.append(f"{label} deve ser numérico")

    if value is not None and not data.get("measurement_unit"):
        warnings.append("Unidade da medição não informada")
    if not errors and value is not None and limit is not None:
        if data.get("measurement_unit") == data.get("tolerance_unit") and float(value) > float(limit):
            warnings.append("Valor medido acima do limite de tolerância")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def _validate_questionnaire(data: dict[str, Any]) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []

    if data.get("party") not in {p.value for p in Party}:
        errors.append("Parte deve ser claimant, defendant ou judge")
    if not str(data.get("question") or "").strip():
        errors.append("Quesito é obrigatório")
    try:
        if int(data.get("question_number") or 0) < 1:
            errors.append("Número do quesito deve ser positivo")
    except (TypeError, ValueError):
        errors.append("Número do quesito deve ser inteiro")
    if not str(data.get("answer") or "").strip():
        warnings.append("Quesito sem resposta")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def validate_business_rules(entity_type: str, data: dict[str, Any]) -> ValidationResult:
    """Validate a record of the given type.

    Args:
        entity_type: process, risk_agent or questionnaire
        data: The record fields

    Raises:
        ValueError: If the entity type is unknown
    """
    if entity_type == "process":
        return validate_process(data)
    if entity_type == "risk_agent":
        return _validate_risk_agent(data)
    if entity_type == "questionnaire":
        return _validate_questionnaire(data)
    raise ValueError(f"Unsupported entity type: {entity_type}")
