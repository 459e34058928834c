"""Pytest fixtures for Laudos unit tests."""

import pytest
from datetime import date
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from laudos.processes.models import ProcessRecord, QuestionnaireEntry, RiskAgent


@pytest.fixture
def minimal_process() -> ProcessRecord:
    """A process with only the identity fields filled in."""
    return ProcessRecord(
        id=uuid4(),
        user_id="user-1",
        process_number="0001234-56.2023.5.02.0001",
        claimant_name="Maria Souza",
        defendant_name="Metalúrgica Alfa Ltda",
    )


@pytest.fixture
def full_process() -> ProcessRecord:
    """A process with every report section filled in."""
    return ProcessRecord(
        id=uuid4(),
        user_id="user-1",
        process_number="0001234-56.2023.5.02.0001",
        claimant_name="Maria Souza",
        defendant_name="Metalúrgica Alfa Ltda",
        court="1ª Vara do Trabalho de São Paulo",
        inspection_date="2024-03-15",
        inspection_time="14:30:00",
        inspection_address="Rua das Indústrias, 100",
        inspection_city="São Paulo",
        identifications={"process_number": "0001234-56.2023.5.02.0001", "court": "1ª Vara"},
        claimant_data={
            "name": "Maria Souza",
            "positions": [{"title": "Operador", "period": "01/01/2020 a 01/01/2022"}],
        },
        defendant_data={"cnpj": "12.345.678/0001-90"},
        objective="Apurar a existência de insalubridade e periculosidade.",
        initial_data="A reclamante alega exposição a ruído.",
        defense_data="A reclamada nega a exposição.",
        attendees=[{"name": "João Lima", "function": "Supervisor"}],
        methodology="Inspeção no local e medições.",
        documents_presented=[{"name": "PPRA", "presented": True}],
        workplace_characteristics={"area": "200 m²", "ventilation": ["natural"]},
        activities_description="Operava prensa hidráulica.",
        epis=[{"equipment": "Protetor auricular", "ca": "12345", "protection": "Ruído"}],
        epcs="EPCs selecionados:\n- Exaustor\n- Ventilador",
        insalubrity_analysis="Ruído acima do limite de tolerância.",
        insalubrity_results="Constatada insalubridade em grau médio.",
        periculosity_concept="Conceito conforme NR-16.",
        flammable_definition="Líquidos com ponto de fulgor até 60 °C.",
        periculosity_results="Periculosidade não constatada.",
        conclusion="Devido o adicional de insalubridade em grau médio.",
    )


@pytest.fixture
def sample_questionnaires(full_process) -> list[QuestionnaireEntry]:
    """Questions from two parties, out of order."""
    return [
        QuestionnaireEntry(process_id=full_process.id, party="defendant", question_number=1,
                           question="Havia EPI?", answer="Sim."),
        QuestionnaireEntry(process_id=full_process.id, party="claimant", question_number=2,
                           question="Havia ruído?", answer="Sim, acima do limite."),
        QuestionnaireEntry(process_id=full_process.id, party="claimant", question_number=1,
                           question="Qual a função?", answer=None),
    ]


@pytest.fixture
def sample_risk_agents(full_process) -> list[RiskAgent]:
    """One measured physical agent."""
    return [
        RiskAgent(
            process_id=full_process.id,
            agent_name="Ruído",
            agent_type="físico",
            measurement_value=88.0,
            measurement_unit="dB(A)",
            tolerance_limit=85.0,
            tolerance_unit="dB(A)",
            risk_level="alto",
        )
    ]


@pytest.fixture
def mock_manager(full_process, sample_questionnaires, sample_risk_agents) -> MagicMock:
    """A ProcessManager double returning the sample data."""
    manager = MagicMock()
    manager.get_process = AsyncMock(return_value=full_process)
    manager.list_questionnaires = AsyncMock(return_value=sample_questionnaires)
    manager.list_risk_agents = AsyncMock(return_value=sample_risk_agents)
    manager.get_expert_profile = AsyncMock(return_value=None)
    manager.update_process = AsyncMock(return_value=full_process)
    return manager


@pytest.fixture
def report_date() -> date:
    return date(2024, 4, 1)
