"""Unit tests for report assembly.

Tests section order, the "Não informado" placeholder rule and the
rendering of the structured sections.

Run with: pytest tests/unit/reports/test_assembler.py -v
"""

import pytest

from laudos.processes.models import ProcessRecord, ReportType, RiskAgent
from laudos.reports.assembler import SECTION_TITLES, assemble_report, parse_epc_items
from laudos.reports.formatting import NOT_INFORMED, is_informed


def section(content: str, number: int) -> str:
    """Body of one numbered section."""
    start = content.index(f"{number}. {SECTION_TITLES[number - 1]}\n")
    body_start = content.index("\n", start) + 1
    if number < len(SECTION_TITLES):
        end = content.index(f"\n\n{number + 1}. {SECTION_TITLES[number]}\n", body_start)
    else:
        end = content.index("\n\nData de geração:", body_start)
    return content[body_start:end]


class TestSectionLayout:
    """Tests for the fixed section skeleton."""

    def test_has_twenty_one_sections(self):
        """Test the section catalogue size."""
        assert len(SECTION_TITLES) == 21

    def test_sections_in_order(self, full_process, report_date):
        """Test that every header appears once, in order."""
        content = assemble_report(full_process, generated_on=report_date)

        positions = [content.index(f"{i}. {title}\n") for i, title in enumerate(SECTION_TITLES, start=1)]
        assert positions == sorted(positions)
        for i, title in enumerate(SECTION_TITLES, start=1):
            assert content.count(f"{i}. {title}\n") == 1

    def test_preamble_and_closing_date(self, full_process, report_date):
        """Test the preamble and the generation date line."""
        content = assemble_report(full_process, generated_on=report_date)

        assert content.startswith("LAUDO PERICIAL TRABALHISTA\n")
        assert "Processo: 0001234-56.2023.5.02.0001" in content
        assert content.endswith("Data de geração: 01/04/2024\n")

    def test_empty_process_renders_placeholders(self, minimal_process, report_date):
        """Test that unfilled sections render as "Não informado"."""
        content = assemble_report(minimal_process, generated_on=report_date)

        for number in range(1, 22):
            if number == 13:
                continue
            assert section(content, number) == NOT_INFORMED, SECTION_TITLES[number - 1]

    def test_epi_section_keeps_intro_when_empty(self, minimal_process, report_date):
        """Test the EPI intro is always present."""
        content = assemble_report(minimal_process, generated_on=report_date)

        body = section(content, 13)
        assert body.startswith("Para função exercida pela Reclamante")
        assert body.endswith(NOT_INFORMED)

    def test_report_type_is_lenient(self, minimal_process, report_date):
        """Test that an unknown report type falls back to completo."""
        expected = assemble_report(minimal_process, report_type="completo", generated_on=report_date)

        assert assemble_report(minimal_process, report_type="outro", generated_on=report_date) == expected


class TestPlaceholderRule:
    """Tests for the informed-value rule."""

    @pytest.mark.parametrize("value", [None, "", "   ", "Não informado", "não informado.", [], {}])
    def test_not_informed_values(self, value):
        """Test values that count as empty."""
        assert is_informed(value) is False

    @pytest.mark.parametrize("value", ["x", 0, False, ["a"], {"k": "v"}])
    def test_informed_values(self, value):
        """Test values that count as filled in."""
        assert is_informed(value) is True

    def test_placeholder_text_is_not_echoed(self, minimal_process, report_date):
        """Test that a stored placeholder renders as a single placeholder."""
        process = minimal_process.model_copy(update={"objective": "Não informado."})

        content = assemble_report(process, generated_on=report_date)

        assert section(content, 4) == NOT_INFORMED

    def test_assembly_is_stable(self, full_process, sample_questionnaires, report_date):
        """Test that assembling twice yields the same text."""
        first = assemble_report(full_process, sample_questionnaires, generated_on=report_date)
        second = assemble_report(full_process, sample_questionnaires, generated_on=report_date)

        assert first == second


class TestStructuredSections:
    """Tests for the structured section renderers."""

    def test_claimant_positions(self, full_process, report_date):
        """Test the numbered position line."""
        content = assemble_report(full_process, generated_on=report_date)

        body = section(content, 2)
        assert "Nome: Maria Souza" in body
        assert "1. Função: Operador | Período: 01/01/2020 a 01/01/2022" in body

    def test_claimant_data_as_plain_text(self, minimal_process, report_date):
        """Test that a text bag is rendered verbatim."""
        process = minimal_process.model_copy(update={"claimant_data": "Admitida em 2019."})

        content = assemble_report(process, generated_on=report_date)

        assert section(content, 2) == "Admitida em 2019."

    def test_defendant_data_lines(self, full_process, report_date):
        """Test key/value lines for the defendant."""
        content = assemble_report(full_process, generated_on=report_date)

        assert section(content, 3) == "cnpj: 12.345.678/0001-90"

    def test_inspection_fallback(self, full_process, report_date):
        """Test the diligence section built from the process inspection."""
        content = assemble_report(full_process, generated_on=report_date)

        body = section(content, 7)
        assert "Data: 15/03/2024" in body
        assert "Local: Rua das Indústrias, 100" in body
        assert "Horário: 14:30" in body

    def test_diligence_list(self, minimal_process, report_date):
        """Test numbered diligence blocks."""
        process = ProcessRecord.model_validate({
            **minimal_process.model_dump(),
            "diligence_data": [{"date": "2024-05-02", "address": "Galpão 3"}],
        })

        content = assemble_report(process, generated_on=report_date)

        assert section(content, 7) == "Vistoria 1:\nData: 02/05/2024\nLocal: Galpão 3"

    def test_epi_lines(self, minimal_process, report_date):
        """Test one numbered line per EPI with the CA in parentheses."""
        process = ProcessRecord.model_validate({
            **minimal_process.model_dump(),
            "epis": [
                {"equipment": "Luva", "ca": 12345, "protection": "Mãos"},
                {"name": "Protetor auricular"},
                "Óculos",
            ],
        })

        content = assemble_report(process, generated_on=report_date)

        body = section(content, 13)
        assert "1. Luva (CA: 12345) - Proteção: Mãos" in body
        assert "2. Protetor auricular" in body
        assert "3. Óculos" in body
        assert "4." not in body

    def test_attendees_and_documents(self, full_process, report_date):
        """Test pipe-joined attendee and document lines."""
        content = assemble_report(full_process, generated_on=report_date)

        assert section(content, 8) == "1. Nome: João Lima | Função: Supervisor"
        assert section(content, 10) == "1. PPRA | Apresentado: Sim"

    def test_questionnaires_grouped_by_party(self, full_process, sample_questionnaires, report_date):
        """Test party headers and inline answers."""
        content = assemble_report(full_process, sample_questionnaires, generated_on=report_date)

        body = section(content, 20)
        assert body.index("QUESITOS DA RECLAMANTE:") < body.index("QUESITOS DA RECLAMADA:")
        assert "1. Qual a função? | Resposta: Não informado" in body
        assert "2. Havia ruído? | Resposta: Sim, acima do limite." in body
        assert "1. Havia EPI? | Resposta: Sim." in body

    def test_risk_agents_listed(self, full_process, sample_risk_agents, report_date):
        """Test the risk agent block in section 15."""
        content = assemble_report(full_process, risk_agents=sample_risk_agents, generated_on=report_date)

        body = section(content, 15)
        assert body.startswith("Análise de Insalubridade:")
        assert "1. Ruído (físico)" in body
        assert "   Medição: 88 dB(A)" in body
        assert "   Limite: 85 dB(A)" in body

    def test_annex_tables_follow_flags(self, minimal_process, report_date):
        """Test that the NR tables are only included when flagged."""
        process = minimal_process.model_copy(deep=True)
        process.report_config.flags.show_nr15_item15 = True

        complete = section(assemble_report(process, generated_on=report_date), 15)
        periculosity = section(
            assemble_report(process, report_type=ReportType.PERICULOSIDADE, generated_on=report_date), 15
        )

        assert complete.startswith("Quadro NR-15:")
        assert "Anexo 1 - Ruído Contínuo ou Intermitente | Exposição: Não ocorre exposição" in complete
        assert periculosity == NOT_INFORMED

    def test_risk_agent_without_measurement(self, minimal_process, report_date):
        """Test that missing measurements are omitted."""
        agent = RiskAgent(agent_name="Calor", agent_type="físico")

        body = section(assemble_report(minimal_process, risk_agents=[agent], generated_on=report_date), 15)

        assert body == "Agentes de Risco Identificados:\n1. Calor (físico)"


class TestEpcItems:
    """Tests for EPC bullet parsing."""

    def test_marker_and_dedup(self):
        """Test that duplicates across fields are listed once."""
        items = parse_epc_items("EPCs selecionados:\n- Exaustor\n- Ventilador", "- Exaustor")

        assert items == ["Exaustor", "Ventilador"]

    def test_marker_skips_preceding_bullets(self):
        """Test that bullets before the marker are ignored."""
        items = parse_epc_items("- Rascunho\nEPCs selecionados:\n• Guarda-corpo")

        assert items == ["Guarda-corpo"]

    def test_no_bullets(self):
        """Test free text without bullets."""
        assert parse_epc_items("Não há EPCs.", None) == []

    def test_epc_section(self, full_process, report_date):
        """Test the numbered EPC list."""
        process = full_process.model_copy(update={"collective_protection": "- Exaustor"})

        content = assemble_report(process, generated_on=report_date)

        assert section(content, 14) == "1. Exaustor\n2. Ventilador"

    def test_epc_free_text_fallback(self, minimal_process, report_date):
        """Test that free text is kept when there are no bullets."""
        process = minimal_process.model_copy(update={"epcs": "Exaustão localizada no setor."})

        content = assemble_report(process, generated_on=report_date)

        assert section(content, 14) == "Exaustão localizada no setor."


class TestHandEditedBags:
    """Tests for stored rows whose JSON items carry off-type values."""

    @pytest.fixture
    def stored_row(self, minimal_process):
        row = minimal_process.model_dump()
        row.update(
            documents_presented=[{"name": "PPP", "presented": "sim"}, {"name": "LTCAT", "presented": "não"}],
            attendees=[{"name": "Ana", "company": 123}],
            epis=[{"equipment": "Luva", "protection": 5, "ca": 4321}],
            diligence_data=[{"city": 3550308, "date": "2024-03-15"}],
            claimant_data={"name": "Maria Souza", "positions": [{"title": "Operadora", "period": 2020}]},
            inspection_duration_minutes="uma hora",
            inspection_reminder_minutes="30",
            expert_fee="1500,50",
        )
        return row

    def test_row_loads(self, stored_row):
        """Test that numbers and yes/no words in items are accepted."""
        process = ProcessRecord.model_validate(stored_row)

        assert process.documents_presented[0].presented is True
        assert process.documents_presented[1].presented is False
        assert process.attendees[0].company == "123"
        assert process.epis[0].protection == "5"
        assert process.diligence_data[0].city == "3550308"
        assert process.inspection_duration_minutes == 60
        assert process.inspection_reminder_minutes == 30
        assert process.expert_fee == 1500.5

    def test_report_from_row(self, stored_row, report_date):
        """Test that the report is assembled from the coerced values."""
        process = ProcessRecord.model_validate(stored_row)

        content = assemble_report(process, generated_on=report_date)

        assert "1. Função: Operadora | Período: 2020" in section(content, 2)
        assert "Cidade: 3550308" in section(content, 7)
        assert section(content, 8) == "1. Nome: Ana | Empresa: 123"
        assert section(content, 10) == "1. PPP | Apresentado: Sim\n2. LTCAT | Apresentado: Não"
        assert "1. Luva (CA: 4321) - Proteção: 5" in section(content, 13)

    def test_unknown_flag_is_unknown(self, minimal_process):
        row = minimal_process.model_dump()
        row["documents_presented"] = [{"name": "PCMSO", "presented": "talvez"}]

        process = ProcessRecord.model_validate(row)

        assert process.documents_presented[0].presented is None

    def test_risk_agent_text_measurement(self, minimal_process, report_date):
        """Test that comma decimals and yes/no words load on risk agents."""
        agent = RiskAgent.model_validate(
            {"agent_name": "Ruído", "agent_type": 1, "measurement_value": "85,5", "periculosity_applicable": "sim"}
        )

        assert agent.measurement_value == 85.5
        assert agent.agent_type == "1"
        assert agent.periculosity_applicable is True
        assert "Ruído" in section(assemble_report(minimal_process, risk_agents=[agent], generated_on=report_date), 15)
