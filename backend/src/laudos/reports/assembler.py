"""Report assembly.

Turns a process record, its questionnaires and its risk agents into the
plain-text "laudo pericial": a short identification preamble followed by 21
numbered sections in fixed order and a closing generation date. Every
section is always emitted; absent data renders as "Não informado".

This is the single implementation used by both the local generator and the
function-style endpoint. It never raises on malformed input: a section that
fails to render is logged and degrades to the placeholder.
"""

import logging
import re
from datetime import date
from typing import Callable, Iterable

from ..processes.models import (
    AnnexRow,
    Attendee,
    ClaimantData,
    Diligence,
    EPIItem,
    ExpertProfile,
    Identifications,
    Party,
    Position,
    PresentedDocument,
    ProcessRecord,
    QuestionnaireEntry,
    ReportType,
    RiskAgent,
    WorkplaceCharacteristics,
)
from .formatting import (
    NOT_INFORMED,
    clean,
    format_date,
    format_number,
    format_time,
    format_value,
    inline,
    is_informed,
    json_dump,
    or_not_informed,
)

logger = logging.getLogger(__name__)


SECTION_TITLES: tuple[str, ...] = (
    "IDENTIFICAÇÕES",
    "DADOS DA RECLAMANTE",
    "DADOS DA RECLAMADA",
    "OBJETIVO",
    "DADOS DA INICIAL",
    "DADOS DA CONTESTAÇÃO DA RECLAMADA",
    "DILIGÊNCIAS / VISTORIAS",
    "ACOMPANHANTES / ENTREVISTADOS",
    "METODOLOGIA",
    "DOCUMENTAÇÕES APRESENTADAS",
    "CARACTERÍSTICAS DO LOCAL DE TRABALHO",
    "ATIVIDADES DA RECLAMANTE",
    "EQUIPAMENTOS DE PROTEÇÃO INDIVIDUAL (EPIs)",
    "EQUIPAMENTOS DE PROTEÇÃO COLETIVA (EPCs)",
    "ANÁLISE DOS AGENTES DE RISCO",
    "RESULTADOS DAS AVALIAÇÕES DE INSALUBRIDADE",
    "CONCEITO DE PERICULOSIDADE",
    "DEFINIÇÃO DE MATERIAIS INFLAMÁVEIS",
    "RESULTADOS DAS AVALIAÇÕES DE PERICULOSIDADE",
    "QUESITOS DA PERÍCIA",
    "CONCLUSÃO",
)

DEFAULT_EPI_INTRO = (
    "Para função exercida pela Reclamante a empresa realizava a entrega dos "
    "seguintes equipamentos de proteção individual - E.P.I. (Art. 166 da CLT "
    "e NR-6, item 6.2 da Portaria nº 3214/78 do MTE):"
)

PARTY_HEADERS: dict[str, str] = {
    Party.CLAIMANT.value: "QUESITOS DA RECLAMANTE",
    Party.DEFENDANT.value: "QUESITOS DA RECLAMADA",
    Party.JUDGE.value: "QUESITOS DO JUÍZO",
}

EPC_MARKER = re.compile(r"EPCs selecionados:", re.IGNORECASE)
BULLET = re.compile(r"^[-•]\s*(.+)$")

WORKPLACE_LABELS: dict[str, str] = {
    "area": "Área",
    "ceiling_height": "Pé-direito",
    "floor": "Pavimento",
    "construction": "Construção",
    "roofing": "Cobertura",
    "flooring": "Piso",
    "walls": "Paredes",
    "lighting": "Iluminação",
    "ventilation": "Ventilação",
    "special_condition_type": "Condição especial",
    "special_condition_description": "Descrição da condição especial",
}


# =============================================================================
# Section renderers
# =============================================================================


def _identifications(process: ProcessRecord) -> str:
    value = process.identifications
    if not isinstance(value, Identifications):
        return clean(value) or ""

    lines = []
    for label, field in (
        ("Processo", value.process_number),
        ("Reclamante", value.claimant_name),
        ("Reclamada", value.defendant_name),
        ("Vara", value.court),
    ):
        if is_informed(field):
            lines.append(f"{label}: {clean(field)}")
    for key, extra in value.extra_fields().items():
        if is_informed(extra):
            lines.append(f"{key}: {inline(extra)}")
    return "\n".join(lines)


def _position_line(index: int, position: Position | str) -> str:
    if isinstance(position, str):
        return f"{index}. {position.strip()}"
    parts = []
    if is_informed(position.title):
        parts.append(f"Função: {clean(position.title)}")
    if is_informed(position.period):
        parts.append(f"Período: {clean(position.period)}")
    if is_informed(position.obs):
        parts.append(f"Obs: {clean(position.obs)}")
    return f"{index}. {' | '.join(parts) if parts else json_dump(position)}"


def _claimant_data(process: ProcessRecord) -> str:
    value = process.claimant_data
    if not isinstance(value, ClaimantData):
        return clean(value) or ""

    lines = []
    if is_informed(value.name):
        lines.append(f"Nome: {clean(value.name)}")

    positions = [p for p in value.positions if is_informed(p)]
    if positions:
        lines.append("Cargos exercidos:")
        for index, position in enumerate(positions, start=1):
            lines.append(_position_line(index, position))

    for key, extra in value.extra_fields().items():
        if is_informed(extra):
            lines.append(f"{key}: {inline(extra)}")
    return "\n".join(lines)


def _defendant_data(process: ProcessRecord) -> str:
    return format_value(process.defendant_data)


def _diligences(process: ProcessRecord) -> str:
    blocks = []
    diligences = [d for d in process.diligence_data if is_informed(d)]
    for index, diligence in enumerate(diligences, start=1):
        lines = [f"Vistoria {index}:"]
        if isinstance(diligence, Diligence):
            if is_informed(diligence.date):
                lines.append(f"Data: {format_date(diligence.date)}")
            if is_informed(diligence.location):
                lines.append(f"Local: {clean(diligence.location)}")
            if is_informed(diligence.city):
                lines.append(f"Cidade: {clean(diligence.city)}")
            if is_informed(diligence.time):
                lines.append(f"Horário: {format_time(diligence.time)}")
            if is_informed(diligence.description):
                lines.append(f"Descrição: {clean(diligence.description)}")
            if len(lines) == 1:
                lines.append(json_dump(diligence))
        else:
            lines.append(diligence.strip())
        blocks.append("\n".join(lines))

    if blocks:
        return "\n\n".join(blocks)

    # No diligence list: fall back to the single inspection on the process
    lines = []
    if is_informed(process.inspection_date):
        lines.append(f"Data: {format_date(process.inspection_date)}")
    if is_informed(process.inspection_address):
        lines.append(f"Local: {clean(process.inspection_address)}")
    if is_informed(process.inspection_city):
        lines.append(f"Cidade: {clean(process.inspection_city)}")
    if is_informed(process.inspection_time):
        lines.append(f"Horário: {format_time(process.inspection_time)}")
    return "\n".join(lines)


def _attendee_line(index: int, attendee: Attendee | str) -> str:
    if isinstance(attendee, str):
        return f"{index}. {attendee.strip()}"
    parts = []
    if is_informed(attendee.name):
        parts.append(f"Nome: {clean(attendee.name)}")
    if is_informed(attendee.function):
        parts.append(f"Função: {clean(attendee.function)}")
    if is_informed(attendee.company):
        parts.append(f"Empresa: {clean(attendee.company)}")
    if is_informed(attendee.obs):
        parts.append(f"Obs: {clean(attendee.obs)}")
    return f"{index}. {' | '.join(parts) if parts else json_dump(attendee)}"


def _attendees(process: ProcessRecord) -> str:
    attendees = [a for a in process.attendees if is_informed(a)]
    return "\n".join(_attendee_line(i, a) for i, a in enumerate(attendees, start=1))


def _document_line(index: int, document: PresentedDocument | str) -> str:
    if isinstance(document, str):
        return f"{index}. {document.strip()}"
    parts = []
    if is_informed(document.name):
        parts.append(clean(document.name))
    if document.presented is not None:
        parts.append(f"Apresentado: {'Sim' if document.presented else 'Não'}")
    if is_informed(document.obs):
        parts.append(f"Obs: {clean(document.obs)}")
    return f"{index}. {' | '.join(parts) if parts else json_dump(document)}"


def _documents(process: ProcessRecord) -> str:
    documents = [d for d in process.documents_presented if is_informed(d)]
    return "\n".join(_document_line(i, d) for i, d in enumerate(documents, start=1))


def _workplace(process: ProcessRecord) -> str:
    value = process.workplace_characteristics
    if not isinstance(value, WorkplaceCharacteristics):
        return clean(value) or ""

    lines = []
    data = value.model_dump(exclude_none=True)
    for key, label in WORKPLACE_LABELS.items():
        if key == "special_condition_type" and data.get(key) == "none":
            continue
        if is_informed(data.get(key)):
            lines.append(f"{label}: {inline(data[key])}")
    for key, extra in value.extra_fields().items():
        if is_informed(extra):
            lines.append(f"{key}: {inline(extra)}")
    return "\n".join(lines)


def _epi_line(index: int, epi: EPIItem | str) -> str:
    if isinstance(epi, str):
        return f"{index}. {clean(epi) or NOT_INFORMED}"
    if is_informed(epi.equipment):
        name = clean(epi.equipment)
    elif epi.extra_fields():
        name = json_dump(epi.extra_fields())
    else:
        name = NOT_INFORMED
    line = f"{index}. {name}"
    if is_informed(epi.ca):
        line += f" (CA: {clean(epi.ca)})"
    if is_informed(epi.protection):
        line += f" - Proteção: {clean(epi.protection)}"
    return line


def _epis(process: ProcessRecord) -> str:
    intro = clean(process.epi_intro) or DEFAULT_EPI_INTRO
    if process.epis:
        items = "\n".join(_epi_line(i, epi) for i, epi in enumerate(process.epis, start=1))
    else:
        items = NOT_INFORMED
    return f"{intro}\n\n{items}"


def parse_epc_items(*texts: str | None) -> list[str]:
    """Collect deduplicated EPC bullet items from free-text fields.

    When a field carries the "EPCs selecionados:" marker only the bullets
    after it are taken; otherwise every bullet line of the field counts.
    """
    items: list[str] = []
    seen: set[str] = set()

    for text in texts:
        if not is_informed(text):
            continue
        lines = [line.strip() for line in str(text).splitlines() if line.strip()]
        has_marker = any(EPC_MARKER.search(line) for line in lines)
        in_selected = not has_marker
        for line in lines:
            if EPC_MARKER.search(line):
                in_selected = True
                continue
            match = BULLET.match(line)
            if in_selected and match:
                item = match.group(1).strip()
                if item and item not in seen:
                    seen.add(item)
                    items.append(item)
    return items


def _epcs(process: ProcessRecord) -> str:
    items = parse_epc_items(process.epcs, process.collective_protection)
    if items:
        return "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1))
    return clean(process.epcs) or clean(process.collective_protection) or ""


def _annex_table(title: str, rows: list[AnnexRow]) -> str:
    lines = [title]
    for row in rows:
        line = f"Anexo {row.annex} - {row.agent} | Exposição: {row.exposure}"
        if is_informed(row.obs) and set(row.obs.strip()) != {"-"}:
            line += f" | Obs: {row.obs.strip()}"
        lines.append(line)
    return "\n".join(lines)


def _risk_agent_block(index: int, agent: RiskAgent) -> str:
    header = f"{index}. {clean(agent.agent_name) or NOT_INFORMED}"
    if is_informed(agent.agent_type):
        header += f" ({clean(agent.agent_type)})"
    lines = [header]
    if is_informed(agent.description):
        lines.append(f"   Descrição: {clean(agent.description)}")
    if agent.measurement_value is not None:
        unit = clean(agent.measurement_unit) or ""
        lines.append(f"   Medição: {format_number(agent.measurement_value)} {unit}".rstrip())
    if agent.tolerance_limit is not None:
        unit = clean(agent.tolerance_unit) or ""
        lines.append(f"   Limite: {format_number(agent.tolerance_limit)} {unit}".rstrip())
    if is_informed(agent.risk_level):
        lines.append(f"   Nível de Risco: {clean(agent.risk_level)}")
    if is_informed(agent.notes):
        lines.append(f"   Observações: {clean(agent.notes)}")
    return "\n".join(lines)


def _risk_analysis(
    process: ProcessRecord,
    risk_agents: list[RiskAgent],
    report_type: ReportType,
) -> str:
    insalubrity = clean(process.insalubrity_analysis)
    periculosity = clean(process.periculosity_analysis)

    analyses = []
    if insalubrity:
        analyses.append(f"Análise de Insalubridade:\n{insalubrity}")
    if periculosity:
        analyses.append(f"Análise de Periculosidade:\n{periculosity}")
    if report_type == ReportType.PERICULOSIDADE:
        analyses.reverse()

    blocks = list(analyses)

    config = process.report_config
    if config.flags.show_nr15_item15 and report_type != ReportType.PERICULOSIDADE:
        blocks.append(_annex_table("Quadro NR-15:", config.analysis_tables.nr15))
    if config.flags.show_nr16_item15 and report_type != ReportType.INSALUBRIDADE:
        blocks.append(_annex_table("Quadro NR-16:", config.analysis_tables.nr16))

    if risk_agents:
        agent_lines = ["Agentes de Risco Identificados:"]
        agent_lines.extend(
            _risk_agent_block(i, agent) for i, agent in enumerate(risk_agents, start=1)
        )
        blocks.append("\n".join(agent_lines))

    return "\n\n".join(blocks)


def _questionnaires(questionnaires: list[QuestionnaireEntry]) -> str:
    groups: dict[str, list[QuestionnaireEntry]] = {}
    for entry in questionnaires:
        party = (entry.party or "").strip().lower() or "outros"
        groups.setdefault(party, []).append(entry)

    ordered = [p for p in PARTY_HEADERS if p in groups]
    ordered += sorted(p for p in groups if p not in PARTY_HEADERS)

    blocks = []
    for party in ordered:
        entries = sorted(groups[party], key=lambda e: e.question_number)
        header = PARTY_HEADERS.get(party, f"QUESITOS ({party.upper()})")
        lines = [f"{header}:"]
        for index, entry in enumerate(entries, start=1):
            number = entry.question_number if entry.question_number > 0 else index
            question = clean(entry.question) or NOT_INFORMED
            answer = clean(entry.answer) or NOT_INFORMED
            lines.append(f"{number}. {question} | Resposta: {answer}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _plain(value: str | None) -> str:
    return clean(value) or ""


# =============================================================================
# Assembly
# =============================================================================


def _preamble(process: ProcessRecord, expert: ExpertProfile | None) -> str:
    lines = [
        "LAUDO PERICIAL TRABALHISTA",
        "",
        "IDENTIFICAÇÃO DO PROCESSO",
        f"Processo: {clean(process.process_number) or NOT_INFORMED}",
        f"Reclamante: {clean(process.claimant_name) or NOT_INFORMED}",
        f"Reclamada: {clean(process.defendant_name) or NOT_INFORMED}",
    ]
    if is_informed(process.court):
        lines.append(f"Vara: {clean(process.court)}")

    if expert is not None:
        lines += ["", "IDENTIFICAÇÃO DO PERITO", f"Nome: {expert.full_name}"]
        if is_informed(expert.professional_title):
            lines.append(f"Título: {expert.professional_title}")
        if is_informed(expert.registration_number):
            lines.append(f"Registro: {expert.registration_number}")
    return "\n".join(lines)


def _render(number: int, render: Callable[[], str]) -> str:
    try:
        body = render()
    except Exception:
        logger.exception(f"Section {number} failed to render")
        body = ""
    return f"{number}. {SECTION_TITLES[number - 1]}\n{or_not_informed(body)}"


def assemble_report(
    process: ProcessRecord,
    questionnaires: Iterable[QuestionnaireEntry] = (),
    risk_agents: Iterable[RiskAgent] = (),
    report_type: ReportType | str = ReportType.COMPLETO,
    generated_on: date | None = None,
    expert: ExpertProfile | None = None,
) -> str:
    """Assemble the full report text.

    Args:
        process: The process record
        questionnaires: Questionnaire entries of the process
        risk_agents: Risk agent entries of the process
        report_type: insalubridade, periculosidade or completo
        generated_on: Date stamped at the end (defaults to today)
        expert: Expert identification for the preamble

    Returns:
        The report as plain text
    """
    try:
        report_type = ReportType(report_type)
    except ValueError:
        report_type = ReportType.COMPLETO

    questionnaires = list(questionnaires)
    risk_agents = list(risk_agents)

    renderers: list[Callable[[], str]] = [
        lambda: _identifications(process),
        lambda: _claimant_data(process),
        lambda: _defendant_data(process),
        lambda: _plain(process.objective),
        lambda: _plain(process.initial_data),
        lambda: _plain(process.defense_data),
        lambda: _diligences(process),
        lambda: _attendees(process),
        lambda: _plain(process.methodology),
        lambda: _documents(process),
        lambda: _workplace(process),
        lambda: _plain(process.activities_description),
        lambda: _epis(process),
        lambda: _epcs(process),
        lambda: _risk_analysis(process, risk_agents, report_type),
        lambda: _plain(process.insalubrity_results),
        lambda: _plain(process.periculosity_concept),
        lambda: _plain(process.flammable_definition),
        lambda: _plain(process.periculosity_results),
        lambda: _questionnaires(questionnaires),
        lambda: _plain(process.conclusion),
    ]

    blocks = [_preamble(process, expert)]
    blocks.extend(_render(number, render) for number, render in enumerate(renderers, start=1))

    generated_on = generated_on or date.today()
    blocks.append(f"Data de geração: {generated_on.strftime('%d/%m/%Y')}")

    return "\n\n".join(blocks) + "\n"
