"""Pydantic models for expert-witness processes.

This module defines the domain records for processes (the labor-court case
under expertise), their questionnaires, risk agents and generated reports,
plus the request/response models used by the API.

Every JSON bag column is parsed into an explicit record. Bags arrive either
as decoded JSON or as a JSON string; values that cannot be understood fall
back to the documented defaults instead of raising, so that a damaged row
can still be opened and reported on.
"""

import json
from datetime import date, datetime, time
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)


# =============================================================================
# Enumerations
# =============================================================================


class ProcessStatus(str, Enum):
    """Lifecycle status of a process."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


class ReportType(str, Enum):
    """Which statutory premium a report focuses on."""

    INSALUBRIDADE = "insalubridade"
    PERICULOSIDADE = "periculosidade"
    COMPLETO = "completo"


class Party(str, Enum):
    """Party that submitted a questionnaire entry."""

    CLAIMANT = "claimant"
    DEFENDANT = "defendant"
    JUDGE = "judge"


class AnnexExposure(str, Enum):
    """Exposure verdict for one NR annex row."""

    EM_ANALISE = "Em análise"
    NAO_OCORRE = "Não ocorre exposição"
    OCORRE = "Ocorre exposição"
    REVOGADO = "Revogado"


# =============================================================================
# Coercion helpers
# =============================================================================


def parse_json_bag(value: Any) -> Any:
    """Decode a JSON string; anything else is returned untouched.

    Strings that are not valid JSON are kept as plain text.
    """
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        stripped = value.strip()
        if stripped[:1] in ("{", "["):
            try:
                return json.loads(stripped)
            except ValueError:
                return value
    return value


def as_item_list(value: Any) -> list[Any]:
    """Normalize a bag into a list of dict or str items."""
    value = parse_json_bag(value)
    if value is None or value == "":
        return []
    if isinstance(value, dict):
        value = [value]
    elif not isinstance(value, (list, tuple)):
        value = [value]

    items: list[Any] = []
    for item in value:
        if item is None:
            continue
        if isinstance(item, (dict, str)):
            items.append(item)
        elif isinstance(item, (list, tuple)):
            items.append(json.dumps(list(item), ensure_ascii=False, default=str))
        else:
            items.append(str(item))
    return items


def as_text(value: Any) -> str | None:
    """Coerce a narrative field to text."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def as_iso(value: Any) -> str | None:
    """Render date/time objects as ISO strings, leave text untouched."""
    if value is None:
        return None
    if isinstance(value, (date, datetime, time)):
        return value.isoformat()
    return str(value)


_YES = frozenset({"sim", "s", "yes", "y", "true", "1", "x", "apresentado", "apresentada"})
_NO = frozenset({"não", "nao", "n", "no", "false", "0", "não apresentado", "nao apresentado"})


def as_flag(value: Any) -> bool | None:
    """Read a yes/no answer; anything unrecognized is unknown."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        answer = value.strip().lower()
        if answer in _YES:
            return True
        if answer in _NO:
            return False
    return None


def as_int(value: Any) -> int | None:
    """Whole number from a number or numeric text, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(str(value).strip().replace(",", ".")))
    except (TypeError, ValueError, OverflowError):
        return None


def as_float(value: Any) -> float | None:
    """Decimal number from a number or numeric text (comma or dot), else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip().replace(",", "."))
    except (TypeError, ValueError):
        return None


class FlexibleRecord(BaseModel):
    """Sub-document whose unknown keys are preserved for rendering."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @classmethod
    def _text_keys(cls) -> set[str]:
        """Field names and aliases declared as optional text."""
        keys: set[str] = set()
        for name, field in cls.model_fields.items():
            if field.annotation != (str | None):
                continue
            keys.add(name)
            if isinstance(field.validation_alias, AliasChoices):
                keys.update(c for c in field.validation_alias.choices if isinstance(c, str))
        return keys

    @model_validator(mode="before")
    @classmethod
    def _scalars_to_text(cls, data: Any) -> Any:
        # Hand-edited items carry numbers and flags where text is expected
        if not isinstance(data, dict):
            return data
        text_keys = cls._text_keys()
        coerced = {}
        for key, value in data.items():
            if key in text_keys and value is not None and not isinstance(value, str):
                if isinstance(value, bool):
                    value = "Sim" if value else "Não"
                elif isinstance(value, (date, time)):
                    value = as_iso(value)
                else:
                    value = as_text(value)
            coerced[key] = value
        return coerced

    def extra_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def raw(self) -> dict[str, Any]:
        """Dump the record back to a plain dict, dropping empty values."""
        return self.model_dump(exclude_none=True, by_alias=False)


# =============================================================================
# Structured sub-documents
# =============================================================================


class Identifications(FlexibleRecord):
    """Section 1 identification block."""

    process_number: str | None = Field(
        default=None, validation_alias=AliasChoices("process_number", "processNumber")
    )
    claimant_name: str | None = Field(
        default=None, validation_alias=AliasChoices("claimant_name", "claimantName")
    )
    defendant_name: str | None = Field(
        default=None, validation_alias=AliasChoices("defendant_name", "defendantName")
    )
    court: str | None = None


class Position(FlexibleRecord):
    """A job position held by the claimant."""

    title: str | None = Field(
        default=None, validation_alias=AliasChoices("title", "function")
    )
    period: str | None = None
    obs: str | None = Field(default=None, validation_alias=AliasChoices("obs", "notes"))


class ClaimantData(FlexibleRecord):
    """Claimant name and employment history."""

    name: str | None = None
    positions: list[Position | str] = Field(default_factory=list)

    @field_validator("positions", mode="before")
    @classmethod
    def _positions(cls, value: Any) -> list[Any]:
        return [_item_model(Position, item) for item in as_item_list(value)]


class WorkplaceCharacteristics(FlexibleRecord):
    """Physical description of the workplace."""

    area: str | None = None
    ceiling_height: str | None = None
    floor: str | None = None
    construction: list[str] = Field(default_factory=list)
    roofing: list[str] = Field(default_factory=list)
    flooring: list[str] = Field(default_factory=list)
    walls: list[str] = Field(default_factory=list)
    lighting: list[str] = Field(default_factory=list)
    ventilation: list[str] = Field(default_factory=list)
    special_condition_type: str | None = None
    special_condition_description: str | None = None

    @field_validator(
        "construction", "roofing", "flooring", "walls", "lighting", "ventilation",
        mode="before",
    )
    @classmethod
    def _string_lists(cls, value: Any) -> list[str]:
        return [item if isinstance(item, str) else json.dumps(item, ensure_ascii=False)
                for item in as_item_list(value)]


class Diligence(FlexibleRecord):
    """A site visit."""

    date: str | None = None
    location: str | None = Field(
        default=None, validation_alias=AliasChoices("location", "address")
    )
    city: str | None = None
    time: str | None = None
    description: str | None = None

    @field_validator("date", "time", mode="before")
    @classmethod
    def _iso(cls, value: Any) -> str | None:
        return as_iso(value)


class Attendee(FlexibleRecord):
    """Someone present or interviewed during the inspection."""

    name: str | None = None
    function: str | None = Field(
        default=None, validation_alias=AliasChoices("function", "role")
    )
    company: str | None = None
    obs: str | None = Field(default=None, validation_alias=AliasChoices("obs", "notes"))


class PresentedDocument(FlexibleRecord):
    """A document requested from the parties."""

    name: str | None = None
    presented: bool | None = None
    obs: str | None = Field(default=None, validation_alias=AliasChoices("obs", "notes"))

    @field_validator("presented", mode="before")
    @classmethod
    def _presented(cls, value: Any) -> bool | None:
        return as_flag(value)


class EPIItem(FlexibleRecord):
    """A personal protective equipment item."""

    equipment: str | None = Field(
        default=None, validation_alias=AliasChoices("equipment", "name")
    )
    protection: str | None = Field(
        default=None, validation_alias=AliasChoices("protection", "desc", "observation")
    )
    ca: str | None = None

    @field_validator("ca", mode="before")
    @classmethod
    def _ca_text(cls, value: Any) -> str | None:
        return None if value is None else str(value)


class AnnexRow(BaseModel):
    """One row of an NR-15 or NR-16 annex exposure table."""

    annex: int
    agent: str
    exposure: AnnexExposure = AnnexExposure.NAO_OCORRE
    obs: str = ""

    model_config = ConfigDict(use_enum_values=True)


NR15_AGENTS: dict[int, str] = {
    1: "Ruído Contínuo ou Intermitente",
    2: "Ruídos de Impacto",
    3: "Calor",
    4: "Iluminamento",
    5: "Radiação Ionizante",
    6: "Trabalho Sob Condição Hiperbárica",
    7: "Radiação não Ionizante",
    8: "Vibrações",
    9: "Frio",
    10: "Umidade",
    11: "Agentes Químicos I",
    12: "Poeiras e Minerais",
    13: "Agentes Químicos II",
    14: "Agentes Biológicos",
}

NR16_AGENTS: dict[int, str] = {
    1: "Explosivos",
    2: "Inflamáveis",
    3: "Exposição à energia elétrica",
    4: "Segurança pessoal/patrimonial (roubos/assaltos)",
}


def default_nr15_rows() -> list[AnnexRow]:
    rows = [AnnexRow(annex=n, agent=agent, obs="------------") for n, agent in NR15_AGENTS.items()]
    rows[0].obs = "85 dB (A); Análise no item 10."
    rows[3].obs = "Revogado pela Portaria MTPS 3.751/1990"
    return rows


def default_nr16_rows() -> list[AnnexRow]:
    return [AnnexRow(annex=n, agent=agent, obs="------------") for n, agent in NR16_AGENTS.items()]


class AnalysisTables(BaseModel):
    """Per-annex exposure tables for both regulatory schemes."""

    nr15: list[AnnexRow] = Field(default_factory=default_nr15_rows)
    nr16: list[AnnexRow] = Field(default_factory=default_nr16_rows)


class BlockSettings(BaseModel):
    """Text and image settings for a header, footer or signature block."""

    text: str = ""
    image_path: str | None = None
    image_width: int | None = None
    image_height: int | None = None
    align: str = "left"


class ReportFlags(BaseModel):
    """Toggles that include the annex tables in section 15."""

    show_nr15_item15: bool = False
    show_nr16_item15: bool = False


class ReportTemplate(BaseModel):
    """Reusable analysis text snippet."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str = ""
    text: str = ""
    nr15_annexes: list[int] = Field(default_factory=list)
    nr16_annexes: list[int] = Field(default_factory=list)
    nr15_enquadramento: bool = False
    nr16_enquadramento: bool = False


class ReportConfig(BaseModel):
    """Presentation settings stored with a process.

    Defaults: empty header/footer/signature text, no court options, no
    templates, the full NR-15 (14 agents) and NR-16 (4 agents) catalogues
    marked "Não ocorre exposição", both item-15 table flags off, no images.
    """

    header: BlockSettings = Field(default_factory=BlockSettings)
    footer: BlockSettings = Field(default_factory=BlockSettings)
    signature: BlockSettings = Field(default_factory=BlockSettings)
    court_options: list[str] = Field(default_factory=list)
    templates: list[ReportTemplate] = Field(default_factory=list)
    analysis_tables: AnalysisTables = Field(default_factory=AnalysisTables)
    flags: ReportFlags = Field(default_factory=ReportFlags)
    item_images: dict[str, list[str]] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_bag(cls, value: Any) -> "ReportConfig":
        """Build from a stored bag, falling back to defaults per block."""
        value = parse_json_bag(value)
        if not isinstance(value, dict):
            return cls()
        config = cls()
        for name in cls.model_fields:
            if name not in value:
                continue
            try:
                setattr(config, name, cls.model_validate({name: value[name]}).__dict__[name])
            except ValueError:
                continue
        return config


class ExpertProfile(BaseModel):
    """Identification of the expert signing the report."""

    full_name: str
    professional_title: str | None = "Engenheiro de Segurança do Trabalho"
    registration_number: str | None = None


# =============================================================================
# Core Records
# =============================================================================


def _item_model(model: type[BaseModel], item: Any) -> Any:
    """Validate one list item; an item the model rejects is kept as JSON text."""
    if not isinstance(item, dict):
        return item
    try:
        return model.model_validate(item)
    except ValueError:
        return json.dumps(item, ensure_ascii=False, default=str)


def _bag_model(model: type[BaseModel], value: Any) -> Any:
    """Validate a dict bag into ``model``; other shapes pass through as text."""
    value = parse_json_bag(value)
    if value is None or value == "" or value == {}:
        return None
    if isinstance(value, dict):
        try:
            return model.model_validate(value)
        except ValueError:
            return json.dumps(value, ensure_ascii=False, default=str)
    if isinstance(value, list):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


_LIST_ITEM_MODELS: dict[str, type[BaseModel]] = {
    "diligence_data": Diligence,
    "attendees": Attendee,
    "documents_presented": PresentedDocument,
    "epis": EPIItem,
}


class ProcessRecord(BaseModel):
    """A labor-court case under expertise."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str | None = None

    # Identity
    process_number: str
    claimant_name: str
    defendant_name: str
    court: str | None = None
    status: str = ProcessStatus.PENDING.value

    # Scheduling
    inspection_date: str | None = None
    inspection_time: str | None = None
    inspection_address: str | None = None
    inspection_city: str | None = None
    inspection_duration_minutes: int | None = 60
    inspection_reminder_minutes: int | None = None
    inspection_notes: str | None = None
    inspection_status: str | None = None
    claimant_email: str | None = None
    defendant_email: str | None = None
    distribution_date: str | None = None

    # Narrative
    objective: str | None = None
    methodology: str | None = None
    initial_data: str | None = None
    defense_data: str | None = None
    activities_description: str | None = None
    discordances_presented: str | None = None
    insalubrity_analysis: str | None = None
    insalubrity_results: str | None = None
    periculosity_analysis: str | None = None
    periculosity_concept: str | None = None
    periculosity_results: str | None = None
    flammable_definition: str | None = None
    conclusion: str | None = None
    epcs: str | None = None
    collective_protection: str | None = None
    epi_intro: str | None = Field(
        default=None, validation_alias=AliasChoices("epi_intro", "epi_introduction")
    )

    # Structured
    identifications: Identifications | str | None = None
    claimant_data: ClaimantData | str | None = None
    defendant_data: dict[str, Any] | str | None = None
    workplace_characteristics: WorkplaceCharacteristics | str | None = None
    diligence_data: list[Diligence | str] = Field(default_factory=list)
    attendees: list[Attendee | str] = Field(default_factory=list)
    documents_presented: list[PresentedDocument | str] = Field(default_factory=list)
    epis: list[EPIItem | str] = Field(default_factory=list)
    report_config: ReportConfig = Field(default_factory=ReportConfig)
    cover_data: dict[str, Any] = Field(default_factory=dict)

    # Payment
    expert_fee: float | None = None
    payment_status: str | None = None
    payment_amount: float | None = None
    payment_date: str | None = None
    payment_due_date: str | None = None
    payment_notes: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator(
        "objective", "methodology", "initial_data", "defense_data",
        "activities_description", "discordances_presented",
        "insalubrity_analysis", "insalubrity_results", "periculosity_analysis",
        "periculosity_concept", "periculosity_results", "flammable_definition",
        "conclusion", "epcs", "collective_protection", "epi_intro",
        "court", "inspection_address", "inspection_city", "inspection_notes",
        "process_number", "claimant_name", "defendant_name", "status", "inspection_status",
        "claimant_email", "defendant_email", "payment_status", "payment_notes",
        mode="before",
    )
    @classmethod
    def _narrative(cls, value: Any) -> str | None:
        return as_text(value)

    @field_validator("user_id", mode="before")
    @classmethod
    def _user_id(cls, value: Any) -> str | None:
        return None if value is None else str(value)

    @field_validator(
        "inspection_date", "inspection_time", "distribution_date",
        "payment_date", "payment_due_date",
        mode="before",
    )
    @classmethod
    def _dates(cls, value: Any) -> str | None:
        return as_iso(value)

    @field_validator("identifications", mode="before")
    @classmethod
    def _identifications(cls, value: Any) -> Any:
        return _bag_model(Identifications, value)

    @field_validator("claimant_data", mode="before")
    @classmethod
    def _claimant(cls, value: Any) -> Any:
        return _bag_model(ClaimantData, value)

    @field_validator("workplace_characteristics", mode="before")
    @classmethod
    def _workplace(cls, value: Any) -> Any:
        return _bag_model(WorkplaceCharacteristics, value)

    @field_validator("defendant_data", mode="before")
    @classmethod
    def _defendant(cls, value: Any) -> Any:
        value = parse_json_bag(value)
        if value is None or value == "" or value == {}:
            return None
        if isinstance(value, (dict, str)):
            return value
        return json.dumps(value, ensure_ascii=False, default=str)

    @field_validator("diligence_data", "attendees", "documents_presented", "epis", mode="before")
    @classmethod
    def _item_lists(cls, value: Any, info: ValidationInfo) -> list[Any]:
        model = _LIST_ITEM_MODELS[info.field_name]
        return [_item_model(model, item) for item in as_item_list(value)]

    @field_validator("inspection_duration_minutes", mode="before")
    @classmethod
    def _duration(cls, value: Any) -> int | None:
        if value is None:
            return None
        minutes = as_int(value)
        return minutes if minutes and minutes > 0 else 60

    @field_validator("inspection_reminder_minutes", mode="before")
    @classmethod
    def _reminder(cls, value: Any) -> int | None:
        minutes = as_int(value)
        return minutes if minutes and minutes > 0 else None

    @field_validator("expert_fee", "payment_amount", mode="before")
    @classmethod
    def _amounts(cls, value: Any) -> float | None:
        return as_float(value)

    @field_validator("report_config", mode="before")
    @classmethod
    def _report_config(cls, value: Any) -> ReportConfig:
        if isinstance(value, ReportConfig):
            return value
        return ReportConfig.from_bag(value)

    @field_validator("cover_data", mode="before")
    @classmethod
    def _cover(cls, value: Any) -> dict[str, Any]:
        value = parse_json_bag(value)
        return value if isinstance(value, dict) else {}


class QuestionnaireEntry(BaseModel):
    """A numbered question submitted by one of the parties."""

    id: UUID = Field(default_factory=uuid4)
    process_id: UUID | None = None
    party: str
    question_number: int = 0
    question: str = ""
    answer: str | None = None
    notes: str | None = None
    attachments: list[Any] = Field(default_factory=list)

    @field_validator("question_number", mode="before")
    @classmethod
    def _number(cls, value: Any) -> int:
        return as_int(value) or 0

    @field_validator("party", "question", mode="before")
    @classmethod
    def _required_text(cls, value: Any) -> str:
        return as_text(value) or ""

    @field_validator("answer", "notes", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str | None:
        return as_text(value)

    @field_validator("attachments", mode="before")
    @classmethod
    def _attachments(cls, value: Any) -> list[Any]:
        value = parse_json_bag(value)
        if value is None:
            return []
        return value if isinstance(value, list) else [value]


class RiskAgent(BaseModel):
    """A physical, chemical, biological or hazard agent identified in a process."""

    id: UUID = Field(default_factory=uuid4)
    process_id: UUID | None = None
    agent_name: str = ""
    agent_type: str = ""
    description: str | None = None
    measurement_method: str | None = None
    measurement_value: float | None = None
    measurement_unit: str | None = None
    tolerance_limit: float | None = None
    tolerance_unit: str | None = None
    risk_level: str | None = None
    exposure_level: str | None = None
    insalubrity_degree: str | None = None
    periculosity_applicable: bool | None = None
    notes: str | None = None
    evidence_photos: list[Any] = Field(default_factory=list)

    @field_validator("measurement_value", "tolerance_limit", mode="before")
    @classmethod
    def _measures(cls, value: Any) -> float | None:
        return as_float(value)

    @field_validator("periculosity_applicable", mode="before")
    @classmethod
    def _applicable(cls, value: Any) -> bool | None:
        return as_flag(value)

    @field_validator("agent_name", "agent_type", mode="before")
    @classmethod
    def _required_text(cls, value: Any) -> str:
        return as_text(value) or ""

    @field_validator(
        "description", "measurement_method", "measurement_unit", "tolerance_unit",
        "risk_level", "exposure_level", "insalubrity_degree", "notes",
        mode="before",
    )
    @classmethod
    def _optional_text(cls, value: Any) -> str | None:
        return as_text(value)

    @field_validator("evidence_photos", mode="before")
    @classmethod
    def _photos(cls, value: Any) -> list[Any]:
        value = parse_json_bag(value)
        if value is None:
            return []
        return value if isinstance(value, list) else [value]


class ReportRecord(BaseModel):
    """An append-only snapshot of a generated report."""

    id: UUID = Field(default_factory=uuid4)
    process_id: UUID
    report_type: ReportType
    title: str
    content: str
    conclusion: str | None = None
    insalubrity_grade: str | None = None
    periculosity_identified: bool | None = None
    status: str = "generated"
    version: int = 1
    file_path: str | None = None
    generated_at: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(use_enum_values=True)


class DocumentRecord(BaseModel):
    """An uploaded file attached to a process."""

    id: UUID = Field(default_factory=uuid4)
    process_id: UUID
    name: str
    file_path: str
    file_type: str | None = None
    file_size: int | None = None
    category: str | None = None
    description: str | None = None
    is_confidential: bool = False
    uploaded_by: str | None = None
    created_at: datetime | None = None


# =============================================================================
# API Request/Response Models
# =============================================================================


class CreateProcessRequest(BaseModel):
    """Request to create a new process."""

    process_number: str = Field(..., min_length=1)
    claimant_name: str = Field(..., min_length=1)
    defendant_name: str = Field(..., min_length=1)
    court: str | None = None
    inspection_date: date | None = None
    inspection_time: time | None = None
    inspection_address: str | None = None
    inspection_city: str | None = None
    claimant_email: str | None = None
    defendant_email: str | None = None

    @field_validator("process_number", "claimant_name", "defendant_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class UpdateProcessRequest(BaseModel):
    """Partial update of a process; only the fields sent are written."""

    fields: dict[str, Any] = Field(default_factory=dict)


class ProcessSummary(BaseModel):
    """Summary view of a process for list endpoints."""

    id: UUID
    process_number: str
    claimant_name: str
    defendant_name: str
    court: str | None = None
    status: str
    inspection_date: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProcessListResponse(BaseModel):
    """Page of processes."""

    items: list[ProcessSummary]
    total: int
    limit: int
    offset: int


class ProcessStatistics(BaseModel):
    """Dashboard counters for one user."""

    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    monthly: dict[str, int] = Field(default_factory=dict)
    completion_rate: float = 0.0


class ProgressStep(BaseModel):
    """One editor step and whether it is filled."""

    key: str
    label: str
    completed: bool


class ProcessProgress(BaseModel):
    """How far the report editor has been filled."""

    process_id: UUID
    steps: list[ProgressStep]
    completed_steps: int
    total_steps: int
    progress: float


class ValidationResult(BaseModel):
    """Outcome of a validation run."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class DeleteProcessResult(BaseModel):
    """Outcome of a cascading process deletion."""

    success: bool = True
    message: str = "Processo excluído definitivamente"
    removed_files: int = 0
    storage_warnings: list[str] = Field(default_factory=list)
