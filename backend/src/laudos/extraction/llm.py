"""Client for the optional LLM-backed extraction endpoints.

Each endpoint is configured by its own URL setting. An empty URL disables
the call. Calls never raise: an unconfigured endpoint, a transport error,
a non-2xx answer or an answer without usable content all return None.
"""

import logging
from typing import Any, Iterable

import httpx

from ..config import get_settings
from ..processes.models import AnnexRow, EPIItem

logger = logging.getLogger(__name__)

NO_EPI = "Nenhum EPI informado."


def _epi_list(epis: Iterable[EPIItem]) -> str:
    lines = [
        f"EPI: {e.equipment or ''} | Proteção: {e.protection or ''} | CA: {e.ca or ''}"
        for e in epis
    ]
    return "\n".join(lines) if lines else NO_EPI


def build_insalubrity_prompt(annexes: Iterable[AnnexRow], epis: Iterable[EPIItem]) -> str:
    """Prompt for the NR-15 insalubrity evaluation."""
    annex_list = "\n".join(
        f"Anexo {a.annex} — {a.agent}" + (f" | Obs: {a.obs}" if a.obs else "")
        for a in annexes
    )
    return (
        "Você é um perito do trabalho. Baseie sua análise na Portaria nº 3214/78 "
        "e na NR-15 (anexos informados).\n"
        "Objetivo: avaliar insalubridade considerando anexos e EPIs, e produzir "
        "parecer técnico estruturado em português (pt-BR).\n\n"
        "Dados fornecidos:\n"
        f"Anexos NR-15 analisados:\n{annex_list or '(sem anexos)'}\n\n"
        f"EPIs considerados:\n{_epi_list(epis)}\n\n"
        "Instruções:\n"
        "- Cite explicitamente os anexos da NR-15 aplicáveis e seus requisitos.\n"
        "- Avalie a exposição e a caracterização do agente conforme a NR-15.\n"
        "- Analise a eficácia dos EPIs informados, considerando o CA e a proteção declarada.\n"
        "- Conclua o grau de insalubridade (mínimo/médio/máximo) e se os EPIs "
        "neutralizam ou eliminam o agente.\n"
        "- Se não houver anexo aplicável, conclua pela inexistência de insalubridade.\n"
        "- Inclua fundamentação normativa: “Conforme a Portaria nº 3214/78 e a NR-15”.\n"
        "- Formate o resultado em seções: Fundamentação normativa; Exposição; "
        "EPIs e neutralização; Conclusão; Observações (se necessário).\n"
        "- Mantenha tom técnico, objetivo e sem opiniões genéricas."
    )


def build_epi_periodicity_prompt(epis: Iterable[EPIItem]) -> str:
    """Prompt for the EPI replacement periodicity evaluation."""
    return (
        "Você é um perito do trabalho. Avalie a periodicidade de trocas dos EPIs "
        "fornecidos, com base na NR-6 e em documentos anexados.\n"
        "Objetivo: produzir um parecer técnico sobre periodicidade de "
        "substituição/inspeção e validade, com recomendações claras.\n\n"
        f"EPIs considerados:\n{_epi_list(epis)}\n\n"
        "Instruções:\n"
        "- Identifique periodicidade sugerida pelo documento. Caso ausente, "
        "proponha periodicidade com base em boas práticas.\n"
        "- Considere o CA, vida útil e condições de uso/limpeza/manutenção.\n"
        "- Cite fundamentação normativa: “Conforme a Portaria nº 3214/78 e a NR-6”.\n"
        "- Formate em seções: Normas; Itens avaliados; Periodicidade recomendada; Observações.\n"
    )


def build_epi_usage_prompt(epis: Iterable[EPIItem]) -> str:
    """Prompt for inferring EPI usage from the activities description."""
    return (
        "Você é um perito do trabalho. A partir da descrição das atividades/áudio "
        "transcrito, infira a possível utilização dos EPIs mediante sinalização/instruções.\n"
        "Objetivo: indicar quais EPIs devem ser utilizados, quando e por qual "
        "sinalização/requisito, fundamentando na NR-6 e boas práticas.\n\n"
        f"EPIs considerados:\n{_epi_list(epis)}\n\n"
        "Instruções:\n"
        "- Relacione tarefas com EPIs adequados, apontando gatilhos/sinalizações "
        "(placas, avisos, procedimentos).\n"
        "- Destaque situações obrigatórias e recomendadas, com justificativas.\n"
        "- Cite fundamentação normativa: “Conforme a Portaria nº 3214/78 e a NR-6”.\n"
        "- Formate em seções: Tarefas; EPIs requeridos; Sinalização/condições; Observações.\n"
    )


def pick_text(data: Any, *keys: str) -> str | None:
    """First non-blank string among ``keys``; ``paragraphs`` lists are joined."""
    if not isinstance(data, dict):
        return None
    for key in keys:
        value = data.get(key)
        if key in ("paragraphs", "items") and isinstance(value, list):
            separator = "\n\n" if key == "paragraphs" else "\n"
            value = separator.join(str(v) for v in value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class LLMClient:
    """Optional third-party extraction endpoints."""

    def __init__(self, timeout: float | None = None):
        self._timeout = timeout or get_settings().llm_timeout
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _post(
        self,
        url: str,
        json: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
    ) -> Any:
        """POST and decode JSON; None on any failure."""
        if not url:
            return None
        try:
            response = await self.http_client.post(url, json=json, files=files, data=data)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"Extraction endpoint {url} answered HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            logger.warning(f"Extraction endpoint {url} unreachable: {e}")
        except ValueError:
            logger.warning(f"Extraction endpoint {url} returned invalid JSON")
        return None

    async def extract_initial(self, text: str, category: str) -> str | None:
        """Ask the endpoint for the parts of a petition relevant to ``category``."""
        data = await self._post(get_settings().llm_extract_url, json={"text": text, "type": category})
        return pick_text(data, "content", "paragraphs")

    async def proofread(self, text: str) -> str | None:
        """Spelling and grammar review of a narrative field."""
        data = await self._post(get_settings().llm_proofread_url, json={"text": text})
        return pick_text(data, "content", "text", "paragraphs")

    async def transcribe_audio(self, filename: str, content: bytes, content_type: str) -> str | None:
        data = await self._post(
            get_settings().llm_audio_transcription_url,
            files={"audio": (filename, content, content_type)},
        )
        return pick_text(data, "transcription", "text", "content")

    async def extract_activities(self, filename: str, content: bytes, content_type: str) -> str | None:
        """Activities description from an inspection recording."""
        data = await self._post(
            get_settings().llm_audio_activities_url,
            files={"file": (filename, content, content_type)},
            data={"task": "activities"},
        )
        return pick_text(data, "content", "items")

    async def extract_attendees(
        self, filename: str, content: bytes, content_type: str
    ) -> list[str] | None:
        """Names of the people heard in an inspection recording."""
        data = await self._post(
            get_settings().llm_audio_activities_url,
            files={"file": (filename, content, content_type)},
            data={"task": "attendees"},
        )
        if not isinstance(data, dict):
            return None
        items = data.get("items")
        if items is None and isinstance(data.get("content"), str):
            items = data["content"].splitlines()
        if isinstance(items, list) and all(isinstance(i, str) for i in items):
            return [i.strip() for i in items if i.strip()]
        return None

    async def evaluate_insalubrity(
        self, annexes: list[AnnexRow], epis: list[EPIItem]
    ) -> str | None:
        payload = {
            "annexes": [a.model_dump() for a in annexes],
            "epis": [e.model_dump(include={"equipment", "protection", "ca"}) for e in epis],
            "prompt": build_insalubrity_prompt(annexes, epis),
        }
        data = await self._post(get_settings().llm_insalubrity_eval_url, json=payload)
        return pick_text(data, "content", "paragraphs", "results")

    async def evaluate_epi_periodicity(self, text: str, epis: list[EPIItem]) -> str | None:
        payload = {
            "text": text,
            "epis": [e.model_dump(include={"equipment", "protection", "ca"}) for e in epis],
            "prompt": build_epi_periodicity_prompt(epis),
        }
        data = await self._post(get_settings().llm_epi_periodicity_url, json=payload)
        return pick_text(data, "content", "paragraphs", "results")

    async def evaluate_epi_usage(self, activities: str, epis: list[EPIItem]) -> str | None:
        payload = {
            "activities": activities,
            "epis": [e.model_dump(include={"equipment", "protection", "ca"}) for e in epis],
            "prompt": build_epi_usage_prompt(epis),
        }
        data = await self._post(get_settings().llm_epi_usage_url, json=payload)
        return pick_text(data, "content", "paragraphs", "results")

    async def ocr(self, filename: str, content: bytes, content_type: str) -> str | None:
        data = await self._post(
            get_settings().ocr_url,
            files={"file": (filename, content, content_type)},
        )
        return pick_text(data, "text", "content", "paragraphs")


# Singleton instance
_llm_client: LLMClient | None = None


def get_llm_client() -> LLMClient:
    """Get the LLM client singleton."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client
