"""Keyword lexicons for the extraction categories.

Entries are lowercase fragments matched as plain substrings, so short
entries such as "lt" or "cat" also hit inside longer words.
"""

from enum import Enum


class ExtractionCategory(str, Enum):
    """Which premium or claim an excerpt should support."""

    INSALUBRIDADE = "insalubridade"
    PERICULOSIDADE = "periculosidade"
    ACIDENTARIO = "acidentario"


LEXICONS: dict[ExtractionCategory, tuple[str, ...]] = {
    ExtractionCategory.INSALUBRIDADE: (
        "insalubridade",
        "insalubre",
        "nr-15",
        "nr15",
        "adicional de insalubridade",
        "anexo",
        "agente químico",
        "agente fisico",
        "agente físico",
        "agente biológico",
        "limite de tolerância",
        "lt",
        "ruído",
        "calor",
        "poeira",
        "solvente",
        "benzeno",
        "epi",
        "epc",
    ),
    ExtractionCategory.PERICULOSIDADE: (
        "periculosidade",
        "periculoso",
        "nr-16",
        "nr16",
        "adicional de periculosidade",
        "inflamável",
        "explosivo",
        "energia elétrica",
        "eletricidade",
        "líquidos inflamáveis",
        "gases inflamáveis",
        "armazenamento",
        "manuseio",
        "perigo",
        "exposição periculosa",
    ),
    ExtractionCategory.ACIDENTARIO: (
        "acidentário",
        "acidentario",
        "acidentária",
        "acidente de trabalho",
        "cat",
        "comunicação de acidente",
        "benefício acidentário",
        "auxílio-doença",
        "auxilio-doenca",
        "ntep",
        "doença ocupacional",
        "doença do trabalho",
        "nexo causal",
        "lesão",
        "sinistro",
        "incapacidade",
    ),
}


def get_lexicon(category: ExtractionCategory | str) -> tuple[str, ...]:
    """Keywords of a category.

    Raises:
        ValueError: If the category is unknown
    """
    return LEXICONS[ExtractionCategory(category)]
