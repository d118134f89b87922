# agroclima_cafe/knowledge/phenology.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

Phase = Literal["repouso", "brotacao", "floracao", "granacao", "maturacao"]
WaterNeed = Literal["minima", "baixa", "media", "alta"]


@dataclass(frozen=True)
class PhaseInfo:
    fase: Phase
    meses: Tuple[int, ...]
    necessidade_hidrica: WaterNeed
    cuidados: str


# A ordem importa: o primeiro item que contém o mês vence.
# repouso e maturacao disputam maio-julho; com esta ordem, maturacao só é
# alcançada via fase informada no cadastro da plantação.
# TODO: confirmar com agronomia qual fase deve valer em maio-julho.
PHASE_CALENDAR: Tuple[PhaseInfo, ...] = (
    PhaseInfo("repouso", (5, 6, 7, 8), "minima", "Foco em poda e controle de pragas"),
    PhaseInfo("brotacao", (9,), "media", "Essencial umidade para brotação"),
    PhaseInfo("floracao", (10, 11, 12), "alta", "Água essencial, evitar stress"),
    PhaseInfo("granacao", (1, 2, 3, 4), "alta", "Equilíbrio chuva/sol"),
    PhaseInfo("maturacao", (5, 6, 7), "baixa", "Clima seco favorável"),
)

DEFAULT_PHASE: Phase = "repouso"


class PhenologyCalendar:
    """Mês do ano -> fase fenológica do cafeeiro (primeiro match)."""

    def __init__(self, phases: Sequence[PhaseInfo] = PHASE_CALENDAR):
        self._phases = tuple(phases)

    def info(self, fase: str) -> Optional[PhaseInfo]:
        for p in self._phases:
            if p.fase == fase:
                return p
        return None

    def phase_for_month(self, month: int) -> Phase:
        if not 1 <= int(month) <= 12:
            raise ValueError("mês inválido: deve estar entre 1 e 12.")
        for p in self._phases:
            if month in p.meses:
                return p.fase
        return DEFAULT_PHASE

    def resolve(self, override: Optional[str], today: Optional[date] = None) -> Optional[Phase]:
        """
        Fase informada no cadastro tem prioridade; senão usa o calendário.
        Fase informada mas desconhecida devolve None (sem regras de fase).
        """
        if override:
            fase = str(override).strip().lower()
            if self.info(fase) is None:
                logger.warning("[fenologia] Fase '%s' desconhecida; regras de fase ignoradas.", override)
                return None
            return fase  # type: ignore[return-value]

        today = today or date.today()
        return self.phase_for_month(today.month)
