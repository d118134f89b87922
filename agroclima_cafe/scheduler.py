# agroclima_cafe/scheduler.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from . import config as cfg
from .schemas.inputs import Plantation
from .schemas.outputs import PREDICTIVE_SUFFIX, Recommendation, RuleOutcome, priority_rank

logger = logging.getLogger(__name__)

PREDICTIVE_TITLE_PREFIX = "🔮 "
PREDICTIVE_DESCRIPTION_PREFIX = "PREVISÃO: "


def _truncate(text: str, limit: int) -> str:
    text = str(text or "")
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def due_days(prioridade: str) -> int:
    return cfg.DUE_DAYS_BY_PRIORITY.get(prioridade, cfg.DUE_DAYS_DEFAULT)


def sort_outcomes(outcomes: Sequence[RuleOutcome]) -> List[RuleOutcome]:
    """Prioridade desc; empate por antecedência (não preditivas primeiro)."""
    return sorted(
        outcomes,
        key=lambda o: (-priority_rank(o.prioridade), o.lead_days if o.lead_days is not None else 0),
    )


def dedupe_window(predictive_only: bool):
    if predictive_only:
        return "preditiva", timedelta(hours=cfg.PREDICTIVE_WINDOW_H)
    return "geral", timedelta(hours=cfg.GENERAL_WINDOW_H)


class RecommendationScheduler:
    """
    Converte saídas das regras em Recommendation com cronograma e persiste o
    lote respeitando as janelas de deduplicação.
    """

    def __init__(self, store, algorithm: str = cfg.ALGORITHM_VERSION):
        self.store = store
        self.algorithm = algorithm

    def build(self, plantation: Plantation, outcome: RuleOutcome, now: datetime) -> Recommendation:
        tipo = outcome.tipo
        titulo = outcome.titulo
        descricao = outcome.descricao
        fundamentacao = outcome.fundamentacao
        parametros: Dict[str, Any] = dict(outcome.parametros)

        if outcome.preditiva:
            tipo = f"{tipo}{PREDICTIVE_SUFFIX}"
            titulo = f"{PREDICTIVE_TITLE_PREFIX}{titulo}"
            descricao = f"{PREDICTIVE_DESCRIPTION_PREFIX}{descricao}"
            fundamentacao = f"Análise preditiva - {outcome.tipo}"
            parametros.update(
                {
                    "tipo_analise": "preditiva",
                    "data_evento": outcome.data_evento.isoformat() if outcome.data_evento else None,
                    "gerada_em": now.isoformat(),
                }
            )

        return Recommendation(
            recomendacao_id=uuid.uuid4().hex,
            plantacao_id=plantation.plantacao_id,
            usuario_id=plantation.usuario_id,
            tipo=tipo,
            prioridade=outcome.prioridade,
            titulo=_truncate(titulo, cfg.MAX_TITLE_LEN),
            descricao=_truncate(descricao, cfg.MAX_DESCRIPTION_LEN),
            acao_recomendada=_truncate(outcome.acao_recomendada, cfg.MAX_ACTION_LEN),
            fundamentacao=fundamentacao,
            parametros=parametros,
            data_recomendada=now + timedelta(days=cfg.RECOMMENDED_OFFSET_DAYS),
            data_limite=now + timedelta(days=due_days(outcome.prioridade)),
            criada_em=now,
            preditiva=outcome.preditiva,
            algoritmo=self.algorithm,
        )

    def schedule(self, plantation: Plantation, outcomes: Sequence[RuleOutcome], now: datetime) -> List[Recommendation]:
        """Ordena e monta as recomendações, sem gravar."""
        return [self.build(plantation, o, now) for o in sort_outcomes(outcomes)]

    def is_blocked(self, plantation: Plantation, now: datetime, predictive_only: bool = False) -> bool:
        """Checagem prévia da janela, antes de buscar clima ou previsão."""
        kind, window = dedupe_window(predictive_only)
        if self.store.has_recent_pending(plantation.plantacao_id, kind, window, now):
            logger.info(
                "[scheduler] %s: pendentes recentes (%s, %dh); geração ignorada.",
                plantation.plantacao_id, kind, int(window.total_seconds() // 3600),
            )
            return True
        return False

    def persist(
        self,
        plantation: Plantation,
        outcomes: Sequence[RuleOutcome],
        now: datetime,
        predictive_only: bool = False,
    ) -> Optional[List[Recommendation]]:
        """
        Grava o lote se a janela permitir. Lote barrado devolve None.

        Geração geral: bloqueada por qualquer pendente nas últimas 24 h.
        Geração preditiva: bloqueada por pendente preditiva nas últimas 6 h.
        """
        kind, window = dedupe_window(predictive_only)

        recs = self.schedule(plantation, outcomes, now)
        inserted = self.store.insert_if_no_recent_pending(
            plantation.plantacao_id, kind, window, recs, now
        )
        if not inserted:
            logger.info(
                "[scheduler] %s: pendentes recentes (%s, %dh); lote ignorado.",
                plantation.plantacao_id, kind, int(window.total_seconds() // 3600),
            )
            return None

        logger.info("[scheduler] %s: %d recomendação(ões) gravada(s).", plantation.plantacao_id, len(recs))
        return recs
