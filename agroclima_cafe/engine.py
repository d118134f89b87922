# agroclima_cafe/engine.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from . import config as cfg
from .climate.metrics import WindowAggregates, compute_window_aggregates
from .climate.synthetic import generate_synthetic_window
from .forecast.provider import ForecastProvider
from .forecast.risk import analyze_forecast_risks, summarize_alerts
from .knowledge.phenology import PhenologyCalendar
from .knowledge.varieties import VarietyKnowledgeBase, VarietySpec
from .rules.climate import evaluate_historical_climate
from .rules.phase import evaluate_phase
from .rules.soil import evaluate_soil
from .scheduler import RecommendationScheduler
from .schemas.inputs import ClimateObservation, ForecastDay, Plantation, SoilSample
from .schemas.outputs import BatchReport, GenerationResult, RuleOutcome
from .stores import InMemorySoilStore

logger = logging.getLogger(__name__)


@dataclass
class EvaluationContext:
    """Snapshot usado numa avaliação (útil para auditoria e testes)."""
    variety: VarietySpec
    fase: Optional[str]
    soil: SoilSample
    aggregates: WindowAggregates
    forecast: List[ForecastDay] = field(default_factory=list)


class RecommendationEngine:
    """
    Orquestrador: carrega os dados da plantação, roda os avaliadores e
    entrega os resultados ao scheduler.

    As regras são síncronas e sem efeito colateral; os únicos efeitos são a
    regeneração de clima antigo e a gravação do lote no store.
    """

    def __init__(
        self,
        recommendation_store,
        climate_store,
        soil_store=None,
        forecast_provider: Optional[ForecastProvider] = None,
        varieties: Optional[VarietyKnowledgeBase] = None,
        calendar: Optional[PhenologyCalendar] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.recommendations = recommendation_store
        self.climate = climate_store
        self.soils = soil_store if soil_store is not None else InMemorySoilStore()
        self.forecast_provider = forecast_provider
        self.varieties = varieties or VarietyKnowledgeBase()
        self.calendar = calendar or PhenologyCalendar()
        self.rng = rng
        self.scheduler = RecommendationScheduler(recommendation_store)

    # ------------------------------------------------------------------
    # Carga de dados
    # ------------------------------------------------------------------

    def _soil_for(self, plantation: Plantation) -> SoilSample:
        sample = self.soils.latest_sample(plantation.plantacao_id)
        if sample is None:
            return SoilSample.from_plantation(plantation)
        return sample

    def _climate_window(self, plantation: Plantation, now: datetime) -> List[ClimateObservation]:
        pid = plantation.plantacao_id
        obs = self.climate.get_recent_observations(pid, cfg.CLIMATE_WINDOW_DAYS)

        stale_limit = now - timedelta(hours=cfg.CLIMATE_FRESHNESS_H)
        if not obs or obs[0].data < stale_limit:
            logger.info("[engine] %s: dados climáticos ausentes ou antigos; gerando janela nova.", pid)
            fresh = generate_synthetic_window(now=now, days=cfg.CLIMATE_WINDOW_DAYS, rng=self.rng)
            self.climate.save_observations(pid, fresh)
            obs = self.climate.get_recent_observations(pid, cfg.CLIMATE_WINDOW_DAYS)
        return obs

    def _forecast_for(self, plantation: Plantation, now: datetime) -> List[ForecastDay]:
        if self.forecast_provider is None:
            return []
        return self.forecast_provider.get_five_day_forecast(plantation.lat, plantation.lon, today=now.date())

    # ------------------------------------------------------------------
    # Avaliação
    # ------------------------------------------------------------------

    def build_context(self, plantation: Plantation, now: datetime, with_forecast: bool = True) -> EvaluationContext:
        plantation.validate()
        variety = self.varieties.get(plantation.variedade)
        return EvaluationContext(
            variety=variety,
            fase=self.calendar.resolve(plantation.fase_fenologica, today=now.date()),
            soil=self._soil_for(plantation),
            aggregates=compute_window_aggregates(self._climate_window(plantation, now)),
            forecast=self._forecast_for(plantation, now) if with_forecast else [],
        )

    @staticmethod
    def evaluate(ctx: EvaluationContext) -> List[RuleOutcome]:
        outcomes: List[RuleOutcome] = []
        outcomes.extend(evaluate_soil(ctx.soil, ctx.variety))
        outcomes.extend(evaluate_historical_climate(ctx.aggregates, ctx.variety))
        outcomes.extend(evaluate_phase(ctx.fase, ctx.aggregates))
        if ctx.forecast:
            outcomes.extend(analyze_forecast_risks(ctx.forecast, ctx.fase, ctx.variety))
        return outcomes

    # ------------------------------------------------------------------
    # Geração
    # ------------------------------------------------------------------

    def generate_for_plantation(self, plantation: Plantation, now: Optional[datetime] = None) -> GenerationResult:
        """
        Geração geral: solo + clima histórico + fase (+ previsão, se houver
        provedor). Bloqueada se já existe pendente criada nas últimas 24 h; a
        janela é checada antes de carregar clima e previsão.
        Erros (variedade desconhecida, store) sobem para o chamador.
        """
        now = now or datetime.now()
        plantation.validate()
        if self.scheduler.is_blocked(plantation, now):
            return GenerationResult(plantation.plantacao_id, "ignorada", nome=plantation.nome)

        ctx = self.build_context(plantation, now)
        recs = self.scheduler.persist(plantation, self.evaluate(ctx), now)
        if recs is None:
            return GenerationResult(plantation.plantacao_id, "ignorada", nome=plantation.nome)
        return GenerationResult(plantation.plantacao_id, "sucesso", nome=plantation.nome, recomendacoes=recs)

    def generate_predictive(self, plantation: Plantation, now: Optional[datetime] = None) -> GenerationResult:
        """Só alertas da previsão; janela de 6 h contra pendentes preditivas."""
        now = now or datetime.now()
        plantation.validate()
        if self.scheduler.is_blocked(plantation, now, predictive_only=True):
            return GenerationResult(plantation.plantacao_id, "ignorada", nome=plantation.nome)

        variety = self.varieties.get(plantation.variedade)
        fase = self.calendar.resolve(plantation.fase_fenologica, today=now.date())

        alerts = analyze_forecast_risks(self._forecast_for(plantation, now), fase, variety)
        recs = self.scheduler.persist(plantation, alerts, now, predictive_only=True)
        if recs is None:
            return GenerationResult(plantation.plantacao_id, "ignorada", nome=plantation.nome)
        return GenerationResult(plantation.plantacao_id, "sucesso", nome=plantation.nome, recomendacoes=recs)

    def forecast_report(self, plantation: Plantation, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Previsão + alertas ordenados + resumo, sem gravar nada."""
        now = now or datetime.now()
        plantation.validate()
        variety = self.varieties.get(plantation.variedade)
        fase = self.calendar.resolve(plantation.fase_fenologica, today=now.date())

        forecast = self._forecast_for(plantation, now)
        alerts = analyze_forecast_risks(forecast, fase, variety)
        return {
            "plantacao": {
                "id": plantation.plantacao_id,
                "nome": plantation.nome,
                "variedade": plantation.variedade,
                "latitude": plantation.lat,
                "longitude": plantation.lon,
            },
            "previsao": forecast,
            "alertas": alerts,
            "resumo": summarize_alerts(alerts),
        }

    def generate_for_all(
        self,
        plantations: Iterable[Plantation],
        now: Optional[datetime] = None,
        predictive_only: bool = False,
    ) -> BatchReport:
        """
        Processa as plantações em sequência. Falha numa plantação vira item
        'erro' no relatório e não interrompe as demais.
        """
        now = now or datetime.now()
        resultados: List[GenerationResult] = []

        for p in plantations:
            try:
                if predictive_only:
                    res = self.generate_predictive(p, now)
                else:
                    res = self.generate_for_plantation(p, now)
            except Exception as e:
                logger.error("[engine] Erro ao gerar recomendações para %s: %s", p.plantacao_id, e)
                res = GenerationResult(p.plantacao_id, "erro", nome=p.nome, erro=str(e))
            resultados.append(res)

        report = BatchReport(resultados)
        logger.info(
            "[engine] %d plantação(ões) analisada(s), %d recomendação(ões), %d falha(s).",
            len(resultados), report.total_recomendacoes, len(report.falhas),
        )
        return report
