"""
End-to-end tests for the recommendation engine (no network).
"""
from dataclasses import replace
from datetime import date, timedelta

import numpy as np
import pytest

from agroclima_cafe.engine import RecommendationEngine
from agroclima_cafe.errors import UnknownVarietyError
from agroclima_cafe.scheduler import RecommendationScheduler
from agroclima_cafe.schemas.inputs import SoilSample
from agroclima_cafe.schemas.outputs import RuleOutcome
from agroclima_cafe.stores import (
    InMemoryClimateHistoryStore,
    InMemoryRecommendationStore,
    InMemorySoilStore,
)

from conftest import NOW, FixedForecastProvider, make_forecast, make_window


@pytest.fixture
def stores():
    return InMemoryRecommendationStore(), InMemoryClimateHistoryStore(), InMemorySoilStore()


def build_engine(stores, provider=None, seed=0):
    recs, climate, soils = stores
    return RecommendationEngine(
        recommendation_store=recs,
        climate_store=climate,
        soil_store=soils,
        forecast_provider=provider,
        rng=np.random.default_rng(seed),
    )


@pytest.fixture
def dry_cold_hot_plantation(plantation, stores):
    """Catuaí, pH 4.5, semana sem chuva, Tmin 10, Tmax 33, UR 35%."""
    _, climate, _ = stores
    climate.save_observations(
        "p-001", make_window(tmin=10.0, tmax=33.0, tmean=21.5, umidade=35.0, chuva=0.0)
    )
    # maturação com 0mm não dispara regra de fase
    return replace(plantation, ph_solo=4.5, fase_fenologica="maturacao")


class TestGeneralGeneration:

    def test_end_to_end_catuai(self, stores, dry_cold_hot_plantation):
        engine = build_engine(stores)
        res = engine.generate_for_plantation(dry_cold_hot_plantation, NOW)

        assert res.status == "sucesso"
        assert [(r.titulo, r.prioridade) for r in res.recomendacoes] == [
            ("ALERTA: Risco de Geada", "urgente"),
            ("Estresse Térmico - Calor Excessivo", "alta"),
            ("Déficit Hídrico Crítico", "alta"),
            ("Correção de pH Recomendada", "media"),
            ("Baixa Umidade - Risco de Queda de Flores", "media"),
        ]
        assert all(not r.preditiva for r in res.recomendacoes)

    def test_phase_rules_add_to_batch(self, stores, dry_cold_hot_plantation):
        engine = build_engine(stores)
        p = replace(dry_cold_hot_plantation, fase_fenologica="floracao")
        res = engine.generate_for_plantation(p, NOW)
        assert len(res.recomendacoes) == 6
        assert res.recomendacoes[0].titulo in ("ALERTA: Risco de Geada", "Floração - Água Obrigatória")

    def test_second_call_within_24h_is_skipped(self, stores, dry_cold_hot_plantation):
        engine = build_engine(stores)
        first = engine.generate_for_plantation(dry_cold_hot_plantation, NOW)
        second = engine.generate_for_plantation(dry_cold_hot_plantation, NOW + timedelta(hours=3))

        assert len(first.recomendacoes) == 5
        assert second.status == "ignorada"
        assert second.recomendacoes == []
        assert len(stores[0].list_pending("p-001")) == 5

    def test_blocked_run_skips_forecast_and_climate(self, stores, plantation):
        recs, climate, _ = stores
        pendente = RuleOutcome("irrigacao", "alta", "t", "d", "a", "f")
        RecommendationScheduler(recs).persist(plantation, [pendente], NOW)
        provider = FixedForecastProvider(make_forecast())

        res = build_engine(stores, provider).generate_for_plantation(plantation, NOW + timedelta(hours=3))

        assert res.status == "ignorada"
        assert provider.calls == 0
        # nenhuma janela sintética gravada para a execução barrada
        assert climate.get_recent_observations("p-001", 7) == []

    def test_soil_store_sample_wins_over_snapshot(self, stores, dry_cold_hot_plantation):
        stores[2].add("p-001", SoilSample(ph=6.0, data_analise=date(2024, 9, 1)))
        res = build_engine(stores).generate_for_plantation(dry_cold_hot_plantation, NOW)
        assert all(r.tipo != "correcao_solo" for r in res.recomendacoes)

    def test_stale_climate_is_regenerated(self, stores, plantation):
        _, climate, _ = stores
        climate.save_observations("p-001", make_window(now=NOW - timedelta(days=5)))

        build_engine(stores).generate_for_plantation(plantation, NOW)

        recent = climate.get_recent_observations("p-001", 7)
        assert len(recent) == 7
        assert recent[0].data == NOW

    def test_missing_climate_is_generated(self, stores, plantation):
        build_engine(stores).generate_for_plantation(plantation, NOW)
        assert len(stores[1].get_recent_observations("p-001", 7)) == 7

    def test_forecast_alerts_are_included(self, stores, dry_cold_hot_plantation):
        provider = FixedForecastProvider(make_forecast(chuva=[0, 0, 0, 0, 0]))
        res = build_engine(stores, provider).generate_for_plantation(dry_cold_hot_plantation, NOW)

        preditivas = [r for r in res.recomendacoes if r.preditiva]
        assert len(res.recomendacoes) == 8
        assert [r.tipo for r in preditivas] == ["risco_seca_preditivo"] * 3
        assert provider.calls == 1

    def test_unknown_variety_raises(self, stores, plantation):
        with pytest.raises(UnknownVarietyError):
            build_engine(stores).generate_for_plantation(replace(plantation, variedade="geisha"), NOW)

    def test_invalid_coordinates_raise(self, stores, plantation):
        with pytest.raises(ValueError):
            build_engine(stores).generate_for_plantation(replace(plantation, lat=-120.0), NOW)


class TestPredictiveGeneration:

    def test_only_forecast_alerts(self, stores, dry_cold_hot_plantation):
        provider = FixedForecastProvider(make_forecast(chuva=[0, 0, 0, 0, 0]))
        res = build_engine(stores, provider).generate_predictive(dry_cold_hot_plantation, NOW)
        assert res.status == "sucesso"
        assert len(res.recomendacoes) == 3
        assert all(r.preditiva for r in res.recomendacoes)
        assert [r.parametros["dias_para_evento"] for r in res.recomendacoes] == [3, 4, 5]

    def test_second_call_within_6h_is_skipped(self, stores, plantation):
        provider = FixedForecastProvider(make_forecast(chuva=[0, 0, 0, 0, 0]))
        engine = build_engine(stores, provider)
        engine.generate_predictive(plantation, NOW)
        second = engine.generate_predictive(plantation, NOW + timedelta(hours=5))
        third = engine.generate_predictive(plantation, NOW + timedelta(hours=7))
        assert second.status == "ignorada"
        assert second.recomendacoes == []
        assert len(third.recomendacoes) == 3

    def test_blocked_predictive_run_does_not_fetch_forecast(self, stores, plantation):
        provider = FixedForecastProvider(make_forecast(chuva=[0, 0, 0, 0, 0]))
        engine = build_engine(stores, provider)
        engine.generate_predictive(plantation, NOW)
        second = engine.generate_predictive(plantation, NOW + timedelta(hours=1))

        assert second.status == "ignorada"
        assert provider.calls == 1

    def test_general_pending_does_not_block_predictive(self, stores, dry_cold_hot_plantation):
        build_engine(stores).generate_for_plantation(dry_cold_hot_plantation, NOW)
        provider = FixedForecastProvider(make_forecast(chuva=[0, 0, 0, 0, 0]))
        res = build_engine(stores, provider).generate_predictive(
            dry_cold_hot_plantation, NOW + timedelta(hours=1)
        )
        assert len(res.recomendacoes) == 3

    def test_forecast_report(self, stores, plantation):
        provider = FixedForecastProvider(make_forecast(tmin=[15, 3, 15, 15, 15]))
        report = build_engine(stores, provider).forecast_report(plantation, NOW)
        assert len(report["previsao"]) == 5
        assert report["resumo"]["total_alertas"] == 1
        assert report["resumo"]["alertas_urgentes"] == 1
        assert report["resumo"]["proximo_risco"] == "Risco de Geada em 2 dias"
        assert report["plantacao"]["id"] == "p-001"
        assert stores[0].list_pending("p-001") == []


class TestBatch:

    def test_failure_does_not_abort_batch(self, stores, plantation):
        plantations = [
            plantation,
            replace(plantation, plantacao_id="p-002", variedade="geisha"),
            replace(plantation, plantacao_id="p-003"),
        ]
        report = build_engine(stores).generate_for_all(plantations, NOW)

        assert [r.status for r in report.resultados] == ["sucesso", "erro", "sucesso"]
        assert "geisha" in report.falhas[0].erro
        assert report.total_recomendacoes == sum(len(r.recomendacoes) for r in report.resultados)
        assert report.to_dict()["plantacoesAnalisadas"] == 3

    def test_store_failure_is_reported(self, stores, plantation):
        class BrokenStore:
            def has_recent_pending(self, *args, **kwargs):
                return False

            def insert_if_no_recent_pending(self, *args, **kwargs):
                from agroclima_cafe.errors import PersistenceError

                raise PersistenceError("banco fora do ar")

        _, climate, soils = stores
        engine = RecommendationEngine(BrokenStore(), climate, soils, rng=np.random.default_rng(0))
        report = engine.generate_for_all([plantation], NOW)
        assert report.resultados[0].status == "erro"
        assert report.resultados[0].erro == "banco fora do ar"

    def test_predictive_batch(self, stores, plantation):
        provider = FixedForecastProvider(make_forecast(chuva=[0, 0, 0, 0, 0]))
        report = build_engine(stores, provider).generate_for_all([plantation], NOW, predictive_only=True)
        assert report.total_recomendacoes == 3
