"""
Fixtures e construtores compartilhados pelos testes do motor de café.
"""
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

import pytest

from agroclima_cafe.climate.metrics import WindowAggregates
from agroclima_cafe.knowledge.varieties import VarietyKnowledgeBase
from agroclima_cafe.schemas.inputs import ClimateObservation, ForecastDay, Plantation

NOW = datetime(2024, 10, 15, 9, 0)
TODAY = NOW.date()


def make_aggregates(
    tmin: Optional[float] = 18.0,
    tmax: Optional[float] = 27.0,
    tmean: Optional[float] = 21.0,
    chuva: Optional[float] = 40.0,
    umidade: Optional[float] = 65.0,
    n_dias: int = 7,
) -> WindowAggregates:
    """Agregados 'neutros' por padrão: nenhuma regra climática dispara."""
    return WindowAggregates(
        n_dias=n_dias,
        tmean_media_c=tmean,
        tmax_c=tmax,
        tmin_c=tmin,
        chuva_total_mm=chuva,
        umidade_media_pct=umidade,
    )


def make_window(
    now: datetime = NOW,
    days: int = 7,
    tmin: Optional[float] = 18.0,
    tmax: Optional[float] = 27.0,
    tmean: Optional[float] = 21.0,
    umidade: Optional[float] = 65.0,
    chuva: Optional[float] = 6.0,
) -> List[ClimateObservation]:
    """Janela diária terminando em `now`, mais recente primeiro."""
    return [
        ClimateObservation(
            data=now - timedelta(days=i),
            tmax_c=tmax,
            tmin_c=tmin,
            tmean_c=tmean,
            umidade_pct=umidade,
            chuva_mm=chuva,
            vento_kmh=5.0,
        )
        for i in range(days)
    ]


def make_forecast(
    today: date = TODAY,
    chuva: Sequence[float] = (10.0, 10.0, 10.0, 10.0, 10.0),
    tmin: Sequence[float] = (15.0,) * 5,
    tmax: Sequence[float] = (28.0,) * 5,
    tmean: Sequence[float] = (21.5,) * 5,
    umidade: Sequence[float] = (60.0,) * 5,
) -> List[ForecastDay]:
    """Previsão de 5 dias sem riscos por padrão (chuva moderada, clima ameno)."""
    return [
        ForecastDay(
            data=today + timedelta(days=i + 1),
            lead_days=i + 1,
            tmin_c=tmin[i],
            tmax_c=tmax[i],
            tmean_c=tmean[i],
            chuva_mm=chuva[i],
            umidade_pct=umidade[i],
            origem="teste",
        )
        for i in range(5)
    ]


class FixedForecastProvider:
    """Provedor de previsão fixo, sem rede."""

    def __init__(self, days: List[ForecastDay]):
        self.days = days
        self.calls = 0

    def get_five_day_forecast(self, lat, lon, today=None):
        self.calls += 1
        return list(self.days)


@pytest.fixture
def kb():
    return VarietyKnowledgeBase()


@pytest.fixture
def catuai(kb):
    return kb.get("catuai")


@pytest.fixture
def conilon(kb):
    return kb.get("conilon")


@pytest.fixture
def plantation():
    return Plantation(
        plantacao_id="p-001",
        usuario_id="u-001",
        nome="Fazenda Teste",
        variedade="catuai",
        lat=-21.5,
        lon=-45.4,
        fase_fenologica="maturacao",
        ph_solo=6.0,
        tipo_solo="argiloso",
    )
