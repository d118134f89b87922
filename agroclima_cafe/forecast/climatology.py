# agroclima_cafe/forecast/climatology.py
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..config import FORECAST_DAYS
from ..schemas.inputs import ForecastDay

logger = logging.getLogger(__name__)

# =============================================================================
# PADRÕES CLIMATOLÓGICOS POR REGIÃO E MÊS
# =============================================================================
# Faixas (min, max) de temperatura (°C), chuva diária (mm) e umidade (%).
# Só há padrões para outubro-dezembro (transição seca -> chuvosa); os demais
# meses usam o mês mais próximo dessa faixa.
# -----------------------------------------------------------------------------

Range = Tuple[float, float]

CLIMATOLOGY: Dict[str, Dict[int, Dict[str, Range]]] = {
    "amazonia": {
        10: {"temp": (20, 32), "chuva": (0, 25), "umidade": (75, 90)},
        11: {"temp": (22, 33), "chuva": (10, 40), "umidade": (75, 90)},
        12: {"temp": (23, 34), "chuva": (15, 50), "umidade": (80, 95)},
    },
    "cerrado": {
        10: {"temp": (15, 30), "chuva": (0, 15), "umidade": (45, 70)},
        11: {"temp": (18, 32), "chuva": (5, 30), "umidade": (50, 75)},
        12: {"temp": (20, 33), "chuva": (20, 60), "umidade": (60, 85)},
    },
    "tropical": {
        10: {"temp": (18, 28), "chuva": (0, 20), "umidade": (55, 75)},
        11: {"temp": (20, 30), "chuva": (10, 40), "umidade": (60, 80)},
        12: {"temp": (22, 32), "chuva": (25, 70), "umidade": (65, 85)},
    },
    "subtropical": {
        10: {"temp": (12, 22), "chuva": (5, 25), "umidade": (60, 80)},
        11: {"temp": (15, 25), "chuva": (10, 35), "umidade": (65, 80)},
        12: {"temp": (18, 28), "chuva": (15, 45), "umidade": (70, 85)},
    },
}

MONTH_RANGE = (10, 12)
MAX_UNCERTAINTY = 2.5


def climate_region(lat: float, lon: float) -> str:
    """Classificação simplificada do Brasil por coordenadas."""
    if lat > -5:
        return "amazonia"
    if lat > -15 and lon > -50:
        return "cerrado"
    if lat > -25:
        return "tropical"
    return "subtropical"


def describe_day(chuva_mm: float, tmax_c: float) -> str:
    if chuva_mm > 50:
        return "Chuva intensa"
    if chuva_mm > 20:
        return "Chuva moderada"
    if chuva_mm > 5:
        return "Chuva leve"
    if tmax_c > 35:
        return "Muito quente e seco"
    if tmax_c < 15:
        return "Frio"
    return "Tempo estável"


class ClimatologicalForecast:
    """
    Gerador de previsão de fallback a partir de padrões por região/mês.

    Não é puro: a variabilidade vem de `rng`, que deve ser injetado (com
    seed) quando o resultado precisa ser reproduzível.
    """

    origem = "climatologia"

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def pattern(self, lat: float, lon: float, month: int) -> Dict[str, Range]:
        lo, hi = MONTH_RANGE
        return CLIMATOLOGY[climate_region(lat, lon)][min(max(int(month), lo), hi)]

    def day(self, lat: float, lon: float, data: date, lead_days: int) -> ForecastDay:
        p = self.pattern(lat, lon, data.month)

        # incerteza cresce com a antecedência
        incerteza = min(lead_days * 0.5, MAX_UNCERTAINTY)
        d_temp = (self.rng.random() - 0.5) * incerteza * 4
        d_chuva = (self.rng.random() - 0.5) * incerteza * 20
        d_umid = (self.rng.random() - 0.5) * incerteza * 10

        tmin = p["temp"][0] + d_temp
        tmax = p["temp"][1] + d_temp
        chuva_lo, chuva_hi = p["chuva"]
        chuva = max(0.0, chuva_lo + (chuva_hi - chuva_lo) * self.rng.random() + d_chuva)
        umidade = (p["umidade"][0] + p["umidade"][1]) / 2 + d_umid

        return ForecastDay(
            data=data,
            lead_days=lead_days,
            tmin_c=round(float(tmin), 1),
            tmax_c=round(float(tmax), 1),
            tmean_c=round(float((tmin + tmax) / 2), 1),
            chuva_mm=round(float(chuva), 1),
            umidade_pct=float(round(umidade)),
            descricao=describe_day(chuva, tmax),
            origem=self.origem,
        )

    def forecast(
        self,
        lat: float,
        lon: float,
        today: Optional[date] = None,
        days: int = FORECAST_DAYS,
    ) -> List[ForecastDay]:
        today = today or date.today()
        out = [self.day(lat, lon, today + timedelta(days=i), i) for i in range(1, days + 1)]
        logger.info(
            "[forecast] Previsão climatológica (%s) gerada para %d dias.",
            climate_region(lat, lon), days,
        )
        return out
