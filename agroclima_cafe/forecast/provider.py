# agroclima_cafe/forecast/provider.py
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Sequence

import numpy as np

from ..config import FORECAST_DAYS
from ..errors import ForecastSourceError
from ..schemas.inputs import ForecastDay
from .climatology import ClimatologicalForecast
from .sources import CptecSource, OpenWeatherSource, expected_dates

logger = logging.getLogger(__name__)


class ForecastProvider:
    """
    Previsão de 5 dias com cadeia de fallback:

    1) CPTEC/INPE (só para coordenadas dentro do Brasil)
    2) OpenWeatherMap (só com chave de API configurada)
    3) padrão climatológico por região/mês (sempre disponível)

    Nunca propaga falha das fontes: qualquer erro ou resposta incompleta
    passa para a próxima fonte.
    """

    def __init__(
        self,
        sources: Optional[Sequence[object]] = None,
        climatology: Optional[ClimatologicalForecast] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.climatology = climatology or ClimatologicalForecast(rng=rng)
        if sources is None:
            sources = [CptecSource(self.climatology), OpenWeatherSource()]
        self.sources = list(sources)

    def _valid(self, days: List[ForecastDay], today: date) -> bool:
        return [d.data for d in days] == expected_dates(today, FORECAST_DAYS)

    def get_five_day_forecast(self, lat: float, lon: float, today: Optional[date] = None) -> List[ForecastDay]:
        today = today or date.today()

        for source in self.sources:
            if not source.available(lat, lon):
                continue
            try:
                days = source.fetch(lat, lon, today, FORECAST_DAYS)
            except ForecastSourceError as e:
                logger.warning("[forecast] %s indisponível: %s", source.name, e)
                continue
            except Exception as e:
                logger.warning("[forecast] Erro inesperado em %s: %s", source.name, e)
                continue

            if self._valid(days, today):
                logger.info("[forecast] Previsão obtida de %s.", source.name)
                return days
            logger.warning(
                "[forecast] %s devolveu %d dia(s) fora da janela esperada; ignorando.",
                source.name, len(days),
            )

        logger.info("[forecast] Usando padrão climatológico.")
        return self.climatology.forecast(lat, lon, today=today, days=FORECAST_DAYS)
