# agroclima_cafe/climate/synthetic.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional

import numpy as np

from ..config import CLIMATE_WINDOW_DAYS
from ..schemas.inputs import ClimateObservation

logger = logging.getLogger(__name__)


def generate_synthetic_window(
    now: Optional[datetime] = None,
    days: int = CLIMATE_WINDOW_DAYS,
    rng: Optional[np.random.Generator] = None,
) -> List[ClimateObservation]:
    """
    Fallback: gera uma janela diária sintética, mas plausível, terminando em `now`.

    Usada quando a última observação da plantação é antiga demais (ou não
    existe). Sazonalidade anual simples + ruído; devolve mais recente primeiro.
    """
    if days <= 0:
        raise ValueError("days deve ser > 0")

    now = now or datetime.now()
    rng = rng if rng is not None else np.random.default_rng()

    out: List[ClimateObservation] = []
    for i in range(days):
        ds = now - timedelta(days=i)
        doy = ds.timetuple().tm_yday
        t_base = 20.0 + 10.0 * np.sin((doy / 365.0) * 2 * np.pi)

        tmax = max(t_base + 5.0 + rng.uniform(0, 10), t_base + 2.0)
        tmin = max(t_base - 5.0 + rng.uniform(0, 5), 5.0)
        tmean = t_base + rng.uniform(-3, 3)

        if rng.random() < 0.3:
            chuva = rng.uniform(0, 40)
        else:
            chuva = rng.uniform(0, 5)

        out.append(
            ClimateObservation(
                data=ds,
                tmax_c=round(float(tmax), 1),
                tmin_c=round(float(tmin), 1),
                tmean_c=round(float(tmean), 1),
                umidade_pct=round(float(55.0 + rng.uniform(0, 35)), 1),
                chuva_mm=round(float(chuva), 1),
                vento_kmh=round(float(2.0 + rng.uniform(0, 15)), 1),
            )
        )

    logger.info("[clima] Janela sintética de %d dias gerada até %s", days, now.date())
    return out
