# agroclima_cafe/climate/metrics.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd

from ..config import CLIMATE_WINDOW_DAYS
from ..schemas.inputs import ClimateObservation

OBS_COLUMNS = ["ds", "tmax_c", "tmin_c", "tmean_c", "umidade_pct", "chuva_mm", "vento_kmh"]


@dataclass(frozen=True)
class WindowAggregates:
    n_dias: int
    tmean_media_c: Optional[float]
    tmax_c: Optional[float]
    tmin_c: Optional[float]
    chuva_total_mm: Optional[float]
    umidade_media_pct: Optional[float]
    observacao_mais_recente: Optional[datetime] = None

    def to_dict(self) -> Dict[str, object]:
        out = asdict(self)
        if self.observacao_mais_recente is not None:
            out["observacao_mais_recente"] = self.observacao_mais_recente.isoformat()
        return out


def _opt_float(x) -> Optional[float]:
    """NaN/None viram None (agregado não calculável)."""
    try:
        v = float(x)
    except (TypeError, ValueError):
        return None
    if np.isnan(v):
        return None
    return v


def observations_to_frame(observations: Sequence[ClimateObservation]) -> pd.DataFrame:
    """DataFrame padronizado, na ordem recebida (mais recente primeiro)."""
    if not observations:
        return pd.DataFrame(columns=OBS_COLUMNS)

    df = pd.DataFrame(
        {
            "ds": [o.data for o in observations],
            "tmax_c": [o.tmax_c for o in observations],
            "tmin_c": [o.tmin_c for o in observations],
            "tmean_c": [o.tmean_c for o in observations],
            "umidade_pct": [o.umidade_pct for o in observations],
            "chuva_mm": [o.chuva_mm for o in observations],
            "vento_kmh": [o.vento_kmh for o in observations],
        }
    )
    df["ds"] = pd.to_datetime(df["ds"])
    for c in OBS_COLUMNS[1:]:
        df[c] = pd.to_numeric(df[c], errors="coerce")
    return df


def compute_window_aggregates(
    observations: Sequence[ClimateObservation],
    days: int = CLIMATE_WINDOW_DAYS,
) -> WindowAggregates:
    """
    Agrega a janela das últimas `days` observações (entrada mais recente primeiro).

    Campos ausentes ficam fora do agregado correspondente. Se nenhuma
    observação traz o campo, o agregado é None e a regra que depende dele
    simplesmente não dispara.
    """
    df = observations_to_frame(list(observations)[:days])
    if df.empty:
        return WindowAggregates(0, None, None, None, None, None)

    chuva = df["chuva_mm"].dropna()

    return WindowAggregates(
        n_dias=int(len(df)),
        tmean_media_c=_opt_float(df["tmean_c"].mean()),
        tmax_c=_opt_float(df["tmax_c"].max()),
        tmin_c=_opt_float(df["tmin_c"].min()),
        chuva_total_mm=_opt_float(chuva.sum()) if not chuva.empty else None,
        umidade_media_pct=_opt_float(df["umidade_pct"].mean()),
        observacao_mais_recente=df["ds"].max().to_pydatetime(),
    )
