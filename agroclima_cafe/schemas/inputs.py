from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Dict, Any

import pandas as pd

@dataclass(frozen=True)
class Plantation:
    plantacao_id: str
    usuario_id: str
    variedade: str
    lat: float
    lon: float
    nome: str = ""
    especie: str = "cafe"
    fase_fenologica: Optional[str] = None
    ph_solo: Optional[float] = None
    tipo_solo: Optional[str] = None
    data_plantio: Optional[date] = None

    def validate(self) -> None:
        if not (-90.0 <= float(self.lat) <= 90.0):
            raise ValueError("lat inválida: deve estar entre -90 e 90.")
        if not (-180.0 <= float(self.lon) <= 180.0):
            raise ValueError("lon inválida: deve estar entre -180 e 180.")
        if self.ph_solo is not None and not (0.0 <= float(self.ph_solo) <= 14.0):
            raise ValueError("ph_solo inválido: deve estar entre 0 e 14.")
        if self.especie != "cafe":
            raise ValueError("Este motor é especializado em cafeicultura (especie='cafe').")

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Plantation":
        """Monta a plantação a partir de um item do registro JSON."""
        data_plantio = raw.get("data_plantio")
        return cls(
            plantacao_id=str(raw["id"]),
            usuario_id=str(raw.get("usuario_id", "")),
            nome=str(raw.get("nome", "") or ""),
            especie=str(raw.get("especie", "cafe")),
            variedade=str(raw.get("variedade_cafe") or raw.get("variedade") or "").strip().lower(),
            fase_fenologica=raw.get("fase_fenologica") or None,
            lat=float(raw["latitude"]),
            lon=float(raw["longitude"]),
            ph_solo=float(raw["ph_solo"]) if raw.get("ph_solo") is not None else None,
            tipo_solo=raw.get("tipo_solo") or None,
            data_plantio=pd.to_datetime(data_plantio).date() if data_plantio else None,
        )


@dataclass(frozen=True)
class SoilSample:
    ph: float
    textura: str = "medio"
    # mg/dm³ (nitrogenio, fosforo) e cmolc/dm³ (potassio)
    nutrientes: Dict[str, float] = field(default_factory=dict)
    data_analise: Optional[date] = None

    @classmethod
    def from_plantation(cls, plantation: Plantation) -> "SoilSample":
        """Amostra mínima a partir do snapshot de solo da plantação."""
        return cls(
            ph=float(plantation.ph_solo) if plantation.ph_solo is not None else 6.0,
            textura=plantation.tipo_solo or "medio",
        )


@dataclass(frozen=True)
class ClimateObservation:
    data: datetime
    tmax_c: Optional[float] = None
    tmin_c: Optional[float] = None
    tmean_c: Optional[float] = None
    umidade_pct: Optional[float] = None
    chuva_mm: Optional[float] = None
    vento_kmh: Optional[float] = None


@dataclass(frozen=True)
class ForecastDay:
    data: date
    lead_days: int
    tmin_c: float
    tmax_c: float
    tmean_c: float
    chuva_mm: float
    umidade_pct: float
    descricao: str = ""
    origem: str = ""
