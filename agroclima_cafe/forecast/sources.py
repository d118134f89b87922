# agroclima_cafe/forecast/sources.py
from __future__ import annotations

import math
import xml.etree.ElementTree as ET
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import requests

from .. import config as cfg
from ..errors import ForecastSourceError
from ..schemas.inputs import ForecastDay
from .climatology import ClimatologicalForecast, describe_day

LOCAL_TZ = "America/Sao_Paulo"


# =============================================================================
# Utilitários
# =============================================================================

def in_brazil(lat: float, lon: float) -> bool:
    lat_min, lat_max, lon_min, lon_max = cfg.BRAZIL_BBOX
    return lat_min <= lat <= lat_max and lon_min <= lon <= lon_max


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    r = 6371.0
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return r * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def nearest_cptec_city(lat: float, lon: float) -> Dict[str, Any]:
    return min(cfg.CPTEC_CITIES, key=lambda c: haversine_km(lat, lon, c["lat"], c["lon"]))


def _next_days(df: pd.DataFrame, today: date, days: int) -> pd.DataFrame:
    """Mantém só os dias futuros, em ordem, limitado a `days`."""
    df = df[df["data"] > today].sort_values("data").head(days)
    return df.reset_index(drop=True)


# =============================================================================
# CPTEC/INPE (fonte governamental)
# =============================================================================

class CptecSource:
    """
    Previsão de 7 dias do CPTEC para a cidade de referência mais próxima.

    O XML só traz mínima e máxima; chuva e umidade do mesmo dia vêm do
    padrão climatológico da região.
    """

    name = "cptec"

    def __init__(
        self,
        climatology: ClimatologicalForecast,
        base_url: str = cfg.CPTEC_BASE_URL,
        timeout: Tuple[float, float] = cfg.FORECAST_TIMEOUT_S,
    ):
        self.climatology = climatology
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def available(self, lat: float, lon: float) -> bool:
        return in_brazil(lat, lon)

    def _download(self, codigo: int) -> bytes:
        url = f"{self.base_url}/cidade/7dias/{codigo}/previsao.xml"
        try:
            resp = requests.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise ForecastSourceError(f"CPTEC falhou: {e}") from e
        return resp.content

    @staticmethod
    def parse(xml_text) -> pd.DataFrame:
        """XML do CPTEC -> DataFrame (data, tmin_c, tmax_c)."""
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise ForecastSourceError(f"CPTEC: XML inválido ({e})") from e

        rows = []
        for prev in root.iter("previsao"):
            rows.append(
                {
                    "data": prev.findtext("dia"),
                    "tmin_c": prev.findtext("minima"),
                    "tmax_c": prev.findtext("maxima"),
                }
            )
        df = pd.DataFrame(rows, columns=["data", "tmin_c", "tmax_c"])
        if df.empty:
            raise ForecastSourceError("CPTEC: XML sem dias de previsão")

        df["data"] = pd.to_datetime(df["data"], errors="coerce").dt.date
        for c in ["tmin_c", "tmax_c"]:
            df[c] = pd.to_numeric(df[c], errors="coerce")
        return df.dropna().reset_index(drop=True)

    def fetch(self, lat: float, lon: float, today: date, days: int = cfg.FORECAST_DAYS) -> List[ForecastDay]:
        cidade = nearest_cptec_city(lat, lon)
        df = _next_days(self.parse(self._download(cidade["codigo"])), today, days)

        out: List[ForecastDay] = []
        for row in df.itertuples(index=False):
            lead = (row.data - today).days
            clim = self.climatology.day(lat, lon, row.data, lead)
            tmin, tmax = float(row.tmin_c), float(row.tmax_c)
            out.append(
                ForecastDay(
                    data=row.data,
                    lead_days=lead,
                    tmin_c=tmin,
                    tmax_c=tmax,
                    tmean_c=round((tmin + tmax) / 2, 1),
                    chuva_mm=clim.chuva_mm,
                    umidade_pct=clim.umidade_pct,
                    descricao=describe_day(clim.chuva_mm, tmax),
                    origem=self.name,
                )
            )
        return out


# =============================================================================
# OpenWeatherMap (fonte comercial)
# =============================================================================

class OpenWeatherSource:
    """Endpoint /forecast (passos de 3 h) agregado por dia local."""

    name = "openweather"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = cfg.OPENWEATHER_BASE_URL,
        timeout: Tuple[float, float] = cfg.FORECAST_TIMEOUT_S,
    ):
        self.api_key = cfg.OPENWEATHER_API_KEY if api_key is None else api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def available(self, lat: float, lon: float) -> bool:
        return bool(self.api_key)

    def _download(self, lat: float, lon: float) -> Dict[str, Any]:
        params = {
            "lat": lat,
            "lon": lon,
            "appid": self.api_key,
            "units": "metric",
            "lang": "pt_br",
        }
        try:
            resp = requests.get(f"{self.base_url}/forecast", params=params, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as e:
            raise ForecastSourceError(f"OpenWeatherMap falhou: {e}") from e

    @staticmethod
    def aggregate(payload: Dict[str, Any]) -> pd.DataFrame:
        """Lista de passos de 3 h -> uma linha por dia."""
        items = payload.get("list") or []
        if not items:
            raise ForecastSourceError("OpenWeatherMap: resposta sem 'list'")

        df = pd.DataFrame(
            {
                "dt": [it.get("dt") for it in items],
                "temp": [(it.get("main") or {}).get("temp") for it in items],
                "umidade": [(it.get("main") or {}).get("humidity") for it in items],
                "chuva": [(it.get("rain") or {}).get("3h", 0.0) for it in items],
                "descricao": [((it.get("weather") or [{}])[0]).get("description", "") for it in items],
            }
        )
        df["ds"] = pd.to_datetime(df["dt"], unit="s", utc=True).dt.tz_convert(LOCAL_TZ)
        df["data"] = df["ds"].dt.date
        for c in ["temp", "umidade", "chuva"]:
            df[c] = pd.to_numeric(df[c], errors="coerce")

        daily = (
            df.groupby("data", sort=True)
            .agg(
                tmin_c=("temp", "min"),
                tmax_c=("temp", "max"),
                tmean_c=("temp", "mean"),
                chuva_mm=("chuva", "sum"),
                umidade_pct=("umidade", "mean"),
                descricao=("descricao", "first"),
            )
            .reset_index()
        )
        return daily.dropna(subset=["tmin_c", "tmax_c", "tmean_c", "umidade_pct"])

    def fetch(self, lat: float, lon: float, today: date, days: int = cfg.FORECAST_DAYS) -> List[ForecastDay]:
        if not self.api_key:
            raise ForecastSourceError("OpenWeatherMap sem chave de API configurada")

        df = _next_days(self.aggregate(self._download(lat, lon)), today, days)
        return [
            ForecastDay(
                data=row.data,
                lead_days=(row.data - today).days,
                tmin_c=round(float(row.tmin_c), 1),
                tmax_c=round(float(row.tmax_c), 1),
                tmean_c=round(float(row.tmean_c), 1),
                chuva_mm=round(float(row.chuva_mm), 1),
                umidade_pct=round(float(row.umidade_pct), 1),
                descricao=str(row.descricao or ""),
                origem=self.name,
            )
            for row in df.itertuples(index=False)
        ]


def expected_dates(today: date, days: int = cfg.FORECAST_DAYS) -> List[date]:
    return [today + timedelta(days=i) for i in range(1, days + 1)]
