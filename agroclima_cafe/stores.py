# agroclima_cafe/stores.py
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .errors import PersistenceError
from .schemas.inputs import ClimateObservation, SoilSample
from .schemas.outputs import Recommendation

logger = logging.getLogger(__name__)

VALID_STATUSES = {"pendente", "concluida", "cancelada", "vencida"}


# =============================================================================
# RECOMENDAÇÕES
# =============================================================================

class InMemoryRecommendationStore:
    """
    Store de recomendações em memória, seguro entre threads.

    `insert_if_no_recent_pending` faz checagem e gravação sob o mesmo lock,
    então duas gerações simultâneas para a mesma plantação não duplicam o lote.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, Recommendation] = {}

    def list_pending(self, plantation_id: str) -> List[Recommendation]:
        with self._lock:
            return [
                r for r in self._items.values()
                if r.plantacao_id == plantation_id and r.status == "pendente"
            ]

    def list_all(self, plantation_id: Optional[str] = None) -> List[Recommendation]:
        with self._lock:
            return [
                r for r in self._items.values()
                if plantation_id is None or r.plantacao_id == plantation_id
            ]

    def insert(self, rec: Recommendation) -> None:
        with self._lock:
            self._insert_locked(rec)

    def _insert_locked(self, rec: Recommendation) -> None:
        if rec.recomendacao_id in self._items:
            raise PersistenceError(f"Recomendação duplicada: {rec.recomendacao_id}")
        self._items[rec.recomendacao_id] = rec

    def update_status(self, rec_id: str, status: str) -> Recommendation:
        if status not in VALID_STATUSES:
            raise ValueError(f"status inválido: {status}")
        with self._lock:
            try:
                rec = self._items[rec_id]
            except KeyError:
                raise PersistenceError(f"Recomendação não encontrada: {rec_id}") from None
            updated = replace(rec, status=status)
            self._items[rec_id] = updated
            return updated

    def _has_recent_pending(self, plantation_id: str, kind: str, since: datetime) -> bool:
        for r in self._items.values():
            if r.plantacao_id != plantation_id or r.status != "pendente":
                continue
            if r.criada_em < since:
                continue
            # geral: qualquer pendente bloqueia; preditiva: só pendentes preditivas
            if kind == "preditiva" and not r.preditiva:
                continue
            return True
        return False

    def has_recent_pending(
        self,
        plantation_id: str,
        kind: str,
        window: timedelta,
        now: datetime,
    ) -> bool:
        """Só consulta; a gravação continua protegida por `insert_if_no_recent_pending`."""
        if kind not in ("geral", "preditiva"):
            raise ValueError(f"kind inválido: {kind}")
        with self._lock:
            return self._has_recent_pending(plantation_id, kind, now - window)

    def insert_if_no_recent_pending(
        self,
        plantation_id: str,
        kind: str,
        window: timedelta,
        recs: Sequence[Recommendation],
        now: datetime,
    ) -> bool:
        """
        Grava o lote só se não houver pendente recente da mesma classe.
        Devolve False quando o lote foi barrado pela janela.
        """
        if kind not in ("geral", "preditiva"):
            raise ValueError(f"kind inválido: {kind}")

        with self._lock:
            if self._has_recent_pending(plantation_id, kind, now - window):
                return False
            for rec in recs:
                self._insert_locked(rec)
            return True


# =============================================================================
# HISTÓRICO CLIMÁTICO
# =============================================================================

class InMemoryClimateHistoryStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._obs: Dict[str, List[ClimateObservation]] = {}

    def get_recent_observations(self, plantation_id: str, days: int) -> List[ClimateObservation]:
        """Mais recente primeiro, no máximo `days` entradas."""
        with self._lock:
            obs = list(self._obs.get(plantation_id, []))
        obs.sort(key=lambda o: o.data, reverse=True)
        return obs[:days]

    def save_observations(self, plantation_id: str, observations: Sequence[ClimateObservation]) -> None:
        with self._lock:
            # uma observação por data; a nova substitui a antiga
            by_date = {o.data: o for o in self._obs.get(plantation_id, [])}
            for o in observations:
                by_date[o.data] = o
            self._obs[plantation_id] = list(by_date.values())


class CsvClimateHistoryStore(InMemoryClimateHistoryStore):
    """
    Histórico lido de CSVs por plantação: <pasta>/<plantacao_id>.csv com
    colunas data, tmin, tmax, tmean, umidade, chuva_mm, vento.
    Observações geradas em execução ficam só em memória.
    """

    COLUMNS = {
        "tmin": "tmin_c",
        "tmax": "tmax_c",
        "tmean": "tmean_c",
        "umidade": "umidade_pct",
        "chuva_mm": "chuva_mm",
        "vento": "vento_kmh",
    }

    def __init__(self, folder: Path):
        super().__init__()
        self.folder = Path(folder)
        self._loaded: set = set()
        # separado de self._lock, que save_observations da base também usa
        self._load_lock = threading.Lock()

    def _load(self, plantation_id: str) -> None:
        # arquivo com erro não é marcado como lido: a falha reaparece a cada chamada
        with self._load_lock:
            if plantation_id in self._loaded:
                return
            self._read_csv(plantation_id)
            self._loaded.add(plantation_id)

    def _read_csv(self, plantation_id: str) -> None:
        path = self.folder / f"{plantation_id}.csv"
        if not path.exists():
            return
        try:
            df = pd.read_csv(path, parse_dates=["data"])
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Erro ao ler {path}: {e}") from e

        for c in self.COLUMNS:
            if c not in df.columns:
                df[c] = float("nan")
            df[c] = pd.to_numeric(df[c], errors="coerce")

        obs: List[ClimateObservation] = []
        for row in df.itertuples(index=False):
            values = {
                field: (None if pd.isna(getattr(row, col)) else float(getattr(row, col)))
                for col, field in self.COLUMNS.items()
            }
            obs.append(ClimateObservation(data=row.data.to_pydatetime(), **values))

        logger.info("[clima] %d observações carregadas de %s", len(obs), path.name)
        super().save_observations(plantation_id, obs)

    def get_recent_observations(self, plantation_id: str, days: int) -> List[ClimateObservation]:
        self._load(plantation_id)
        return super().get_recent_observations(plantation_id, days)

    def save_observations(self, plantation_id: str, observations: Sequence[ClimateObservation]) -> None:
        self._load(plantation_id)
        super().save_observations(plantation_id, observations)


# =============================================================================
# SOLO
# =============================================================================

class InMemorySoilStore:
    def __init__(self):
        self._samples: Dict[str, List[SoilSample]] = {}

    def add(self, plantation_id: str, sample: SoilSample) -> None:
        self._samples.setdefault(plantation_id, []).append(sample)

    def latest_sample(self, plantation_id: str) -> Optional[SoilSample]:
        samples = self._samples.get(plantation_id) or []
        if not samples:
            return None
        # amostras sem data contam como mais antigas
        return max(
            enumerate(samples),
            key=lambda t: (t[1].data_analise is not None, t[1].data_analise or datetime.min.date(), t[0]),
        )[1]
