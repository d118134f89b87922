"""
Tests for the in-memory and CSV-backed stores.
"""
import threading
from datetime import date, datetime, timedelta

import pytest

from agroclima_cafe.errors import PersistenceError
from agroclima_cafe.scheduler import RecommendationScheduler
from agroclima_cafe.schemas.inputs import ClimateObservation, SoilSample
from agroclima_cafe.schemas.outputs import RuleOutcome
from agroclima_cafe.stores import (
    CsvClimateHistoryStore,
    InMemoryClimateHistoryStore,
    InMemoryRecommendationStore,
    InMemorySoilStore,
)

from conftest import NOW, make_window


def _recs(plantation, n=2, now=NOW):
    sched = RecommendationScheduler(InMemoryRecommendationStore())
    out = RuleOutcome("irrigacao", "alta", "t", "d", "a", "f")
    return sched.schedule(plantation, [out] * n, now)


class TestRecommendationStore:

    def test_insert_and_list_pending(self, plantation):
        store = InMemoryRecommendationStore()
        for r in _recs(plantation):
            store.insert(r)
        assert len(store.list_pending("p-001")) == 2
        assert store.list_pending("outra") == []

    def test_duplicate_id_rejected(self, plantation):
        store = InMemoryRecommendationStore()
        rec = _recs(plantation, n=1)[0]
        store.insert(rec)
        with pytest.raises(PersistenceError):
            store.insert(rec)

    def test_update_status(self, plantation):
        store = InMemoryRecommendationStore()
        rec = _recs(plantation, n=1)[0]
        store.insert(rec)
        updated = store.update_status(rec.recomendacao_id, "vencida")
        assert updated.status == "vencida"
        assert store.list_pending("p-001") == []
        assert len(store.list_all("p-001")) == 1

    def test_update_status_errors(self, plantation):
        store = InMemoryRecommendationStore()
        with pytest.raises(PersistenceError):
            store.update_status("nao-existe", "concluida")
        with pytest.raises(ValueError):
            store.update_status("qualquer", "arquivada")

    def test_invalid_kind(self, plantation):
        with pytest.raises(ValueError):
            InMemoryRecommendationStore().insert_if_no_recent_pending(
                "p-001", "outra", timedelta(hours=1), [], NOW
            )

    def test_conditional_insert_is_atomic(self, plantation):
        store = InMemoryRecommendationStore()
        batches = [_recs(plantation) for _ in range(8)]
        results = []
        barrier = threading.Barrier(len(batches))

        def worker(batch):
            barrier.wait()
            results.append(
                store.insert_if_no_recent_pending("p-001", "geral", timedelta(hours=24), batch, NOW)
            )

        threads = [threading.Thread(target=worker, args=(b,)) for b in batches]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(results) == [False] * 7 + [True]
        assert len(store.list_pending("p-001")) == 2

    def test_has_recent_pending(self, plantation):
        store = InMemoryRecommendationStore()
        store.insert_if_no_recent_pending("p-001", "geral", timedelta(hours=24), _recs(plantation), NOW)
        later = NOW + timedelta(hours=2)

        assert store.has_recent_pending("p-001", "geral", timedelta(hours=24), later)
        assert not store.has_recent_pending("p-001", "geral", timedelta(hours=1), later)
        # pendentes gerais não contam para a janela preditiva
        assert not store.has_recent_pending("p-001", "preditiva", timedelta(hours=6), later)
        assert not store.has_recent_pending("p-002", "geral", timedelta(hours=24), later)
        with pytest.raises(ValueError):
            store.has_recent_pending("p-001", "outra", timedelta(hours=1), later)


class TestClimateStores:

    def test_recent_observations_most_recent_first(self):
        store = InMemoryClimateHistoryStore()
        window = make_window(days=10)
        store.save_observations("p-001", list(reversed(window)))
        recent = store.get_recent_observations("p-001", 7)
        assert len(recent) == 7
        assert recent[0].data == NOW
        assert recent[-1].data == NOW - timedelta(days=6)

    def test_same_date_is_replaced(self):
        store = InMemoryClimateHistoryStore()
        store.save_observations("p-001", [ClimateObservation(data=NOW, chuva_mm=1.0)])
        store.save_observations("p-001", [ClimateObservation(data=NOW, chuva_mm=9.0)])
        obs = store.get_recent_observations("p-001", 7)
        assert [o.chuva_mm for o in obs] == [9.0]

    def test_unknown_plantation(self):
        assert InMemoryClimateHistoryStore().get_recent_observations("x", 7) == []

    def test_csv_store(self, tmp_path):
        (tmp_path / "p-001.csv").write_text(
            "data,tmin,tmax,tmean,umidade,chuva_mm,vento\n"
            "2024-10-13,12.0,28.0,20.0,60,0.0,5\n"
            "2024-10-14,11.0,,19.5,65,3.5,4\n"
            "2024-10-15,13.0,30.0,21.0,70,,6\n",
            encoding="utf-8",
        )
        store = CsvClimateHistoryStore(tmp_path)
        obs = store.get_recent_observations("p-001", 7)
        assert [o.data for o in obs] == [datetime(2024, 10, 15), datetime(2024, 10, 14), datetime(2024, 10, 13)]
        assert obs[0].chuva_mm is None
        assert obs[1].tmax_c is None
        assert obs[1].chuva_mm == 3.5

    def test_csv_store_missing_file(self, tmp_path):
        assert CsvClimateHistoryStore(tmp_path).get_recent_observations("p-009", 7) == []

    def test_csv_store_bad_file(self, tmp_path):
        (tmp_path / "p-001.csv").write_text("sem_coluna_data\n1\n", encoding="utf-8")
        with pytest.raises(PersistenceError):
            CsvClimateHistoryStore(tmp_path).get_recent_observations("p-001", 7)

    def test_csv_store_bad_file_keeps_failing(self, tmp_path):
        (tmp_path / "p-001.csv").write_text("sem_coluna_data\n1\n", encoding="utf-8")
        store = CsvClimateHistoryStore(tmp_path)
        for _ in range(2):
            with pytest.raises(PersistenceError):
                store.get_recent_observations("p-001", 7)

    def test_csv_store_reads_after_file_is_fixed(self, tmp_path):
        path = tmp_path / "p-001.csv"
        path.write_text("sem_coluna_data\n1\n", encoding="utf-8")
        store = CsvClimateHistoryStore(tmp_path)
        with pytest.raises(PersistenceError):
            store.get_recent_observations("p-001", 7)

        path.write_text("data,tmin,tmax,tmean,umidade,chuva_mm,vento\n2024-10-15,13.0,30.0,21.0,70,2.0,6\n", encoding="utf-8")
        obs = store.get_recent_observations("p-001", 7)
        assert [o.chuva_mm for o in obs] == [2.0]


class TestSoilStore:

    def test_latest_sample_by_date(self):
        store = InMemorySoilStore()
        store.add("p-001", SoilSample(ph=5.0, data_analise=date(2024, 8, 1)))
        store.add("p-001", SoilSample(ph=5.5, data_analise=date(2023, 8, 1)))
        store.add("p-001", SoilSample(ph=6.5))
        assert store.latest_sample("p-001").ph == 5.0

    def test_no_sample(self):
        assert InMemorySoilStore().latest_sample("p-001") is None
