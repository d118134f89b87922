# agroclima_cafe/main.py
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd

from . import config as cfg
from .engine import RecommendationEngine
from .forecast.provider import ForecastProvider
from .schemas.inputs import Plantation
from .schemas.outputs import BatchReport
from .stores import CsvClimateHistoryStore, InMemoryClimateHistoryStore, InMemoryRecommendationStore

logger = logging.getLogger(__name__)


# =============================================================================
# HELPERS
# =============================================================================

def _print_header(title: str) -> None:
    print()
    print("=" * 40)
    print(title)
    print("=" * 40)


def load_plantations(path: Path) -> List[Plantation]:
    """Itens inválidos do registro são ignorados com aviso."""
    out: List[Plantation] = []
    for raw in cfg.load_plantation_registry(path):
        try:
            p = Plantation.from_dict(raw)
            p.validate()
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("[main] Plantação ignorada (%s): %s", raw.get("id", "?"), e)
            continue
        out.append(p)
    return out


def report_table(report: BatchReport) -> pd.DataFrame:
    rows = []
    for res in report.resultados:
        for r in res.recomendacoes:
            rows.append(
                {
                    "plantacao": res.nome or res.plantacao_id,
                    "prazo": r.data_limite.strftime("%d/%m"),
                    "prioridade": r.prioridade,
                    "tipo": r.tipo,
                    "titulo": r.titulo,
                }
            )
    return pd.DataFrame(rows, columns=["plantacao", "prazo", "prioridade", "tipo", "titulo"])


# =============================================================================
# CLI
# =============================================================================

def main(argv: Optional[List[str]] = None) -> None:
    p = argparse.ArgumentParser(description="Gera recomendações agronômicas para plantações de café.")
    p.add_argument("--registro", type=str, default=str(cfg.PLANTATION_REGISTRY_JSON))
    p.add_argument("--clima_dir", type=str, default=None)   # CSVs <plantacao_id>.csv
    p.add_argument("--preditiva", action="store_true", help="Só alertas da previsão de 5 dias.")
    p.add_argument("--sem_previsao", action="store_true", help="Não consulta previsão do tempo.")
    p.add_argument("--seed", type=int, default=None)
    args = p.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    rng = np.random.default_rng(args.seed)
    climate = CsvClimateHistoryStore(Path(args.clima_dir)) if args.clima_dir else InMemoryClimateHistoryStore()
    provider = None if args.sem_previsao else ForecastProvider(rng=rng)

    engine = RecommendationEngine(
        recommendation_store=InMemoryRecommendationStore(),
        climate_store=climate,
        forecast_provider=provider,
        rng=rng,
    )

    plantations = load_plantations(Path(args.registro))
    _print_header("☕ AgroClima Café - Recomendações")
    print(f"Plantações no registro: {len(plantations)}")

    report = engine.generate_for_all(plantations, predictive_only=args.preditiva)

    for res in report.resultados:
        linha = f"- {res.nome or res.plantacao_id}: {res.status} ({len(res.recomendacoes)} recomendações)"
        if res.erro:
            linha += f" -> {res.erro}"
        print(linha)

    print("\nTABELA DE RECOMENDAÇÕES:\n")
    tabela = report_table(report)
    if tabela.empty:
        print("Nenhuma recomendação gerada.")
    else:
        print(tabela.to_string(index=False))
    print()


if __name__ == "__main__":
    main()
