# agroclima_cafe/config.py

import json
import logging
import os
from pathlib import Path
from typing import Dict, Any, List

logger = logging.getLogger(__name__)

# =============================================================================
# PASTAS BÁSICAS
# =============================================================================
BASE_DIR = Path(__file__).resolve().parent
DATA_DIR = BASE_DIR / "data"

# Registro de plantações (JSON) usado pela CLI
PLANTATION_REGISTRY_JSON = DATA_DIR / "plantations.json"

# =============================================================================
# MOTOR DE RECOMENDAÇÕES
# =============================================================================
ALGORITHM_VERSION = "deterministico_cafe_v1"

# Janela histórica usada pelas regras climáticas e de fase
CLIMATE_WINDOW_DAYS = 7

# Dados climáticos mais velhos que isso são regenerados antes da análise
CLIMATE_FRESHNESS_H = 48

# Janelas de deduplicação (horas)
GENERAL_WINDOW_H = 24
PREDICTIVE_WINDOW_H = 6

# Prazo (dias) por prioridade; demais prioridades usam o default
DUE_DAYS_BY_PRIORITY: Dict[str, int] = {
    "urgente": 1,
    "alta": 3,
}
DUE_DAYS_DEFAULT = 7
RECOMMENDED_OFFSET_DAYS = 1

# Limites de tamanho dos campos de texto
MAX_TITLE_LEN = 200
MAX_DESCRIPTION_LEN = 1000
MAX_ACTION_LEN = 500

# =============================================================================
# PREVISÃO DO TEMPO (FONTES)
# =============================================================================
FORECAST_DAYS = 5
# (conexão, leitura) para o requests; a leitura vale por pacote recebido,
# não para a resposta inteira.
FORECAST_CONNECT_TIMEOUT_S = 3
FORECAST_READ_TIMEOUT_S = 5
FORECAST_TIMEOUT_S = (FORECAST_CONNECT_TIMEOUT_S, FORECAST_READ_TIMEOUT_S)

CPTEC_BASE_URL = "http://servicos.cptec.inpe.br/XML"
OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"
OPENWEATHER_API_KEY = os.environ.get("OPENWEATHER_API_KEY", "")

# (lat_min, lat_max, lon_min, lon_max)
BRAZIL_BBOX = (-35.0, 5.0, -75.0, -30.0)

# Cidades CPTEC de referência (código, nome, lat, lon)
CPTEC_CITIES: List[Dict[str, Any]] = [
    {"codigo": 244, "nome": "São Paulo", "lat": -23.5, "lon": -46.6},
    {"codigo": 218, "nome": "Belo Horizonte", "lat": -19.9, "lon": -43.9},
    {"codigo": 139, "nome": "Brasília", "lat": -15.8, "lon": -47.9},
]


# =============================================================================
# REGISTRO DE PLANTAÇÕES
# =============================================================================

def load_plantation_registry(path: Path = PLANTATION_REGISTRY_JSON) -> List[Dict[str, Any]]:
    """
    Carrega a lista de plantações do arquivo JSON externo.
    Se o arquivo não existir ou der erro, devolve lista vazia para não quebrar.
    """
    path = Path(path)
    if not path.exists():
        logger.warning("[config] Arquivo %s não encontrado. Registro vazio.", path)
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("[config] Erro ao ler JSON de plantações: %s. Registro vazio.", e)
        return []

    plantacoes = data.get("plantacoes", []) if isinstance(data, dict) else data
    if not isinstance(plantacoes, list):
        logger.warning("[config] JSON de plantações sem lista 'plantacoes'. Registro vazio.")
        return []
    return [p for p in plantacoes if isinstance(p, dict)]
