# agroclima_cafe/rules/soil.py

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..knowledge.varieties import VarietySpec
from ..schemas.inputs import SoilSample
from ..schemas.outputs import RuleOutcome

PH_SEVERE_ACID = 4.5
PH_ALKALINE = 7.0

# Limites (baixo, medio, alto) por nutriente
NUTRIENT_THRESHOLDS: Dict[str, tuple] = {
    "nitrogenio": (20.0, 40.0, 60.0),
    "fosforo": (10.0, 20.0, 40.0),
    "potassio": (0.15, 0.30, 0.60),
}

SANDY_TEXTURES = {"arenoso"}


# =============================================================================
# CLASSIFICAÇÃO DA AMOSTRA
# =============================================================================

def classify_ph(ph: float) -> str:
    if ph < 4.5:
        return "muito_acido"
    if ph < 5.5:
        return "acido"
    if ph < 6.5:
        return "ligeiramente_acido"
    if ph < 7.5:
        return "neutro"
    if ph < 8.5:
        return "ligeiramente_alcalino"
    if ph < 9.5:
        return "alcalino"
    return "muito_alcalino"


def classify_nutrients(nutrientes: Optional[Dict[str, float]]) -> Dict[str, str]:
    """Classifica N, P e K em muito_baixo/baixo/medio/alto/muito_alto."""
    out: Dict[str, str] = {}
    for nome, (baixo, medio, alto) in NUTRIENT_THRESHOLDS.items():
        valor = (nutrientes or {}).get(nome)
        if valor is None:
            continue
        valor = float(valor)
        if valor < baixo * 0.5:
            out[nome] = "muito_baixo"
        elif valor < baixo:
            out[nome] = "baixo"
        elif valor < medio:
            out[nome] = "medio"
        elif valor < alto:
            out[nome] = "alto"
        else:
            out[nome] = "muito_alto"
    return out


# =============================================================================
# REGRAS DE SOLO
# =============================================================================

def evaluate_soil(sample: SoilSample, variety: VarietySpec) -> List[RuleOutcome]:
    """
    Regras de pH e textura. As regras de pH são faixas disjuntas; a regra de
    solo arenoso é independente do pH.
    """
    outcomes: List[RuleOutcome] = []
    ph = float(sample.ph)
    ph_min, _ = variety.ph_ideal
    textura = str(sample.textura or "").strip().lower()

    params: Dict[str, Any] = {
        "ph_atual": ph,
        "ph_ideal": variety.ph_ideal_str,
        "classificacao_ph": classify_ph(ph),
    }
    nutrientes = classify_nutrients(sample.nutrientes)
    if nutrientes:
        params["nutrientes"] = nutrientes
    if sample.data_analise is not None:
        params["data_analise"] = sample.data_analise.isoformat()

    if ph < PH_SEVERE_ACID:
        outcomes.append(RuleOutcome(
            tipo="correcao_solo",
            prioridade="alta",
            titulo="Solo Muito Ácido - Calagem Urgente",
            descricao=f"pH do solo ({ph}) está muito baixo para café. Solo muito ácido prejudica absorção de nutrientes.",
            acao_recomendada="Aplicar calcário dolomítico: 2-3 toneladas por hectare. Realizar nova análise em 60 dias.",
            fundamentacao="pH < 4.5 - solo muito ácido para cafeicultura",
            parametros=dict(params),
        ))
    elif ph < ph_min:
        outcomes.append(RuleOutcome(
            tipo="correcao_solo",
            prioridade="media",
            titulo="Correção de pH Recomendada",
            descricao=f"pH do solo ({ph}) está abaixo do ideal para {variety.chave}. Pode limitar produtividade.",
            acao_recomendada="Aplicar calcário: 1-2 toneladas por hectare conforme análise completa do solo.",
            fundamentacao=f"pH abaixo do ideal para {variety.chave}",
            parametros=dict(params),
        ))
    elif ph > PH_ALKALINE:
        outcomes.append(RuleOutcome(
            tipo="correcao_solo",
            prioridade="media",
            titulo="Solo Alcalino - Baixa Disponibilidade de Nutrientes",
            descricao=f"pH do solo ({ph}) está elevado. Solo alcalino reduz disponibilidade de micronutrientes.",
            acao_recomendada="Aplicar sulfato de amônio ou enxofre. Considerar adubação foliar com micronutrientes.",
            fundamentacao="pH > 7.0 - solo alcalino prejudica absorção de Fe, Mn, Zn",
            parametros=dict(params),
        ))

    if textura in SANDY_TEXTURES:
        outcomes.append(RuleOutcome(
            tipo="manejo_solo",
            prioridade="media",
            titulo="Solo Arenoso - Manejo Especial Necessário",
            descricao="Solo arenoso drena rapidamente e tem baixa retenção de nutrientes.",
            acao_recomendada="Aumentar frequência de irrigação e adubação. Aplicar matéria orgânica para melhorar retenção.",
            fundamentacao="Solo arenoso exige manejo mais intensivo",
            parametros={"tipo_solo": textura},
        ))

    return outcomes
