# agroclima_cafe/forecast/risk.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ..knowledge.varieties import VarietySpec
from ..schemas.inputs import ForecastDay
from ..schemas.outputs import RuleOutcome, priority_rank

# =============================================================================
# LIMIARES DOS RISCOS PREVISTOS
# =============================================================================
FROST_TMIN = 5.0
HEAT_TMAX = 35.0
HEAT_HUMIDITY_PCT = 40.0
HEAVY_RAIN_MM = 50.0
DRY_SPELL_3D_MM = 5.0
RUST_TMEAN_RANGE = (22.0, 25.0)
RUST_HUMIDITY_PCT = 80.0

# Ações imediatas valem para eventos a até 1 dia
IMMEDIATE_LEAD_DAYS = 1

FROST_ACTIONS = (
    "Cobrir plantas jovens com manta térmica ou plástico",
    "Irrigar o solo 1-2 horas antes do amanhecer para liberar calor",
    "Acender fogueiras estratégicas na plantação (se permitido)",
    "Pulverizar água nas plantas durante a madrugada",
    "Verificar sistema de irrigação por aspersão para ativação emergencial",
)

HEAT_ACTIONS = (
    "Aumentar frequência de irrigação para 2x ao dia",
    "Irrigar preferencialmente nas primeiras horas da manhã e final da tarde",
    "Verificar cobertura morta (mulch) para conservar umidade",
    "Evitar podas e aplicações foliares durante o calor",
    "Monitorar sinais de murchamento nas folhas",
)

RAIN_ACTIONS_BY_PHASE: Dict[str, str] = {
    "floracao": "Chuva durante floração pode prejudicar polinização. Verificar drenagem e evitar trânsito na plantação.",
    "granacao": "Excesso de água durante granação pode causar rachadura nos frutos. Melhorar drenagem.",
    "maturacao": "Chuva durante maturação prejudica qualidade. Acelerar colheita se frutos maduros.",
}
RAIN_ACTION_DEFAULT = "Verificar sistema de drenagem. Evitar aplicações foliares. Monitorar sinais de doenças fúngicas."

DRY_SPELL_ACTION = (
    "Programar irrigação intensiva. Verificar sistema de irrigação. "
    "Aplicar cobertura morta. Monitorar umidade do solo diariamente."
)


# =============================================================================
# TEXTOS DE AÇÃO (escalonados pela antecedência)
# =============================================================================

def frost_action(lead_days: int) -> str:
    if lead_days <= IMMEDIATE_LEAD_DAYS:
        return f"AÇÃO IMEDIATA: {'. '.join(FROST_ACTIONS[:3])}. Monitorar temperatura durante a noite."
    return f"PREPARAÇÃO: {'. '.join(FROST_ACTIONS[:2])}. Verificar equipamentos de proteção."


def heat_action(lead_days: int) -> str:
    if lead_days <= IMMEDIATE_LEAD_DAYS:
        return f"AÇÃO IMEDIATA: {'. '.join(HEAT_ACTIONS[:3])}."
    return f"PREPARAÇÃO: {'. '.join(HEAT_ACTIONS[:2])}. Planejar irrigação intensiva."


def rain_action(fase: Optional[str], lead_days: int) -> str:
    especifica = RAIN_ACTIONS_BY_PHASE.get(fase or "", RAIN_ACTION_DEFAULT)
    if lead_days <= IMMEDIATE_LEAD_DAYS:
        return f"AÇÃO IMEDIATA: {especifica} Preparar sistema de drenagem."
    return f"PREPARAÇÃO: {especifica}"


def rust_action(lead_days: int) -> str:
    if lead_days <= IMMEDIATE_LEAD_DAYS:
        return "AÇÃO IMEDIATA: Aplicar fungicida preventivo (triazol ou estrobilurina). Monitorar folhas para primeiros sintomas."
    return "PREPARAÇÃO: Verificar estoque de fungicidas. Programar aplicação preventiva. Inspecionar plantação."


def _in_days(lead_days: int) -> str:
    return f"{lead_days} dia{'s' if lead_days > 1 else ''}"


# =============================================================================
# ANÁLISE DE RISCOS
# =============================================================================

def analyze_forecast_risks(
    forecast: Sequence[ForecastDay],
    fase: Optional[str] = None,
    variety: Optional[VarietySpec] = None,
) -> List[RuleOutcome]:
    """
    Varre a previsão (índice 0..4 = antecedência 1..5 dias) e levanta alertas
    preditivos. Cada dia é avaliado de forma independente.

    A regra de período seco olha a soma de chuva dos 3 dias terminando no dia
    corrente, a partir do 3º dia; um mesmo veranico pode gerar até 3 alertas.

    Saída ordenada por prioridade (desc) e antecedência (asc).
    """
    days = list(forecast)
    alerts: List[RuleOutcome] = []
    base_params: Dict[str, Any] = {}
    if variety is not None:
        base_params["variedade"] = variety.chave

    for index, dia in enumerate(days):
        lead = index + 1
        evento = dia.data

        # Geada
        if dia.tmin_c <= FROST_TMIN:
            alerts.append(RuleOutcome(
                tipo="risco_geada",
                prioridade="urgente",
                titulo=f"Risco de Geada em {_in_days(lead)}",
                descricao=f"Temperatura mínima prevista: {dia.tmin_c:.1f}°C. Risco elevado de danos por geada para cafeeiros.",
                acao_recomendada=frost_action(lead),
                fundamentacao="Temperatura mínima prevista <= 5°C",
                parametros={**base_params, "temp_min": dia.tmin_c, "dias_para_evento": lead},
                lead_days=lead,
                data_evento=evento,
            ))

        # Calor + ar seco
        if dia.tmax_c >= HEAT_TMAX and dia.umidade_pct < HEAT_HUMIDITY_PCT:
            alerts.append(RuleOutcome(
                tipo="risco_estresse_termico",
                prioridade="alta",
                titulo=f"Estresse Térmico Previsto em {_in_days(lead)}",
                descricao=(
                    f"Temperatura máxima: {dia.tmax_c:.1f}°C, umidade: {dia.umidade_pct:.0f}%. "
                    "Condições de estresse para cafeeiros."
                ),
                acao_recomendada=heat_action(lead),
                fundamentacao="Temperatura máxima >= 35°C e umidade < 40%",
                parametros={**base_params, "temp_max": dia.tmax_c, "umidade": dia.umidade_pct, "dias_para_evento": lead},
                lead_days=lead,
                data_evento=evento,
            ))

        # Chuva intensa
        if dia.chuva_mm >= HEAVY_RAIN_MM:
            alerts.append(RuleOutcome(
                tipo="risco_chuva_excessiva",
                prioridade="media",
                titulo=f"Chuva Intensa Prevista em {_in_days(lead)}",
                descricao=f"Precipitação prevista: {dia.chuva_mm:.1f}mm. Risco de encharcamento e doenças fúngicas.",
                acao_recomendada=rain_action(fase, lead),
                fundamentacao="Precipitação prevista >= 50mm/dia",
                parametros={**base_params, "precipitacao": dia.chuva_mm, "fase": fase, "dias_para_evento": lead},
                lead_days=lead,
                data_evento=evento,
            ))

        # Período seco (janela móvel de 3 dias)
        if index >= 2:
            chuva_3d = float(sum(d.chuva_mm for d in days[index - 2:index + 1]))
            if chuva_3d < DRY_SPELL_3D_MM:
                alerts.append(RuleOutcome(
                    tipo="risco_seca",
                    prioridade="media",
                    titulo="Período Seco Prolongado Detectado",
                    descricao=f"Apenas {chuva_3d:.1f}mm previstos para 3 dias. Risco de déficit hídrico.",
                    acao_recomendada=DRY_SPELL_ACTION,
                    fundamentacao="Chuva prevista < 5mm em 3 dias consecutivos",
                    parametros={**base_params, "precipitacao_3dias": chuva_3d, "dias_para_evento": lead},
                    lead_days=lead,
                    data_evento=evento,
                ))

        # Ferrugem
        t_lo, t_hi = RUST_TMEAN_RANGE
        if t_lo <= dia.tmean_c <= t_hi and dia.umidade_pct >= RUST_HUMIDITY_PCT and dia.chuva_mm > 0:
            alerts.append(RuleOutcome(
                tipo="risco_ferrugem",
                prioridade="alta",
                titulo=f"Condições Favoráveis à Ferrugem em {_in_days(lead)}",
                descricao=(
                    f"Temperatura {dia.tmean_c:.1f}°C, umidade {dia.umidade_pct:.0f}%, com chuva. "
                    "Condições ideais para Hemileia vastatrix."
                ),
                acao_recomendada=rust_action(lead),
                fundamentacao="Temperatura média 22-25°C + umidade >= 80% + chuva",
                parametros={**base_params, "temperatura": dia.tmean_c, "umidade": dia.umidade_pct, "dias_para_evento": lead},
                lead_days=lead,
                data_evento=evento,
            ))

    # sort estável: empates mantêm a ordem de avaliação
    alerts.sort(key=lambda a: (-priority_rank(a.prioridade), a.lead_days))
    return alerts


def summarize_alerts(alerts: Sequence[RuleOutcome]) -> Dict[str, Any]:
    """Resumo do relatório de previsão; `alerts` já deve estar ordenado."""
    return {
        "total_alertas": len(alerts),
        "alertas_urgentes": sum(1 for a in alerts if a.prioridade == "urgente"),
        "alertas_altos": sum(1 for a in alerts if a.prioridade == "alta"),
        "proximo_risco": alerts[0].titulo if alerts else None,
    }
