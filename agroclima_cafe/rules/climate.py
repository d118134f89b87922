# agroclima_cafe/rules/climate.py

from __future__ import annotations

from typing import List

from ..climate.metrics import WindowAggregates
from ..knowledge.varieties import VarietySpec
from ..schemas.outputs import RuleOutcome

# =============================================================================
# LIMIARES POR TIPO DE CAFÉ
# =============================================================================
ARABICA_FROST_TMIN = 12.0
ROBUSTA_COLD_TMIN = 18.0

ARABICA_HEAT_TMAX = 30.0
ARABICA_HEAT_HIGH_TMAX = 32.0
ROBUSTA_HEAT_TMAX = 34.0
ROBUSTA_HEAT_URGENT_TMAX = 36.0

# Chuva acumulada na janela de 7 dias (mm)
RAIN_CRITICAL_MM = 10.0
RAIN_ATTENTION_MM = 25.0

HUMIDITY_LOW_PCT = 40.0

# Ferrugem (Hemileia vastatrix)
RUST_TMEAN_RANGE = (22.0, 25.0)
RUST_HUMIDITY_PCT = 80.0


def _temperature_rules(agg: WindowAggregates, variety: VarietySpec) -> List[RuleOutcome]:
    out: List[RuleOutcome] = []
    tipo = variety.tipo
    tmin = agg.tmin_c
    tmax = agg.tmax_c

    # 1) Frio / geada (exclusivos pelo tipo de café)
    if tmin is not None:
        if tipo == "arabica" and tmin < ARABICA_FROST_TMIN:
            out.append(RuleOutcome(
                tipo="alerta_climatico",
                prioridade="urgente",
                titulo="ALERTA: Risco de Geada",
                descricao=f"Temperatura mínima de {tmin:.1f}°C. Risco crítico de geada para café arábica.",
                acao_recomendada="Monitorar temperatura constantemente. Preparar proteção (cobertura, queima controlada). Evitar podas.",
                fundamentacao="Temperatura < 12°C - risco de geada para arábica",
                parametros={"temp_minima": tmin, "tipo_cafe": tipo},
            ))
        elif tipo == "robusta" and tmin < ROBUSTA_COLD_TMIN:
            out.append(RuleOutcome(
                tipo="alerta_climatico",
                prioridade="alta",
                titulo="Risco de Estresse por Frio",
                descricao=f"Temperatura mínima de {tmin:.1f}°C. Café robusta sofre com temperatura baixa.",
                acao_recomendada="Monitorar plantas. Evitar irrigação excessiva. Considerar cobertura morta.",
                fundamentacao="Temperatura < 18°C - estresse para robusta",
                parametros={"temp_minima": tmin, "tipo_cafe": tipo},
            ))

    # 2) Estresse térmico
    if tmax is not None:
        if tipo == "arabica" and tmax > ARABICA_HEAT_TMAX:
            out.append(RuleOutcome(
                tipo="alerta_climatico",
                prioridade="alta" if tmax > ARABICA_HEAT_HIGH_TMAX else "media",
                titulo="Estresse Térmico - Calor Excessivo",
                descricao=f"Temperatura máxima de {tmax:.1f}°C. Café arábica sofre estresse com calor excessivo.",
                acao_recomendada="Aumentar irrigação. Considerar sombreamento temporário. Aplicar cobertura morta.",
                fundamentacao="Temperatura > 30°C - estresse térmico para arábica",
                parametros={"temp_maxima": tmax, "tipo_cafe": tipo},
            ))
        elif tipo == "robusta" and tmax > ROBUSTA_HEAT_TMAX:
            out.append(RuleOutcome(
                tipo="alerta_climatico",
                prioridade="urgente" if tmax > ROBUSTA_HEAT_URGENT_TMAX else "alta",
                titulo="Risco Crítico - Calor Extremo",
                descricao=f"Temperatura máxima de {tmax:.1f}°C. Mesmo café robusta sofre com este calor.",
                acao_recomendada="Irrigação emergencial. Sombreamento obrigatório. Pulverização foliar.",
                fundamentacao="Temperatura > 34°C - risco crítico para robusta",
                parametros={"temp_maxima": tmax, "tipo_cafe": tipo},
            ))

    return out


def _water_rules(agg: WindowAggregates) -> List[RuleOutcome]:
    out: List[RuleOutcome] = []
    chuva = agg.chuva_total_mm
    umidade = agg.umidade_media_pct

    if chuva is not None:
        if chuva < RAIN_CRITICAL_MM:
            out.append(RuleOutcome(
                tipo="irrigacao",
                prioridade="alta",
                titulo="Déficit Hídrico Crítico",
                descricao=f"Apenas {chuva:.1f}mm de chuva nos últimos 7 dias. Déficit hídrico severo.",
                acao_recomendada="Irrigação imediata necessária: 20-25mm. Monitorar umidade do solo diariamente.",
                fundamentacao="Precipitação < 10mm/semana - déficit crítico",
                parametros={"precipitacao_semanal": chuva, "deficit": RAIN_ATTENTION_MM - chuva},
            ))
        elif chuva < RAIN_ATTENTION_MM:
            out.append(RuleOutcome(
                tipo="irrigacao",
                prioridade="media",
                titulo="Atenção - Irrigação Complementar",
                descricao=f"{chuva:.1f}mm de chuva nos últimos 7 dias. Abaixo do ideal para café.",
                acao_recomendada="Irrigação complementar recomendada: 10-15mm. Avaliar umidade do solo.",
                fundamentacao="Precipitação 10-25mm/semana - atenção",
                parametros={"precipitacao_semanal": chuva, "recomendacao": RAIN_ATTENTION_MM - chuva},
            ))

    if umidade is not None and umidade < HUMIDITY_LOW_PCT:
        out.append(RuleOutcome(
            tipo="alerta_climatico",
            prioridade="media",
            titulo="Baixa Umidade - Risco de Queda de Flores",
            descricao=f"Umidade relativa baixa ({umidade:.1f}%). Pode causar queda de flores e frutos jovens.",
            acao_recomendada="Aumentar irrigação por aspersão se disponível. Manter cobertura morta. Evitar capinas em horário seco.",
            fundamentacao="Umidade < 40% - risco de queda de flores/frutos",
            parametros={"umidade_media": umidade},
        ))

    return out


def _rust_rule(agg: WindowAggregates) -> List[RuleOutcome]:
    tmean = agg.tmean_media_c
    umidade = agg.umidade_media_pct
    if tmean is None or umidade is None:
        return []

    t_lo, t_hi = RUST_TMEAN_RANGE
    if not (t_lo <= tmean <= t_hi and umidade > RUST_HUMIDITY_PCT):
        return []

    return [RuleOutcome(
        tipo="alerta_fitossanitario",
        prioridade="alta",
        titulo="ALERTA: Condições Favoráveis à Ferrugem",
        descricao=f"Umidade alta ({umidade:.1f}%) e temperatura ideal ({tmean:.1f}°C) para ferrugem.",
        acao_recomendada="Monitorar folhas diariamente. Aplicar fungicida preventivo se histórico de ferrugem. Melhorar arejamento.",
        fundamentacao="Umidade > 80% + temperatura 22-25°C = condições ideais para Hemileia vastatrix",
        parametros={"umidade_media": umidade, "temperatura_media": tmean},
    )]


def evaluate_historical_climate(agg: WindowAggregates, variety: VarietySpec) -> List[RuleOutcome]:
    """
    Regras sobre a janela histórica (até 7 dias).

    Todas as regras aplicáveis disparam de forma independente; a exceção são
    as regras de frio e de calor, exclusivas pelo tipo de café. Janela vazia
    ou agregados ausentes não geram erro, apenas nenhuma recomendação.
    """
    if agg.n_dias == 0:
        return []

    outcomes: List[RuleOutcome] = []
    outcomes.extend(_temperature_rules(agg, variety))
    outcomes.extend(_water_rules(agg))
    outcomes.extend(_rust_rule(agg))
    return outcomes
