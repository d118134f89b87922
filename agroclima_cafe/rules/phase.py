# agroclima_cafe/rules/phase.py

from __future__ import annotations

from typing import List, Optional

from ..climate.metrics import WindowAggregates
from ..schemas.outputs import RuleOutcome

PHASE_RAIN_DEFICIT_MM = 25.0
GRAIN_FILL_HEAT_TMAX = 30.0
RIPENING_EXCESS_RAIN_MM = 50.0


def evaluate_phase(fase: Optional[str], agg: WindowAggregates) -> List[RuleOutcome]:
    """
    Regras por fase fenológica, usando chuva acumulada e Tmax da janela de 7 dias.

    `fase` já vem resolvida (cadastro da plantação ou calendário). Fase None
    não gera nada; agregado ausente faz a regra correspondente não disparar.
    """
    if not fase:
        return []

    chuva = agg.chuva_total_mm
    tmax = agg.tmax_c

    if fase == "repouso":
        # dispara sempre que a fase for repouso
        return [RuleOutcome(
            tipo="manejo_cultural",
            prioridade="baixa",
            titulo="Fase de Repouso - Manejo Cultural",
            descricao="Período ideal para tratos culturais e manutenção da plantação.",
            acao_recomendada="Realizar podas necessárias, controle de ervas daninhas, manutenção de equipamentos.",
            fundamentacao="Fase de repouso vegetativo - foco em tratos culturais",
            parametros={"fase": fase},
        )]

    if fase == "brotacao" and chuva is not None and chuva < PHASE_RAIN_DEFICIT_MM:
        return [RuleOutcome(
            tipo="irrigacao",
            prioridade="alta",
            titulo="Brotação - Irrigação Essencial",
            descricao="Fase de brotação necessita umidade adequada para desenvolvimento das gemas.",
            acao_recomendada="Irrigação recomendada: 15-20mm. Manter solo úmido mas não encharcado.",
            fundamentacao="Brotação + chuva < 25mm/semana",
            parametros={"fase": fase, "precipitacao": chuva},
        )]

    if fase == "floracao" and chuva is not None and chuva < PHASE_RAIN_DEFICIT_MM:
        # déficit na floração é a condição mais crítica para a safra
        return [RuleOutcome(
            tipo="irrigacao",
            prioridade="urgente",
            titulo="Floração - Água Obrigatória",
            descricao="Fase crítica! Déficit hídrico durante floração compromete safra.",
            acao_recomendada="Irrigação obrigatória: 20-25mm. Prioridade máxima para esta fase.",
            fundamentacao="Floração + chuva < 25mm/semana = risco crítico para safra",
            parametros={"fase": fase, "precipitacao": chuva},
        )]

    if fase == "granacao" and tmax is not None and tmax > GRAIN_FILL_HEAT_TMAX:
        return [RuleOutcome(
            tipo="irrigacao",
            prioridade="alta",
            titulo="Granação - Proteção Contra Calor",
            descricao="Enchimento de grãos com temperatura alta. Necessário equilibrar água e temperatura.",
            acao_recomendada="Irrigação + sombreamento se possível. Aplicar 15-20mm conforme umidade do solo.",
            fundamentacao="Granação + temperatura > 30°C",
            parametros={"fase": fase, "temperatura_max": tmax},
        )]

    if fase == "maturacao" and chuva is not None and chuva > RIPENING_EXCESS_RAIN_MM:
        return [RuleOutcome(
            tipo="alerta_qualidade",
            prioridade="media",
            titulo="Maturação - Excesso de Chuva",
            descricao="Chuva excessiva durante maturação pode prejudicar qualidade dos grãos.",
            acao_recomendada="Evitar irrigação. Melhorar drenagem se possível. Acelerar colheita se grãos maduros.",
            fundamentacao="Maturação + chuva > 50mm/semana = risco para qualidade",
            parametros={"fase": fase, "precipitacao": chuva},
        )]

    return []
