from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

Priority = Literal["baixa", "media", "alta", "urgente"]
Status = Literal["pendente", "concluida", "cancelada", "vencida"]
GenerationStatus = Literal["sucesso", "ignorada", "erro"]

# Ordem total das prioridades (urgente é a mais alta)
PRIORITY_ORDER: Dict[str, int] = {"baixa": 0, "media": 1, "alta": 2, "urgente": 3}

PREDICTIVE_SUFFIX = "_preditivo"


def priority_rank(prioridade: str) -> int:
    return PRIORITY_ORDER[prioridade]


@dataclass(frozen=True)
class RuleOutcome:
    """Saída de um avaliador de regras, antes de virar Recommendation."""
    tipo: str
    prioridade: Priority
    titulo: str
    descricao: str
    acao_recomendada: str
    fundamentacao: str
    parametros: Dict[str, Any] = field(default_factory=dict)
    # Preenchidos apenas por alertas da previsão
    lead_days: Optional[int] = None
    data_evento: Optional[date] = None

    @property
    def preditiva(self) -> bool:
        return self.lead_days is not None


@dataclass(frozen=True)
class Recommendation:
    recomendacao_id: str
    plantacao_id: str
    usuario_id: str
    tipo: str
    prioridade: Priority
    titulo: str
    descricao: str
    acao_recomendada: str
    fundamentacao: str
    parametros: Dict[str, Any]
    data_recomendada: datetime
    data_limite: datetime
    criada_em: datetime
    status: Status = "pendente"
    preditiva: bool = False
    algoritmo: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.recomendacao_id,
            "plantacao": self.plantacao_id,
            "usuario": self.usuario_id,
            "tipo": self.tipo,
            "prioridade": self.prioridade,
            "titulo": self.titulo,
            "descricao": self.descricao,
            "acaoRecomendada": self.acao_recomendada,
            "cronograma": {
                "dataRecomendada": self.data_recomendada.isoformat(),
                "dataLimite": self.data_limite.isoformat(),
            },
            "status": self.status,
            "criadaEm": self.criada_em.isoformat(),
            "parametrosUsados": {
                "algoritmo": self.algoritmo,
                "fundamentacao": self.fundamentacao,
                "parametros": self.parametros,
            },
        }


@dataclass(frozen=True)
class GenerationResult:
    plantacao_id: str
    status: GenerationStatus
    nome: str = ""
    recomendacoes: List[Recommendation] = field(default_factory=list)
    erro: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "plantacao": self.plantacao_id,
            "nome": self.nome,
            "status": self.status,
            "recomendacoes": len(self.recomendacoes),
        }
        if self.erro:
            out["erro"] = self.erro
        return out


@dataclass(frozen=True)
class BatchReport:
    resultados: List[GenerationResult] = field(default_factory=list)

    @property
    def total_recomendacoes(self) -> int:
        return sum(len(r.recomendacoes) for r in self.resultados)

    @property
    def falhas(self) -> List[GenerationResult]:
        return [r for r in self.resultados if r.status == "erro"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRecomendacoes": self.total_recomendacoes,
            "plantacoesAnalisadas": len(self.resultados),
            "resultados": [r.to_dict() for r in self.resultados],
        }
