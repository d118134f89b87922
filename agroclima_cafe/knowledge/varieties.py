# agroclima_cafe/knowledge/varieties.py

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Literal, Mapping, Optional, Tuple

from ..errors import UnknownVarietyError

SpeciesClass = Literal["arabica", "robusta"]
HeatTolerance = Literal["baixa", "media", "alta"]


@dataclass(frozen=True)
class VarietySpec:
    chave: str
    tipo: SpeciesClass
    temperatura_ideal: Tuple[float, float]
    ph_ideal: Tuple[float, float]
    tolerancia_calor: HeatTolerance
    caracteristicas: str = ""

    @property
    def ph_ideal_str(self) -> str:
        return f"{self.ph_ideal[0]}-{self.ph_ideal[1]}"


# =============================================================================
# PARÂMETROS DE REFERÊNCIA POR VARIEDADE
# =============================================================================
# Para incluir uma variedade nova basta acrescentar um item aqui.
# -----------------------------------------------------------------------------

VARIETY_PROFILES: Dict[str, VarietySpec] = {
    "mundo_novo": VarietySpec(
        chave="mundo_novo",
        tipo="arabica",
        temperatura_ideal=(18.0, 23.0),
        ph_ideal=(5.0, 6.0),
        tolerancia_calor="baixa",
        caracteristicas="Não tolera excesso de calor",
    ),
    "catuai": VarietySpec(
        chave="catuai",
        tipo="arabica",
        temperatura_ideal=(19.0, 24.0),
        ph_ideal=(5.0, 6.5),
        tolerancia_calor="media",
        caracteristicas="Boa adaptação a diferentes solos",
    ),
    "bourbon": VarietySpec(
        chave="bourbon",
        tipo="arabica",
        temperatura_ideal=(18.0, 22.0),
        ph_ideal=(5.0, 6.0),
        tolerancia_calor="baixa",
        caracteristicas="Mais sensível a pragas",
    ),
    "acaia": VarietySpec(
        chave="acaia",
        tipo="arabica",
        temperatura_ideal=(20.0, 25.0),
        ph_ideal=(5.0, 6.0),
        tolerancia_calor="media",
        caracteristicas="Melhor em regiões do Cerrado",
    ),
    "conilon": VarietySpec(
        chave="conilon",
        tipo="robusta",
        temperatura_ideal=(22.0, 30.0),
        ph_ideal=(4.5, 6.0),
        tolerancia_calor="alta",
        caracteristicas="Não tolera frio abaixo de 18°C",
    ),
}


class VarietyKnowledgeBase:
    """
    Tabela imutável de variedades de café.

    Criada uma vez no início do processo e passada por referência aos
    avaliadores. Variedade desconhecida é erro fatal para a plantação.
    """

    def __init__(self, profiles: Optional[Mapping[str, VarietySpec]] = None):
        self._profiles = MappingProxyType(dict(profiles if profiles is not None else VARIETY_PROFILES))

    def get(self, chave: str) -> VarietySpec:
        key = str(chave or "").strip().lower()
        try:
            return self._profiles[key]
        except KeyError:
            raise UnknownVarietyError(chave) from None

    def __contains__(self, chave: object) -> bool:
        return str(chave or "").strip().lower() in self._profiles

    def keys(self):
        return self._profiles.keys()
