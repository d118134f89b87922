# agroclima_cafe/errors.py


class AgroClimaError(Exception):
    """Erro base do motor de recomendações."""


class UnknownVarietyError(AgroClimaError):
    """Variedade de café sem parâmetros cadastrados (fatal para a plantação)."""

    def __init__(self, variety: str):
        super().__init__(f"Variedade de café não reconhecida: {variety}")
        self.variety = variety


class ForecastSourceError(AgroClimaError):
    """Falha de uma fonte de previsão; sempre tratada pela cadeia de fallback."""


class PersistenceError(AgroClimaError):
    """Falha ao ler/gravar em um store."""
