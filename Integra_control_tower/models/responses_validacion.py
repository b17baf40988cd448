from typing import List
from pydantic import Field

from .responses_general import ModeloBaseIntegra, TipoHallazgo, Severidad


class RespuestasValidacion(ModeloBaseIntegra):
    """Namespace para los hallazgos del validador de fases."""

    class Advertencia(ModeloBaseIntegra):
        """Hallazgo informativo. Nunca invalida la operación."""
        fase: int = Field(..., alias="phase", description="0 = operación completa, 1..5 = fase del timeline")
        tipo: TipoHallazgo = Field(..., alias="type")
        mensaje: str = Field(..., alias="message")
        severidad: Severidad = Field(..., alias="severity")

    class ErrorValidacion(ModeloBaseIntegra):
        """Hallazgo de error. Solo los bloqueantes invalidan la operación."""
        fase: int = Field(..., alias="phase")
        tipo: TipoHallazgo = Field(..., alias="type")
        mensaje: str = Field(..., alias="message")
        bloqueante: bool = Field(..., alias="blocking")

    class ValidationResult(ModeloBaseIntegra):
        is_valid: bool = Field(True, alias="isValid")
        advertencias: List["RespuestasValidacion.Advertencia"] = Field(default_factory=list, alias="warnings")
        errores: List["RespuestasValidacion.ErrorValidacion"] = Field(default_factory=list, alias="errors")
        sugerencias: List[str] = Field(default_factory=list, alias="suggestions")


RespuestasValidacion.ValidationResult.model_rebuild()
