from enum import Enum
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ModeloBaseIntegra(BaseModel):
    """
    Base común de todos los registros del Control Tower.
    Los atributos viven en snake_case y se serializan en camelCase
    (model_dump(by_alias=True)) para el dashboard.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- ENUMS PARA ESTANDARIZACIÓN ---
class EstadoProceso(str, Enum):
    PENDIENTE = "pendiente"
    EN_PROCESO = "en_proceso"
    COMPLETADO = "completado"
    RECHAZADO = "rechazado"


class Moneda(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    COP = "COP"


class TipoHallazgo(str, Enum):
    """Clasificación de advertencias y errores del validador de fases."""
    INCONSISTENCIA = "inconsistencia"
    DATO_FALTANTE = "dato_faltante"
    ERROR_LOGICO = "error_logico"
    DEPENDENCIA = "dependencia"
    CALIDAD_DATOS = "calidad_datos"


class Severidad(str, Enum):
    BAJA = "baja"
    MEDIA = "media"
    ALTA = "alta"
