import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from ..models.responses_operacion import RespuestasOperacion
from .helpers import extraer_valor

logger = logging.getLogger(__name__)

DIAS_VENCIMIENTO_GIRO_DEFECTO = 30
DIAS_BUFFER_LIBERACION = 15
PATRON_DIAS_TERMINOS = r"(\d+)\s*d[ií]as?"


def _a_fecha(valor) -> Optional[date]:
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    try:
        return datetime.strptime(str(valor).strip(), "%Y-%m-%d").date()
    except (TypeError, ValueError):
        return None


def sumar_dias_habiles(fecha: date, dias: int) -> date:
    """Avanza `dias` días hábiles (lunes a viernes) a partir de `fecha`."""
    resultado = fecha
    agregados = 0
    while agregados < dias:
        resultado += timedelta(days=1)
        if resultado.weekday() < 5:
            agregados += 1
    return resultado


def dias_segun_terminos(terminos_pago: str) -> int:
    """'Pago a 45 días' -> 45; si no hay número de días, busca 60 / 90; por defecto 30."""
    dias = extraer_valor(terminos_pago or "", PATRON_DIAS_TERMINOS)
    if dias:
        return int(dias)
    if "60" in (terminos_pago or ""):
        return 60
    if "90" in (terminos_pago or ""):
        return 90
    return DIAS_VENCIMIENTO_GIRO_DEFECTO


def calcular_vencimiento_giro(giro: RespuestasOperacion.GiroInfo, fecha_base: Optional[date] = None,
                              terminos_pago: str = "30 días") -> Optional[str]:
    if giro.fecha_vencimiento:
        return giro.fecha_vencimiento
    base = _a_fecha(fecha_base) if fecha_base else date.today()
    return sumar_dias_habiles(base, dias_segun_terminos(terminos_pago)).isoformat()


def calcular_vencimiento_liberacion(liberacion: RespuestasOperacion.Liberacion,
                                    dias_buffer: int = DIAS_BUFFER_LIBERACION) -> Optional[str]:
    if liberacion.fecha_vencimiento:
        return liberacion.fecha_vencimiento
    base = _a_fecha(liberacion.fecha)
    if base is None:
        logger.warning(f"[Vencimientos] Liberación {liberacion.numero} con fecha inválida: '{liberacion.fecha}'")
        return None
    return sumar_dias_habiles(base, dias_buffer).isoformat()


def completar_vencimientos(
    giros: List[RespuestasOperacion.GiroInfo],
    liberaciones: List[RespuestasOperacion.Liberacion],
    terminos_pago: str = "30 días",
    fecha_base: Optional[date] = None,
) -> Tuple[List[RespuestasOperacion.GiroInfo], List[RespuestasOperacion.Liberacion]]:
    """Regresa copias de giros y liberaciones con la fecha de vencimiento calculada donde falte."""
    giros_con_fecha = [
        g.model_copy(update={"fecha_vencimiento": calcular_vencimiento_giro(g, fecha_base, terminos_pago)})
        for g in giros
    ]
    liberaciones_con_fecha = [
        lib.model_copy(update={"fecha_vencimiento": calcular_vencimiento_liberacion(lib)})
        for lib in liberaciones
    ]
    return giros_con_fecha, liberaciones_con_fecha


def es_vencimiento_proximo(fecha_vencimiento: Optional[str], dias_alerta: int = 7,
                           hoy: Optional[date] = None) -> bool:
    """True si vence hoy o dentro de los próximos `dias_alerta` días."""
    vencimiento = _a_fecha(fecha_vencimiento) if fecha_vencimiento else None
    if vencimiento is None:
        return False
    diferencia = (vencimiento - (hoy or date.today())).days
    return 0 <= diferencia <= dias_alerta


def es_vencimiento_vencido(fecha_vencimiento: Optional[str], hoy: Optional[date] = None) -> bool:
    vencimiento = _a_fecha(fecha_vencimiento) if fecha_vencimiento else None
    if vencimiento is None:
        return False
    return vencimiento < (hoy or date.today())
