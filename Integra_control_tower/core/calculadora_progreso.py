import logging
from datetime import datetime
from typing import Dict, List, Optional

from .motor_timeline import FASES_TIMELINE, generar_timeline, calcular_progreso_general
from ..models.responses_general import EstadoProceso
from ..models.responses_operacion import RespuestasOperacion

# Logger propio para el cálculo de avance
logger = logging.getLogger("progress_calculator")


def detalle_desde_timeline(timeline: List[RespuestasOperacion.TimelineEvent]) -> List[RespuestasOperacion.ProgresoFase]:
    """
    Traduce los eventos del timeline a detalle por fase. El detalle NUNCA se
    calcula por separado: así el avance reportado y el timeline siempre coinciden.
    """
    detalle = []
    for indice, evento in enumerate(timeline):
        anterior_completa = indice == 0 or timeline[indice - 1].estado == EstadoProceso.COMPLETADO
        detalle.append(RespuestasOperacion.ProgresoFase(
            fase=FASES_TIMELINE[indice]["fase"],
            nombre=evento.fase,
            progreso=evento.progreso,
            estado=evento.estado,
            razon=evento.notas or evento.descripcion,
            dependencias_cumplidas=anterior_completa,
        ))
    return detalle


def progreso_desde_timeline(timeline: List[RespuestasOperacion.TimelineEvent]) -> RespuestasOperacion.ProgresoGeneral:
    detalle = detalle_desde_timeline(timeline)
    completadas = sum(1 for f in detalle if f.estado == EstadoProceso.COMPLETADO)

    # Fase actual = primera no completada; si todas lo están, la última
    pendientes = [f.fase for f in detalle if f.estado != EstadoProceso.COMPLETADO]
    fase_actual = pendientes[0] if pendientes else len(detalle)
    fase_siguiente = fase_actual + 1 if pendientes and fase_actual < len(detalle) else None

    progreso = RespuestasOperacion.ProgresoGeneral(
        progreso_total=calcular_progreso_general(timeline),
        fases_completadas=completadas,
        fase_actual=fase_actual,
        fase_siguiente=fase_siguiente,
        detalle_fases=detalle,
    )
    logger.info(f"Progreso total: {progreso.progreso_total}% | Fases completadas: {completadas}/{len(detalle)} | Actual: {fase_actual}")
    return progreso


def calcular_progreso_preciso(fila: Dict[str, str], info: RespuestasOperacion.ParsedOperationInfo,
                              config: Optional[RespuestasOperacion.ConfiguracionPais] = None,
                              fecha_referencia: Optional[datetime] = None) -> RespuestasOperacion.ProgresoGeneral:
    """Avance por fase y general de una fila del CSV."""
    return progreso_desde_timeline(generar_timeline(fila, info, config, fecha_referencia))
