import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Any

from .motor_estados import (
    valor_columna, mapear_cotizacion, calcular_progreso_pagos, obtener_configuracion_pais
)
from .config import settings
from ..models.responses_general import EstadoProceso
from ..models.responses_operacion import RespuestasOperacion
from ..utils.helpers import contiene, redondear

logger = logging.getLogger(__name__)

# Las 5 fases fijas de una operación de importación
FASES_TIMELINE = [
    {
        "fase": 1,
        "nombre": "Solicitud Enviada",
        "descripcion": "Cotización aprobada y firmada",
        "dependencias": [],
    },
    {
        "fase": 2,
        "nombre": "Documentos de Operación y Pago Cuota Operacional",
        "descripcion": "Documentación procesada y cuota operacional pagada",
        "dependencias": [1],
    },
    {
        "fase": 3,
        "nombre": "Procesamiento de Pago",
        "descripcion": "Giros procesados y pagos confirmados",
        "dependencias": [2],
    },
    {
        "fase": 4,
        "nombre": "Envío y Logística",
        "descripcion": "Factura final y preparación de envío",
        "dependencias": [3],
    },
    {
        "fase": 5,
        "nombre": "Operación Completada",
        "descripcion": "Liberaciones completas y operación finalizada",
        "dependencias": [4],
    },
]

# Pesos de cada fase en el progreso general (suman 100)
PESOS_FASES = [15, 20, 25, 25, 15]

# Tolerancias de negocio: pagos >= 95% y liberaciones >= 98% del valor total
UMBRAL_PAGOS_COMPLETOS = 95
UMBRAL_LIBERACIONES_COMPLETAS = 98

# Las fechas de los eventos se espacian hacia atrás desde la fecha de referencia
DIAS_INICIO_TIMELINE = 30
DIAS_ENTRE_FASES = 6

Config = Optional[RespuestasOperacion.ConfiguracionPais]


def _monto(valor: float) -> str:
    return f"${valor:,.0f}"


def _resultado(estado: EstadoProceso, progreso: int, descripcion: str, notas: str = None) -> Dict[str, Any]:
    return {"estado": estado, "progreso": int(progreso), "descripcion": descripcion, "notas": notas}


# ==========================================
# LÓGICA POR FASE
# ==========================================
def logica_fase_1(fila: Dict[str, str], info: RespuestasOperacion.ParsedOperationInfo, config: Config = None) -> Dict[str, Any]:
    """Solicitud Enviada: la cotización se aprueba por proceso o por firma."""
    proceso = valor_columna(fila, "proceso", config)
    estado_firma = valor_columna(fila, "firma_cotizacion", config)

    if contiene(proceso, "1. Aprobación de Cotización"):
        return _resultado(EstadoProceso.COMPLETADO, 100, "Cotización aprobada mediante proceso formal",
                          f"Proceso registrado: {proceso}")
    if contiene(estado_firma, "listo"):
        return _resultado(EstadoProceso.COMPLETADO, 100, "Cotización firmada y confirmada",
                          f"Estado de firma: {estado_firma}")
    if proceso or estado_firma:
        return _resultado(EstadoProceso.EN_PROCESO, 60, "Cotización en proceso de aprobación",
                          f"Proceso: {proceso or 'N/A'}, Firma: {estado_firma or 'N/A'}")
    return _resultado(EstadoProceso.PENDIENTE, 0, "Esperando aprobación de cotización",
                      "Sin proceso ni firma de cotización registrados")


def logica_fase_2(fila: Dict[str, str], info: RespuestasOperacion.ParsedOperationInfo, config: Config = None) -> Dict[str, Any]:
    """Documentos + Cuota Operacional."""
    estado_cuota = valor_columna(fila, "cuota_operacional", config)

    if contiene(estado_cuota, "listo"):
        return _resultado(EstadoProceso.COMPLETADO, 100, "Documentos procesados y cuota operacional pagada",
                          f"Cuota operacional: {estado_cuota}")
    if contiene(estado_cuota, "proceso", "revision"):
        return _resultado(EstadoProceso.EN_PROCESO, 70, "Procesamiento de documentos y cuota en curso",
                          f"Estado actual: {estado_cuota}")
    if mapear_cotizacion(fila, config) == EstadoProceso.COMPLETADO:
        return _resultado(EstadoProceso.EN_PROCESO, 30, "Iniciando procesamiento de documentos",
                          f"Cotización aprobada, documentos en preparación (cuota: {estado_cuota or 'sin estado'})")
    return _resultado(EstadoProceso.PENDIENTE, 0, "Esperando completar cotización para procesar documentos",
                      f"Cuota operacional: {estado_cuota or 'sin estado'}")


def logica_fase_3(fila: Dict[str, str], info: RespuestasOperacion.ParsedOperationInfo, config: Config = None) -> Dict[str, Any]:
    """Procesamiento de Pago: avance = suma de giros / valor total de compra."""
    pagos = calcular_progreso_pagos(info)

    if pagos.progreso >= UMBRAL_PAGOS_COMPLETOS:
        return _resultado(EstadoProceso.COMPLETADO, 100, f"Pagos completados: {_monto(pagos.valor_pagado)}",
                          f"Total: {_monto(pagos.valor_total)}, Pagado: {_monto(pagos.valor_pagado)}")
    if pagos.valor_pagado > 0:
        return _resultado(EstadoProceso.EN_PROCESO, min(pagos.progreso, 100),
                          f"Procesando pagos: {pagos.progreso}% completado",
                          f"Pagado: {_monto(pagos.valor_pagado)}, Pendiente: {_monto(pagos.valor_pendiente)}")
    if pagos.valor_total > 0:
        return _resultado(EstadoProceso.PENDIENTE, 0, "Esperando valores solicitados para giros",
                          f"Total de operación: {_monto(pagos.valor_total)}")
    return _resultado(EstadoProceso.PENDIENTE, 0, "Información de pagos no disponible",
                      "No se pudo extraer valor total de la operación")


def logica_fase_4(fila: Dict[str, str], info: RespuestasOperacion.ParsedOperationInfo, config: Config = None) -> Dict[str, Any]:
    """Envío y Logística: solo arranca con la factura final lista; termina con las liberaciones."""
    estado_factura = valor_columna(fila, "factura_final", config)
    valor_total = info.valor_total_compra
    liberaciones = info.liberaciones
    total_liberado = sum(lib.capital for lib in liberaciones)

    # 1. Compuerta: factura lista
    if not contiene(estado_factura, "listo"):
        return _resultado(EstadoProceso.PENDIENTE, 0, "Esperando factura final para iniciar envío",
                          f"Estado factura: {estado_factura or 'Sin información'}")

    # 2. Factura lista: las liberaciones definen el avance (nunca menos de 50)
    if valor_total > 0 and liberaciones:
        porcentaje_liberado = total_liberado * 100 / valor_total
        if porcentaje_liberado >= UMBRAL_LIBERACIONES_COMPLETAS:
            return _resultado(EstadoProceso.COMPLETADO, 100, f"Envío completado - Liberaciones: {_monto(total_liberado)}",
                              f"Factura: Lista | Total: {_monto(valor_total)}, Liberado: {_monto(total_liberado)} "
                              f"({len(liberaciones)} liberación(es))")
        if total_liberado > 0:
            return _resultado(EstadoProceso.EN_PROCESO, max(50, redondear(porcentaje_liberado)),
                              f"Envío en proceso - Liberaciones: {redondear(porcentaje_liberado)}% completadas",
                              f"Factura: Lista | Liberado: {_monto(total_liberado)}/{_monto(valor_total)} "
                              f"({len(liberaciones)} liberación(es))")

    if liberaciones:
        return _resultado(EstadoProceso.EN_PROCESO, 70, "Envío en proceso - Verificando completitud de liberaciones",
                          f"Factura: Lista | {len(liberaciones)} liberación(es) por {_monto(total_liberado)}")

    prefijo_total = f"Valor total: {_monto(valor_total)} - " if valor_total > 0 else ""
    return _resultado(EstadoProceso.EN_PROCESO, 50, "Factura final lista - Esperando liberaciones",
                      f"Factura: {estado_factura} | {prefijo_total}Sin liberaciones aún")


def logica_fase_5(fila: Dict[str, str], info: RespuestasOperacion.ParsedOperationInfo, config: Config = None) -> Dict[str, Any]:
    """
    Operación Completada. Recalcula las fases 1 a 4: solo se completa si las
    cuatro están completas. Si no, cada fase completa aporta 25 puntos y cada
    fase en proceso aporta la cuarta parte de su avance, con tope de 95.
    """
    fases_previas = [logica(fila, info, config) for logica in LOGICA_FASES[:4]]
    completadas = [f for f in fases_previas if f["estado"] == EstadoProceso.COMPLETADO]
    en_proceso = [f for f in fases_previas if f["estado"] == EstadoProceso.EN_PROCESO]

    if len(completadas) == 4:
        return _resultado(EstadoProceso.COMPLETADO, 100, "Operación completada exitosamente",
                          "Todas las fases completadas: Solicitud, Documentos, Pagos y Envío")

    if completadas or en_proceso:
        puntos = 25 * len(completadas) + sum(f["progreso"] * 0.25 for f in en_proceso)
        return _resultado(EstadoProceso.EN_PROCESO, min(95, redondear(puntos)),
                          f"Operación en progreso: {len(completadas)}/4 fases completadas",
                          f"Completadas: {len(completadas)} | En proceso: {len(en_proceso)}")

    return _resultado(EstadoProceso.PENDIENTE, 0, "Esperando completar las fases anteriores",
                      "Pendiente: Solicitud, Documentos, Pagos y Envío")


LOGICA_FASES = [logica_fase_1, logica_fase_2, logica_fase_3, logica_fase_4, logica_fase_5]


# ==========================================
# API DEL GENERADOR
# ==========================================
def _responsable(fila: Dict[str, str], config: Config) -> str:
    return (
        valor_columna(fila, "equipo_comercial", config)
        or valor_columna(fila, "persona_asignada", config)
        or "Sin asignar"
    )


def generar_timeline(fila: Dict[str, str], info: RespuestasOperacion.ParsedOperationInfo,
                     config: Config = None, fecha_referencia: Optional[datetime] = None) -> List[RespuestasOperacion.TimelineEvent]:
    """Genera los 5 eventos del timeline. Se recalcula completo en cada procesamiento."""
    config = config or obtener_configuracion_pais(settings.PAIS_POR_DEFECTO)
    referencia = fecha_referencia or datetime.now()
    responsable = _responsable(fila, config)

    timeline = []
    for indice, (fase, logica) in enumerate(zip(FASES_TIMELINE, LOGICA_FASES)):
        try:
            resultado = logica(fila, info, config)
        except Exception as e:
            logger.error(f"[MotorTimeline] Error en la fase {fase['fase']}, se marca pendiente: {e}")
            resultado = _resultado(EstadoProceso.PENDIENTE, 0, fase["descripcion"], f"Error calculando fase: {e}")

        timeline.append(RespuestasOperacion.TimelineEvent(
            id=f"fase-{indice + 1}",
            fase=fase["nombre"],
            descripcion=resultado["descripcion"],
            estado=resultado["estado"],
            progreso=resultado["progreso"],
            responsable=responsable,
            fecha=referencia - timedelta(days=DIAS_INICIO_TIMELINE - indice * DIAS_ENTRE_FASES),
            notas=resultado["notas"],
        ))

    logger.info(
        "[MotorTimeline] Timeline generado: " + " | ".join(f"F{i + 1}={e.estado.value}({e.progreso}%)" for i, e in enumerate(timeline))
    )
    return timeline


def calcular_progreso_general(timeline: List[RespuestasOperacion.TimelineEvent]) -> int:
    """Promedio ponderado del avance de las fases con pesos [15, 20, 25, 25, 15]."""
    if not timeline:
        return 0
    ponderado = sum(evento.progreso * peso / 100 for evento, peso in zip(timeline, PESOS_FASES))
    return redondear(ponderado)


def resumen_timeline(timeline: List[RespuestasOperacion.TimelineEvent]) -> RespuestasOperacion.ResumenTimeline:
    completadas = sum(1 for e in timeline if e.estado == EstadoProceso.COMPLETADO)
    en_proceso = [e for e in timeline if e.estado == EstadoProceso.EN_PROCESO]
    pendientes = [e for e in timeline if e.estado == EstadoProceso.PENDIENTE]

    fase_actual = None
    if en_proceso:
        fase_actual = en_proceso[0].fase
    elif pendientes:
        fase_actual = pendientes[0].fase

    return RespuestasOperacion.ResumenTimeline(
        fases_completadas=completadas,
        fases_en_proceso=len(en_proceso),
        fases_pendientes=len(pendientes),
        fase_actual=fase_actual,
        progreso_general=calcular_progreso_general(timeline),
    )
