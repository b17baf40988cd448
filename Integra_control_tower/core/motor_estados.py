import logging
from typing import Dict, Iterable, Union

from .config import settings
from ..models.responses_general import EstadoProceso
from ..models.responses_operacion import RespuestasOperacion
from ..utils.helpers import contiene, redondear
from ..utils.helpers_texto_integra import COLUMNAS_CSV, CONFIGURACIONES_PAIS

logger = logging.getLogger(__name__)

Pais = Union[str, RespuestasOperacion.ConfiguracionPais]


# ==========================================
# CONFIGURACIÓN POR PAÍS
# ==========================================
def obtener_configuracion_pais(codigo_pais: str) -> RespuestasOperacion.ConfiguracionPais:
    codigo = (codigo_pais or "").upper().strip()
    if codigo not in CONFIGURACIONES_PAIS:
        logger.warning(f"[MotorEstados] País '{codigo_pais}' sin configuración, se usa {settings.PAIS_POR_DEFECTO}")
        codigo = settings.PAIS_POR_DEFECTO
    base = CONFIGURACIONES_PAIS[codigo]
    return RespuestasOperacion.ConfiguracionPais(
        codigo_pais=codigo,
        nombre=base["nombre"],
        tiene_doc_legal_x_comp=base["tiene_doc_legal_x_comp"],
        columnas={**COLUMNAS_CSV, **base["columnas"]},
    )


def detectar_configuracion_pais(columnas: Iterable[str]) -> RespuestasOperacion.ConfiguracionPais:
    """Colombia es el único esquema que trae la columna '8. ESTADO Doc Legal X Comp'."""
    presentes = set(columnas)
    codigo = "CO" if COLUMNAS_CSV["doc_legal_x_comp"] in presentes else "MX"
    logger.info(f"[MotorEstados] País detectado por columnas: {codigo}")
    return obtener_configuracion_pais(codigo)


def _resolver_config(pais: Pais) -> RespuestasOperacion.ConfiguracionPais:
    if isinstance(pais, RespuestasOperacion.ConfiguracionPais):
        return pais
    return obtener_configuracion_pais(pais)


def valor_columna(fila: Dict[str, str], clave: str, config: RespuestasOperacion.ConfiguracionPais = None) -> str:
    """Lee una columna por su clave lógica aplicando los nombres del país. Nunca regresa None."""
    nombre = (config.columnas.get(clave) if config else None) or COLUMNAS_CSV.get(clave, clave)
    return (fila.get(nombre) or "").strip()


# ==========================================
# ESTADOS INDIVIDUALES
# ==========================================
def mapear_cotizacion(fila: Dict[str, str], config: RespuestasOperacion.ConfiguracionPais = None) -> EstadoProceso:
    proceso = valor_columna(fila, "proceso", config)
    estado_firma = valor_columna(fila, "firma_cotizacion", config)

    if contiene(proceso, "1. Aprobación de Cotización") or contiene(estado_firma, "listo"):
        return EstadoProceso.COMPLETADO
    if proceso or estado_firma:
        return EstadoProceso.EN_PROCESO
    return EstadoProceso.PENDIENTE


def mapear_cuota_operacional(fila: Dict[str, str], config: RespuestasOperacion.ConfiguracionPais = None) -> EstadoProceso:
    estado_cuota = valor_columna(fila, "cuota_operacional", config)

    if contiene(estado_cuota, "listo"):
        return EstadoProceso.COMPLETADO
    if contiene(estado_cuota, "proceso", "revision", "pendiente confirmacion"):
        return EstadoProceso.EN_PROCESO
    return EstadoProceso.PENDIENTE


def mapear_doc_legal_x_comp(fila: Dict[str, str], config: RespuestasOperacion.ConfiguracionPais = None) -> EstadoProceso:
    """Solo aplica a países con la columna; en el resto se da por completado."""
    config = config or obtener_configuracion_pais(settings.PAIS_POR_DEFECTO)
    if not config.tiene_doc_legal_x_comp:
        return EstadoProceso.COMPLETADO

    estado_doc = valor_columna(fila, "doc_legal_x_comp", config)
    if contiene(estado_doc, "listo", "completado"):
        return EstadoProceso.COMPLETADO
    if estado_doc:
        return EstadoProceso.EN_PROCESO
    return EstadoProceso.PENDIENTE


def mapear_documentos_legales(fila: Dict[str, str], config: RespuestasOperacion.ConfiguracionPais = None) -> EstadoProceso:
    """Estado derivado: cotización + cuota operacional (+ Doc Legal X Comp en Colombia)."""
    cotizacion = mapear_cotizacion(fila, config)
    cuota = mapear_cuota_operacional(fila, config)
    doc_legal = mapear_doc_legal_x_comp(fila, config)

    if cotizacion == cuota == doc_legal == EstadoProceso.COMPLETADO:
        return EstadoProceso.COMPLETADO
    if cotizacion == EstadoProceso.COMPLETADO:
        return EstadoProceso.EN_PROCESO
    return EstadoProceso.PENDIENTE


def mapear_giro_proveedor(fila: Dict[str, str], config: RespuestasOperacion.ConfiguracionPais = None) -> EstadoProceso:
    estado_giro = valor_columna(fila, "giro_proveedor", config)

    if contiene(estado_giro, "listo") and contiene(estado_giro, "pago confirmado"):
        return EstadoProceso.COMPLETADO
    # "Listo" sin confirmación de pago todavía cuenta como en proceso
    if contiene(estado_giro, "proceso", "revision", "preparacion", "listo"):
        return EstadoProceso.EN_PROCESO
    return EstadoProceso.PENDIENTE


def mapear_compra_internacional(fila: Dict[str, str], config: RespuestasOperacion.ConfiguracionPais = None) -> EstadoProceso:
    """Estado derivado: no arranca sin cuota operacional y termina con el giro confirmado."""
    if mapear_cuota_operacional(fila, config) != EstadoProceso.COMPLETADO:
        return EstadoProceso.PENDIENTE
    if mapear_giro_proveedor(fila, config) == EstadoProceso.COMPLETADO:
        return EstadoProceso.COMPLETADO
    return EstadoProceso.EN_PROCESO


def mapear_factura_final(fila: Dict[str, str], config: RespuestasOperacion.ConfiguracionPais = None) -> EstadoProceso:
    estado_factura = valor_columna(fila, "factura_final", config)

    if contiene(estado_factura, "listo") and contiene(estado_factura, "factura final"):
        return EstadoProceso.COMPLETADO
    if contiene(estado_factura, "proceso", "revision", "proforma", "listo"):
        return EstadoProceso.EN_PROCESO
    return EstadoProceso.PENDIENTE


# ==========================================
# API DEL MAPEADOR
# ==========================================
def mapear_estados(fila: Dict[str, str], pais: Pais = "CO") -> RespuestasOperacion.EstadosProceso:
    """Deriva los 6 estados de proceso de una fila del CSV para el país indicado."""
    config = _resolver_config(pais)
    estados = RespuestasOperacion.EstadosProceso(
        cotizacion=mapear_cotizacion(fila, config),
        documentos_legales=mapear_documentos_legales(fila, config),
        cuota_operacional=mapear_cuota_operacional(fila, config),
        compra_internacional=mapear_compra_internacional(fila, config),
        giro_proveedor=mapear_giro_proveedor(fila, config),
        factura_final=mapear_factura_final(fila, config),
    )
    logger.debug(f"[MotorEstados] ({config.codigo_pais}) {estados.model_dump()}")
    return estados


def analizar_estados(fila: Dict[str, str], pais: Pais = "CO") -> Dict[str, RespuestasOperacion.AnalisisEstado]:
    """Igual que mapear_estados pero explicando la condición y el dato que decidió cada estado."""
    config = _resolver_config(pais)
    estados = mapear_estados(fila, config)
    col = lambda clave: valor_columna(fila, clave, config) or "vacío"

    condicion_documentos = "Cotización y cuota operacional completadas"
    razon_documentos = f"Cotización: {estados.cotizacion.value}, Cuota: {estados.cuota_operacional.value}"
    if config.tiene_doc_legal_x_comp:
        condicion_documentos += " y Doc Legal X Comp listo"
        razon_documentos += f", Doc Legal X Comp: '{col('doc_legal_x_comp')}'"

    return {
        "cotizacion": RespuestasOperacion.AnalisisEstado(
            condicion="Proceso contiene '1. Aprobación de Cotización' o Firma Cotización contiene 'listo'",
            resultado=estados.cotizacion,
            razon=f"Proceso: '{col('proceso')}', Firma: '{col('firma_cotizacion')}'",
        ),
        "documentos_legales": RespuestasOperacion.AnalisisEstado(
            condicion=condicion_documentos,
            resultado=estados.documentos_legales,
            razon=razon_documentos,
        ),
        "cuota_operacional": RespuestasOperacion.AnalisisEstado(
            condicion="Cuota Operacional contiene 'listo'",
            resultado=estados.cuota_operacional,
            razon=f"Cuota: '{col('cuota_operacional')}'",
        ),
        "compra_internacional": RespuestasOperacion.AnalisisEstado(
            condicion="Cuota operacional completada y giro al proveedor confirmado",
            resultado=estados.compra_internacional,
            razon=f"Cuota: {estados.cuota_operacional.value}, Giro: {estados.giro_proveedor.value}",
        ),
        "giro_proveedor": RespuestasOperacion.AnalisisEstado(
            condicion="Giro Proveedor contiene 'listo' y 'pago confirmado'",
            resultado=estados.giro_proveedor,
            razon=f"Giro: '{col('giro_proveedor')}'",
        ),
        "factura_final": RespuestasOperacion.AnalisisEstado(
            condicion="Proforma / Factura final contiene 'listo' y 'factura final'",
            resultado=estados.factura_final,
            razon=f"Factura: '{col('factura_final')}'",
        ),
    }


def calcular_progreso_pagos(info: RespuestasOperacion.ParsedOperationInfo) -> RespuestasOperacion.ProgresoPagos:
    valor_total = info.valor_total_compra
    valor_pagado = sum(g.valor_solicitado for g in info.giros)
    progreso = redondear(valor_pagado * 100 / valor_total) if valor_total > 0 else 0

    return RespuestasOperacion.ProgresoPagos(
        progreso=progreso,
        valor_total=valor_total,
        valor_pagado=valor_pagado,
        valor_pendiente=valor_total - valor_pagado,
    )


def validar_liberaciones(info: RespuestasOperacion.ParsedOperationInfo,
                         tolerancia: float = None) -> RespuestasOperacion.ValidacionLiberaciones:
    """Las liberaciones cuadran si su suma difiere del valor total en no más de la tolerancia."""
    tolerancia = settings.TOLERANCIA_LIBERACIONES if tolerancia is None else tolerancia
    valor_esperado = info.valor_total_compra
    total_liberado = sum(lib.capital for lib in info.liberaciones)
    diferencia = abs(valor_esperado - total_liberado)
    es_valido = diferencia <= tolerancia

    mensaje = (
        "Liberaciones completas" if es_valido
        else f"Diferencia de {diferencia:,.2f} entre lo liberado ({total_liberado:,.2f}) y el valor total ({valor_esperado:,.2f})"
    )
    return RespuestasOperacion.ValidacionLiberaciones(
        es_valido=es_valido,
        total_liberado=total_liberado,
        valor_esperado=valor_esperado,
        diferencia=diferencia,
        mensaje=mensaje,
    )
