import re
import uuid
import logging
from pathlib import Path
from datetime import datetime
from typing import Dict, List, Optional

from ..core.config import settings
from ..core.exceptions import ColumnasFaltantesError, CSVInvalidoError
from ..core.motor_estados import (
    mapear_estados, detectar_configuracion_pais, obtener_configuracion_pais, valor_columna, validar_liberaciones
)
from ..core.motor_timeline import generar_timeline, resumen_timeline
from ..core.calculadora_progreso import progreso_desde_timeline
from ..core.validador_fases import ValidadorFases, generar_reporte_validacion
from ..models.responses_general import EstadoProceso
from ..models.responses_operacion import RespuestasOperacion
from ..models.responses_validacion import RespuestasValidacion
from ..utils.csv_parser import reensamblar_filas
from ..utils.fechas_vencimiento import completar_vencimientos, es_vencimiento_proximo, es_vencimiento_vencido
from ..utils.nit_utils import extraer_cliente_nit
from .parser_operacion import parsear_info_operacion

logger = logging.getLogger(__name__)

# Columnas sin las cuales una fila no se puede procesar (clave lógica)
COLUMNAS_REQUERIDAS = ["nombre", "completado", "persona_asignada", "proceso", "docu_cliente", "info_general"]

# Porcentajes de extracostos estimados sobre el valor de compra
PORCENTAJE_COMISION_BANCARIA = 0.02
PORCENTAJE_GASTOS_LOGISTICOS = 0.03
PORCENTAJE_SEGURO_CARGA = 0.01

TIPOS_EMPRESA = [
    ("IMPORT", "IMPORTADORA"),
    ("EXPORT", "EXPORTADORA"),
    ("COMERCIALIZ", "COMERCIALIZADORA"),
    ("DISTRIBU", "DISTRIBUIDORA"),
]
PATRON_SOCIEDAD = re.compile(r"\b(?:S\.?A\.?S?|LTDA)\b\.?")


class ProcesadorCSV:
    """
    Servicio que recorre el CSV exportado de Integra y arma una OperacionDetalle por fila.
    El país se detecta una sola vez por lote; los errores de una fila no detienen el lote.
    """
    def __init__(self, config_pais: Optional[RespuestasOperacion.ConfiguracionPais] = None):
        self.config_pais = config_pais

    # ==========================================
    # LOTE COMPLETO
    # ==========================================
    def procesar_archivo(self, ruta: str) -> RespuestasOperacion.ResultadoProcesamiento:
        """Lee el CSV de disco (utf-8 con o sin BOM) y lo procesa."""
        contenido = Path(ruta).read_text(encoding="utf-8-sig")
        logger.info(f"[ProcesadorCSV] Archivo leído: {ruta} ({len(contenido)} caracteres)")
        return self.procesar_contenido(contenido)

    def procesar_contenido(self, contenido: str, fecha_referencia: Optional[datetime] = None) -> RespuestasOperacion.ResultadoProcesamiento:
        ahora = fecha_referencia or datetime.now()

        try:
            filas = reensamblar_filas(contenido)
        except CSVInvalidoError as e:
            logger.error(f"[ProcesadorCSV] CSV inválido: {e}")
            return RespuestasOperacion.ResultadoProcesamiento(success=False, mensaje=str(e))

        if not filas:
            return RespuestasOperacion.ResultadoProcesamiento(success=False, mensaje="El CSV no contiene filas válidas")

        config = self.config_pais or detectar_configuracion_pais(filas[0].keys())

        operaciones: List[RespuestasOperacion.OperacionDetalle] = []
        errores: List[RespuestasOperacion.ErrorFila] = []
        advertencias: List[str] = []

        # Los datos empiezan en la fila 2 (la 1 es la cabecera)
        for numero_fila, fila in enumerate(filas, start=2):
            try:
                operacion = self.procesar_fila(fila, numero_fila, config, ahora)
            except ColumnasFaltantesError as e:
                logger.error(f"[ProcesadorCSV] Fila {numero_fila}: {e}")
                errores.append(RespuestasOperacion.ErrorFila(fila=numero_fila, error=str(e)))
                continue
            except Exception as e:
                logger.error(f"[ProcesadorCSV] Fila {numero_fila}: error inesperado: {e}")
                errores.append(RespuestasOperacion.ErrorFila(fila=numero_fila, error=f"Error procesando fila: {e}"))
                continue

            if operacion is None:
                advertencias.append(f"Fila {numero_fila}: sin cliente identificable, se omite")
                continue
            operaciones.append(operacion)

        reporte = self._reporte_consolidado(operaciones)
        logger.info(
            f"[ProcesadorCSV] ({config.codigo_pais}) Filas: {len(filas)} | Operaciones: {len(operaciones)} | "
            f"Errores: {len(errores)} | Omitidas: {len(advertencias)}"
        )

        return RespuestasOperacion.ResultadoProcesamiento(
            success=bool(operaciones),
            total_filas=len(filas),
            operaciones=operaciones,
            errores_filas=errores,
            advertencias=advertencias,
            reporte_validacion=reporte,
            mensaje=f"{len(operaciones)} operaciones procesadas de {len(filas)} filas",
        )

    # ==========================================
    # UNA FILA
    # ==========================================
    def verificar_columnas(self, fila: Dict[str, str], config: RespuestasOperacion.ConfiguracionPais):
        faltantes = [
            config.columnas.get(clave, clave) for clave in COLUMNAS_REQUERIDAS
            if config.columnas.get(clave, clave) not in fila
        ]
        if faltantes:
            raise ColumnasFaltantesError(faltantes)

    def procesar_fila(self, fila: Dict[str, str], numero_fila: int,
                      config: Optional[RespuestasOperacion.ConfiguracionPais] = None,
                      fecha_referencia: Optional[datetime] = None) -> Optional[RespuestasOperacion.OperacionDetalle]:
        """
        Arma la operación de una fila. Lanza ColumnasFaltantesError si faltan columnas
        obligatorias y regresa None si la fila no tiene un cliente identificable.
        """
        config = config or self.config_pais or obtener_configuracion_pais(settings.PAIS_POR_DEFECTO)
        ahora = fecha_referencia or datetime.now()
        self.verificar_columnas(fila, config)

        # 1. Info General + cliente/NIT
        info = parsear_info_operacion(
            valor_columna(fila, "info_general", config),
            estado_giro_proveedor=valor_columna(fila, "giro_proveedor", config),
            fecha_referencia=ahora.date(),
        )
        datos_cliente = extraer_cliente_nit(valor_columna(fila, "docu_cliente", config))
        cliente = datos_cliente["cliente"] or info.cliente or valor_columna(fila, "nombre", config)
        if not cliente:
            logger.warning(f"[ProcesadorCSV] Fila {numero_fila}: sin cliente identificable")
            return None

        # 2. Estados, timeline, progreso y validación
        estados = mapear_estados(fila, config)
        timeline = generar_timeline(fila, info, config, ahora)
        progreso = progreso_desde_timeline(timeline)
        contexto = RespuestasOperacion.ContextoValidacion(
            fila_csv=fila,
            info_parseada=info,
            detalle_fases=progreso.detalle_fases,
            progreso_general=progreso,
        )
        validacion = ValidadorFases(config).validar(contexto)

        # 3. Vencimientos faltantes
        giros, liberaciones = completar_vencimientos(info.giros, info.liberaciones, info.terminos_pago or "30 días", ahora.date())

        # 4. Montos
        valor_total = info.valor_total_compra
        montos_liberados = sum(lib.capital for lib in liberaciones)

        return RespuestasOperacion.OperacionDetalle(
            id=self._generar_id(cliente, numero_fila),
            numero_operacion=f"OP-{ahora.year}-{numero_fila:04d}",
            cliente_completo=cliente,
            cliente_nit=datos_cliente["nit"],
            tipo_empresa=inferir_tipo_empresa(cliente),
            proveedor_beneficiario=info.datos_bancarios.beneficiario or "No especificado",
            pais_proveedor=info.pais_exportador or "No especificado",
            valor_total=valor_total,
            valor_operacion=datos_cliente["valor_operacion"],
            moneda=info.moneda_pago,
            progreso_general=progreso.progreso_total,
            persona_asignada=(valor_columna(fila, "equipo_comercial", config)
                              or valor_columna(fila, "persona_asignada", config) or "Sin asignar"),
            pais_exportador=info.pais_exportador or "No especificado",
            pais_importador=info.pais_importador or "No especificado",
            ruta_comercial=ruta_comercial(info.pais_exportador, info.pais_importador),
            incoterms=formatear_incoterms(info.incoterm_compra, info.incoterm_venta),
            terminos_pago=info.terminos_pago,
            monto_total=valor_total,
            montos_liberados=montos_liberados,
            montos_pendientes=valor_total - montos_liberados,
            extra_costos=estimar_extracostos(valor_total),
            estados=estados,
            giros=giros,
            liberaciones=liberaciones,
            timeline=timeline,
            datos_bancarios=info.datos_bancarios,
            observaciones=self._observaciones(fila, timeline),
            alertas=self._generar_alertas(info, estados, progreso.progreso_total, giros, liberaciones, validacion, ahora),
            progreso_preciso=progreso,
            validacion=validacion,
            fecha_creacion=ahora,
            ultima_actualizacion=ahora,
        )

    # ==========================================
    # AUXILIARES
    # ==========================================
    @staticmethod
    def _generar_id(cliente: str, numero_fila: int) -> str:
        prefijo = re.sub(r"[^A-Za-z0-9]", "", cliente)[:6].upper() or "OP"
        return f"{prefijo}-{numero_fila:02d}-{uuid.uuid4().hex[:6].upper()}"

    @staticmethod
    def _observaciones(fila: Dict[str, str], timeline: List[RespuestasOperacion.TimelineEvent]) -> str:
        notas = [
            valor.strip() for columna, valor in fila.items()
            if ("observ" in columna.lower() or "nota" in columna.lower()) and valor and valor.strip()
        ]
        resumen = resumen_timeline(timeline)
        if resumen.fase_actual:
            notas.append(f"Fase actual: {resumen.fase_actual}")
        return "; ".join(notas) if notas else "Sin observaciones específicas"

    @staticmethod
    def _generar_alertas(info: RespuestasOperacion.ParsedOperationInfo,
                         estados: RespuestasOperacion.EstadosProceso, progreso: int,
                         giros: List[RespuestasOperacion.GiroInfo],
                         liberaciones: List[RespuestasOperacion.Liberacion],
                         validacion: RespuestasValidacion.ValidationResult,
                         ahora: datetime) -> List[RespuestasOperacion.Alerta]:
        alertas: List[RespuestasOperacion.Alerta] = []
        hoy = ahora.date()
        dias = settings.DIAS_ALERTA_VENCIMIENTO

        def agregar(tipo: str, mensaje: str):
            alertas.append(RespuestasOperacion.Alerta(tipo=tipo, mensaje=mensaje, fecha=ahora))

        if progreso < 25:
            agregar("info", "Operación en etapa inicial")
        if estados.cuota_operacional == EstadoProceso.PENDIENTE:
            agregar("warning", "Cuota operacional pendiente de pago")
        if not validacion.is_valid:
            agregar("error", "La operación tiene errores de validación bloqueantes")
        if liberaciones:
            cuadre = validar_liberaciones(info)
            if not cuadre.es_valido:
                agregar("warning", cuadre.mensaje)

        for indice, giro in enumerate(giros, start=1):
            if es_vencimiento_vencido(giro.fecha_vencimiento, hoy):
                agregar("error", f"Giro {indice} VENCIDO: {giro.fecha_vencimiento}")
            elif es_vencimiento_proximo(giro.fecha_vencimiento, dias, hoy):
                agregar("warning", f"Giro {indice} vence próximamente: {giro.fecha_vencimiento}")

        for liberacion in liberaciones:
            if es_vencimiento_vencido(liberacion.fecha_vencimiento, hoy):
                agregar("error", f"Liberación {liberacion.numero} VENCIDA: {liberacion.fecha_vencimiento}")
            elif es_vencimiento_proximo(liberacion.fecha_vencimiento, dias, hoy):
                agregar("warning", f"Liberación {liberacion.numero} vence próximamente: {liberacion.fecha_vencimiento}")

        return alertas

    @staticmethod
    def _reporte_consolidado(operaciones: List[RespuestasOperacion.OperacionDetalle]) -> str:
        if not operaciones:
            return ""
        validas = sum(1 for op in operaciones if op.validacion and op.validacion.is_valid)
        encabezado = f"Operaciones válidas: {validas}/{len(operaciones)}"
        reportes = [
            generar_reporte_validacion(op.validacion, op.cliente_completo)
            for op in operaciones if op.validacion and (op.validacion.errores or op.validacion.advertencias)
        ]
        return "\n\n".join([encabezado] + reportes)


# --- FUNCIONES DE FORMATO ---
def inferir_tipo_empresa(cliente: str) -> str:
    nombre = (cliente or "").upper()
    for fragmento, tipo in TIPOS_EMPRESA:
        if fragmento in nombre:
            return tipo
    if PATRON_SOCIEDAD.search(nombre):
        return "EMPRESA"
    return "COMERCIAL"


def ruta_comercial(origen: str, destino: str) -> str:
    if not origen or not destino:
        return "Ruta no especificada"
    return f"{origen} → {destino}"


def formatear_incoterms(compra: str, venta: str) -> str:
    """Códigos 'FOB / CIF'; se descarta el lugar ('FOB - SHANGHAI' -> 'FOB')."""
    codigos = [valor.split()[0].strip(" -").upper() for valor in (compra, venta) if valor and valor.split()]
    return " / ".join(codigos) if codigos else "FOB / CIF"


def estimar_extracostos(valor_total: float) -> RespuestasOperacion.ExtraCostos:
    comision = int(valor_total * PORCENTAJE_COMISION_BANCARIA)
    logisticos = int(valor_total * PORCENTAJE_GASTOS_LOGISTICOS)
    seguro = int(valor_total * PORCENTAJE_SEGURO_CARGA)
    return RespuestasOperacion.ExtraCostos(
        comision_bancaria=comision,
        gastos_logisticos=logisticos,
        seguro_carga=seguro,
        total_extracostos=comision + logisticos + seguro,
    )
