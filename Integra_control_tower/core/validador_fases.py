import logging
from typing import Dict, List, Optional

from .config import settings
from .motor_estados import valor_columna, calcular_progreso_pagos, validar_liberaciones
from .motor_timeline import UMBRAL_PAGOS_COMPLETOS
from ..models.responses_general import EstadoProceso, TipoHallazgo, Severidad
from ..models.responses_operacion import RespuestasOperacion
from ..models.responses_validacion import RespuestasValidacion
from ..utils.helpers import contiene

logger = logging.getLogger(__name__)

# Columnas que toda fila debería traer llenas (clave lógica)
CAMPOS_CRITICOS = [
    "proceso",
    "firma_cotizacion",
    "cuota_operacional",
    "factura_final",
    "giro_proveedor",
    "equipo_comercial",
]

# Tolerancias de salto de avance entre fases
SALTO_MAXIMO_FASE_2 = 20
SALTO_MAXIMO_ENTRE_FASES = 25
EXCESO_MAXIMO_PAGOS = 10
EXCESO_MAXIMO_LIBERACIONES = 15
CAIDA_MAXIMA_PROGRESO = 5
PROGRESO_MINIMO_POR_FASE_COMPLETA = 15


class ValidadorFases:
    """
    Revisa que el timeline de 5 fases sea coherente con los datos de la fila.

    Junta cuatro pasadas: reglas por fase, dependencias entre fases,
    coherencia general y calidad de datos. Los hallazgos son datos, no
    excepciones; solo los errores bloqueantes invalidan la operación.
    """
    def __init__(self, config: Optional[RespuestasOperacion.ConfiguracionPais] = None,
                 tolerancia_liberaciones: float = None):
        self.config = config
        self.tolerancia = (
            settings.TOLERANCIA_LIBERACIONES if tolerancia_liberaciones is None else tolerancia_liberaciones
        )
        self._advertencias: List[RespuestasValidacion.Advertencia] = []
        self._errores: List[RespuestasValidacion.ErrorValidacion] = []
        self._sugerencias: List[str] = []

    # --- ACUMULADORES ---
    def _advertir(self, fase: int, tipo: TipoHallazgo, mensaje: str, severidad: Severidad):
        self._advertencias.append(RespuestasValidacion.Advertencia(fase=fase, tipo=tipo, mensaje=mensaje, severidad=severidad))

    def _error(self, fase: int, tipo: TipoHallazgo, mensaje: str, bloqueante: bool):
        self._errores.append(RespuestasValidacion.ErrorValidacion(fase=fase, tipo=tipo, mensaje=mensaje, bloqueante=bloqueante))

    def _sugerir(self, texto: str):
        if texto not in self._sugerencias:
            self._sugerencias.append(texto)

    def _col(self, fila: Dict[str, str], clave: str) -> str:
        return valor_columna(fila, clave, self.config)

    # ==========================================
    # PUNTO DE ENTRADA
    # ==========================================
    def validar(self, contexto: RespuestasOperacion.ContextoValidacion) -> RespuestasValidacion.ValidationResult:
        self._advertencias, self._errores, self._sugerencias = [], [], []
        fases = {f.fase: f for f in contexto.detalle_fases}

        # 1. Reglas propias de cada fase
        reglas = {
            1: self._validar_fase_1,
            2: self._validar_fase_2,
            3: self._validar_fase_3,
            4: self._validar_fase_4,
            5: self._validar_fase_5,
        }
        for numero, regla in reglas.items():
            if numero not in fases:
                self._error(numero, TipoHallazgo.DATO_FALTANTE, f"No se encontró la fase {numero} en el detalle", True)
                continue
            regla(contexto, fases)

        # 2. Dependencias, coherencia y calidad de datos
        self._validar_dependencias(contexto.detalle_fases)
        self._validar_coherencia(contexto)
        self._validar_calidad_datos(contexto)

        resultado = RespuestasValidacion.ValidationResult(
            is_valid=not any(e.bloqueante for e in self._errores),
            advertencias=list(self._advertencias),
            errores=list(self._errores),
            sugerencias=list(self._sugerencias),
        )
        logger.info(
            f"[ValidadorFases] Válido={resultado.is_valid} | Errores={len(resultado.errores)} | "
            f"Advertencias={len(resultado.advertencias)} | Sugerencias={len(resultado.sugerencias)}"
        )
        return resultado

    # ==========================================
    # REGLAS POR FASE
    # ==========================================
    def _validar_fase_1(self, contexto, fases):
        fase = fases[1]
        proceso = self._col(contexto.fila_csv, "proceso")
        estado_firma = self._col(contexto.fila_csv, "firma_cotizacion")

        if not proceso and not estado_firma:
            self._error(1, TipoHallazgo.DATO_FALTANTE, "Faltan 'Proceso' y '1. ESTADO Firma Cotización'", True)

        if fase.estado == EstadoProceso.COMPLETADO:
            if not contiene(proceso, "1. Aprobación de Cotización") and not contiene(estado_firma, "listo"):
                self._advertir(1, TipoHallazgo.INCONSISTENCIA,
                               "Fase marcada como COMPLETADA pero no cumple condiciones exactas", Severidad.ALTA)
                self._sugerir("Verificar que el proceso contenga '1. Aprobación de Cotización' o que el estado de firma sea 'Listo'")

        if fase.progreso == 100 and fase.estado != EstadoProceso.COMPLETADO:
            self._advertir(1, TipoHallazgo.INCONSISTENCIA, "Progreso 100% pero estado no es COMPLETADO", Severidad.MEDIA)

        if proceso and not contiene(proceso, "aprobacion", "cotizacion"):
            self._sugerir("El campo Proceso podría ser más específico para mejor seguimiento")

    def _validar_fase_2(self, contexto, fases):
        fase, anterior = fases[2], fases.get(1)
        estado_cuota = self._col(contexto.fila_csv, "cuota_operacional")

        if anterior and fase.estado == EstadoProceso.COMPLETADO and anterior.estado != EstadoProceso.COMPLETADO:
            self._advertir(2, TipoHallazgo.DEPENDENCIA,
                           "Documentos completados sin cotización completada", Severidad.ALTA)

        if not estado_cuota:
            self._error(2, TipoHallazgo.DATO_FALTANTE, "Falta el estado de pago de la Cuota Operacional", False)

        if fase.estado == EstadoProceso.COMPLETADO and not contiene(estado_cuota, "listo"):
            self._advertir(2, TipoHallazgo.INCONSISTENCIA,
                           "Fase completada pero la cuota operacional no está 'Listo'", Severidad.ALTA)

        if anterior and anterior.estado != EstadoProceso.COMPLETADO and fase.progreso > anterior.progreso + SALTO_MAXIMO_FASE_2:
            self._advertir(2, TipoHallazgo.INCONSISTENCIA,
                           f"Progreso de documentos ({fase.progreso}%) adelantado a la cotización ({anterior.progreso}%)",
                           Severidad.MEDIA)

    def _validar_fase_3(self, contexto, fases):
        fase = fases[3]
        info = contexto.info_parseada
        pagos = calcular_progreso_pagos(info)
        estado_giro = self._col(contexto.fila_csv, "giro_proveedor")

        if not info.giros and fase.estado != EstadoProceso.PENDIENTE:
            self._advertir(3, TipoHallazgo.INCONSISTENCIA,
                           "Fase de pagos en curso sin giros registrados", Severidad.MEDIA)

        porcentaje_girado = pagos.valor_pagado * 100 / pagos.valor_total if pagos.valor_total > 0 else 0.0

        if fase.estado == EstadoProceso.COMPLETADO:
            if porcentaje_girado < UMBRAL_PAGOS_COMPLETOS:
                self._advertir(3, TipoHallazgo.INCONSISTENCIA,
                               f"Pagos completados con solo {porcentaje_girado:g}% del valor girado", Severidad.ALTA)
            if not contiene(estado_giro, "pago confirmado"):
                self._advertir(3, TipoHallazgo.INCONSISTENCIA,
                               f"Pagos completados pero el giro no está confirmado ('{estado_giro or 'sin estado'}')",
                               Severidad.ALTA)

        if fase.progreso > pagos.progreso + EXCESO_MAXIMO_PAGOS:
            self._advertir(3, TipoHallazgo.INCONSISTENCIA,
                           f"Progreso de pagos ({fase.progreso}%) mayor al valor girado ({pagos.progreso}%)", Severidad.MEDIA)

        if fase.progreso > 90 and not contiene(estado_giro, "confirmado"):
            self._sugerir("Considerar confirmar el giro para completar la fase de pagos")

    def _validar_fase_4(self, contexto, fases):
        fase, anterior = fases[4], fases.get(3)
        info = contexto.info_parseada
        estado_factura = self._col(contexto.fila_csv, "factura_final")

        if fase.estado == EstadoProceso.COMPLETADO:
            if anterior and anterior.estado != EstadoProceso.COMPLETADO:
                self._advertir(4, TipoHallazgo.ERROR_LOGICO,
                               "Envío completado sin pagos completados", Severidad.ALTA)
            if not (contiene(estado_factura, "listo") and contiene(estado_factura, "factura final")):
                self._advertir(4, TipoHallazgo.INCONSISTENCIA,
                               f"Envío completado sin 'Listo - Factura Final' (estado: '{estado_factura or 'sin estado'}')",
                               Severidad.ALTA)
            if not info.liberaciones:
                self._advertir(4, TipoHallazgo.INCONSISTENCIA,
                               "Envío completado sin liberaciones registradas", Severidad.MEDIA)

        if not estado_factura and fase.progreso > 50:
            self._error(4, TipoHallazgo.DATO_FALTANTE,
                        "Progreso de envío mayor a 50% sin estado de factura", False)

    def _validar_fase_5(self, contexto, fases):
        fase, anterior = fases[5], fases.get(4)
        info = contexto.info_parseada
        liberaciones = validar_liberaciones(info, self.tolerancia)

        if fase.estado == EstadoProceso.COMPLETADO:
            if anterior and anterior.estado != EstadoProceso.COMPLETADO:
                self._advertir(5, TipoHallazgo.DEPENDENCIA,
                               "Operación completa pero envío no está completado", Severidad.ALTA)
            if liberaciones.diferencia > self.tolerancia:
                self._advertir(5, TipoHallazgo.INCONSISTENCIA,
                               f"Diferencia entre valor total ({liberaciones.valor_esperado:,.2f}) y liberado "
                               f"({liberaciones.total_liberado:,.2f}) excede tolerancia", Severidad.ALTA)
            if not info.liberaciones:
                self._error(5, TipoHallazgo.ERROR_LOGICO,
                            "Operación marcada como completa pero no hay liberaciones", True)

        if info.valor_total_compra > 0:
            esperado = min(liberaciones.total_liberado / info.valor_total_compra * 100, 100)
            if fase.progreso > esperado + EXCESO_MAXIMO_LIBERACIONES:
                self._advertir(5, TipoHallazgo.INCONSISTENCIA,
                               "Progreso reportado excede liberaciones efectivas", Severidad.MEDIA)

        if liberaciones.total_liberado > 0 and 0 < liberaciones.diferencia <= self.tolerancia * 2:
            self._sugerir(f"Diferencia menor detectada: ${liberaciones.diferencia:,.2f}. Verificar liberaciones finales.")

    # ==========================================
    # PASADAS GENERALES
    # ==========================================
    def _validar_dependencias(self, detalle: List[RespuestasOperacion.ProgresoFase]):
        for anterior, actual in zip(detalle, detalle[1:]):
            if actual.estado == EstadoProceso.COMPLETADO and anterior.estado != EstadoProceso.COMPLETADO:
                self._advertir(actual.fase, TipoHallazgo.DEPENDENCIA,
                               f"Fase {actual.fase} completada sin completar la Fase {anterior.fase}", Severidad.ALTA)

            if anterior.estado != EstadoProceso.COMPLETADO and actual.progreso > anterior.progreso + SALTO_MAXIMO_ENTRE_FASES:
                self._advertir(actual.fase, TipoHallazgo.DEPENDENCIA,
                               f"Progreso de Fase {actual.fase} ({actual.progreso}%) excede significativamente "
                               f"Fase {anterior.fase} ({anterior.progreso}%)", Severidad.MEDIA)

            if not actual.dependencias_cumplidas and actual.estado != EstadoProceso.PENDIENTE:
                self._sugerir(f"Revisar dependencias de Fase {actual.fase}: {actual.nombre}")

    def _validar_coherencia(self, contexto: RespuestasOperacion.ContextoValidacion):
        detalle = contexto.detalle_fases
        progreso_total = contexto.progreso_general.progreso_total
        completadas = sum(1 for f in detalle if f.estado == EstadoProceso.COMPLETADO)

        if progreso_total < completadas * PROGRESO_MINIMO_POR_FASE_COMPLETA:
            self._advertir(0, TipoHallazgo.INCONSISTENCIA,
                           f"Progreso general ({progreso_total}%) parece bajo para {completadas} fases completadas",
                           Severidad.MEDIA)

        maximo_previo = 0
        for fase in detalle:
            if fase.progreso < maximo_previo - CAIDA_MAXIMA_PROGRESO:
                self._advertir(fase.fase, TipoHallazgo.INCONSISTENCIA,
                               f"Progreso de Fase {fase.fase} es menor que la fase anterior", Severidad.BAJA)
            maximo_previo = max(maximo_previo, fase.progreso)

        completada_tras_pendiente = any(
            fase.estado == EstadoProceso.COMPLETADO
            and any(previa.estado == EstadoProceso.PENDIENTE for previa in detalle[:indice])
            for indice, fase in enumerate(detalle)
        )
        if completada_tras_pendiente:
            self._advertir(0, TipoHallazgo.INCONSISTENCIA,
                           "Hay fases completadas con fases anteriores pendientes", Severidad.ALTA)

    def _validar_calidad_datos(self, contexto: RespuestasOperacion.ContextoValidacion):
        info = contexto.info_parseada

        # Los 6 campos críticos se reparten de dos en dos entre las fases 1 a 3
        for indice, clave in enumerate(CAMPOS_CRITICOS):
            if not self._col(contexto.fila_csv, clave):
                nombre = (self.config.columnas.get(clave) if self.config else None) or clave
                self._advertir(indice // 2 + 1, TipoHallazgo.CALIDAD_DATOS,
                               f"Campo crítico faltante: {nombre}", Severidad.MEDIA)

        if info.valor_total_compra <= 0:
            self._error(0, TipoHallazgo.DATO_FALTANTE, "Valor total de compra no encontrado o inválido", False)

        if not info.giros:
            self._advertir(3, TipoHallazgo.CALIDAD_DATOS,
                           "No se encontraron giros en la información parseada", Severidad.BAJA)

        if not info.liberaciones:
            self._advertir(5, TipoHallazgo.CALIDAD_DATOS,
                           "No se encontraron liberaciones en la información parseada", Severidad.BAJA)

        if info.cliente and len(info.cliente) < 5:
            self._sugerir("Información de cliente parece incompleta, verificar datos de entrada")


def validar_timeline_completo(contexto: RespuestasOperacion.ContextoValidacion,
                              config: Optional[RespuestasOperacion.ConfiguracionPais] = None) -> RespuestasValidacion.ValidationResult:
    return ValidadorFases(config).validar(contexto)


def generar_reporte_validacion(resultado: RespuestasValidacion.ValidationResult, titulo: str = "") -> str:
    """Texto legible del resultado de validación (para logs y descargas)."""
    lineas = [
        f"REPORTE DE VALIDACIÓN DEL TIMELINE{f' - {titulo}' if titulo else ''}",
        "=" * 48,
        f"Estado General: {'VÁLIDO' if resultado.is_valid else 'REQUIERE ATENCIÓN'}",
        f"Resumen: {len(resultado.errores)} errores, {len(resultado.advertencias)} advertencias",
        "",
    ]

    if resultado.errores:
        lineas.append("ERRORES:")
        for error in resultado.errores:
            lineas.append(f"   [Fase {error.fase}] {error.mensaje}")
            lineas.append(f"   Tipo: {error.tipo.value}, Bloquea: {'Sí' if error.bloqueante else 'No'}")
        lineas.append("")

    if resultado.advertencias:
        lineas.append("ADVERTENCIAS:")
        for advertencia in resultado.advertencias:
            lineas.append(f"   [Fase {advertencia.fase}] {advertencia.mensaje}")
            lineas.append(f"   Tipo: {advertencia.tipo.value}, Severidad: {advertencia.severidad.value}")
        lineas.append("")

    if resultado.sugerencias:
        lineas.append("SUGERENCIAS DE MEJORA:")
        lineas.extend(f"   - {s}" for s in resultado.sugerencias)
        lineas.append("")

    lineas.append("=" * 48)
    return "\n".join(lineas)
