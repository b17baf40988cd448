from typing import List, Optional, Dict
from pydantic import Field
from datetime import datetime

from .responses_general import ModeloBaseIntegra, EstadoProceso, Moneda
from .responses_validacion import RespuestasValidacion


class RespuestasOperacion(ModeloBaseIntegra):
    """Namespace para los registros que produce el motor de operaciones de importación."""

    # --- MODELOS DE EXTRACCIÓN (INFO GENERAL) ---
    class GiroInfo(ModeloBaseIntegra):
        """Solicitud de giro (desembolso) al proveedor internacional."""
        valor_solicitado: float = Field(..., gt=0, description="Monto solicitado en el giro")
        numero_giro: str = Field(..., description="Etiqueta libre del giro (ej: '1er Giro a Proveedor')")
        porcentaje_giro: str = Field("", description="Etiqueta libre del porcentaje (ej: '30% del total')")
        estado: EstadoProceso = EstadoProceso.PENDIENTE
        fecha_vencimiento: Optional[str] = Field(None, description="YYYY-MM-DD, se calcula si no viene en el texto")

    class Liberacion(ModeloBaseIntegra):
        """Liberación de fondos al cliente."""
        numero: int = Field(..., gt=0, description="Número de secuencia tal como aparece en el texto")
        capital: float = Field(..., gt=0)
        fecha: str = Field(..., description="Fecha ISO YYYY-MM-DD")
        estado: EstadoProceso = EstadoProceso.PENDIENTE
        fecha_vencimiento: Optional[str] = None
        documentos_requeridos: Optional[List[str]] = None

    class DatosBancarios(ModeloBaseIntegra):
        beneficiario: str = ""
        banco: str = ""
        direccion: str = ""
        numero_cuenta: str = ""
        swift: str = ""
        pais_banco: str = ""

    class ParsedOperationInfo(ModeloBaseIntegra):
        """
        Resultado del parseo del bloque libre '5. Info Gnal + Info Compra Int'.
        Nunca trae campos ausentes: todo campo no encontrado queda en su valor por defecto.
        """
        cliente: str = ""
        pais_importador: str = ""
        pais_exportador: str = ""
        valor_total_compra: float = Field(0.0, ge=0)
        moneda_pago: Moneda = Moneda.USD
        terminos_pago: str = ""
        incoterm_compra: str = ""
        incoterm_venta: str = ""
        datos_bancarios: "RespuestasOperacion.DatosBancarios" = Field(default_factory=lambda: RespuestasOperacion.DatosBancarios())
        giros: List["RespuestasOperacion.GiroInfo"] = Field(default_factory=list)
        liberaciones: List["RespuestasOperacion.Liberacion"] = Field(default_factory=list)

    class SolicitudParseo(ModeloBaseIntegra):
        """Cuerpo del endpoint de parseo suelto de 'Info Gnal + Info Compra Int'."""
        texto: str
        estado_giro_proveedor: str = ""

    class ErrorCampo(ModeloBaseIntegra):
        campo: str
        error: str

    class ResultadoParseo(ModeloBaseIntegra):
        """Salida del parser con validación de campos obligatorios y formatos."""
        success: bool
        data: Optional["RespuestasOperacion.ParsedOperationInfo"] = None
        errors: List["RespuestasOperacion.ErrorCampo"] = Field(default_factory=list)
        warnings: List[str] = Field(default_factory=list)

    # --- MODELOS DE ESTADOS ---
    class ConfiguracionPais(ModeloBaseIntegra):
        """Variante de columnas del CSV según el país de la operación."""
        codigo_pais: str = Field(..., description="CO | MX")
        nombre: str
        tiene_doc_legal_x_comp: bool
        columnas: Dict[str, str] = Field(default_factory=dict, description="Clave lógica -> nombre real de la columna")

    class EstadosProceso(ModeloBaseIntegra):
        cotizacion: EstadoProceso = EstadoProceso.PENDIENTE
        documentos_legales: EstadoProceso = EstadoProceso.PENDIENTE
        cuota_operacional: EstadoProceso = EstadoProceso.PENDIENTE
        compra_internacional: EstadoProceso = EstadoProceso.PENDIENTE
        giro_proveedor: EstadoProceso = EstadoProceso.PENDIENTE
        factura_final: EstadoProceso = EstadoProceso.PENDIENTE

    class AnalisisEstado(ModeloBaseIntegra):
        """Explicación de cómo se derivó un estado (para depurar el mapeo)."""
        condicion: str
        resultado: EstadoProceso
        razon: str

    class ProgresoPagos(ModeloBaseIntegra):
        progreso: int = 0
        valor_total: float = 0.0
        valor_pagado: float = 0.0
        valor_pendiente: float = 0.0

    class ValidacionLiberaciones(ModeloBaseIntegra):
        es_valido: bool
        total_liberado: float
        valor_esperado: float
        diferencia: float
        mensaje: str

    # --- MODELOS DE TIMELINE Y PROGRESO ---
    class TimelineEvent(ModeloBaseIntegra):
        id: str
        fase: str
        descripcion: str
        estado: EstadoProceso
        progreso: int = Field(..., ge=0, le=100)
        responsable: str
        fecha: datetime
        notas: Optional[str] = None

    class ResumenTimeline(ModeloBaseIntegra):
        fases_completadas: int
        fases_en_proceso: int
        fases_pendientes: int
        fase_actual: Optional[str] = None
        progreso_general: int

    class ProgresoFase(ModeloBaseIntegra):
        fase: int = Field(..., ge=1, le=5)
        nombre: str
        progreso: int = Field(..., ge=0, le=100)
        estado: EstadoProceso
        razon: str = ""
        dependencias_cumplidas: bool = True

    class ProgresoGeneral(ModeloBaseIntegra):
        progreso_total: int = Field(..., ge=0, le=100)
        fases_completadas: int
        fase_actual: int
        fase_siguiente: Optional[int] = None
        detalle_fases: List["RespuestasOperacion.ProgresoFase"]

    # --- MODELO DE NIVEL OPERACIÓN (FILA CSV) ---
    class ExtraCostos(ModeloBaseIntegra):
        """Costos estimados sobre el valor de compra (2% comisión, 3% logística, 1% seguro)."""
        comision_bancaria: float = 0.0
        gastos_logisticos: float = 0.0
        seguro_carga: float = 0.0
        total_extracostos: float = 0.0

    class Alerta(ModeloBaseIntegra):
        tipo: str = Field(..., description="info | warning | error")
        mensaje: str
        fecha: datetime

    class OperacionDetalle(ModeloBaseIntegra):
        """Una fila del CSV ya procesada, lista para el dashboard."""
        id: str
        numero_operacion: str
        cliente_completo: str
        cliente_nit: str = ""
        tipo_empresa: str = ""
        proveedor_beneficiario: str = ""
        pais_proveedor: str = ""
        valor_total: float = 0.0
        valor_operacion: float = 0.0
        moneda: Moneda = Moneda.USD
        progreso_general: int = 0
        persona_asignada: str = ""
        pais_exportador: str = ""
        pais_importador: str = ""
        ruta_comercial: str = ""
        incoterms: str = ""
        terminos_pago: str = ""
        monto_total: float = 0.0
        montos_liberados: float = 0.0
        montos_pendientes: float = 0.0
        extra_costos: "RespuestasOperacion.ExtraCostos" = Field(default_factory=lambda: RespuestasOperacion.ExtraCostos())
        estados: "RespuestasOperacion.EstadosProceso"
        giros: List["RespuestasOperacion.GiroInfo"] = Field(default_factory=list)
        liberaciones: List["RespuestasOperacion.Liberacion"] = Field(default_factory=list)
        timeline: List["RespuestasOperacion.TimelineEvent"] = Field(default_factory=list)
        datos_bancarios: "RespuestasOperacion.DatosBancarios" = Field(default_factory=lambda: RespuestasOperacion.DatosBancarios())
        observaciones: str = ""
        alertas: List["RespuestasOperacion.Alerta"] = Field(default_factory=list)
        progreso_preciso: Optional["RespuestasOperacion.ProgresoGeneral"] = None
        validacion: Optional[RespuestasValidacion.ValidationResult] = None
        fecha_creacion: datetime
        ultima_actualizacion: datetime

    class ErrorFila(ModeloBaseIntegra):
        fila: int
        error: str

    class ResultadoProcesamiento(ModeloBaseIntegra):
        """OUTPUT FINAL del procesamiento de un CSV completo."""
        success: bool
        total_filas: int = 0
        operaciones: List["RespuestasOperacion.OperacionDetalle"] = Field(default_factory=list)
        errores_filas: List["RespuestasOperacion.ErrorFila"] = Field(default_factory=list)
        advertencias: List[str] = Field(default_factory=list)
        reporte_validacion: str = ""
        mensaje: str = ""

    # --- CONTEXTO PARA EL VALIDADOR ---
    class ContextoValidacion(ModeloBaseIntegra):
        """Todo lo que el validador de fases necesita de una operación."""
        fila_csv: Dict[str, str]
        info_parseada: "RespuestasOperacion.ParsedOperationInfo"
        detalle_fases: List["RespuestasOperacion.ProgresoFase"]
        progreso_general: "RespuestasOperacion.ProgresoGeneral"


# Resolución explícita de las referencias anidadas ("RespuestasOperacion.X")
for _modelo in (
    RespuestasOperacion.ParsedOperationInfo, RespuestasOperacion.ResultadoParseo,
    RespuestasOperacion.ProgresoGeneral, RespuestasOperacion.OperacionDetalle,
    RespuestasOperacion.ResultadoProcesamiento, RespuestasOperacion.ContextoValidacion,
):
    _modelo.model_rebuild()
