import pytest
from datetime import datetime

from Integra_control_tower.core.exceptions import ColumnasFaltantesError
from Integra_control_tower.core.motor_estados import obtener_configuracion_pais
from Integra_control_tower.models.responses_general import EstadoProceso, Moneda
from Integra_control_tower.services.procesador_csv import (
    ProcesadorCSV, inferir_tipo_empresa, ruta_comercial, formatear_incoterms, estimar_extracostos
)
from Integra_control_tower.utils.helpers_texto_integra import COLUMNAS_CSV

AHORA = datetime(2025, 8, 1, 9, 30)

INFO_GENERAL = """CLIENTE: MALE
PAÍS IMPORTADOR: MÉXICO
PAÍS EXPORTADOR: CHINA
VALOR TOTAL DE COMPRA: 100000
MONEDA DE PAGO SOLICITADO: USD
TÉRMINOS DE PAGO: 30% anticipo, 70% contra BL
BENEFICIARIO: SHANGHAI TRADING CO
BANCO: BANK OF CHINA
ICOTERM COMPRA: FOB - SHANGHAI
ICOTERM VENTA: CIF - VERACRUZ
VALOR SOLICITADO: 30000
NÚMERO DE GIRO: 1er Giro a Proveedor
PORCENTAJE DE GIRO: 30% del total
VALOR SOLICITADO: 70000
NÚMERO DE GIRO: 2do Giro a Proveedor
PORCENTAJE DE GIRO: 70% del total
Liberación 1
Capital: 100000 USD
Fecha: 2025-07-25"""

DOCU_CLIENTE = "- CLIENTE: MALE IMPORTADORA SAS\n- NIT: 900123456\n- VALOR OPERACIÓN: 100,000"


def _celda(valor: str) -> str:
    return '"' + valor.replace('"', '""') + '"'


def construir_csv(filas, columnas=None) -> str:
    """CSV con todas las celdas entrecomilladas, como lo exporta el tablero."""
    columnas = columnas or list(COLUMNAS_CSV.values())
    lineas = [",".join(_celda(c) for c in columnas)]
    for fila in filas:
        lineas.append(",".join(_celda(fila.get(c, "")) for c in columnas))
    return "\n".join(lineas) + "\n"


def fila_base(**valores):
    fila = {
        "Nombre": "Operación MALE",
        "Completado": "No",
        "Persona asignada": "Pedro",
        "Proceso": "1. Aprobación de Cotización",
        "1.Docu. Cliente": DOCU_CLIENTE,
        "1. ESTADO Firma Cotización": "Listo",
        "4. ESTADO pago Cuota Operacional": "Listo",
        "5. Info Gnal + Info Compra Int": INFO_GENERAL,
        "8. ESTADO Doc Legal X Comp": "Listo",
        "9. ESTADO Proforma / Factura final": "Listo - Factura Final",
        "10. ESTADO Giro Proveedor": "Listo - Pago confirmado",
        "15. Equipo Comercial": "Laura",
    }
    fila.update(valores)
    return fila


@pytest.fixture
def procesador():
    return ProcesadorCSV()

# ==========================================
# LOTE COMPLETO
# ==========================================
def test_procesa_operacion_completa(procesador):
    resultado = procesador.procesar_contenido(construir_csv([fila_base()]), AHORA)

    assert resultado.success is True
    assert resultado.total_filas == 1
    assert resultado.errores_filas == []

    op = resultado.operaciones[0]
    assert op.cliente_completo == "MALE IMPORTADORA SAS"
    assert op.cliente_nit == "900123456"
    assert op.tipo_empresa == "IMPORTADORA"
    assert op.numero_operacion == "OP-2025-0002"
    assert op.id.startswith("MALEIM-02-")
    assert op.valor_total == 100000
    assert op.valor_operacion == 100000
    assert op.moneda == Moneda.USD
    assert op.ruta_comercial == "CHINA → MÉXICO"
    assert op.incoterms == "FOB / CIF"
    assert op.proveedor_beneficiario == "SHANGHAI TRADING CO"
    assert op.persona_asignada == "Laura"
    assert op.montos_liberados == 100000
    assert op.montos_pendientes == 0
    assert op.progreso_general == 100
    assert op.validacion.is_valid is True
    assert op.fecha_creacion == AHORA

def test_timeline_y_estados_de_la_operacion(procesador):
    op = procesador.procesar_contenido(construir_csv([fila_base()]), AHORA).operaciones[0]

    assert len(op.timeline) == 5
    assert all(e.estado == EstadoProceso.COMPLETADO for e in op.timeline)
    assert op.estados.factura_final == EstadoProceso.COMPLETADO
    assert op.progreso_preciso.progreso_total == op.progreso_general
    assert all(g.estado == EstadoProceso.COMPLETADO for g in op.giros)

def test_completa_vencimientos(procesador):
    op = procesador.procesar_contenido(construir_csv([fila_base()]), AHORA).operaciones[0]

    assert all(g.fecha_vencimiento for g in op.giros)
    # 2025-07-25 + 15 días hábiles
    assert op.liberaciones[0].fecha_vencimiento == "2025-08-15"

def test_serializa_para_el_dashboard(procesador):
    resultado = procesador.procesar_contenido(construir_csv([fila_base()]), AHORA)
    datos = resultado.model_dump(by_alias=True, mode="json")

    op = datos["operaciones"][0]
    assert datos["totalFilas"] == 1
    assert op["clienteCompleto"] == "MALE IMPORTADORA SAS"
    assert op["extraCostos"]["totalExtracostos"] == 6000
    assert op["validacion"]["isValid"] is True
    assert op["estados"]["cuotaOperacional"] == "completado"

def test_detecta_pais_por_columnas(procesador):
    columnas_mx = [c for c in COLUMNAS_CSV.values() if c != COLUMNAS_CSV["doc_legal_x_comp"]]
    datos = fila_base()
    contenido = construir_csv([datos], columnas_mx)

    op = procesador.procesar_contenido(contenido, AHORA).operaciones[0]
    # En México la columna de Doc Legal X Comp no existe y no frena los documentos
    assert op.estados.documentos_legales == EstadoProceso.COMPLETADO

def test_colombia_sin_doc_legal_deja_documentos_en_proceso(procesador):
    contenido = construir_csv([fila_base(**{"8. ESTADO Doc Legal X Comp": ""})])
    op = procesador.procesar_contenido(contenido, AHORA).operaciones[0]
    assert op.estados.documentos_legales == EstadoProceso.EN_PROCESO

def test_columnas_faltantes_se_reportan_por_fila(procesador):
    columnas = [c for c in COLUMNAS_CSV.values() if c != "Proceso"]
    resultado = procesador.procesar_contenido(construir_csv([fila_base(), fila_base()], columnas), AHORA)

    assert resultado.success is False
    assert resultado.operaciones == []
    assert [e.fila for e in resultado.errores_filas] == [2, 3]
    assert all("Columnas faltantes: Proceso" in e.error for e in resultado.errores_filas)

def test_fila_con_error_no_detiene_el_lote(procesador, monkeypatch):
    original = procesador.procesar_fila

    def falla_en_la_primera(fila, numero_fila, *args, **kwargs):
        if numero_fila == 2:
            raise RuntimeError("fila corrupta")
        return original(fila, numero_fila, *args, **kwargs)

    monkeypatch.setattr(procesador, "procesar_fila", falla_en_la_primera)
    resultado = procesador.procesar_contenido(construir_csv([fila_base(), fila_base()]), AHORA)

    assert resultado.success is True
    assert len(resultado.operaciones) == 1
    assert resultado.operaciones[0].numero_operacion == "OP-2025-0003"
    assert "fila corrupta" in resultado.errores_filas[0].error

def test_fila_sin_cliente_se_omite(procesador):
    vacia = fila_base(**{"Nombre": "", "1.Docu. Cliente": "", "5. Info Gnal + Info Compra Int": ""})
    resultado = procesador.procesar_contenido(construir_csv([vacia, fila_base()]), AHORA)

    assert len(resultado.operaciones) == 1
    assert resultado.advertencias == ["Fila 2: sin cliente identificable, se omite"]

def test_cliente_desde_info_general_y_nombre(procesador):
    config = obtener_configuracion_pais("CO")
    sin_docu = fila_base(**{"1.Docu. Cliente": ""})
    solo_nombre = fila_base(**{"1.Docu. Cliente": "", "5. Info Gnal + Info Compra Int": "sin etiquetas"})

    assert procesador.procesar_fila(sin_docu, 2, config, AHORA).cliente_completo == "MALE"
    assert procesador.procesar_fila(solo_nombre, 2, config, AHORA).cliente_completo == "Operación MALE"

def test_procesar_fila_sin_columnas_lanza_error(procesador):
    with pytest.raises(ColumnasFaltantesError) as error:
        procesador.procesar_fila({"Nombre": "X"}, 2, obtener_configuracion_pais("CO"), AHORA)
    assert "Completado" in error.value.columnas
    assert "5. Info Gnal + Info Compra Int" in error.value.columnas

@pytest.mark.parametrize("contenido", ["", "solo,cabecera"])
def test_csv_invalido(procesador, contenido):
    resultado = procesador.procesar_contenido(contenido, AHORA)
    assert resultado.success is False
    assert resultado.total_filas == 0
    assert resultado.mensaje

def test_procesar_archivo(procesador, tmp_path):
    ruta = tmp_path / "integra.csv"
    ruta.write_text(construir_csv([fila_base()]), encoding="utf-8-sig")

    resultado = procesador.procesar_archivo(str(ruta))
    assert resultado.success is True
    assert resultado.operaciones[0].cliente_completo == "MALE IMPORTADORA SAS"

def test_reporte_consolidado(procesador):
    incompleta = fila_base(**{"Proceso": "", "1. ESTADO Firma Cotización": ""})
    resultado = procesador.procesar_contenido(construir_csv([fila_base(), incompleta]), AHORA)

    assert resultado.reporte_validacion.startswith("Operaciones válidas: 1/2")
    assert "REPORTE DE VALIDACIÓN DEL TIMELINE - MALE IMPORTADORA SAS" in resultado.reporte_validacion

# ==========================================
# ALERTAS
# ==========================================
def test_alertas_de_operacion_inicial(procesador):
    inicial = fila_base(**{
        "Proceso": "", "1. ESTADO Firma Cotización": "", "4. ESTADO pago Cuota Operacional": "",
        "9. ESTADO Proforma / Factura final": "", "10. ESTADO Giro Proveedor": "",
        "5. Info Gnal + Info Compra Int": "CLIENTE: MALE\nVALOR TOTAL DE COMPRA: 100000",
    })
    op = procesador.procesar_contenido(construir_csv([inicial]), AHORA).operaciones[0]
    alertas = {(a.tipo, a.mensaje) for a in op.alertas}

    assert ("info", "Operación en etapa inicial") in alertas
    assert ("warning", "Cuota operacional pendiente de pago") in alertas
    assert ("error", "La operación tiene errores de validación bloqueantes") in alertas

def test_alertas_de_vencimiento(procesador):
    op = procesador.procesar_contenido(construir_csv([fila_base()]), datetime(2025, 8, 11)).operaciones[0]
    mensajes = [a.mensaje for a in op.alertas]
    # La liberación vence el 2025-08-15: dentro de los 7 días de alerta
    assert "Liberación 1 vence próximamente: 2025-08-15" in mensajes

    op = procesador.procesar_contenido(construir_csv([fila_base()]), datetime(2025, 9, 1)).operaciones[0]
    assert any(a.tipo == "error" and "Liberación 1 VENCIDA" in a.mensaje for a in op.alertas)

def test_alerta_de_liberaciones_descuadradas(procesador):
    texto = INFO_GENERAL.replace("Capital: 100000 USD", "Capital: 50000 USD")
    op = procesador.procesar_contenido(
        construir_csv([fila_base(**{"5. Info Gnal + Info Compra Int": texto})]), AHORA
    ).operaciones[0]

    assert op.montos_pendientes == 50000
    assert any(a.tipo == "warning" and a.mensaje.startswith("Diferencia de 50,000.00") for a in op.alertas)

# ==========================================
# FORMATO
# ==========================================
@pytest.mark.parametrize("cliente, esperado", [
    ("MALE IMPORTADORA SAS", "IMPORTADORA"),
    ("Export Andes", "EXPORTADORA"),
    ("Comercializadora del Norte", "COMERCIALIZADORA"),
    ("DISTRIBUIDORA XYZ", "DISTRIBUIDORA"),
    ("ACME S.A.S.", "EMPRESA"),
    ("Textiles Ltda", "EMPRESA"),
    ("SALINAS HERMANOS", "COMERCIAL"),     # 'SA' dentro de una palabra no cuenta
    ("", "COMERCIAL"),
])
def test_inferir_tipo_empresa(cliente, esperado):
    assert inferir_tipo_empresa(cliente) == esperado

@pytest.mark.parametrize("origen, destino, esperado", [
    ("CHINA", "MÉXICO", "CHINA → MÉXICO"),
    ("", "MÉXICO", "Ruta no especificada"),
])
def test_ruta_comercial(origen, destino, esperado):
    assert ruta_comercial(origen, destino) == esperado

@pytest.mark.parametrize("compra, venta, esperado", [
    ("FOB - SHANGHAI", "CIF - VERACRUZ", "FOB / CIF"),
    ("exw", "", "EXW"),
    ("", "", "FOB / CIF"),
])
def test_formatear_incoterms(compra, venta, esperado):
    assert formatear_incoterms(compra, venta) == esperado

def test_estimar_extracostos():
    costos = estimar_extracostos(100000)
    assert (costos.comision_bancaria, costos.gastos_logisticos, costos.seguro_carga) == (2000, 3000, 1000)
    assert costos.total_extracostos == 6000
    assert estimar_extracostos(0).total_extracostos == 0
