import pytest
from datetime import datetime, timedelta

from Integra_control_tower.core.motor_timeline import (
    FASES_TIMELINE, PESOS_FASES, logica_fase_1, logica_fase_2, logica_fase_3, logica_fase_4, logica_fase_5,
    generar_timeline, calcular_progreso_general, resumen_timeline
)
from Integra_control_tower.core.calculadora_progreso import (
    detalle_desde_timeline, progreso_desde_timeline, calcular_progreso_preciso
)
from Integra_control_tower.models.responses_general import EstadoProceso
from Integra_control_tower.models.responses_operacion import RespuestasOperacion
from Integra_control_tower.utils.helpers_texto_integra import COLUMNAS_CSV

P, E, C = EstadoProceso.PENDIENTE, EstadoProceso.EN_PROCESO, EstadoProceso.COMPLETADO
AHORA = datetime(2025, 8, 1, 10, 0)


def fila(**valores):
    return {COLUMNAS_CSV[clave]: valor for clave, valor in valores.items()}


def info(valor_total=100000.0, giros=(), liberaciones=()):
    return RespuestasOperacion.ParsedOperationInfo(
        valor_total_compra=valor_total,
        giros=[RespuestasOperacion.GiroInfo(valor_solicitado=v, numero_giro=f"Giro {i}") for i, v in enumerate(giros, 1)],
        liberaciones=[
            RespuestasOperacion.Liberacion(numero=i, capital=c, fecha="2025-07-25") for i, c in enumerate(liberaciones, 1)
        ],
    )


FILA_COMPLETA = fila(
    proceso="1. Aprobación de Cotización",
    firma_cotizacion="Listo",
    cuota_operacional="Listo",
    factura_final="Listo - Factura Final",
    giro_proveedor="Listo - Pago confirmado",
    equipo_comercial="Laura",
    persona_asignada="Pedro",
)
INFO_COMPLETA = info(giros=[30000, 70000], liberaciones=[100000])

# ==========================================
# LÓGICA POR FASE
# ==========================================
@pytest.mark.parametrize("valores, estado, progreso", [
    ({"proceso": "1. Aprobación de Cotización"}, C, 100),
    ({"firma_cotizacion": "LISTO"}, C, 100),
    ({"proceso": "Cotización enviada"}, E, 60),
    ({}, P, 0),
])
def test_logica_fase_1(valores, estado, progreso):
    resultado = logica_fase_1(fila(**valores), info())
    assert (resultado["estado"], resultado["progreso"]) == (estado, progreso)
    assert resultado["notas"]

@pytest.mark.parametrize("valores, estado, progreso", [
    ({"cuota_operacional": "Listo"}, C, 100),
    ({"cuota_operacional": "En revisión"}, E, 70),
    ({"proceso": "1. Aprobación de Cotización"}, E, 30),
    ({}, P, 0),
])
def test_logica_fase_2(valores, estado, progreso):
    resultado = logica_fase_2(fila(**valores), info())
    assert (resultado["estado"], resultado["progreso"]) == (estado, progreso)

@pytest.mark.parametrize("datos, estado, progreso", [
    (info(giros=[30000, 70000]), C, 100),
    (info(giros=[96000]), C, 100),            # Banda de tolerancia del 95%
    (info(giros=[40000]), E, 40),
    (info(valor_total=200000, giros=[25000]), E, 13),    # 12.5% redondea hacia arriba
    (info(valor_total=200000, giros=[189000]), C, 100),  # 94.5% redondea a 95
    (info(giros=[]), P, 0),
    (info(valor_total=0), P, 0),
])
def test_logica_fase_3(datos, estado, progreso):
    resultado = logica_fase_3({}, datos)
    assert (resultado["estado"], resultado["progreso"]) == (estado, progreso)

def test_logica_fase_3_notas_incluyen_montos():
    resultado = logica_fase_3({}, info(giros=[40000]))
    assert "$40,000" in resultado["notas"]
    assert "$60,000" in resultado["notas"]

@pytest.mark.parametrize("estado_factura, datos, estado, progreso", [
    ("", info(liberaciones=[100000]), P, 0),                   # Sin factura no arranca
    ("Listo - Factura Final", info(liberaciones=[100000]), C, 100),
    ("Listo - Factura Final", info(liberaciones=[98000]), C, 100),
    ("Listo - Factura Final", info(liberaciones=[30000]), E, 50),   # Piso de 50
    ("Listo - Factura Final", info(liberaciones=[80000]), E, 80),
    ("Listo - Factura Final", info(valor_total=200000, liberaciones=[121000]), E, 61),
    ("Listo - Factura Final", info(), E, 50),
    ("Listo - Factura Final", info(valor_total=0, liberaciones=[1000]), E, 70),
])
def test_logica_fase_4(estado_factura, datos, estado, progreso):
    resultado = logica_fase_4(fila(factura_final=estado_factura), datos)
    assert (resultado["estado"], resultado["progreso"]) == (estado, progreso)

def test_logica_fase_5_completa_solo_con_las_cuatro_previas():
    assert logica_fase_5(FILA_COMPLETA, INFO_COMPLETA)["estado"] == C

    sin_liberaciones = logica_fase_5(FILA_COMPLETA, info(giros=[30000, 70000]))
    assert sin_liberaciones["estado"] == E
    # 3 fases completas (75) + fase 4 en proceso al 50% (12.5)
    assert sin_liberaciones["progreso"] == 88

@pytest.mark.parametrize("valores, datos, progreso", [
    ({"proceso": "Cotización enviada"}, info(), 15),
    ({"proceso": "1. Aprobación de Cotización", "cuota_operacional": "Listo"}, info(giros=[40000]), 60),
    ({"proceso": "Cotización enviada"}, info(giros=[38000]), 25),  # 15 + 9.5 = 24.5
    ({}, info(), 0),
])
def test_logica_fase_5_credito_parcial(valores, datos, progreso):
    assert logica_fase_5(fila(**valores), datos)["progreso"] == progreso

def test_logica_fase_5_nunca_supera_95_sin_completar():
    resultado = logica_fase_5(FILA_COMPLETA, info(giros=[30000, 70000], liberaciones=[90000]))
    assert resultado["estado"] == E
    assert resultado["progreso"] <= 95

@pytest.mark.parametrize("valores, datos", [
    ({}, info()),
    ({"proceso": "1. Aprobación de Cotización"}, info(giros=[100000])),
    ({"cuota_operacional": "Listo", "factura_final": "Listo"}, info(giros=[100000], liberaciones=[100000])),
    ({"proceso": "1. Aprobación de Cotización", "cuota_operacional": "Listo", "factura_final": "Listo"},
     info(giros=[100000], liberaciones=[100000])),
    ({"firma_cotizacion": "Listo", "cuota_operacional": "En proceso", "factura_final": "Listo"},
     info(giros=[100000], liberaciones=[100000])),
])
def test_fase_5_completa_implica_fases_previas_completas(valores, datos):
    timeline = generar_timeline(fila(**valores), datos, fecha_referencia=AHORA)
    if timeline[4].estado == C:
        assert all(evento.estado == C for evento in timeline[:4])
    else:
        assert any(evento.estado != C for evento in timeline[:4])

# ==========================================
# GENERADOR
# ==========================================
def test_generar_timeline_estructura():
    timeline = generar_timeline(FILA_COMPLETA, INFO_COMPLETA, fecha_referencia=AHORA)

    assert [e.id for e in timeline] == ["fase-1", "fase-2", "fase-3", "fase-4", "fase-5"]
    assert [e.fase for e in timeline] == [f["nombre"] for f in FASES_TIMELINE]
    assert all(e.estado == C and e.progreso == 100 for e in timeline)
    assert {e.responsable for e in timeline} == {"Laura"}
    assert timeline[0].fecha == AHORA - timedelta(days=30)
    assert timeline[4].fecha == AHORA - timedelta(days=6)

@pytest.mark.parametrize("valores, responsable", [
    ({"persona_asignada": "Pedro"}, "Pedro"),
    ({}, "Sin asignar"),
])
def test_generar_timeline_responsable(valores, responsable):
    timeline = generar_timeline(fila(**valores), info(), fecha_referencia=AHORA)
    assert timeline[0].responsable == responsable

def test_generar_timeline_fase_con_error_queda_pendiente(monkeypatch):
    from Integra_control_tower.core import motor_timeline

    def falla(*args, **kwargs):
        raise ValueError("dato corrupto")

    logicas = list(motor_timeline.LOGICA_FASES)
    logicas[2] = falla
    monkeypatch.setattr(motor_timeline, "LOGICA_FASES", logicas)
    timeline = generar_timeline(FILA_COMPLETA, INFO_COMPLETA, fecha_referencia=AHORA)

    assert len(timeline) == 5
    assert timeline[2].estado == P
    assert "dato corrupto" in timeline[2].notas

def test_progreso_general_ponderado():
    assert sum(PESOS_FASES) == 100
    timeline = generar_timeline(
        fila(proceso="1. Aprobación de Cotización", cuota_operacional="Listo"),
        info(giros=[40000]),
        fecha_referencia=AHORA,
    )
    # 100*.15 + 100*.20 + 40*.25 + 0*.25 + 60*.15
    assert calcular_progreso_general(timeline) == 54
    assert calcular_progreso_general([]) == 0


def _evento(indice, progreso):
    return RespuestasOperacion.TimelineEvent(
        id=f"fase-{indice}", fase=f"Fase {indice}", descripcion="", estado=E,
        progreso=progreso, responsable="Sin asignar", fecha=AHORA,
    )

@pytest.mark.parametrize("progresos, esperado", [
    ([10, 0, 0, 0, 0], 2),    # 1.5
    ([30, 0, 0, 0, 0], 5),    # 4.5
    ([0, 0, 50, 0, 0], 13),   # 12.5
])
def test_progreso_general_redondea_medios_hacia_arriba(progresos, esperado):
    timeline = [_evento(i, p) for i, p in enumerate(progresos, 1)]
    assert calcular_progreso_general(timeline) == esperado

def test_resumen_timeline():
    timeline = generar_timeline(fila(proceso="1. Aprobación de Cotización"), info(), fecha_referencia=AHORA)
    resumen = resumen_timeline(timeline)

    assert resumen.fases_completadas == 1
    assert resumen.fases_en_proceso == 2
    assert resumen.fases_pendientes == 2
    assert resumen.fase_actual == FASES_TIMELINE[1]["nombre"]

# ==========================================
# CALCULADORA DE PROGRESO
# ==========================================
def test_progreso_preciso_coincide_con_timeline():
    datos_fila = fila(proceso="1. Aprobación de Cotización", cuota_operacional="Listo")
    datos_info = info(giros=[40000])

    timeline = generar_timeline(datos_fila, datos_info, fecha_referencia=AHORA)
    progreso = calcular_progreso_preciso(datos_fila, datos_info, fecha_referencia=AHORA)

    assert progreso.progreso_total == calcular_progreso_general(timeline)
    assert [f.progreso for f in progreso.detalle_fases] == [e.progreso for e in timeline]
    assert [f.fase for f in progreso.detalle_fases] == [1, 2, 3, 4, 5]
    assert progreso.fases_completadas == 2
    assert progreso.fase_actual == 3
    assert progreso.fase_siguiente == 4

def test_progreso_todas_completas():
    progreso = calcular_progreso_preciso(FILA_COMPLETA, INFO_COMPLETA, fecha_referencia=AHORA)
    assert progreso.progreso_total == 100
    assert progreso.fase_actual == 5
    assert progreso.fase_siguiente is None

def test_detalle_marca_dependencias():
    timeline = generar_timeline(fila(proceso="Cotización enviada"), info(giros=[40000]), fecha_referencia=AHORA)
    detalle = detalle_desde_timeline(timeline)

    assert detalle[0].dependencias_cumplidas is True
    assert detalle[1].dependencias_cumplidas is False
    assert detalle[2].estado == E
    assert progreso_desde_timeline(timeline).fases_completadas == 0
