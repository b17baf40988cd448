import pytest

from Integra_control_tower.core.exceptions import CSVInvalidoError
from Integra_control_tower.utils.csv_parser import parsear_linea_csv, reensamblar_filas

# ---- Pruebas para parsear_linea_csv ----
@pytest.mark.parametrize("linea, esperado", [
    ("a,b,c", ["a", "b", "c"]),
    (" a , b ,c ", ["a", "b", "c"]),                      # Recorta espacios
    ('1,"b,c",d', ["1", "b,c", "d"]),                     # Coma dentro de comillas
    ('"dice ""hola""",x', ['dice "hola"', "x"]),          # Comillas escapadas
    ("a,,c", ["a", "", "c"]),                             # Campo vacío
    ("a,b,", ["a", "b", ""]),                             # Coma final
    ("", [""]),
])
def test_parsear_linea_csv(linea, esperado):
    assert parsear_linea_csv(linea) == esperado

def test_parsear_linea_csv_con_salto_de_linea():
    campos = parsear_linea_csv('1,"mide 5"" de ancho\notra linea"')
    assert campos == ["1", 'mide 5" de ancho\notra linea']

# ---- Pruebas para reensamblar_filas ----
def test_fila_multilinea_se_reensambla_en_una_sola():
    contenido = 'id,descripcion\n1,"mide 5"" de ancho\notra linea"\n'
    filas = reensamblar_filas(contenido)

    assert len(filas) == 1
    assert filas[0]["id"] == "1"
    assert filas[0]["descripcion"] == 'mide 5" de ancho\notra linea'
    assert "\n" in filas[0]["descripcion"]
    assert filas[0]["descripcion"].count('"') == 1

def test_varias_filas_con_celdas_largas():
    contenido = (
        'Nombre,Info\n'
        'OP1,"CLIENTE: MALE\nPAÍS IMPORTADOR: MÉXICO"\n'
        '\n'
        'OP2,"CLIENTE: ACME, S.A.\nVALOR TOTAL: 10"\n'
    )
    filas = reensamblar_filas(contenido)
    assert [f["Nombre"] for f in filas] == ["OP1", "OP2"]
    assert filas[1]["Info"] == "CLIENTE: ACME, S.A.\nVALOR TOTAL: 10"

def test_filas_cortas_se_descartan_y_faltantes_quedan_vacios():
    contenido = "a,b,c,d\n1,2,3\nsolo\n5,6,7,8"
    filas = reensamblar_filas(contenido)

    assert filas == [
        {"a": "1", "b": "2", "c": "3", "d": ""},
        {"a": "5", "b": "6", "c": "7", "d": "8"},
    ]

def test_comillas_sin_cerrar_al_final():
    filas = reensamblar_filas('a,b\n1,"sin cerrar\nhasta el final')
    assert filas == [{"a": "1", "b": "sin cerrar\nhasta el final"}]

@pytest.mark.parametrize("contenido", ["", "solo,cabecera"])
def test_csv_sin_datos_lanza_error(contenido):
    with pytest.raises(CSVInvalidoError):
        reensamblar_filas(contenido)

def test_cabecera_con_linea_vacia_no_tiene_filas():
    assert reensamblar_filas("a,b\n") == []
