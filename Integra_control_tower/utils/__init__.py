"""Utilidades y funciones auxiliares del proyecto."""

from .helpers import (
    limpiar_texto, normalizar_para_comparar, contiene, a_float, redondear,
    extraer_valor, extraer_numero, extraer_primer_valor, extraer_primer_numero,
    extraer_porcentaje, extraer_valor_monetario, es_fecha_valida, extraer_fecha,
    extraer_entre_marcadores, extraer_todos
)
from .csv_parser import parsear_linea_csv, reensamblar_filas


__all__ = [
    "limpiar_texto", "normalizar_para_comparar", "contiene", "a_float", "redondear",
    "extraer_valor", "extraer_numero", "extraer_primer_valor", "extraer_primer_numero",
    "extraer_porcentaje", "extraer_valor_monetario", "es_fecha_valida", "extraer_fecha",
    "extraer_entre_marcadores", "extraer_todos", "parsear_linea_csv", "reensamblar_filas"
]
