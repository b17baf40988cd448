import logging
from typing import List, Dict, Iterator, Tuple

from ..core.exceptions import CSVInvalidoError

logger = logging.getLogger(__name__)

# Una fila se acepta si trae al menos esta fracción de las columnas de la cabecera
PROPORCION_MINIMA_COLUMNAS = 0.5


def parsear_linea_csv(linea: str) -> List[str]:
    """
    Tokeniza UNA fila lógica del CSV respetando comillas.

    - Una comilla abre o cierra el campo entrecomillado.
    - Dentro de comillas, '""' es una comilla literal.
    - La coma solo separa campos fuera de comillas.
    Cada campo se devuelve sin espacios en los extremos.
    """
    valores: List[str] = []
    actual: List[str] = []
    en_comillas = False
    i = 0
    n = len(linea)

    while i < n:
        caracter = linea[i]

        if caracter == '"':
            if en_comillas and i + 1 < n and linea[i + 1] == '"':
                # Comilla escapada
                actual.append('"')
                i += 2
                continue
            en_comillas = not en_comillas
        elif caracter == "," and not en_comillas:
            valores.append("".join(actual).strip())
            actual = []
        else:
            actual.append(caracter)
        i += 1

    valores.append("".join(actual).strip())
    return valores


def _iterar_filas_logicas(lineas: List[str]) -> Iterator[Tuple[int, str]]:
    """
    Junta líneas físicas en filas lógicas usando la paridad de comillas:
    mientras el total de comillas acumulado sea impar, la celda sigue abierta.
    Regresa (número de línea donde empezó la fila, texto completo de la fila).
    """
    conteo_comillas = 0
    buffer: List[str] = []
    inicio = 0

    for numero, linea in enumerate(lineas, start=1):
        if not buffer:
            if not linea.strip():
                continue
            inicio = numero
        buffer.append(linea)
        conteo_comillas += linea.count('"')

        if conteo_comillas % 2 == 0:
            yield inicio, "\n".join(buffer)
            buffer = []
            conteo_comillas = 0

    # Cola sin cerrar al final del archivo: se intenta una última vez
    if buffer:
        resto = "\n".join(buffer)
        if resto.strip():
            logger.warning(f"[CSVParser] Fila iniciada en la línea {inicio} con comillas sin cerrar al final del archivo")
            yield inicio, resto


def reensamblar_filas(contenido: str) -> List[Dict[str, str]]:
    """
    Convierte el contenido completo de un CSV (ya en memoria) en una lista de filas
    {encabezado: valor}. Las celdas pueden contener saltos de línea, comas y comillas.

    Filas con menos de la mitad de las columnas esperadas se descartan con un warning.
    """
    lineas = contenido.split("\n") if contenido else []
    if len(lineas) < 2:
        raise CSVInvalidoError("El CSV debe tener al menos la cabecera y una fila de datos")

    encabezados = parsear_linea_csv(lineas[0])
    minimo_columnas = int(len(encabezados) * PROPORCION_MINIMA_COLUMNAS)
    logger.info(f"[CSVParser] Cabecera con {len(encabezados)} columnas. Mínimo por fila: {minimo_columnas}")

    filas: List[Dict[str, str]] = []
    descartadas = 0

    # Las líneas de datos empiezan en la línea física 2
    for linea_inicio, texto_fila in _iterar_filas_logicas(lineas[1:]):
        valores = parsear_linea_csv(texto_fila)

        if len(valores) >= minimo_columnas:
            filas.append({
                encabezado: (valores[indice] if indice < len(valores) else "")
                for indice, encabezado in enumerate(encabezados)
            })
        else:
            descartadas += 1
            logger.warning(
                f"[CSVParser] Fila en línea {linea_inicio + 1} descartada: "
                f"{len(valores)} columnas de {len(encabezados)} esperadas"
            )

    logger.info(f"[CSVParser] Filas reensambladas: {len(filas)} | descartadas: {descartadas}")
    return filas
