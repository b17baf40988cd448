import re
import math
import logging
import unicodedata
from datetime import datetime
from typing import List, Union, Iterable

from .helpers_texto_integra import (
    PATRON_SALTOS_MULTIPLES, PATRON_FECHA_ISO, PATRON_PORCENTAJE, PATRON_MONTO
)

logger = logging.getLogger(__name__)

Patron = Union[str, re.Pattern]


def _compilar(patron: Patron, flags: int) -> re.Pattern:
    if isinstance(patron, re.Pattern):
        return patron
    return re.compile(patron, flags)


def limpiar_texto(texto: str) -> str:
    """
    Normaliza los saltos de línea de un bloque libre del CSV:
    CRLF/CR a LF, tres o más saltos seguidos a uno en blanco, y sin espacios en los extremos.
    """
    if not texto:
        return ""
    texto = texto.replace("\r\n", "\n").replace("\r", "\n")
    texto = PATRON_SALTOS_MULTIPLES.sub("\n\n", texto)
    return texto.strip()


def normalizar_para_comparar(texto: str) -> str:
    """Minúsculas y sin acentos, para comparar estados escritos a mano ('Revisión' == 'revision')."""
    if not texto:
        return ""
    descompuesto = unicodedata.normalize("NFKD", str(texto))
    sin_acentos = "".join(c for c in descompuesto if not unicodedata.combining(c))
    return sin_acentos.lower().strip()


def contiene(texto: str, *fragmentos: str) -> bool:
    """True si el texto contiene ALGUNO de los fragmentos (sin importar mayúsculas ni acentos)."""
    base = normalizar_para_comparar(texto)
    if not base:
        return False
    return any(normalizar_para_comparar(f) in base for f in fragmentos)


def a_float(valor) -> float:
    """Convierte montos escritos a mano ('100,000.50', ' 3000 ') a float; 0.0 si no se puede."""
    if valor is None:
        return 0.0
    if isinstance(valor, (int, float)):
        return float(valor)
    try:
        return float(str(valor).replace(",", "").strip())
    except ValueError:
        return 0.0


def redondear(valor: float) -> int:
    """Redondeo comercial: los .5 suben (12.5 -> 13, 94.5 -> 95)."""
    return int(math.floor(valor + 0.5))


def extraer_valor(texto: str, patron: Patron, flags: int = re.IGNORECASE) -> str:
    """
    Devuelve el primer grupo de captura del primer match, sin espacios en los extremos.
    Nunca lanza: ante cualquier falla regresa una cadena vacía.
    """
    if not texto:
        return ""
    try:
        match = _compilar(patron, flags).search(texto)
        if not match or match.group(1) is None:
            return ""
        return match.group(1).strip()
    except (re.error, TypeError, IndexError) as e:
        logger.warning(f"[Extractores] Patrón inválido o texto no procesable ({patron!r}): {e}")
        return ""


def extraer_numero(texto: str, patron: Patron, flags: int = re.IGNORECASE) -> float:
    """Como extraer_valor, pero interpreta el grupo como número (quitando comas de miles). 0 si no se puede."""
    valor = extraer_valor(texto, patron, flags)
    if not valor:
        return 0.0
    return a_float(valor)


def extraer_primer_valor(texto: str, patrones: Iterable[Patron], flags: int = re.IGNORECASE) -> str:
    """Recorre una lista ordenada de patrones y regresa el primer valor no vacío."""
    for patron in patrones:
        valor = extraer_valor(texto, patron, flags)
        if valor:
            return valor
    return ""


def extraer_primer_numero(texto: str, patrones: Iterable[Patron], flags: int = re.IGNORECASE) -> float:
    for patron in patrones:
        numero = extraer_numero(texto, patron, flags)
        if numero:
            return numero
    return 0.0


def extraer_porcentaje(texto: str) -> float:
    """'30% del total' -> 30.0"""
    return extraer_numero(texto, PATRON_PORCENTAJE)


def extraer_valor_monetario(texto: str) -> float:
    """'$ 1,250.50 USD' -> 1250.5"""
    return extraer_numero(texto, PATRON_MONTO)


def es_fecha_valida(texto: str) -> bool:
    """Valida una fecha ISO YYYY-MM-DD real (no solo el formato)."""
    if not texto:
        return False
    try:
        datetime.strptime(texto.strip(), "%Y-%m-%d")
        return True
    except ValueError:
        return False


def extraer_fecha(texto: str, patron: Patron = PATRON_FECHA_ISO) -> str:
    """Primera fecha ISO válida que capture el patrón; cadena vacía si no hay o es imposible (ej. 2025-02-30)."""
    fecha = extraer_valor(texto, patron)
    return fecha if es_fecha_valida(fecha) else ""


def extraer_entre_marcadores(texto: str, inicio: str, fin: str = "") -> str:
    """
    Texto comprendido entre dos marcadores literales (sin incluirlos).
    Si no se da marcador final, o no aparece, se toma hasta el final del texto.
    """
    if not texto or not inicio:
        return ""
    patron = re.escape(inicio) + r"(.*?)" + (f"(?={re.escape(fin)}|$)" if fin else "$")
    return extraer_valor(texto, patron, re.IGNORECASE | re.DOTALL)


def extraer_todos(texto: str, patron: Patron, flags: int = re.IGNORECASE) -> List[re.Match]:
    """Todos los matches de un patrón; lista vacía ante cualquier falla."""
    if not texto:
        return []
    try:
        return list(_compilar(patron, flags).finditer(texto))
    except (re.error, TypeError) as e:
        logger.warning(f"[Extractores] No se pudo recorrer el patrón {patron!r}: {e}")
        return []
