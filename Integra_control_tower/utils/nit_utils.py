import re
import logging
from typing import Dict, Any

from .helpers import extraer_valor, extraer_primer_valor, limpiar_texto, a_float

logger = logging.getLogger(__name__)

# RFC mexicano: 3-4 letras, fecha AAMMDD y homoclave
PATRON_RFC_COMPLETO = re.compile(r"^[A-ZÑ&]{3,4}[0-9]{6}[A-Z0-9]{3}$")
PATRON_NIT_COLOMBIA = re.compile(r"^[0-9]{8,10}$")
PATRON_NIT_GENERICO = re.compile(r"^[0-9]{6,12}$")

PATRON_CLIENTE_DOCU = r"[-\s]*CLIENTE:\s*(.+?)(?=\n|$)"
PATRON_VALOR_OPERACION = r"[-\s]*VALOR OPERACI[ÓO]N:\s*\$?\s*(\d[\d,]*(?:\.\d+)?)"

# Orden de búsqueda del identificador fiscal (gana el primero)
PATRONES_IDENTIFICADOR_FISCAL = [
    r"[-\s]*NIT:\s*([0-9]+)",                                           # NIT Colombia
    r"[-\s]*(?:RFC|NIT):\s*([A-ZÑ&]{3,4}[0-9]{6}[A-Z0-9]{3})",          # RFC México con etiqueta
    r"\b([A-ZÑ&]{3,4}[0-9]{6}[A-Z0-9]{3})\b",                           # RFC sin etiqueta
    r"[-\s]*(?:RFC|NIT):\s*([0-9\-]+)",                                 # NIT genérico con guiones
]


def normalizar_nit(nit: str) -> str:
    """Quita espacios, guiones y puntos y pasa a mayúsculas. Así se comparan NIT y RFC."""
    if not nit or not isinstance(nit, str):
        return ""
    return re.sub(r"[\s\-\.]", "", nit.strip()).upper()


def extraer_cliente_nit(texto_docu: str) -> Dict[str, Any]:
    """
    Lee la columna '1.Docu. Cliente', con formato:
        - CLIENTE: <nombre>
        - NIT: <nit o rfc>
        - VALOR OPERACIÓN: <monto>
    Regresa {'cliente', 'nit', 'valor_operacion'}; los campos ausentes quedan vacíos / 0.
    """
    if not texto_docu or not isinstance(texto_docu, str):
        return {"cliente": "", "nit": "", "valor_operacion": 0.0}

    texto = limpiar_texto(texto_docu)

    cliente = extraer_valor(texto, PATRON_CLIENTE_DOCU)
    nit = extraer_primer_valor(texto, PATRONES_IDENTIFICADOR_FISCAL).upper()
    valor_operacion = a_float(extraer_valor(texto, PATRON_VALOR_OPERACION))

    logger.debug(f"[NitUtils] Cliente='{cliente}' | NIT/RFC='{nit}' | Valor operación={valor_operacion}")
    return {"cliente": cliente, "nit": nit, "valor_operacion": valor_operacion}


def validar_formato_nit(nit: str) -> Dict[str, Any]:
    """Clasifica el identificador como RFC (México), NIT (Colombia) o DESCONOCIDO."""
    normalizado = normalizar_nit(nit)

    if not normalizado:
        return {"es_valido": False, "mensaje": "NIT/RFC no puede estar vacío", "tipo": "DESCONOCIDO"}

    if PATRON_RFC_COMPLETO.match(normalizado):
        return {"es_valido": True, "mensaje": "RFC mexicano válido", "tipo": "RFC"}

    if PATRON_NIT_COLOMBIA.match(normalizado):
        return {"es_valido": True, "mensaje": "NIT colombiano válido", "tipo": "NIT"}

    if PATRON_NIT_GENERICO.match(normalizado):
        return {"es_valido": True, "mensaje": "NIT genérico válido", "tipo": "NIT"}

    if len(normalizado) < 6:
        return {"es_valido": False, "mensaje": "NIT/RFC debe tener al menos 6 caracteres", "tipo": "DESCONOCIDO"}

    if len(normalizado) > 15:
        return {"es_valido": False, "mensaje": "NIT/RFC no puede tener más de 15 caracteres", "tipo": "DESCONOCIDO"}

    return {"es_valido": False, "mensaje": "Formato de NIT/RFC no reconocido", "tipo": "DESCONOCIDO"}
