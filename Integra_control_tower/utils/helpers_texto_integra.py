import re # EN ESTE ARCHIVO VAN TODOS LOS PATRONES DE TEXTO Y NOMBRES DE COLUMNA DEL CSV DE INTEGRA

# Nombres reales de las columnas del CSV exportado (clave lógica -> encabezado)
COLUMNAS_CSV = {
    "nombre": "Nombre",
    "completado": "Completado",
    "persona_asignada": "Persona asignada",
    "proceso": "Proceso",
    "docu_cliente": "1.Docu. Cliente",
    "firma_cotizacion": "1. ESTADO Firma Cotización",
    "cuota_operacional": "4. ESTADO pago Cuota Operacional",
    "info_general": "5. Info Gnal + Info Compra Int",
    "doc_legal_x_comp": "8. ESTADO Doc Legal X Comp",
    "factura_final": "9. ESTADO Proforma / Factura final",
    "giro_proveedor": "10. ESTADO Giro Proveedor",
    "equipo_comercial": "15. Equipo Comercial",
}

# Variantes de columnas por país. Solo Colombia trae la columna de Doc Legal X Comp.
CONFIGURACIONES_PAIS = {
    "CO": {
        "nombre": "Colombia",
        "tiene_doc_legal_x_comp": True,
        "columnas": {},
    },
    "MX": {
        "nombre": "México",
        "tiene_doc_legal_x_comp": False,
        "columnas": {},
    },
}

# --- LIMPIEZA ---
PATRON_SALTOS_MULTIPLES = re.compile(r"\n{3,}")
PATRON_FECHA_ISO = re.compile(r"(\d{4}-\d{2}-\d{2})")
PATRON_PORCENTAJE = re.compile(r"(\d+(?:\.\d+)?)\s*%")
PATRON_MONTO = re.compile(r"\$?\s*(\d[\d,]*(?:\.\d+)?)")

# --- CAMPOS BÁSICOS DEL BLOQUE 'INFO GENERAL' ---
# Cada campo tiene una lista ordenada de patrones: gana el primero que haga match.
# Para soportar un formato nuevo basta con agregar un patrón al final de la lista.
PATRONES_CAMPOS_BASICOS = {
    "cliente": [
        r"(?<![A-ZÁÉÍÓÚ])CLIENTE:\s*(.+?)(?=\n|PA[ÍI]S [A-ZÁÉÍÓÚ]+:|$)",
        r"RAZ[ÓO]N SOCIAL:\s*(.+?)(?=\n|$)",
    ],
    "pais_importador": [
        r"PA[ÍI]S IMPORTADOR:\s*(.+?)(?=\n|PA[ÍI]S [A-ZÁÉÍÓÚ]+:|$)",
    ],
    "pais_exportador": [
        r"PA[ÍI]S EXPORTADOR:\s*(.+?)(?=\n|VALOR [A-ZÁÉÍÓÚ ]+:|$)",
    ],
    "valor_total_compra": [
        r"VALOR TOTAL DE COMPRA:\s*\$?\s*(\d[\d,]*(?:\.\d+)?)",
        r"VALOR TOTAL:\s*\$?\s*(\d[\d,]*(?:\.\d+)?)",
    ],
    "moneda_pago": [
        r"MONEDA DE PAGO SOLICITADO:\s*([A-Z]{3})",
        r"MONEDA(?: DE PAGO)?:\s*([A-Z]{3})",
    ],
    "terminos_pago": [
        r"T[ÉE]RMINOS DE PAGO:\s*(.+?)(?=\n|DATOS [A-ZÁÉÍÓÚ ]+|$)",
    ],
    # La hoja mezcla "ICOTERM" e "INCOTERM"
    "incoterm_compra": [
        r"IN?COTERMS? (?:DE )?COMPRA:\s*(.+?)(?=\n|IN?COTERMS?|$)",
    ],
    "incoterm_venta": [
        r"IN?COTERMS? (?:DE )?VENTA:\s*(.+?)(?=\n|IN?COTERMS?|$)",
    ],
}

# --- DATOS BANCARIOS DEL PROVEEDOR ---
PATRONES_DATOS_BANCARIOS = {
    "beneficiario": [
        r"BENEFICIARIO:\s*(.+?)(?=\n|\bBANCO:|$)",
    ],
    "banco": [
        r"(?:^|\n)[ \t\-\*•]*BANCO:\s*(.+?)(?=\n|DIRECCI[ÓO]N:|$)",
        r"\bBANCO:\s*(.+?)(?=\n|DIRECCI[ÓO]N:|$)",
    ],
    "direccion": [
        r"DIRECCI[ÓO]N:\s*(.+?)(?=\n|N[ÚU]MERO DE CUENTA:|$)",
    ],
    "numero_cuenta": [
        r"N[ÚU]MERO DE CUENTA:\s*(.+?)(?=\n|SWIFT|$)",
        r"(?:No\.|NRO\.?) (?:DE )?CUENTA:\s*(.+?)(?=\n|$)",
    ],
    "swift": [
        r"SWIFT(?: CODE)?:\s*(.+?)(?=\n|IN?COTERMS?|$)",
        r"\bBIC:\s*([A-Z0-9]{8,11})",
    ],
    "pais_banco": [
        r"PA[ÍI]S (?:DEL )?BANCO:\s*(.+?)(?=\n|$)",
    ],
}

# --- GIROS ---
# Tres variantes del triple (VALOR SOLICITADO, NÚMERO DE GIRO, PORCENTAJE DE GIRO).
# Se aplican todas y los resultados se unen, descartando duplicados.
PATRONES_GIROS = [
    # 1. Tres líneas consecutivas (admite viñetas "- ")
    re.compile(
        r"VALOR SOLICITADO:\s*(\d[\d,]*(?:\.\d+)?)[^\n]*\n"
        r"[ \t\-\*•]*N[ÚU]MERO DE GIRO:[ \t]*([^\n]+?)[ \t]*\n"
        r"[ \t\-\*•]*PORCENTAJE DE GIRO:[ \t]*([^\n]*?)[ \t]*(?=\n|$)",
        re.IGNORECASE,
    ),
    # 2. Líneas intermedias dentro del mismo bloque (nunca cruza al siguiente VALOR SOLICITADO)
    re.compile(
        r"VALOR SOLICITADO:\s*(\d[\d,]*(?:\.\d+)?)"
        r"(?:(?!VALOR SOLICITADO:).)*?N[ÚU]MERO DE GIRO:[ \t]*((?:(?!PORCENTAJE DE GIRO:)[^\n])+?)[ \t]*"
        r"(?:\n(?:(?!VALOR SOLICITADO:).)*?PORCENTAJE DE GIRO:[ \t]*([^\n]*?)[ \t]*)?(?=\n|$)",
        re.IGNORECASE | re.DOTALL,
    ),
    # 3. Los tres campos en la misma línea
    re.compile(
        r"VALOR SOLICITADO:[ \t]*(\d[\d,]*(?:\.\d+)?)[ \t,;|]+"
        r"N[ÚU]MERO DE GIRO:[ \t]*([^\n]+?)[ \t,;|]+"
        r"PORCENTAJE DE GIRO:[ \t]*([^\n]*?)[ \t]*(?=\n|$)",
        re.IGNORECASE,
    ),
]

# --- LIBERACIONES ---
PATRON_INICIO_LIBERACION = re.compile(r"(?=Liberaci[óo]n\s+\d+)", re.IGNORECASE)
PATRON_NUMERO_LIBERACION = re.compile(r"Liberaci[óo]n\s+(\d+)", re.IGNORECASE)
PATRON_FECHA_LIBERACION = re.compile(r"Fecha:\s*(\d{4}-\d{2}-\d{2})", re.IGNORECASE)

# El capital a veces viene en la misma línea y a veces en la siguiente, con o sin "USD"
PATRONES_CAPITAL_LIBERACION = [
    re.compile(r"Capital:[ \t]*\n[ \t\-\*•]*(\d[\d,]*(?:\.\d+)?)\s*USD", re.IGNORECASE),
    re.compile(r"Capital:[ \t]*(\d[\d,]*(?:\.\d+)?)\s*USD", re.IGNORECASE),
    re.compile(r"Capital:[ \t]*\n[ \t\-\*•]*(\d[\d,]*(?:\.\d+)?)", re.IGNORECASE),
    re.compile(r"Capital:[ \t]*(\d[\d,]*(?:\.\d+)?)", re.IGNORECASE),
]

# --- VALIDACIÓN DE FORMATOS ---
PATRON_SWIFT = re.compile(r"^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$")
PATRON_CUENTA_NUMERICA = re.compile(r"^\d+$")
