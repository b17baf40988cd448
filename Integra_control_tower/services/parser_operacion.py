import re
import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from ..models.responses_general import EstadoProceso, Moneda
from ..models.responses_operacion import RespuestasOperacion
from ..utils.helpers import (
    limpiar_texto, extraer_valor, extraer_primer_valor, extraer_primer_numero,
    extraer_todos, es_fecha_valida, contiene, a_float
)
from ..utils.helpers_texto_integra import (
    PATRONES_CAMPOS_BASICOS, PATRONES_DATOS_BANCARIOS, PATRONES_GIROS,
    PATRON_INICIO_LIBERACION, PATRON_NUMERO_LIBERACION, PATRON_FECHA_LIBERACION,
    PATRONES_CAPITAL_LIBERACION, PATRON_SWIFT, PATRON_CUENTA_NUMERICA
)

logger = logging.getLogger(__name__)


class ParserOperacion:
    """
    Convierte el bloque libre '5. Info Gnal + Info Compra Int' en un ParsedOperationInfo.

    Las tablas de patrones se inyectan para poder agregar variantes de formato
    sin tocar la lógica de extracción. El parser nunca lanza: si algo falla
    regresa la estructura con todos sus valores por defecto.
    """
    def __init__(self, patrones_basicos: Dict[str, List[str]] = None,
                 patrones_bancarios: Dict[str, List[str]] = None,
                 patrones_giros: List[re.Pattern] = None,
                 patrones_capital: List[re.Pattern] = None):
        self.patrones_basicos = patrones_basicos or PATRONES_CAMPOS_BASICOS
        self.patrones_bancarios = patrones_bancarios or PATRONES_DATOS_BANCARIOS
        self.patrones_giros = patrones_giros or PATRONES_GIROS
        self.patrones_capital = patrones_capital or PATRONES_CAPITAL_LIBERACION

    def parsear(self, texto: str, estado_giro_proveedor: str = "",
                fecha_referencia: Optional[date] = None) -> RespuestasOperacion.ParsedOperationInfo:
        """
        Punto de entrada. `estado_giro_proveedor` es el valor de la columna
        '10. ESTADO Giro Proveedor' de la misma fila (define el estado de los giros);
        `fecha_referencia` es el "hoy" contra el que se comparan las liberaciones.
        """
        if not texto or not texto.strip():
            return RespuestasOperacion.ParsedOperationInfo()

        try:
            texto_limpio = limpiar_texto(texto)
            hoy = fecha_referencia or date.today()

            # 1. Campos básicos
            campos = self._extraer_campos_basicos(texto_limpio)

            # 2. Bloques repetidos
            giros = self.extraer_giros(texto_limpio, estado_giro_proveedor)
            liberaciones = self.extraer_liberaciones(texto_limpio, hoy)

            # 3. Datos bancarios del proveedor
            datos_bancarios = self.extraer_datos_bancarios(texto_limpio)

            info = RespuestasOperacion.ParsedOperationInfo(
                **campos,
                datos_bancarios=datos_bancarios,
                giros=giros,
                liberaciones=liberaciones,
            )
            logger.info(
                f"[ParserOperacion] Cliente='{info.cliente}' | Valor={info.valor_total_compra} {info.moneda_pago.value} | "
                f"Giros={len(giros)} | Liberaciones={len(liberaciones)}"
            )
            return info

        except Exception as e:
            logger.error(f"[ParserOperacion] Error parseando Info General, se regresan valores por defecto: {e}")
            return RespuestasOperacion.ParsedOperationInfo()

    # --- CAMPOS BÁSICOS ---
    def _extraer_campos_basicos(self, texto: str) -> Dict:
        p = self.patrones_basicos
        return {
            "cliente": extraer_primer_valor(texto, p["cliente"]),
            "pais_importador": extraer_primer_valor(texto, p["pais_importador"]),
            "pais_exportador": extraer_primer_valor(texto, p["pais_exportador"]),
            "valor_total_compra": extraer_primer_numero(texto, p["valor_total_compra"]),
            "moneda_pago": self._normalizar_moneda(extraer_primer_valor(texto, p["moneda_pago"])),
            "terminos_pago": extraer_primer_valor(texto, p["terminos_pago"]),
            "incoterm_compra": extraer_primer_valor(texto, p["incoterm_compra"]),
            "incoterm_venta": extraer_primer_valor(texto, p["incoterm_venta"]),
        }

    @staticmethod
    def _normalizar_moneda(codigo: str) -> Moneda:
        codigo = (codigo or "").upper()
        if codigo in Moneda.__members__:
            return Moneda(codigo)
        if codigo:
            logger.warning(f"[ParserOperacion] Moneda '{codigo}' no soportada, se asume USD")
        return Moneda.USD

    # --- DATOS BANCARIOS ---
    def extraer_datos_bancarios(self, texto: str) -> RespuestasOperacion.DatosBancarios:
        return RespuestasOperacion.DatosBancarios(**{
            campo: extraer_primer_valor(texto, patrones)
            for campo, patrones in self.patrones_bancarios.items()
        })

    # --- GIROS ---
    def extraer_giros(self, texto: str, estado_giro_proveedor: str = "") -> List[RespuestasOperacion.GiroInfo]:
        """
        Aplica TODAS las variantes de patrón y une los resultados.
        Un giro repetido (mismo valor y mismo número de giro) se descarta.
        Los giros conservan el orden en que aparecen en el texto.
        """
        estado = EstadoProceso.COMPLETADO if contiene(estado_giro_proveedor, "listo") else EstadoProceso.PENDIENTE

        encontrados: List[Tuple[int, RespuestasOperacion.GiroInfo]] = []
        vistos = set()

        for indice_patron, patron in enumerate(self.patrones_giros, start=1):
            for match in extraer_todos(texto, patron):
                valor = a_float(match.group(1))
                numero = (match.group(2) or "").strip()
                porcentaje = (match.group(3) or "").strip()

                # Un "número de giro" con CUENTA es un dato bancario mal capturado
                if valor <= 0 or not numero or "CUENTA" in numero.upper():
                    continue

                clave = (valor, numero)
                if clave in vistos:
                    continue
                vistos.add(clave)

                logger.debug(f"[ParserOperacion] Giro por patrón {indice_patron}: {numero} = {valor}")
                encontrados.append((match.start(), RespuestasOperacion.GiroInfo(
                    valor_solicitado=valor,
                    numero_giro=numero,
                    porcentaje_giro=porcentaje,
                    estado=estado,
                )))

        encontrados.sort(key=lambda par: par[0])
        return [giro for _, giro in encontrados]

    # --- LIBERACIONES ---
    def _extraer_capital(self, bloque: str) -> float:
        # Primer patrón que haga match gana, aunque el monto no sea válido
        for patron in self.patrones_capital:
            match = patron.search(bloque)
            if match:
                return a_float(match.group(1))
        return 0.0

    def extraer_liberaciones(self, texto: str, fecha_referencia: Optional[date] = None) -> List[RespuestasOperacion.Liberacion]:
        """
        Corta el texto en bloques que inician en 'Liberación N' y de cada uno
        toma número, capital y fecha. Se conservan pasadas y futuras:
        COMPLETADO si la fecha ya llegó, PENDIENTE si no.
        """
        hoy = fecha_referencia or date.today()
        liberaciones: List[RespuestasOperacion.Liberacion] = []
        vistas = set()

        for bloque in PATRON_INICIO_LIBERACION.split(texto):
            numero_txt = extraer_valor(bloque, PATRON_NUMERO_LIBERACION)
            if not numero_txt:
                continue

            numero = int(numero_txt)
            capital = self._extraer_capital(bloque)
            fecha = extraer_valor(bloque, PATRON_FECHA_LIBERACION)

            if numero <= 0 or capital <= 0 or not es_fecha_valida(fecha):
                logger.warning(f"[ParserOperacion] Liberación {numero_txt} incompleta (capital={capital}, fecha='{fecha}')")
                continue

            clave = (numero, capital, fecha)
            if clave in vistas:
                continue
            vistas.add(clave)

            # Fechas ISO: la comparación de cadenas equivale a la de fechas
            estado = EstadoProceso.COMPLETADO if fecha <= hoy.isoformat() else EstadoProceso.PENDIENTE
            liberaciones.append(RespuestasOperacion.Liberacion(
                numero=numero, capital=capital, fecha=fecha, estado=estado
            ))

        liberaciones.sort(key=lambda lib: lib.numero)
        return liberaciones


class ParserOperacionValidado(ParserOperacion):
    """
    Variante del parser que además revisa obligatorios y formatos.
    Se usa para diagnosticar la calidad del bloque Info General antes de cargarlo.
    """
    CAMPOS_OBLIGATORIOS = {
        "cliente": "Cliente",
        "pais_importador": "País importador",
        "pais_exportador": "País exportador",
        "valor_total_compra": "Valor total de compra",
    }

    def parsear_con_validacion(self, texto: str, estado_giro_proveedor: str = "",
                               fecha_referencia: Optional[date] = None) -> RespuestasOperacion.ResultadoParseo:
        info = self.parsear(texto, estado_giro_proveedor, fecha_referencia)
        errores: List[RespuestasOperacion.ErrorCampo] = []
        advertencias: List[str] = []

        # 1. Obligatorios
        for campo, etiqueta in self.CAMPOS_OBLIGATORIOS.items():
            if not getattr(info, campo):
                errores.append(RespuestasOperacion.ErrorCampo(campo=campo, error=f"{etiqueta} es obligatorio"))

        # 2. Formatos bancarios
        banco = info.datos_bancarios
        cuenta = banco.numero_cuenta.replace(" ", "").replace("-", "")
        if cuenta and not PATRON_CUENTA_NUMERICA.match(cuenta):
            errores.append(RespuestasOperacion.ErrorCampo(campo="numero_cuenta", error="El número de cuenta debe ser numérico"))
        if banco.swift and not PATRON_SWIFT.match(banco.swift.upper()):
            errores.append(RespuestasOperacion.ErrorCampo(campo="swift", error=f"Código SWIFT inválido: {banco.swift}"))

        # 3. Opcionales que conviene tener
        if not banco.beneficiario:
            advertencias.append("No se encontró el beneficiario del pago")
        if not info.terminos_pago:
            advertencias.append("No se encontraron los términos de pago")
        if not info.incoterm_compra:
            advertencias.append("No se encontró el Incoterm de compra")
        if not info.giros:
            advertencias.append("No se encontraron giros al proveedor")

        suma_giros = sum(g.valor_solicitado for g in info.giros)
        if info.giros and info.valor_total_compra and suma_giros > info.valor_total_compra:
            advertencias.append(
                f"La suma de giros ({suma_giros:,.2f}) supera el valor total de compra ({info.valor_total_compra:,.2f})"
            )

        return RespuestasOperacion.ResultadoParseo(
            success=not errores,
            data=info,
            errors=errores,
            warnings=advertencias,
        )


_parser_por_defecto = ParserOperacion()


def parsear_info_operacion(texto: str, estado_giro_proveedor: str = "",
                           fecha_referencia: Optional[date] = None) -> RespuestasOperacion.ParsedOperationInfo:
    """Atajo funcional sobre el parser con las tablas de patrones estándar."""
    return _parser_por_defecto.parsear(texto, estado_giro_proveedor, fecha_referencia)
