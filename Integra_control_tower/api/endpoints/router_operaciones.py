# api/endpoints/router_operaciones.py (fachada: solo valida la entrada y delega a los servicios)
from fastapi import APIRouter, UploadFile, File, HTTPException
import asyncio
import logging

from ...core.config import settings
from ...models.responses_operacion import RespuestasOperacion
from ...services.procesador_csv import ProcesadorCSV
from ...services.parser_operacion import ParserOperacionValidado

router = APIRouter()
logger = logging.getLogger(__name__)

# Inyección de dependencias (Manual por ahora)
procesador = ProcesadorCSV()
parser_validado = ParserOperacionValidado()


@router.post(
    "/operaciones/procesar-csv",
    response_model=RespuestasOperacion.ResultadoProcesamiento,
    response_model_by_alias=True,
    summary="Procesa el CSV exportado de Integra y regresa las operaciones con timeline y validación."
)
async def procesar_csv(archivo: UploadFile = File(..., description="CSV exportado del tablero de Integra")):
    if not (archivo.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="El archivo debe ser un CSV.")

    contenido_bytes = await archivo.read()
    if len(contenido_bytes) > settings.MAX_TAMANO_CSV_MB * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"El CSV excede el límite de {settings.MAX_TAMANO_CSV_MB} MB.")

    try:
        contenido = contenido_bytes.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="El CSV debe estar codificado en UTF-8.")

    try:
        # El procesamiento es síncrono; se ejecuta fuera del event loop
        loop = asyncio.get_running_loop()
        resultado = await loop.run_in_executor(None, procesador.procesar_contenido, contenido)
    except Exception as e:
        logger.error(f"Error procesando CSV '{archivo.filename}': {e}")
        raise HTTPException(status_code=500, detail="Error interno procesando el CSV.")

    if not resultado.success and not resultado.operaciones and resultado.total_filas == 0:
        raise HTTPException(status_code=400, detail=resultado.mensaje or "El CSV no contiene filas válidas.")

    return resultado


@router.post(
    "/operaciones/parsear-info",
    response_model=RespuestasOperacion.ResultadoParseo,
    response_model_by_alias=True,
    summary="Parsea un bloque suelto de 'Info Gnal + Info Compra Int'."
)
async def parsear_info(solicitud: RespuestasOperacion.SolicitudParseo):
    """Útil para revisar un bloque de texto antes de cargarlo al tablero."""
    if not solicitud.texto.strip():
        raise HTTPException(status_code=400, detail="El texto a parsear está vacío.")
    return parser_validado.parsear_con_validacion(solicitud.texto, solicitud.estado_giro_proveedor)
