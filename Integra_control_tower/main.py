import logging
from fastapi import FastAPI

from .core.config import settings
from .api.endpoints import router_operaciones

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title=settings.APP_NOMBRE,
    description="Extracción de Info General y motor de estados/fases para operaciones de importación.",
    version="1.0.0",
)

app.include_router(router_operaciones.router, prefix=settings.API_PREFIX, tags=["Operaciones"])


@app.get("/health", tags=["Salud"])
async def health():
    return {"status": "ok", "app": settings.APP_NOMBRE}
