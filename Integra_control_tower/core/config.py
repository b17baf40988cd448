from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuración del Control Tower leída de variables de entorno o del archivo .env."""

    # --- GENERAL ---
    APP_NOMBRE: str = "Integra Control Tower"
    API_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # --- PROCESAMIENTO CSV ---
    PAIS_POR_DEFECTO: str = Field("CO", description="País usado cuando no se puede detectar por columnas (CO | MX)")
    MAX_TAMANO_CSV_MB: int = 20

    # --- ALERTAS Y TOLERANCIAS ---
    DIAS_ALERTA_VENCIMIENTO: int = 7
    TOLERANCIA_LIBERACIONES: float = 1000.0

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


settings = Settings()
