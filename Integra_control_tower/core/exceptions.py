class IntegraError(Exception):
    """Error base del Control Tower."""


class CSVInvalidoError(IntegraError):
    """El contenido no trae cabecera y al menos una fila de datos."""


class ColumnasFaltantesError(IntegraError):
    """Una fila del CSV no trae columnas obligatorias (ausentes, no solo vacías)."""

    def __init__(self, columnas: list):
        self.columnas = list(columnas)
        super().__init__(f"Columnas faltantes: {', '.join(self.columnas)}")
