from __future__ import annotations


class ConfigError(RuntimeError):
    """Falta configuración obligatoria (p. ej. URL de la API)."""


class ValidationError(ValueError):
    """Registro manual sin los campos obligatorios."""


class ExcelImportError(RuntimeError):
    """El archivo Excel no se pudo leer; se aborta toda la importación."""


class StoreError(RuntimeError):
    """Falló la transacción en la base local; el registro no quedó guardado."""


class SyncError(RuntimeError):
    """No se pudo sincronizar con la API remota.

    Es una advertencia para el flujo de guardado: los datos ya están en la base local.
    """

    def __init__(self, message: str, *, endpoint: str = "", registros: int = 0, timeout: bool = False):
        super().__init__(message)
        self.endpoint = endpoint
        self.registros = registros
        self.timeout = timeout


class SyncTimeoutError(SyncError):
    def __init__(self, message: str, *, endpoint: str = "", registros: int = 0):
        super().__init__(message, endpoint=endpoint, registros=registros, timeout=True)
