"""Errores tipados del cliente.

Todos heredan de `BlackfireError` para que la CLI (o un test runner) pueda
capturarlos en un único punto.
"""

from __future__ import annotations


class BlackfireError(Exception):
    """Base de todos los errores del SDK."""


class NotAvailableError(BlackfireError):
    """No hay sonda de profiling disponible en este proceso."""


class TransportError(BlackfireError):
    """El intercambio HTTP no pudo completarse (red, TLS, timeout)."""


class ApiError(BlackfireError):
    """Fallo reportado por la API o derivado del código HTTP.

    `status` es `None` cuando el error no viene de una respuesta HTTP
    (p.ej. estado `failure` de un profile o reintentos agotados).
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class AppNotFoundError(BlackfireError):
    def __init__(self, app: str) -> None:
        super().__init__(f'App "{app}" does not exist.')
        self.app = app


class ReferenceNotFoundError(BlackfireError):
    def __init__(self, reference: object) -> None:
        super().__init__(f'Unable to find the "{reference if reference is not None else ""}" reference.')
        self.reference = reference
