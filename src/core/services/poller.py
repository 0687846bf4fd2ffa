"""Espera acotada de trabajo asíncrono en el servidor (profiles y builds).

Un único bucle parametrizado por la URL consultada y los dos nombres de
estado terminales:

- éxito: se devuelve `parse(data)`;
- fallo: `ApiError` con el motivo enviado por el servidor;
- cualquier otro estado (o ninguno): pendiente.

Un 404 significa "todavía no visible" y se reintenta; cualquier otro error
se propaga en el acto. Entre intentos se duerme `intento × 50 ms` y tras 8
intentos se abandona.

Limitación: no hay cancelación. Quien no quiera bloquear debe usar
`wait=False` en la fachada y consultar por su cuenta.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, TypeVar

from core.errors import ApiError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RETRIES = 7
BACKOFF_SECONDS = 0.05
UNKNOWN_ERROR_MESSAGE = "Unknown error from the API."


def status_name(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    status = data.get("status")
    if isinstance(status, dict) and isinstance(status.get("name"), str):
        return status["name"]
    return None


def failure_reason(data: dict[str, Any]) -> str | None:
    status = data.get("status")
    if isinstance(status, dict):
        reason = status.get("failure_reason")
        if isinstance(reason, str) and reason:
            return reason
    return None


def fetch_json(send: Callable[[str], str], url: str) -> Callable[[], Any]:
    """Adapta un `send(url)` a una sonda de estado que devuelve JSON (o `None`)."""

    def fetch() -> Any:
        body = send(url)
        try:
            return json.loads(body)
        except ValueError:
            return None

    return fetch


def wait_for_completion(
    fetch_status: Callable[[], Any],
    *,
    success_status: str,
    failure_status: str,
    parse: Callable[[dict[str, Any]], T],
    failure_message: str,
    sleep: Callable[[float], None] | None = None,
) -> T:
    sleep = sleep or time.sleep
    retry = 0
    while True:
        try:
            data = fetch_status()
            name = status_name(data)
            if name == success_status:
                return parse(data)
            if name == failure_status:
                raise ApiError(failure_reason(data) or failure_message)
            logger.debug("Attempt %d: status %r, still pending", retry + 1, name)
        except ApiError as exc:
            if exc.status != 404 or retry > MAX_RETRIES:
                raise
            logger.debug("Attempt %d: not visible yet (HTTP 404)", retry + 1)

        retry += 1
        sleep(retry * BACKOFF_SECONDS)

        if retry > MAX_RETRIES:
            raise ApiError(UNKNOWN_ERROR_MESSAGE)
