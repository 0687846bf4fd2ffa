"""Transporte HTTP hacia la API de Blackfire (wrapper de httpx).

Por qué un wrapper:
- Estandariza auth, timeouts, headers, redirecciones y TLS en un único sitio.
- Traduce fallos de red y códigos HTTP a la taxonomía de `core.errors`.
- Facilita testeo: se inyecta un `httpx.MockTransport`.
"""

from __future__ import annotations

import contextlib
import json
import logging
import ssl
from typing import Any, Iterator

import certifi
import httpx

from core.config import ClientSettings
from core.errors import ApiError, TransportError

logger = logging.getLogger(__name__)


def build_ssl_context(settings: ClientSettings) -> ssl.SSLContext:
    """Contexto TLS con verificación obligatoria contra el bundle de CAs."""

    cafile = str(settings.ca_bundle_path) if settings.ca_bundle_path else certifi.where()
    return ssl.create_default_context(cafile=cafile)


def _require_https(request: httpx.Request) -> None:
    # Se ejecuta en cada salto de redirección.
    if request.url.scheme != "https":
        raise TransportError(f"Refusing to call {str(request.url)!r} over plaintext HTTP.")


def build_http_client(
    settings: ClientSettings,
    *,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Crea un `httpx.Client` autenticado con defaults seguros.

    Por qué un builder:
    - Centraliza credenciales/timeouts para que todas las llamadas se comporten igual.
    - `transport` permite sustituir la red en tests.
    """

    headers = {
        "X-Blackfire-User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    return httpx.Client(
        auth=httpx.BasicAuth(settings.client_id or "", settings.client_token or ""),
        headers=headers,
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        max_redirects=settings.max_redirects,
        verify=build_ssl_context(settings),
        transport=transport,
        event_hooks={"request": [_require_https]},
    )


@contextlib.contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except httpx.RemoteProtocolError as exc:
        # httpx usa la misma clase para "servidor desconectado" (fallo de red)
        # y para una línea de estado ilegible.
        if "disconnected" in str(exc).lower():
            raise TransportError(f"An error occurred: {exc}.") from exc
        raise ApiError(f"An unknown API error occurred ({exc}).", status=0) from exc
    except httpx.RequestError as exc:
        raise TransportError(f"An error occurred: {exc}.") from exc


def _server_message(body: str) -> str:
    try:
        data = json.loads(body) if body else None
    except ValueError:
        return ""
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return ""


class ApiTransport:
    """Envía peticiones autenticadas y devuelve el cuerpo sin parsear.

    El parseo JSON queda en manos del llamador, que así distingue un cuerpo
    vacío/inválido de un JSON válido con forma inesperada.
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def send(
        self,
        url: str,
        method: str = "GET",
        body: Any = None,
        extra_headers: dict[str, str] | None = None,
    ) -> str:
        if not url.lower().startswith("https://"):
            raise TransportError(f"Refusing to call {url!r} over plaintext HTTP.")

        headers: dict[str, str] = dict(extra_headers or {})
        content: bytes | None = None
        if body is not None:
            content = json.dumps(body).encode("utf-8")
            headers.setdefault("Content-Type", "application/json")

        logger.debug("%s %s", method, url)
        with _translate_errors():
            response = self._client.request(method, url, content=content, headers=headers)
            text = response.text

        status = response.status_code
        logger.debug("%s %s -> HTTP %d", method, url, status)

        if status >= 401:
            raise ApiError(_server_message(text), status=status)
        if status >= 300:
            raise ApiError(
                f"The API call failed for an unknown reason (HTTP {status}: {_server_message(text)}).",
                status=status,
            )
        return text

    def close(self) -> None:
        self._client.close()
