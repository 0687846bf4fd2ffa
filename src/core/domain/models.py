"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación estricta de las respuestas JSON de la API sin acoplar el Core a
  httpx.
- Los resultados terminales (Profile/Report) son inmutables (`frozen`).

Nota:
- Estos modelos describen *qué* devuelve la API, no *cómo* se obtiene.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError
from pydantic.config import ConfigDict

from core.errors import ApiError


NO_REFERENCE_ID = "00000000-0000-0000-0000-000000000000"
UNEXPECTED_RESPONSE_MESSAGE = "The API returned an unexpected JSON response."


def _link(data: dict[str, Any], name: str) -> str | None:
    links = data.get("_links")
    if not isinstance(links, dict):
        return None
    link = links.get(name)
    if isinstance(link, dict) and isinstance(link.get("href"), str):
        return link["href"]
    return None


def _report_state(data: dict[str, Any]) -> str | None:
    report = data.get("report")
    if isinstance(report, dict) and isinstance(report.get("state"), str):
        return report["state"]
    return None


class ProfileSlot(BaseModel):
    """Hueco de almacenamiento en el servidor para un profile de referencia."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(..., description="UUID del slot.")
    number: int | None = Field(default=None, description="Número ordinal del slot.")
    empty: bool = Field(default=False, description="Indica si el slot no tiene profile.")


class CollabToken(BaseModel):
    """Identidad de una app frente a la API (una entrada de /collab-tokens)."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    name: str | None = Field(default=None, description="Nombre legible de la app/entorno.")
    token: str = Field(..., alias="collabToken", description="Token de colaboración.")
    profile_slots: list[ProfileSlot] = Field(
        default_factory=list,
        alias="profileSlots",
        description="Slots de referencia anunciados para esta app.",
    )


class CollabTokenList(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    tokens: list[CollabToken] = Field(default_factory=list, alias="collabTokens")

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "CollabTokenList":
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ApiError(UNEXPECTED_RESPONSE_MESSAGE) from exc


class Request(BaseModel):
    """Petición de profiling firmada por la API.

    `token` es el query string firmado que recibe la sonda; `profile_url` y
    `store_url` son los enlaces devueltos por `/api/v1/signing`.
    """

    model_config = ConfigDict(frozen=True)

    token: str = Field(..., description="Query string firmado (token de correlación).")
    uuid: str | None = Field(default=None, description="UUID de la petición/profile.")
    collab_token: str = Field(..., description="Token de colaboración usado al firmar.")
    profile_slot: str = Field(default=NO_REFERENCE_ID, description="Slot de referencia elegido.")
    profile_url: str = Field(..., description="URL a consultar para el estado del profile.")
    store_url: str | None = Field(default=None, description="URL para almacenar metadata.")
    user_metadata: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_signing_response(
        cls,
        data: dict[str, Any],
        *,
        collab_token: str,
        profile_slot: str,
        user_metadata: dict[str, str],
    ) -> "Request":
        token = data.get("query_string")
        profile_url = _link(data, "profile")
        # Sin token la sonda no puede correlacionar y sin enlace no hay polling.
        if not isinstance(token, str) or not token or not profile_url:
            raise ApiError("The API returned an incomplete signing response.")
        return cls(
            token=token,
            uuid=data.get("uuid"),
            collab_token=collab_token,
            profile_slot=profile_slot,
            profile_url=profile_url,
            store_url=_link(data, "store"),
            user_metadata=dict(user_metadata),
        )


class Cost(BaseModel):
    """Envelope de coste principal de un profile."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    wall_time: int = Field(default=0, alias="wt", description="Wall time (µs).")
    cpu: int = Field(default=0, description="Tiempo de CPU (µs).")
    memory: int = Field(default=0, alias="mu", description="Memoria (bytes).")
    peak_memory: int = Field(default=0, alias="pmu", description="Pico de memoria (bytes).")
    io: int = Field(default=0, description="Tiempo de I/O (µs).")
    network_in: int = Field(default=0, alias="nw_in", description="Bytes de red recibidos.")
    network_out: int = Field(default=0, alias="nw_out", description="Bytes de red enviados.")


class ProfileTest(BaseModel):
    """Resultado de una aserción evaluada por el servidor."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    state: str
    failures: list[str] = Field(default_factory=list)

    @property
    def is_successful(self) -> bool:
        return self.state == "successful"


class Profile(BaseModel):
    """Profile terminado (respuesta `finished` del polling)."""

    model_config = ConfigDict(frozen=True)

    uuid: str | None = None
    url: str | None = Field(default=None, description="URL del grafo de llamadas.")
    report_state: str | None = None
    tests: list[ProfileTest] = Field(default_factory=list)
    main_cost: Cost = Field(default_factory=Cost)
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Profile":
        report = data.get("report") if isinstance(data.get("report"), dict) else {}
        raw_tests = report.get("tests") if isinstance(report.get("tests"), list) else []
        envelope = data.get("envelope") if isinstance(data.get("envelope"), dict) else {}
        try:
            return cls(
                uuid=data.get("uuid"),
                url=_link(data, "graph_url"),
                report_state=_report_state(data),
                tests=[ProfileTest.model_validate(t) for t in raw_tests if isinstance(t, dict)],
                main_cost=Cost.model_validate(envelope),
                raw=data,
            )
        except ValidationError as exc:
            raise ApiError(UNEXPECTED_RESPONSE_MESSAGE) from exc

    @property
    def is_errored(self) -> bool:
        return self.report_state == "errored"

    @property
    def is_successful(self) -> bool:
        # Sin aserciones no hay reporte y el profile se considera correcto.
        return self.report_state is None or self.report_state == "successful"


class Report(BaseModel):
    """Reporte agregado de un build cerrado."""

    model_config = ConfigDict(frozen=True)

    uuid: str | None = None
    url: str | None = Field(default=None, description="URL del reporte HTML.")
    report_state: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Report":
        try:
            return cls(
                uuid=data.get("uuid"),
                url=_link(data, "report_html"),
                report_state=_report_state(data),
                raw=data,
            )
        except ValidationError as exc:
            raise ApiError(UNEXPECTED_RESPONSE_MESSAGE) from exc

    @property
    def is_errored(self) -> bool:
        return self.report_state == "errored"

    @property
    def is_successful(self) -> bool:
        return self.report_state == "successful"
