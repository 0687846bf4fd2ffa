"""Firma de peticiones de profiling.

Responsabilidad:
- Crear el job dentro de un build activo (si lo hay).
- Resolver el token de colaboración y el slot de referencia.
- Llamar a `/api/v1/signing` y devolver un `Request`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from adapters.http_client import ApiTransport
from core.config import ClientSettings
from core.domain.models import NO_REFERENCE_ID, CollabToken, ProfileSlot, Request
from core.domain.session import ProfileConfiguration
from core.errors import ApiError, ReferenceNotFoundError
from core.services.identity import CollabTokenCache

logger = logging.getLogger(__name__)


def decode_json_object(body: str) -> dict[str, Any]:
    """Parsea un cuerpo que debe ser un objeto JSON."""

    try:
        data = json.loads(body)
    except ValueError as exc:
        raise ApiError("The API returned an invalid JSON response.") from exc
    if not isinstance(data, dict):
        raise ApiError("The API returned an unexpected JSON response.")
    return data


def _matches_reference(reference: int | str, slot: ProfileSlot) -> bool:
    # "1" y 1 designan el mismo slot.
    ref = str(reference)
    return ref == slot.id or (slot.number is not None and ref == str(slot.number))


def resolve_profile_slot(config: ProfileConfiguration, slots: Sequence[ProfileSlot]) -> str:
    """Elige el slot de referencia para un profile.

    Sin referencia pedida devuelve `NO_REFERENCE_ID`. Un slot con el id
    centinela nunca se elige como "siguiente vacío".
    """

    if not config.wants_reference:
        return NO_REFERENCE_ID

    chosen = NO_REFERENCE_ID
    for slot in slots:
        if config.new_reference and slot.empty and slot.id != NO_REFERENCE_ID:
            chosen = slot.id
            break
        if config.reference is not None and config.reference != "" and _matches_reference(config.reference, slot):
            chosen = slot.id
            break

    if chosen == NO_REFERENCE_ID:
        raise ReferenceNotFoundError(config.reference)
    return chosen


class RequestSigner:
    def __init__(
        self,
        transport: ApiTransport,
        identity: CollabTokenCache,
        settings: ClientSettings,
    ) -> None:
        self._transport = transport
        self._identity = identity
        self._settings = settings

    def create_request(self, config: ProfileConfiguration) -> Request:
        details = self.request_details(config)
        body = self._transport.send(f"{self._settings.endpoint}/api/v1/signing", "POST", details)
        data = decode_json_object(body)
        request = Request.from_signing_response(
            data,
            collab_token=details["collabToken"],
            profile_slot=details["profileSlot"],
            user_metadata=config.metadata,
        )
        logger.debug("Signed request %s (slot %s)", request.uuid, request.profile_slot)
        return request

    def request_details(self, config: ProfileConfiguration) -> dict[str, Any]:
        details: dict[str, Any] = {}
        record: CollabToken | None = None

        build = config.build
        if build is not None:
            if build.closed:
                raise ValueError(f"Build {build.uuid} is already closed.")
            details["collabToken"] = build.app

            url = f"{self._settings.endpoint}/api/v1/build/{build.uuid}/jobs"
            data = decode_json_object(self._transport.send(url, "POST", {"name": config.title}))
            build.inc_job()
            details["requestId"] = data.get("uuid")
        else:
            record = self._identity.resolve(self._settings.app)
            details["collabToken"] = record.token

        slots: list[ProfileSlot] = []
        if config.wants_reference:
            if record is None:
                record = self._identity.find_by_token(details["collabToken"])
            if record is not None:
                slots = record.profile_slots

        details["profileSlot"] = resolve_profile_slot(config, slots)
        return details
