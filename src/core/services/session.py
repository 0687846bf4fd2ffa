"""Fachada pública del cliente Blackfire.

Secuencia las piezas del Core:

    BlackfireClient -> RequestSigner -> CollabTokenCache -> ApiTransport
    BlackfireClient -> wait_for_completion -> ApiTransport

Todo es síncrono y bloqueante. La caché de tokens y el contador de jobs de
un `Build` son estado mutable sin protección: una instancia compartida entre
hilos debe serializarse desde fuera.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from adapters.http_client import ApiTransport, build_http_client
from core.config import ClientSettings
from core.domain.models import CollabToken, CollabTokenList, Profile, Report, Request
from core.domain.session import Build, ProfileConfiguration
from core.errors import ApiError, NotAvailableError, TransportError
from core.interfaces.probe import ProbeFactory, ProfilingProbe
from core.services.identity import CollabTokenCache
from core.services.poller import fetch_json, wait_for_completion
from core.services.signer import RequestSigner, decode_json_object

logger = logging.getLogger(__name__)


class BlackfireClient:
    """Cliente de la API de profiling.

    `probe_factory` crea la sonda externa a partir del token firmado; sin
    ella solo están disponibles las operaciones que no instrumentan el
    proceso (`create_profile`, builds, polling).
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        probe_factory: ProbeFactory | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._settings = settings or ClientSettings()
        self._probe_factory = probe_factory
        self._sleep = sleep
        self._transport = ApiTransport(build_http_client(self._settings, transport=transport))
        self._identity = CollabTokenCache(self._fetch_collab_tokens)
        self._signer = RequestSigner(self._transport, self._identity, self._settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "BlackfireClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _url(self, path: str) -> str:
        return f"{self._settings.endpoint}{path}"

    def _fetch_collab_tokens(self) -> CollabTokenList:
        body = self._transport.send(self._url("/api/v1/collab-tokens"))
        return CollabTokenList.from_api(decode_json_object(body))

    # Profiles

    def start_profiling_session(
        self,
        config: ProfileConfiguration | None = None,
        enable: bool = True,
    ) -> tuple[Request, ProfilingProbe]:
        if self._probe_factory is None:
            raise NotAvailableError("Blackfire probe is not available.")

        request = self._signer.create_request(config or ProfileConfiguration())
        probe = self._probe_factory(request.token)
        if enable:
            probe.enable()
        return request, probe

    def end_profiling_session(
        self,
        probe: ProfilingProbe,
        request: Request,
        wait: bool = True,
    ) -> Profile | None:
        """Cierra la sonda y, si `wait`, espera al profile.

        La metadata del llamador se intenta guardar siempre, haya espera o no.
        """

        probe.close()

        profile = None
        try:
            if wait:
                profile = self.get_profile(request)
        finally:
            self._store_metadata(request)
        return profile

    def create_profile(self, config: ProfileConfiguration | str | None = None) -> Request:
        """Firma una petición sin instrumentar el proceso.

        Útil cuando otro componente (p.ej. un navegador o `curl`) lanza el
        profile con el header `X-Blackfire-Query` = `Request.token`.
        """

        if isinstance(config, str):
            config = ProfileConfiguration(title=config)
        elif config is None:
            config = ProfileConfiguration()
        elif not isinstance(config, ProfileConfiguration):
            raise TypeError("create_profile() takes a title string or a ProfileConfiguration instance.")

        return self._signer.create_request(config)

    def get_profile(self, request: Request) -> Profile:
        return wait_for_completion(
            fetch_json(self._transport.send, request.profile_url),
            success_status="finished",
            failure_status="failure",
            parse=Profile.from_api,
            failure_message="Profile failed.",
            sleep=self._sleep,
        )

    def _store_metadata(self, request: Request) -> None:
        if not request.user_metadata or not request.store_url:
            return
        try:
            self._transport.send(request.store_url, "POST", request.user_metadata)
        except (ApiError, TransportError) as exc:
            logger.warning("Could not store metadata for request %s: %s", request.uuid, exc)

    # Builds

    def start_build(
        self,
        app: str | None,
        title: str | None = None,
        trigger_name: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> Build:
        token = self._identity.resolve_token(app)
        payload: dict[str, Any] = {
            "title": title,
            "metadata": dict(metadata or {}),
            "trigger_name": trigger_name,
        }
        body = self._transport.send(self._url(f"/api/v1/build/env/{token}"), "POST", payload)
        data = decode_json_object(body)
        if not isinstance(data.get("uuid"), str):
            raise ApiError("The API did not return a build uuid.")
        logger.debug("Started build %s for app %s", data["uuid"], token)
        return Build(app=token, uuid=data["uuid"])

    def end_build(self, build: Build, wait: bool = True) -> Report | None:
        if build.closed:
            raise ValueError(f"Build {build.uuid} is already closed.")

        self._transport.send(self._url(f"/api/v1/build/{build.uuid}"), "PUT", {"nb_jobs": build.job_count})
        build.closed = True

        if not wait:
            return None
        return self.get_report(build)

    def get_report(self, build: Build) -> Report:
        return wait_for_completion(
            fetch_json(self._transport.send, self._url(f"/api/v1/build/{build.uuid}")),
            success_status="finished",
            failure_status="errored",
            parse=Report.from_api,
            failure_message="Build errored.",
            sleep=self._sleep,
        )

    # Apps

    def list_apps(self) -> list[CollabToken]:
        return list(self._identity.tokens())
