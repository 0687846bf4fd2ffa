"""Resolución de la identidad de una app (collab tokens).

La lista de tokens se descarga una sola vez, la primera vez que hace falta,
y se reutiliza durante toda la vida de la instancia. No hay API de
invalidación: para refrescarla hay que crear un cliente nuevo.
"""

from __future__ import annotations

import logging
from typing import Callable

from core.domain.models import CollabToken, CollabTokenList
from core.errors import AppNotFoundError

logger = logging.getLogger(__name__)


class CollabTokenCache:
    def __init__(self, fetch: Callable[[], CollabTokenList]) -> None:
        self._fetch = fetch
        self._tokens: list[CollabToken] | None = None

    @property
    def is_loaded(self) -> bool:
        return self._tokens is not None

    def tokens(self) -> list[CollabToken]:
        if self._tokens is None:
            self._tokens = list(self._fetch().tokens)
            logger.debug("Loaded %d collab tokens", len(self._tokens))
        return self._tokens

    def resolve(self, app: str | None) -> CollabToken:
        """Devuelve el registro de `app`.

        - `app` vacío: primer registro (app por defecto).
        - Si no: coincidencia por substring sin distinguir mayúsculas; gana la
          última coincidencia en el orden de la lista ("api" con "api-staging"
          y "api-prod" resuelve "api-prod").
        """

        tokens = self.tokens()
        if not app:
            if not tokens:
                raise AppNotFoundError("")
            return tokens[0]

        needle = app.lower()
        found: CollabToken | None = None
        for record in tokens:
            if record.name is not None and needle in record.name.lower():
                found = record

        if found is None:
            raise AppNotFoundError(app)
        return found

    def resolve_token(self, app: str | None) -> str:
        return self.resolve(app).token

    def find_by_token(self, token: str) -> CollabToken | None:
        for record in self.tokens():
            if record.token == token:
                return record
        return None
