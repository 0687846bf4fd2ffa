"""Contrato de la sonda de profiling.

Por qué Protocol:
- La sonda nativa (instrumentación del proceso) es un colaborador externo.
- El Core solo necesita encenderla y apagarla; nunca habla con la red.
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class ProfilingProbe(Protocol):
    """Contrato mínimo de una sonda."""

    def enable(self) -> None:
        """Empieza a instrumentar usando el token firmado con el que se creó."""

        ...

    def close(self) -> None:
        """Detiene la instrumentación y envía los datos recogidos."""

        ...


# Recibe el token de correlación firmado (`Request.token`).
ProbeFactory = Callable[[str], ProfilingProbe]
