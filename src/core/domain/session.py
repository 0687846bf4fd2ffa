"""Estado mutable de una sesión: configuración de profile y builds.

Por qué dataclasses (y no Pydantic):
- Son objetos del llamador que el cliente muta (contador de jobs), no datos
  recibidos de la API que haya que validar.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Build:
    """Build abierto en el servidor.

    `job_count` solo crece y se envía una única vez, al cerrar el build.
    """

    app: str
    uuid: str
    job_count: int = 0
    closed: bool = False

    def inc_job(self) -> int:
        self.job_count += 1
        return self.job_count


@dataclass
class ProfileConfiguration:
    """Parámetros de un profile.

    - `reference`: número o id de un slot existente.
    - `new_reference`: usar el siguiente slot vacío.
    """

    title: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    build: Build | None = None
    reference: int | str | None = None
    new_reference: bool = False

    def with_title(self, title: str) -> "ProfileConfiguration":
        self.title = title
        return self

    def set_metadata(self, key: str, value: str) -> "ProfileConfiguration":
        self.metadata[key] = str(value)
        return self

    def has_metadata(self, key: str) -> bool:
        return key in self.metadata

    @property
    def wants_reference(self) -> bool:
        return self.new_reference or (self.reference is not None and self.reference != "")
