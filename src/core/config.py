"""Configuración del cliente.

Por qué aquí:
- Centraliza credenciales y endpoint (pydantic-settings) sin contaminar la CLI.
- El Core recibe un objeto inmutable y nunca relee el entorno por su cuenta.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import set_key
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Carpeta `blackfire-sdk` dentro del directorio de configuración del SO."""

    home = Path.home()
    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA") or home)
    elif sys.platform == "darwin":
        base = home / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME") or home / ".config")
    return base / "blackfire-sdk"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def write_user_env_vars(values: dict[str, str], env_path: Path | None = None) -> Path:
    """Actualiza claves del .env de usuario conservando el resto del fichero.

    Usa python-dotenv (el mismo parser que lee `ClientSettings`), así que lo
    escrito aquí se relee sin sorpresas de comillas o escapes.
    """

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)
    if not env_path.exists():
        env_path.write_text("# Blackfire SDK user config (.env)\n", encoding="utf-8")

    for key, value in values.items():
        if value is not None:
            set_key(str(env_path), key, value, quote_mode="auto")
    return env_path


class ClientSettings(BaseSettings):
    """Configuración del cliente Blackfire.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - `frozen=True`: el cliente solo mantiene una referencia de lectura.
    """

    model_config = SettingsConfigDict(
        env_prefix="BLACKFIRE_",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    endpoint: str = Field(
        default="https://blackfire.io",
        min_length=8,
        description="Base URL de la API de Blackfire (solo https).",
    )
    client_id: str | None = Field(
        default=None,
        description="Client ID de las credenciales de la API.",
    )
    client_token: str | None = Field(
        default=None,
        description="Client token de las credenciales de la API.",
    )
    app: str | None = Field(
        default=None,
        description="Nombre (o parte del nombre) de la app por defecto; vacío = primera app.",
    )

    http_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout de conexión/respuesta por request (segundos).",
    )
    max_redirects: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Redirecciones permitidas (balanceadores de carga).",
    )
    ca_bundle_path: Path | None = Field(
        default=None,
        description="Bundle de CAs de confianza; por defecto el de certifi.",
    )
    user_agent: str = Field(
        default="Blackfire Python SDK/0.1",
        min_length=1,
        description="Identificador de cliente (header X-Blackfire-User-Agent).",
    )

    @field_validator("endpoint")
    @classmethod
    def require_https(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.lower().startswith("https://"):
            raise ValueError("endpoint must use https://")
        return value

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_token)
