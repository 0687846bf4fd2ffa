"""Servicios del Core: identidad, firma, polling y la fachada `BlackfireClient`."""

from core.services.session import BlackfireClient

__all__ = ["BlackfireClient"]
