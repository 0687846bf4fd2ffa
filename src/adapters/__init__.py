"""Adaptadores de I/O hacia la API (HTTP)."""
