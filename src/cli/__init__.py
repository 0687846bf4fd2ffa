"""CLI `blackfire` (Typer + Rich)."""
