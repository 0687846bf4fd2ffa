"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan colaboradores externos.
- Permite invertir dependencias: el Core depende de abstracciones.
"""
