"""
TickPulse – Domain Exceptions
==============================
Excepciones específicas del dominio.

JERARQUÍA:
    DomainError (base)
    └── ValidationError
        ├── UnknownInstrumentError
        └── InvalidPriceError

Los errores de I/O del spike log NO son de dominio: se propagan como
OSError desde infraestructura y los maneja el listener.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
        }


class ValidationError(DomainError):
    """Error de validación general de datos de dominio."""

    def __init__(self, message: str, field: str | None = None, value: Any = None,
                 code: str = "VALIDATION_ERROR"):
        super().__init__(message, code=code)
        self.field = field
        self.value = value


class UnknownInstrumentError(ValidationError):
    """Instrumento fuera del universo cerrado de la simulación."""

    def __init__(self, instrument: Any):
        super().__init__(
            f"Instrumento fuera del universo: {instrument!r}",
            field="instrument",
            value=instrument,
            code="UNKNOWN_INSTRUMENT",
        )
        self.instrument = instrument


class InvalidPriceError(ValidationError):
    """Precio no numérico o no positivo."""

    def __init__(self, price: Any, instrument: str | None = None):
        super().__init__(
            f"Precio inválido para {instrument or '?'}: {price!r}",
            field="price",
            value=price,
            code="INVALID_PRICE",
        )
        self.instrument = instrument
