"""
TickPulse – Domain Value Object: Tick
======================================
Una observación de precio para un instrumento.

- frozen=True → inmutable: el mismo Tick se difunde a N observadores.
- slots=True  → menor footprint en el hot-path (1000 ticks/seg).

FORMATO WIRE:
  {"NSE:ACC": 1800.55, "sentAt": 1718000000123.4}
  La clave del instrumento ES el nombre del campo de precio.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Mapping

from tickpulse.domain.exceptions import InvalidPriceError, ValidationError

SENT_AT_KEY = "sentAt"


@dataclass(frozen=True, slots=True)
class Tick:
    """Tick de precio atómico producido por el generador."""

    instrument: str
    price: float
    sent_at: float    # epoch ms (reloj de pared) al momento de generarse

    def to_wire(self) -> dict:
        """Serialización para WebSocket."""
        return {self.instrument: self.price, SENT_AT_KEY: self.sent_at}

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> "Tick":
        """Parsear un tick recibido; rechaza payloads malformados."""
        if not isinstance(data, Mapping):
            raise ValidationError("El tick debe ser un objeto JSON", field="tick", value=data)

        sent_at = data.get(SENT_AT_KEY)
        if not _is_number(sent_at):
            raise ValidationError("sentAt ausente o no numérico", field=SENT_AT_KEY, value=sent_at)

        keys = [k for k in data if k != SENT_AT_KEY]
        if len(keys) != 1:
            raise ValidationError(
                "El tick debe contener exactamente un instrumento", field="tick", value=dict(data)
            )
        instrument = keys[0]
        price = data[instrument]
        if not _is_number(price) or price <= 0:
            raise InvalidPriceError(price, instrument)

        return cls(instrument=instrument, price=float(price), sent_at=float(sent_at))


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )
