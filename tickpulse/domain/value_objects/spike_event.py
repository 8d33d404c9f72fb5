"""
TickPulse – Domain Value Object: SpikeEvent
============================================
Movimiento anómalo detectado. Se deriva en el detector y su propiedad pasa
de inmediato al broadcaster y al spike log; el detector NO lo almacena.

INVARIANTE:
  percent_change = (new_price - old_price) / old_price * 100
  |percent_change| >= umbral * 100
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from tickpulse.domain.exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class SpikeEvent:
    """Spike inmutable para un instrumento."""

    instrument: str
    old_price: float
    new_price: float
    percent_change: float   # ya en porcentaje (15.0 = +15%)
    detected_at: float      # epoch ms

    @property
    def is_up(self) -> bool:
        return self.percent_change > 0

    def to_dict(self) -> dict:
        """Serialización para WebSocket / API."""
        return {
            "instrument": self.instrument,
            "oldPrice": self.old_price,
            "newPrice": self.new_price,
            "percentChange": self.percent_change,
            "detectedAt": self.detected_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SpikeEvent":
        try:
            return cls(
                instrument=str(data["instrument"]),
                old_price=float(data["oldPrice"]),
                new_price=float(data["newPrice"]),
                percent_change=float(data["percentChange"]),
                detected_at=float(data["detectedAt"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"SpikeEvent malformado: {exc}", field="spikes", value=data) from exc
