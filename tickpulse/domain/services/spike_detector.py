"""
TickPulse – Spike Detector
===========================
Compara cada precio nuevo contra el ÚLTIMO precio reportado del mismo
instrumento y clasifica spike / no spike.

ORDEN UPDATE-BEFORE-CLASSIFY:
  La tabla se actualiza con el precio nuevo ANTES de clasificar, incluso en la
  llamada que detecta el spike. Así el siguiente tick se compara contra el
  precio más reciente y no contra la base previa al spike:
      100 → 105 → 120   evalúa 105→120 (14.29%), nunca 100→120.

FUNCIÓN PURA (respecto al exterior):
  evaluate() solo decide. El envío al spike log lo hace el pipeline con el
  resultado.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional

from tickpulse.domain.value_objects.spike_event import SpikeEvent
from tickpulse.shared.clock import epoch_ms


@dataclass
class DetectorState:
    """Último precio reportado por instrumento. Solo lo muta el detector."""

    last_prices: Dict[str, float] = field(default_factory=dict)


class SpikeDetector:
    """Detector stateful por instrumento."""

    def __init__(
        self,
        threshold: float = 0.10,
        *,
        seed_prices: Optional[Mapping[str, float]] = None,
        clock: Callable[[], float] = epoch_ms,
    ) -> None:
        self._threshold_pct = threshold * 100
        self._state = DetectorState(last_prices=dict(seed_prices or {}))
        self._clock = clock
        self._evaluated = 0
        self._detected = 0

    @property
    def threshold_pct(self) -> float:
        return self._threshold_pct

    @property
    def state(self) -> DetectorState:
        return self._state

    def last_price(self, instrument: str) -> Optional[float]:
        return self._state.last_prices.get(instrument)

    def evaluate(self, instrument: str, new_price: float) -> Optional[SpikeEvent]:
        """Retorna SpikeEvent si |cambio| >= umbral, si no None."""
        self._evaluated += 1
        old_price = self._state.last_prices.get(instrument)
        self._state.last_prices[instrument] = new_price

        # Primera observación: solo inicializa
        if old_price is None:
            return None

        # (new - old) * 100 / old evita el error de redondeo de (Δ/old)*100
        percent_change = (new_price - old_price) * 100 / old_price
        if abs(percent_change) < self._threshold_pct:
            return None

        self._detected += 1
        return SpikeEvent(
            instrument=instrument,
            old_price=old_price,
            new_price=new_price,
            percent_change=percent_change,
            detected_at=self._clock(),
        )

    @property
    def stats(self) -> dict:
        return {
            "threshold_pct": self._threshold_pct,
            "evaluated": self._evaluated,
            "detected": self._detected,
        }
