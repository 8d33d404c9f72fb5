"""
TickPulse – Tick Generator (productor)
=======================================
Genera ticks sintéticos para un universo FIJO de instrumentos con un
random walk y movimientos grandes forzados muy poco frecuentes.

MODELO:
  1. Instrumento elegido uniformemente al azar.
  2. Con probabilidad p_spike: factor ∈ [umbral, umbral + extra], signo al azar.
     Si no: factor ∈ [-base_volatility/2, +base_volatility/2].
  3. nuevo = max(min_price, viejo * (1 + factor)) redondeado a `precision`.

ESTADO:
  GeneratorState modela el precio "real" del mercado. Es distinto (y anterior)
  a la tabla del SpikeDetector, que modela "lo último reportado".
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Mapping, Optional

from tickpulse.domain.exceptions import InvalidPriceError, UnknownInstrumentError, ValidationError
from tickpulse.domain.value_objects.tick import Tick
from tickpulse.shared.clock import epoch_ms
from tickpulse.shared.logging import get_logger

logger = get_logger("tick_generator")


@dataclass
class GeneratorState:
    """Último precio generado por instrumento."""

    prices: Dict[str, float] = field(default_factory=dict)
    generated: int = 0
    forced_spikes: int = 0


class TickGenerator:
    """Productor de ticks. Stateful, no idempotente."""

    def __init__(
        self,
        instruments: Iterable[str],
        initial_prices: Mapping[str, float],
        *,
        spike_threshold: float = 0.10,
        spike_probability: float = 0.0002,
        spike_extra_range: float = 0.05,
        base_volatility: float = 0.01,
        precision: int = 2,
        min_price: float = 0.01,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = epoch_ms,
    ) -> None:
        self._instruments = tuple(instruments)
        if not self._instruments:
            raise ValidationError("El universo de instrumentos está vacío", field="instruments")
        for instrument in initial_prices:
            if instrument not in self._instruments:
                raise UnknownInstrumentError(instrument)

        prices: Dict[str, float] = {}
        for instrument in self._instruments:
            if instrument not in initial_prices:
                raise ValidationError(
                    f"Falta precio inicial para {instrument}", field="initial_prices", value=instrument
                )
            price = initial_prices[instrument]
            if not isinstance(price, (int, float)) or isinstance(price, bool) or price <= 0:
                raise InvalidPriceError(price, instrument)
            prices[instrument] = round(float(price), precision)

        self._state = GeneratorState(prices=prices)
        self._spike_threshold = spike_threshold
        self._spike_probability = spike_probability
        self._spike_extra_range = spike_extra_range
        self._base_volatility = base_volatility
        self._precision = precision
        self._min_price = min_price
        self._rng = rng or random.Random()
        self._clock = clock

    @property
    def instruments(self) -> tuple[str, ...]:
        return self._instruments

    @property
    def state(self) -> GeneratorState:
        return self._state

    def next(self) -> Tick:
        """Producir el siguiente tick y avanzar el estado del instrumento."""
        instrument = self._rng.choice(self._instruments)
        old_price = self._state.prices[instrument]

        factor = self._draw_factor()
        new_price = round(max(self._min_price, old_price * (1 + factor)), self._precision)

        self._state.prices[instrument] = new_price
        self._state.generated += 1
        return Tick(instrument=instrument, price=new_price, sent_at=self._clock())

    def _draw_factor(self) -> float:
        if self._rng.random() < self._spike_probability:
            self._state.forced_spikes += 1
            magnitude = self._rng.uniform(
                self._spike_threshold, self._spike_threshold + self._spike_extra_range
            )
            return magnitude if self._rng.random() < 0.5 else -magnitude
        half = self._base_volatility / 2
        return self._rng.uniform(-half, half)

    def price_of(self, instrument: str) -> float:
        """Precio actual de un instrumento del universo."""
        if instrument not in self._state.prices:
            raise UnknownInstrumentError(instrument)
        return self._state.prices[instrument]

    def current_prices(self) -> Dict[str, float]:
        """Copia del estado actual (para initialData)."""
        return dict(self._state.prices)
