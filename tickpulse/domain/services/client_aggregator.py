"""
TickPulse – Client Aggregator (estado por observador)
======================================================
Consume el stream difundido y mantiene estadísticas rodantes independientes
del pipeline. Cada observador tiene SU instancia: nunca se comparte.

VENTANAS (deque con maxlen → desalojo FIFO, O(1)):
  - LatencyWindow:      1000 muestras (recibido - sentAt)
  - PriceHistoryWindow: 500 puntos por instrumento

MÉTRICAS:
  - Tick rate   = ticks / segundos transcurridos, solo con >= 500 ms de
                  ejecución desde el último start; antes → None ("N/A").
  - Latencia    = media aritmética de la ventana (0 si vacía).
  - Volatilidad = desviación estándar POBLACIONAL de la ventana del
                  instrumento (0 con menos de 2 puntos).

STOP:
  Al recibir status{running:false} se congelan tick rate y latencia, y se
  muestran hasta el siguiente start. El cálculo es propio de este observador
  porque el timing de entrega puede diferir del servidor.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Iterable, List, Mapping, Optional

import numpy as np

from tickpulse.domain.value_objects.spike_event import SpikeEvent
from tickpulse.domain.value_objects.tick import Tick
from tickpulse.shared.clock import epoch_ms

ALL_INSTRUMENTS = "ALL"


@dataclass(frozen=True, slots=True)
class PricePoint:
    price: float
    timestamp: float    # epoch ms de recepción


@dataclass(frozen=True, slots=True)
class DisplayedMetrics:
    """Valores a mostrar: en vivo si corre, congelados si está detenido."""

    running: bool
    tick_rate: Optional[float]
    average_latency_ms: Optional[float]
    tick_count: int

    def to_dict(self) -> dict:
        return {
            "running": self.running,
            "tick_rate": None if self.tick_rate is None else round(self.tick_rate, 1),
            "average_latency_ms": (
                None if self.average_latency_ms is None else round(self.average_latency_ms, 2)
            ),
            "tick_count": self.tick_count,
        }


class ClientAggregator:
    """Agregador de métricas en tiempo real para UN observador."""

    def __init__(
        self,
        *,
        latency_window_size: int = 1000,
        history_window_size: int = 500,
        min_elapsed_ms: float = 500.0,
        max_spike_entries: int = 100,
        selected_instrument: Optional[str] = None,
        clock: Callable[[], float] = epoch_ms,
    ) -> None:
        self._history_window_size = history_window_size
        self._min_elapsed_ms = min_elapsed_ms
        self._clock = clock

        self._running = False
        self._started_at: Optional[float] = None
        self._tick_count = 0
        self._latencies: Deque[float] = deque(maxlen=latency_window_size)
        self._history: Dict[str, Deque[PricePoint]] = {}
        self._prices: Dict[str, float] = {}
        self._previous_prices: Dict[str, float] = {}
        # Más reciente primero
        self._spikes: Deque[SpikeEvent] = deque(maxlen=max_spike_entries)
        self._frozen: Optional[DisplayedMetrics] = None
        self.selected_instrument = selected_instrument

    # ─── Entrada: eventos del stream ────────────────────────────────────

    def on_initial_data(self, prices: Mapping[str, float]) -> None:
        """Snapshot de precios al conectar (sin historial)."""
        for instrument, price in prices.items():
            self._prices[instrument] = float(price)
            self._previous_prices[instrument] = float(price)
            self._history_for(instrument)
        if self.selected_instrument is None and self._prices:
            self.selected_instrument = next(iter(self._prices))

    def on_status(self, running: bool, now: Optional[float] = None) -> None:
        now = self._clock() if now is None else now
        if running:
            if self._running:
                return
            self._running = True
            self._started_at = now
            self._tick_count = 0
            self._latencies.clear()
            self._frozen = None
            return

        if not self._running:
            return
        # Congelar con los valores calculados hasta este instante
        self._frozen = DisplayedMetrics(
            running=False,
            tick_rate=self.tick_rate(now),
            average_latency_ms=self.average_latency(),
            tick_count=self._tick_count,
        )
        self._running = False
        self._started_at = None

    def on_price_update(
        self,
        tick: Tick,
        spikes: Iterable[SpikeEvent] = (),
        received_at: Optional[float] = None,
    ) -> None:
        received_at = self._clock() if received_at is None else received_at
        self._tick_count += 1
        self._latencies.append(received_at - tick.sent_at)

        instrument = tick.instrument
        if instrument in self._prices:
            self._previous_prices[instrument] = self._prices[instrument]
        else:
            self._previous_prices[instrument] = tick.price
        self._prices[instrument] = tick.price
        self._history_for(instrument).append(PricePoint(tick.price, received_at))

        for spike in spikes:
            self._spikes.appendleft(spike)

    # ─── Métricas derivadas ─────────────────────────────────────────────

    def elapsed_ms(self, now: Optional[float] = None) -> float:
        if not self._running or self._started_at is None:
            return 0.0
        now = self._clock() if now is None else now
        return max(0.0, now - self._started_at)

    def tick_rate(self, now: Optional[float] = None) -> Optional[float]:
        elapsed = self.elapsed_ms(now)
        if not self._running or elapsed < self._min_elapsed_ms:
            return None
        return self._tick_count / (elapsed / 1000.0)

    def average_latency(self) -> float:
        if not self._latencies:
            return 0.0
        return sum(self._latencies) / len(self._latencies)

    def volatility(self, instrument: Optional[str] = None) -> float:
        instrument = instrument or self.selected_instrument
        window = self._history.get(instrument) if instrument else None
        if not window or len(window) < 2:
            return 0.0
        return float(np.std([p.price for p in window]))

    def percent_change(self, instrument: str) -> float:
        """Cambio vs. el precio reportado anterior (para la tarjeta de precio)."""
        price = self._prices.get(instrument)
        previous = self._previous_prices.get(instrument)
        if price is None or not previous:
            return 0.0
        return (price - previous) * 100 / previous

    def displayed_metrics(self, now: Optional[float] = None) -> DisplayedMetrics:
        if self._running:
            return DisplayedMetrics(
                running=True,
                tick_rate=self.tick_rate(now),
                average_latency_ms=self.average_latency(),
                tick_count=self._tick_count,
            )
        if self._frozen is not None:
            return self._frozen
        return DisplayedMetrics(running=False, tick_rate=None, average_latency_ms=None, tick_count=0)

    # ─── Consultas ──────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._running

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def latency_samples(self) -> int:
        return len(self._latencies)

    def prices(self) -> Dict[str, float]:
        return dict(self._prices)

    def history(self, instrument: str) -> List[PricePoint]:
        return list(self._history.get(instrument, ()))

    def spikes(self, instrument: str = ALL_INSTRUMENTS) -> List[SpikeEvent]:
        if instrument == ALL_INSTRUMENTS:
            return list(self._spikes)
        return [s for s in self._spikes if s.instrument == instrument]

    def clear_spikes(self) -> None:
        self._spikes.clear()

    def _history_for(self, instrument: str) -> Deque[PricePoint]:
        if instrument not in self._history:
            self._history[instrument] = deque(maxlen=self._history_window_size)
        return self._history[instrument]
