"""
TickPulse – Process Tick Use Case
==================================
Procesa UN tick extraído de la cola: detección → spike log → broadcast.

FLUJO:
  Tick
   │
   ├── SpikeDetector.evaluate(instrumento, precio)   → SpikeEvent | None
   ├── Si spike: EventBus.publish("spike", evento)   → SpikeLogListener → CSV
   └── Broadcaster.publish(tick, spike)              → observadores

La decisión de detección es pura; el efecto lateral (persistir) lo hace este
caso de uso explícitamente con el resultado.
"""

from __future__ import annotations

from typing import Optional

from tickpulse.application.broadcaster import Broadcaster
from tickpulse.domain.services.spike_detector import SpikeDetector
from tickpulse.domain.value_objects.spike_event import SpikeEvent
from tickpulse.domain.value_objects.tick import Tick
from tickpulse.infrastructure.event_bus import EventBus
from tickpulse.shared.logging import get_logger

logger = get_logger("process_tick")

SPIKE_TOPIC = "spike"


class ProcessTickUseCase:
    """Detecta spikes en un tick y lo difunde."""

    def __init__(
        self,
        detector: SpikeDetector,
        broadcaster: Broadcaster,
        event_bus: EventBus,
    ) -> None:
        self._detector = detector
        self._broadcaster = broadcaster
        self._event_bus = event_bus
        self._processed_count = 0
        self._spike_count = 0

    async def execute(self, tick: Tick) -> Optional[SpikeEvent]:
        spike = self._detector.evaluate(tick.instrument, tick.price)

        if spike is not None:
            self._spike_count += 1
            logger.warning(
                "[SPIKE] %s: %.2f → %.2f (%+.2f%%)",
                spike.instrument,
                spike.old_price,
                spike.new_price,
                spike.percent_change,
            )
            await self._event_bus.publish(SPIKE_TOPIC, spike)

        await self._broadcaster.publish(tick, spike)
        self._processed_count += 1
        return spike

    @property
    def stats(self) -> dict:
        return {
            "processed": self._processed_count,
            "spikes": self._spike_count,
        }
