"""
TickPulse – Spike Log Listener
===============================
Escucha el tópico "spike" del EventBus y persiste cada evento en el sink.

Desacoplamiento: el detector y el pipeline no conocen la persistencia; el
pipeline solo publica el spike detectado. Este listener lo recoge y escribe
fuera del event loop (asyncio.to_thread), así una escritura lenta no
retrasa la generación ni el broadcast.

FALLOS:
  Un OSError del sink se registra y se contabiliza. No se reintenta, no se
  detiene el pipeline: la detección y el display en vivo no dependen de que
  el log durable funcione.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from tickpulse.application.ports.spike_sink import ISpikeSink
from tickpulse.domain.value_objects.spike_event import SpikeEvent
from tickpulse.infrastructure.event_bus import SUBSCRIPTION_CLOSED, EventBus
from tickpulse.shared.logging import get_logger

logger = get_logger("spike_log_listener")

SPIKE_TOPIC = "spike"


class SpikeLogListener:
    """Consume spikes del EventBus y los envía al sink durable."""

    def __init__(self, event_bus: EventBus, sink: ISpikeSink) -> None:
        self._event_bus = event_bus
        self._sink = sink
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._recorded = 0
        self._failures = 0

    async def start(self) -> None:
        """Suscribirse y lanzar el loop de consumo."""
        if self._task is not None and not self._task.done():
            return
        self._queue = await self._event_bus.subscribe(SPIKE_TOPIC, "spike_log")
        self._task = asyncio.create_task(self._consume_loop(), name="spike-log-listener")
        logger.info("SpikeLogListener iniciado → %s", self._sink.location)

    async def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self._queue is not None:
            await self._event_bus.unsubscribe(SPIKE_TOPIC, self._queue)
            self._queue = None
        logger.info(
            "SpikeLogListener detenido. Registrados: %d, fallos: %d",
            self._recorded,
            self._failures,
        )

    async def _consume_loop(self) -> None:
        assert self._queue is not None
        while True:
            event = await self._queue.get()
            if event is SUBSCRIPTION_CLOSED:
                break
            await self.handle(event)

    async def handle(self, event: SpikeEvent) -> bool:
        """Persistir un spike. Retorna False si el sink falló."""
        try:
            await asyncio.to_thread(self._sink.record, event)
        except OSError as e:
            self._failures += 1
            logger.error(
                "No se pudo registrar spike de %s en %s: %s",
                event.instrument,
                self._sink.location,
                e,
            )
            return False
        self._recorded += 1
        return True

    @property
    def stats(self) -> dict:
        return {
            "sink": self._sink.location,
            "recorded": self._recorded,
            "failures": self._failures,
        }
