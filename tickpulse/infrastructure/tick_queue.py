"""
TickPulse – Tick Queue
=======================
Buffer FIFO entre el generador (1 kHz) y el drain loop por lotes.

- collections.deque → append y popleft O(1).
- Sin deduplicación: puede haber ticks consecutivos del mismo instrumento.
- Capacidad opcional (max_size > 0): al llenarse se descarta el tick MÁS
  ANTIGUO y se contabiliza. Con max_size = 0 no hay límite; se asume que el
  consumidor drena más rápido que el productor.

SEÑAL NO-VACÍO:
  El drain loop espera en wait_not_empty() en vez de hacer polling. put()
  y wake() liberan la espera. Todo corre en un único event loop, así que
  entre comprobar la cola y limpiar el evento no hay carreras.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, List

from tickpulse.domain.value_objects.tick import Tick
from tickpulse.shared.logging import get_logger

logger = get_logger("tick_queue")


class TickQueue:
    """Cola FIFO de ticks con señal de disponibilidad."""

    def __init__(self, max_size: int = 0) -> None:
        self._max_size = max_size
        self._items: Deque[Tick] = deque()
        self._not_empty = asyncio.Event()
        self._enqueued = 0
        self._dropped = 0

    def put(self, tick: Tick) -> None:
        if self._max_size and len(self._items) >= self._max_size:
            self._items.popleft()
            self._dropped += 1
            if self._dropped == 1 or self._dropped % 1000 == 0:
                logger.warning(
                    "TickQueue llena (max=%d) – ticks descartados: %d",
                    self._max_size,
                    self._dropped,
                )
        self._items.append(tick)
        self._enqueued += 1
        self._not_empty.set()

    def pop_batch(self, max_items: int) -> List[Tick]:
        """Extraer hasta `max_items` ticks del frente, en orden."""
        count = min(max_items, len(self._items))
        return [self._items.popleft() for _ in range(count)]

    async def wait_not_empty(self) -> None:
        """Suspender hasta que haya ticks o alguien llame a wake()."""
        if self._items:
            return
        self._not_empty.clear()
        await self._not_empty.wait()

    def wake(self) -> None:
        """Liberar a un consumidor en espera (p. ej. al detener)."""
        self._not_empty.set()

    def clear(self) -> int:
        count = len(self._items)
        self._items.clear()
        return count

    def __len__(self) -> int:
        return len(self._items)

    @property
    def stats(self) -> dict:
        return {
            "depth": len(self._items),
            "max_size": self._max_size,
            "enqueued": self._enqueued,
            "dropped": self._dropped,
        }
