"""
TickPulse – Broadcaster
========================
Difunde cada tick procesado (precio + spike opcional) y cada transición de
estado a TODOS los observadores suscritos.

GARANTÍAS:
- Cada observador recibe los ticks en orden de producción, sin huecos ni
  duplicados (cola FIFO propia en el EventBus, política de expulsión en vez
  de drop-oldest).
- Un observador que se une tarde recibe un snapshot initialData con los
  precios actuales y, a partir de ahí, solo ticks nuevos. Sin replay.

MENSAJES (envelope {"type", "data"}):
  initialData  {"prices": {instrumento: precio}}
  priceUpdate  {"tick": {instrumento: precio, "sentAt": ms}, "spikes": [...]}
  status       {"running": bool}
"""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, Optional

from tickpulse.domain.value_objects.spike_event import SpikeEvent
from tickpulse.domain.value_objects.tick import Tick
from tickpulse.infrastructure.event_bus import EventBus
from tickpulse.shared.logging import get_logger

logger = get_logger("broadcaster")

FEED_TOPIC = "feed"

INITIAL_DATA = "initialData"
PRICE_UPDATE = "priceUpdate"
STATUS = "status"


def initial_data_message(prices: Dict[str, float]) -> dict:
    return {"type": INITIAL_DATA, "data": {"prices": dict(prices)}}


def price_update_message(tick: Tick, spike: Optional[SpikeEvent]) -> dict:
    return {
        "type": PRICE_UPDATE,
        "data": {
            "tick": tick.to_wire(),
            "spikes": [spike.to_dict()] if spike is not None else [],
        },
    }


def status_message(running: bool) -> dict:
    return {"type": STATUS, "data": {"running": running}}


class Broadcaster:
    """Fan-out del feed procesado hacia los observadores."""

    def __init__(
        self,
        event_bus: EventBus,
        price_snapshot: Callable[[], Dict[str, float]],
        running: Callable[[], bool] = lambda: False,
    ) -> None:
        self._event_bus = event_bus
        self._price_snapshot = price_snapshot
        self._running = running
        self._published = 0

    async def subscribe(self, observer_name: str) -> asyncio.Queue:
        """
        Registrar un observador. Su cola arranca con initialData (y un
        status{running:true} si la simulación ya está en marcha).
        """
        preload = [initial_data_message(self._price_snapshot())]
        if self._running():
            preload.append(status_message(True))
        return await self._event_bus.subscribe(
            FEED_TOPIC, observer_name, drop_oldest=False, preload=preload
        )

    async def unsubscribe(self, queue: asyncio.Queue) -> None:
        await self._event_bus.unsubscribe(FEED_TOPIC, queue)

    async def publish(self, tick: Tick, spike: Optional[SpikeEvent] = None) -> None:
        await self._event_bus.publish(FEED_TOPIC, price_update_message(tick, spike))
        self._published += 1

    async def publish_status(self, running: bool) -> None:
        await self._event_bus.publish(FEED_TOPIC, status_message(running))
        logger.info("Estado difundido: running=%s", running)

    @property
    def observer_count(self) -> int:
        return len(self._event_bus.subscriber_names(FEED_TOPIC))

    @property
    def published(self) -> int:
        return self._published
