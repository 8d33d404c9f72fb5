"""
TickPulse – Event Bus (asyncio.Queue fan-out)
==============================================
Bus de eventos interno para desacoplar productores (pipeline) de
consumidores (sesiones WebSocket, spike log listener).

Arquitectura:
  ┌──────────┐          ┌───────────┐
  │ Pipeline │──feed───▸│ Event Bus │──▸ Sesión WS 1
  │          │──spike──▸│ (fan-out) │──▸ Sesión WS N
  └──────────┘          └───────────┘──▸ SpikeLogListener

POLÍTICAS DE DESBORDE (por suscriptor):
- drop_oldest=True: si la cola está llena se descarta el evento MÁS ANTIGUO.
  Adecuado para consumidores que toleran huecos (spike log).
- drop_oldest=False: un hueco en el feed es inaceptable. Si la cola se llena,
  el suscriptor se EXPULSA: se vacía su cola, se encola SUBSCRIPTION_CLOSED y
  se le da de baja. El resto de suscriptores no se ve afectado.
En ambos casos el productor NUNCA se bloquea.

ORDEN:
- Cada suscriptor tiene su propia cola FIFO → ve los eventos en el orden de
  publicación, sin duplicados.

THREAD-SAFETY:
- asyncio.Queue es safe dentro del mismo event loop, que es nuestro caso.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Iterable

from tickpulse.shared.logging import get_logger

logger = get_logger("event_bus")

# Centinela: la suscripción fue cerrada por el bus
SUBSCRIPTION_CLOSED = object()


@dataclass
class _Subscriber:
    queue: asyncio.Queue
    name: str
    drop_oldest: bool
    dropped: int = 0


class EventBus:
    """Fan-out event bus basado en asyncio.Queue."""

    def __init__(self, max_queue_size: int = 10_000) -> None:
        self._max_queue_size = max_queue_size
        # topic → lista de suscriptores
        self._subscribers: Dict[str, list[_Subscriber]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(
        self,
        topic: str,
        consumer_name: str,
        *,
        drop_oldest: bool = True,
        preload: Iterable[Any] = (),
    ) -> asyncio.Queue:
        """
        Registrar un consumidor en un tópico.
        Retorna la Queue exclusiva de ese consumidor.

        `preload` se encola ANTES del registro, sin puntos de suspensión entre
        medio: ningún evento publicado puede colarse delante.
        """
        async with self._lock:
            queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
            for item in preload:
                queue.put_nowait(item)
            self._subscribers.setdefault(topic, []).append(
                _Subscriber(queue=queue, name=consumer_name, drop_oldest=drop_oldest)
            )
            logger.info(
                "Consumidor '%s' suscrito a tópico '%s' (max_queue=%d)",
                consumer_name,
                topic,
                self._max_queue_size,
            )
            return queue

    async def unsubscribe(self, topic: str, queue: asyncio.Queue) -> bool:
        """Dar de baja una cola. Retorna False si ya no estaba suscrita."""
        async with self._lock:
            subscribers = self._subscribers.get(topic, [])
            for sub in subscribers:
                if sub.queue is queue:
                    subscribers.remove(sub)
                    logger.info("Consumidor '%s' desuscrito de '%s'", sub.name, topic)
                    return True
            return False

    async def publish(self, topic: str, data: Any) -> None:
        """
        Publicar un evento a todos los suscriptores de un tópico.
        El productor NUNCA se bloquea (put_nowait).
        """
        subscribers = self._subscribers.get(topic, [])
        evicted: list[_Subscriber] = []
        for sub in subscribers:
            if sub.queue.full():
                if not sub.drop_oldest:
                    evicted.append(sub)
                    continue
                # Drop-oldest: sacar el evento más viejo para hacer espacio
                try:
                    sub.queue.get_nowait()
                    sub.dropped += 1
                    logger.warning(
                        "Cola llena para '%s' en tópico '%s' – evento antiguo descartado",
                        sub.name,
                        topic,
                    )
                except asyncio.QueueEmpty:
                    pass
            sub.queue.put_nowait(data)

        for sub in evicted:
            self._evict(topic, sub)

    def _evict(self, topic: str, sub: _Subscriber) -> None:
        while not sub.queue.empty():
            sub.queue.get_nowait()
        sub.queue.put_nowait(SUBSCRIPTION_CLOSED)
        self._subscribers[topic].remove(sub)
        logger.warning(
            "Consumidor lento '%s' expulsado de '%s' (cola llena, max=%d)",
            sub.name,
            topic,
            self._max_queue_size,
        )

    async def unsubscribe_all(self, topic: str | None = None) -> None:
        """Desuscribir todos los consumidores (cleanup al shutdown)."""
        async with self._lock:
            if topic:
                self._subscribers.pop(topic, None)
                logger.info("Todos los suscriptores del tópico '%s' eliminados", topic)
            else:
                self._subscribers.clear()
                logger.info("Todos los suscriptores eliminados (shutdown)")

    def subscriber_names(self, topic: str) -> list[str]:
        return [sub.name for sub in self._subscribers.get(topic, [])]

    @property
    def subscriber_count(self) -> int:
        return sum(len(subs) for subs in self._subscribers.values())
