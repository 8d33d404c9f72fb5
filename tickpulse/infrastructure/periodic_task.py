"""
TickPulse – Periodic Task
==========================
Tarea repetitiva con periodo fijo y token de cancelación.

En lugar de reprogramarse recursivamente desde el propio callback, un único
loop invoca el callback y duerme hasta el siguiente deadline. El token se
comprueba ANTES de cada invocación: tras cancel() no se ejecuta ni una más.

PACING:
- Los deadlines avanzan en múltiplos exactos del periodo (sin deriva).
- Si vamos tarde se cede el loop con sleep(0) y se recupera el retraso.
- Si el retraso supera `max_lag_periods`, se re-sincroniza el deadline para
  no disparar ráfagas enormes tras un bloqueo largo del loop.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from tickpulse.shared.logging import get_logger

logger = get_logger("periodic_task")


class PeriodicTask:
    """Invoca `callback` cada `interval` segundos hasta cancel()."""

    def __init__(
        self,
        interval: float,
        callback: Callable[[], None],
        *,
        name: str = "periodic-task",
        max_lag_periods: int = 50,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._interval = interval
        self._callback = callback
        self._name = name
        self._max_lag = interval * max_lag_periods
        self._cancelled = False
        self._task: Optional[asyncio.Task] = None
        self._runs = 0

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._cancelled = False
        self._task = asyncio.create_task(self._run(), name=self._name)

    async def cancel(self) -> None:
        """Activar el token y esperar a que el loop termine."""
        self._cancelled = True
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while not self._cancelled:
            try:
                self._callback()
            except Exception as e:
                logger.error("Error en callback de '%s': %s", self._name, e, exc_info=True)
            self._runs += 1

            deadline += self._interval
            delay = deadline - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
                continue
            if -delay > self._max_lag:
                deadline = loop.time()
            # Vamos tarde: ceder el loop sin dormir
            await asyncio.sleep(0)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def runs(self) -> int:
        return self._runs
