"""
TickPulse – Simulation Scheduler (máquina de estados del pipeline)
===================================================================
Conduce el generador a periodo fijo, drena la TickQueue por lotes y entrega
cada tick al ProcessTickUseCase. Es el ÚNICO dueño de RunState.

ESTADOS:  Stopped ──start──▸ Running ──stop──▸ Stopped
  - start con Running y stop con Stopped son no-ops (sin broadcast).
  - Cada transición real se difunde como status{running}.

START:
  1. Resetear estado de la ejecución (origen de tiempo, contador, latencia).
  2. Lanzar PeriodicTask del generador (1 ms → ~1000 Hz).
  3. Lanzar el drain loop.
  4. Difundir status{running:true}.

STOP:
  1. Cancelar el generador → ningún tick más se encola.
  2. Despertar el drain loop; termina su lote actual y sale.
  3. Congelar FinalMetricsSnapshot si la ejecución duró > min_elapsed_ms.
  4. Difundir status{running:false}.
  Los ticks que queden en cola NO se descartan: se drenan primero al
  siguiente start, en orden.

DRAIN LOOP:
  - Extrae hasta batch_size ticks, los procesa en orden y cede el loop.
  - Con la cola vacía espera la señal no-vacío: no hay busy-spin.
  - Detenido no hace trabajo alguno (la task termina).

CONCURRENCIA:
  Todo corre en un único event loop asyncio. La cola y la tabla del
  detector solo se tocan desde aquí.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from tickpulse.application.broadcaster import Broadcaster
from tickpulse.application.use_cases.process_tick_usecase import ProcessTickUseCase
from tickpulse.domain.services.tick_generator import TickGenerator
from tickpulse.domain.value_objects.metrics_snapshot import FinalMetricsSnapshot
from tickpulse.domain.value_objects.run_state import RunState
from tickpulse.infrastructure.periodic_task import PeriodicTask
from tickpulse.infrastructure.tick_queue import TickQueue
from tickpulse.shared.clock import epoch_ms, monotonic_ms
from tickpulse.shared.logging import get_logger

logger = get_logger("scheduler")


@dataclass
class PipelineState:
    """Estado de ejecución del pipeline (propiedad exclusiva del scheduler)."""

    run_state: RunState = RunState.STOPPED
    started_at: Optional[float] = None      # monotonic ms
    tick_count: int = 0
    latency_total_ms: float = 0.0
    latency_samples: int = 0
    final_snapshot: Optional[FinalMetricsSnapshot] = None
    runs: int = 0

    def reset_run(self, now: float) -> None:
        self.started_at = now
        self.tick_count = 0
        self.latency_total_ms = 0.0
        self.latency_samples = 0
        self.final_snapshot = None
        self.runs += 1

    def record(self, latency_ms: float) -> None:
        self.tick_count += 1
        self.latency_total_ms += latency_ms
        self.latency_samples += 1

    def elapsed_ms(self, now: float) -> float:
        if self.started_at is None:
            return 0.0
        return max(0.0, now - self.started_at)

    @property
    def average_latency_ms(self) -> float:
        if not self.latency_samples:
            return 0.0
        return self.latency_total_ms / self.latency_samples


class SimulationScheduler:
    """Dueño del ciclo de vida generación → cola → detección → broadcast."""

    def __init__(
        self,
        generator: TickGenerator,
        queue: TickQueue,
        process_tick: ProcessTickUseCase,
        broadcaster: Broadcaster,
        *,
        tick_interval: float = 0.001,
        batch_size: int = 10,
        min_metrics_elapsed_ms: float = 500.0,
        clock: Callable[[], float] = monotonic_ms,
        wall_clock: Callable[[], float] = epoch_ms,
    ) -> None:
        self._generator = generator
        self._queue = queue
        self._process_tick = process_tick
        self._broadcaster = broadcaster
        self._tick_interval = tick_interval
        self._batch_size = batch_size
        self._min_metrics_elapsed_ms = min_metrics_elapsed_ms
        self._clock = clock
        self._wall_clock = wall_clock

        self._state = PipelineState()
        self._generator_task: Optional[PeriodicTask] = None
        self._drain_task: Optional[asyncio.Task] = None
        self._transition_lock = asyncio.Lock()

    # ──────────────────────── Estado ─────────────────────────────────────

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def run_state(self) -> RunState:
        return self._state.run_state

    @property
    def is_running(self) -> bool:
        return self._state.run_state.is_running

    @property
    def final_snapshot(self) -> Optional[FinalMetricsSnapshot]:
        return self._state.final_snapshot

    # ──────────────────────── Transiciones ──────────────────────────────

    async def start(self) -> bool:
        """Stopped → Running. Retorna False si ya estaba corriendo."""
        async with self._transition_lock:
            if self.is_running:
                logger.debug("start() ignorado: la simulación ya está corriendo")
                return False

            self._state.reset_run(self._clock())
            self._state.run_state = RunState.RUNNING

            self._generator_task = PeriodicTask(
                self._tick_interval, self._produce, name="tick-generator"
            )
            self._generator_task.start()
            self._drain_task = asyncio.create_task(self._drain_loop(), name="tick-drain-loop")

            logger.info(
                "▶ Simulación iniciada (%.0f Hz objetivo, lote=%d, en cola=%d)",
                1.0 / self._tick_interval,
                self._batch_size,
                len(self._queue),
            )
            await self._broadcaster.publish_status(True)
            return True

    async def stop(self) -> bool:
        """Running → Stopped. Retorna False si ya estaba detenida."""
        async with self._transition_lock:
            if not self.is_running:
                logger.debug("stop() ignorado: la simulación ya está detenida")
                return False

            self._state.run_state = RunState.STOPPED
            if self._generator_task is not None:
                await self._generator_task.cancel()
                self._generator_task = None

            self._queue.wake()
            if self._drain_task is not None:
                await self._drain_task
                self._drain_task = None

            snapshot = self._freeze_metrics()
            self._state.final_snapshot = snapshot
            if snapshot is None:
                logger.info(
                    "■ Simulación detenida tras %d ticks (métricas no disponibles: < %.0f ms)",
                    self._state.tick_count,
                    self._min_metrics_elapsed_ms,
                )
            else:
                logger.info(
                    "■ Simulación detenida: %d ticks en %.0f ms → %.1f ticks/s, latencia media %.2f ms",
                    snapshot.tick_count,
                    snapshot.elapsed_ms,
                    snapshot.tick_rate,
                    snapshot.average_latency_ms,
                )
            await self._broadcaster.publish_status(False)
            return True

    def _freeze_metrics(self) -> Optional[FinalMetricsSnapshot]:
        elapsed = self._state.elapsed_ms(self._clock())
        if elapsed <= self._min_metrics_elapsed_ms:
            return None
        return FinalMetricsSnapshot(
            tick_count=self._state.tick_count,
            elapsed_ms=elapsed,
            tick_rate=self._state.tick_count / (elapsed / 1000.0),
            average_latency_ms=self._state.average_latency_ms,
            captured_at=self._wall_clock(),
        )

    # ──────────────────────── Productor / Consumidor ────────────────────

    def _produce(self) -> None:
        """Callback del generador: un tick por periodo."""
        if not self.is_running:
            return
        self._queue.put(self._generator.next())

    async def _drain_loop(self) -> None:
        """Drenar la cola por lotes mientras la simulación esté corriendo."""
        while self.is_running:
            batch = self._queue.pop_batch(self._batch_size)
            if not batch:
                await self._queue.wait_not_empty()
                continue

            for tick in batch:
                try:
                    await self._process_tick.execute(tick)
                except Exception as e:
                    logger.error("Error procesando tick %s: %s", tick, e, exc_info=True)
                    continue
                self._state.record(self._wall_clock() - tick.sent_at)

            # Ceder el loop entre lotes (generador y envíos WS)
            await asyncio.sleep(0)

    # ──────────────────────── Diagnóstico ───────────────────────────────

    def live_metrics(self) -> dict:
        now = self._clock()
        elapsed = self._state.elapsed_ms(now) if self.is_running else 0.0
        tick_rate = None
        if self.is_running and elapsed >= self._min_metrics_elapsed_ms:
            tick_rate = round(self._state.tick_count / (elapsed / 1000.0), 1)
        return {
            "running": self.is_running,
            "tick_count": self._state.tick_count,
            "elapsed_ms": round(elapsed, 1),
            "tick_rate": tick_rate,
            "average_latency_ms": round(self._state.average_latency_ms, 3),
            "runs": self._state.runs,
        }
