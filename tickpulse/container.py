"""
Dependency Injection Container.

Único lugar donde se crean las dependencias concretas del pipeline. Cada
componente se construye de forma perezosa la primera vez que se pide y se
reutiliza después (singleton por contenedor).

El estado mutable (GeneratorState, DetectorState, PipelineState) vive dentro
de los componentes que lo poseen; no hay estado global de precios ni de run.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from tickpulse.application.broadcaster import Broadcaster
from tickpulse.application.ports.spike_sink import ISpikeSink
from tickpulse.application.simulation_scheduler import SimulationScheduler
from tickpulse.application.use_cases.process_tick_usecase import ProcessTickUseCase
from tickpulse.domain.services.spike_detector import SpikeDetector
from tickpulse.domain.services.tick_generator import TickGenerator
from tickpulse.infrastructure.event_bus import EventBus
from tickpulse.infrastructure.persistence.csv_spike_sink import CsvSpikeSink
from tickpulse.infrastructure.persistence.spike_log_listener import SpikeLogListener
from tickpulse.infrastructure.tick_queue import TickQueue
from tickpulse.presentation.websocket.websocket_manager import WebSocketManager
from tickpulse.shared.config.settings import Settings


@dataclass
class Container:
    """
    Contenedor de Inyección de Dependencias.

    Gestiona el ciclo de vida de todas las dependencias de la aplicación.
    """

    settings: Settings = field(default_factory=Settings)

    # Cache de instancias
    _instances: Dict[str, Any] = field(default_factory=dict)

    def _get(self, name: str, factory) -> Any:
        if name not in self._instances:
            self._instances[name] = factory()
        return self._instances[name]

    # ==================== Infraestructura ====================

    @property
    def event_bus(self) -> EventBus:
        return self._get(
            "event_bus", lambda: EventBus(max_queue_size=self.settings.event_bus_max_queue_size)
        )

    @property
    def tick_queue(self) -> TickQueue:
        return self._get("tick_queue", lambda: TickQueue(max_size=self.settings.tick_queue_max_size))

    @property
    def spike_sink(self) -> Optional[ISpikeSink]:
        """Sink CSV si el spike log está habilitado."""
        if not self.settings.spike_log_enabled:
            return None
        return self._get("spike_sink", lambda: CsvSpikeSink(self.settings.spike_log_path))

    @property
    def spike_log_listener(self) -> Optional[SpikeLogListener]:
        sink = self.spike_sink
        if sink is None:
            return None
        return self._get("spike_log_listener", lambda: SpikeLogListener(self.event_bus, sink))

    # ==================== Dominio ====================

    @property
    def tick_generator(self) -> TickGenerator:
        s = self.settings
        return self._get(
            "tick_generator",
            lambda: TickGenerator(
                s.instruments,
                s.initial_prices,
                spike_threshold=s.spike_threshold,
                spike_probability=s.spike_probability,
                spike_extra_range=s.spike_extra_range,
                base_volatility=s.base_volatility,
                precision=s.price_precision,
                min_price=s.min_price,
                rng=random.Random(s.seed),
            ),
        )

    @property
    def spike_detector(self) -> SpikeDetector:
        # Sembrado con los precios iniciales: el primer tick de cada
        # instrumento se compara con el precio mostrado en initialData.
        return self._get(
            "spike_detector",
            lambda: SpikeDetector(
                self.settings.spike_threshold,
                seed_prices=self.tick_generator.current_prices(),
            ),
        )

    # ==================== Aplicación ====================

    @property
    def broadcaster(self) -> Broadcaster:
        return self._get(
            "broadcaster",
            lambda: Broadcaster(
                self.event_bus,
                price_snapshot=self.tick_generator.current_prices,
                running=lambda: self.scheduler.is_running,
            ),
        )

    @property
    def process_tick(self) -> ProcessTickUseCase:
        return self._get(
            "process_tick",
            lambda: ProcessTickUseCase(self.spike_detector, self.broadcaster, self.event_bus),
        )

    @property
    def scheduler(self) -> SimulationScheduler:
        s = self.settings
        return self._get(
            "scheduler",
            lambda: SimulationScheduler(
                self.tick_generator,
                self.tick_queue,
                self.process_tick,
                self.broadcaster,
                tick_interval=s.tick_interval_seconds,
                batch_size=s.batch_size,
                min_metrics_elapsed_ms=s.min_metrics_elapsed_ms,
            ),
        )

    # ==================== Presentación ====================

    @property
    def ws_manager(self) -> WebSocketManager:
        return self._get(
            "ws_manager",
            lambda: WebSocketManager(
                self.broadcaster,
                self.scheduler,
                send_timeout=self.settings.ws_send_timeout,
                stop_on_controller_disconnect=self.settings.stop_on_controller_disconnect,
            ),
        )

    # ==================== Lifecycle ====================

    def reset(self) -> None:
        """Resetea todas las instancias (útil para tests)."""
        self._instances.clear()

    def override(self, name: str, instance: Any) -> None:
        """
        Override una dependencia (útil para tests con fakes).

        Args:
            name: Nombre de la dependencia (ej: 'spike_sink')
            instance: Instancia a usar
        """
        if not isinstance(getattr(type(self), name, None), property):
            raise ValueError(f"Unknown dependency: {name}")
        self._instances[name] = instance


# ==================== Global Container ====================

_container: Optional[Container] = None


def init_container(settings: Optional[Settings] = None) -> Container:
    """
    Inicializa el contenedor con configuración específica.

    Args:
        settings: Configuración opcional. Si es None, se carga del entorno.
    """
    global _container
    if settings is None:
        settings = Settings()
    _container = Container(settings=settings)
    return _container
