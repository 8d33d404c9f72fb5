"""Shared fixtures: small deterministic pipelines built from the real components."""

import itertools
import random
from types import SimpleNamespace

import pytest

from tickpulse.application.broadcaster import Broadcaster
from tickpulse.application.simulation_scheduler import SimulationScheduler
from tickpulse.application.use_cases.process_tick_usecase import ProcessTickUseCase
from tickpulse.domain.services.spike_detector import SpikeDetector
from tickpulse.domain.services.tick_generator import TickGenerator
from tickpulse.infrastructure.event_bus import EventBus
from tickpulse.infrastructure.tick_queue import TickQueue
from tickpulse.shared.config.settings import Settings

INSTRUMENTS = ["NSE:ACC", "NSE:SBIN", "NSE:TCS", "NSE:INFY"]
INITIAL_PRICES = {"NSE:ACC": 1800.0, "NSE:SBIN": 750.0, "NSE:TCS": 3300.0, "NSE:INFY": 1500.0}


def make_generator(seed=7, clock=None, **kwargs) -> TickGenerator:
    return TickGenerator(
        INSTRUMENTS,
        INITIAL_PRICES,
        rng=random.Random(seed),
        clock=clock or itertools.count().__next__,
        **kwargs,
    )


def build_pipeline(*, clock=None, generator=None, min_metrics_elapsed_ms=500.0, batch_size=10):
    """Wire generator → queue → scheduler → broadcaster exactly like the container does."""
    generator = generator or make_generator()
    bus = EventBus(max_queue_size=100_000)
    queue = TickQueue()
    detector = SpikeDetector(0.10, seed_prices=generator.current_prices())
    holder = SimpleNamespace(scheduler=None)
    broadcaster = Broadcaster(
        bus,
        price_snapshot=generator.current_prices,
        running=lambda: holder.scheduler is not None and holder.scheduler.is_running,
    )
    process_tick = ProcessTickUseCase(detector, broadcaster, bus)
    scheduler_kwargs = {}
    if clock is not None:
        scheduler_kwargs["clock"] = clock
    scheduler = SimulationScheduler(
        generator,
        queue,
        process_tick,
        broadcaster,
        tick_interval=0.001,
        batch_size=batch_size,
        min_metrics_elapsed_ms=min_metrics_elapsed_ms,
        **scheduler_kwargs,
    )
    holder.scheduler = scheduler
    return SimpleNamespace(
        generator=generator,
        bus=bus,
        queue=queue,
        detector=detector,
        broadcaster=broadcaster,
        process_tick=process_tick,
        scheduler=scheduler,
    )


def drain(queue) -> list:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(spike_log_path=str(tmp_path / "spike_log.csv"), seed=1234)
