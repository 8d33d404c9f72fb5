from tickpulse.domain.services.client_aggregator import ClientAggregator, DisplayedMetrics, PricePoint
from tickpulse.domain.services.spike_detector import DetectorState, SpikeDetector
from tickpulse.domain.services.tick_generator import GeneratorState, TickGenerator

__all__ = [
    "ClientAggregator",
    "DetectorState",
    "DisplayedMetrics",
    "GeneratorState",
    "PricePoint",
    "SpikeDetector",
    "TickGenerator",
]
