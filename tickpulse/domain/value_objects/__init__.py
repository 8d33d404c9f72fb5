from tickpulse.domain.value_objects.metrics_snapshot import FinalMetricsSnapshot
from tickpulse.domain.value_objects.run_state import RunState
from tickpulse.domain.value_objects.spike_event import SpikeEvent
from tickpulse.domain.value_objects.tick import Tick

__all__ = ["FinalMetricsSnapshot", "RunState", "SpikeEvent", "Tick"]
