from tickpulse.infrastructure.persistence.csv_spike_sink import CsvSpikeSink
from tickpulse.infrastructure.persistence.spike_log_listener import SpikeLogListener

__all__ = ["CsvSpikeSink", "SpikeLogListener"]
