from tickpulse.application.ports.spike_sink import ISpikeSink

__all__ = ["ISpikeSink"]
