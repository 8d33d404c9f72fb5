"""TickPulse – simulador de feed de alta frecuencia con detección de spikes."""

__version__ = "0.3.0"
