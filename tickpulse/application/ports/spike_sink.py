"""
TickPulse – Application Port: Spike Sink
=========================================
Registro durable (append-only) de spikes.

CONTRATO:
- record(event) escribe un registro o lanza OSError.
- El pipeline nunca depende de que esto funcione: los fallos se registran
  en el log y NO se reintentan.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tickpulse.domain.value_objects.spike_event import SpikeEvent


class ISpikeSink(ABC):
    """Interfaz del sink durable de spikes."""

    def initialize(self) -> None:
        """Preparar el destino al arranque (opcional)."""

    @abstractmethod
    def record(self, event: SpikeEvent) -> None:
        """
        Persiste un spike.

        Raises:
            OSError: si la escritura falla.
        """

    @property
    @abstractmethod
    def location(self) -> str:
        """Descripción legible del destino (ruta, URL...)."""
