"""
TickPulse – CSV Spike Sink
===========================
Implementación de ISpikeSink sobre un fichero CSV append-only.

FORMATO:
  timestamp,instrument,oldPrice,newPrice,percentChange
  2024-06-10T09:15:00.123000+00:00,NSE:ACC,1800.00,1990.00,10.56

- La cabecera se escribe UNA vez, solo si el fichero no existe o está vacío.
- Las escrituras posteriores hacen append sin reescribir la cabecera.
- Precios y porcentaje con 2 decimales; timestamp ISO-8601 en UTC.
"""

from __future__ import annotations

import csv
import os
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock

from tickpulse.application.ports.spike_sink import ISpikeSink
from tickpulse.domain.value_objects.spike_event import SpikeEvent
from tickpulse.shared.logging import get_logger

logger = get_logger("csv_spike_sink")

CSV_COLUMNS = ("timestamp", "instrument", "oldPrice", "newPrice", "percentChange")


class CsvSpikeSink(ISpikeSink):
    """Sink CSV. Seguro para llamarse desde un worker thread."""

    def __init__(self, path: str | os.PathLike) -> None:
        self._path = Path(path)
        self._lock = Lock()
        self._written = 0

    @property
    def location(self) -> str:
        return str(self._path)

    @property
    def written(self) -> int:
        return self._written

    def initialize(self) -> None:
        """Crear el fichero con cabecera si no existe (equivalente al arranque)."""
        with self._lock:
            if self._needs_header():
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", newline="", encoding="utf-8") as fh:
                    csv.writer(fh).writerow(CSV_COLUMNS)
                logger.info("Spike log inicializado: %s", self._path)
            else:
                logger.info("Spike log existente, se hará append: %s", self._path)

    def record(self, event: SpikeEvent) -> None:
        row = self.to_row(event)
        with self._lock:
            write_header = self._needs_header()
            with self._path.open("a", newline="", encoding="utf-8") as fh:
                writer = csv.writer(fh)
                if write_header:
                    writer.writerow(CSV_COLUMNS)
                writer.writerow(row)
            self._written += 1

    @staticmethod
    def to_row(event: SpikeEvent) -> tuple[str, str, str, str, str]:
        timestamp = datetime.fromtimestamp(event.detected_at / 1000.0, tz=timezone.utc)
        return (
            timestamp.isoformat(),
            event.instrument,
            f"{event.old_price:.2f}",
            f"{event.new_price:.2f}",
            f"{event.percent_change:.2f}",
        )

    def _needs_header(self) -> bool:
        try:
            return self._path.stat().st_size == 0
        except FileNotFoundError:
            return True
