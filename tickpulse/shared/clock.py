"""
TickPulse – Relojes
====================
epoch_ms() es reloj de pared (comparable entre procesos → latencia).
monotonic_ms() solo sirve para medir duraciones dentro del proceso.
"""

from __future__ import annotations

import time


def epoch_ms() -> float:
    return time.time() * 1000.0


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0
