"""
TickPulse – Domain Value Object: RunState
==========================================
Solo transiciona por comandos explícitos start/stop.
"""

from __future__ import annotations

from enum import Enum


class RunState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"

    @property
    def is_running(self) -> bool:
        return self is RunState.RUNNING
