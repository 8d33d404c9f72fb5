"""
TickPulse – Domain Value Object: FinalMetricsSnapshot
======================================================
Métricas congeladas en la transición Running → Stopped.
Solo existe entre un stop y el siguiente start.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FinalMetricsSnapshot:
    tick_count: int
    elapsed_ms: float
    tick_rate: float            # ticks/seg
    average_latency_ms: float
    captured_at: float          # epoch ms

    def to_dict(self) -> dict:
        return {
            "tick_count": self.tick_count,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "tick_rate": round(self.tick_rate, 1),
            "average_latency_ms": round(self.average_latency_ms, 3),
            "captured_at": self.captured_at,
        }
