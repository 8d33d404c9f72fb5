"""
TickPulse – API Schemas (Pydantic)
===================================
Schemas de respuesta de la API REST.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    service: str


class FinalMetricsSchema(BaseModel):
    tick_count: int
    elapsed_ms: float
    tick_rate: float
    average_latency_ms: float
    captured_at: float


class RunMetricsSchema(BaseModel):
    running: bool
    tick_count: int
    elapsed_ms: float
    tick_rate: Optional[float]
    average_latency_ms: float
    runs: int


class SimulationControlResponse(BaseModel):
    running: bool
    changed: bool
    final_metrics: Optional[FinalMetricsSchema] = None


class PricesResponse(BaseModel):
    prices: Dict[str, float]


class FinalMetricsResponse(BaseModel):
    available: bool
    final_metrics: Optional[FinalMetricsSchema] = None


class SystemStatusResponse(BaseModel):
    running: bool
    ws_clients: int
    controllers: int
    queue: dict
    pipeline: dict
    detector: dict
    spike_log: Optional[dict] = None
    metrics: RunMetricsSchema
    final_metrics: Optional[FinalMetricsSchema] = None
