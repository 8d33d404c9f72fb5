"""
TickPulse – API Routes (FastAPI)
=================================
Endpoints REST y WebSocket.

Endpoints disponibles:
  WS   /ws/feed                 → feed en tiempo real + comandos de control
  GET  /api/health              → health check
  GET  /api/status              → estado completo del pipeline
  GET  /api/prices              → precios actuales del generador
  POST /api/simulation/start    → Stopped → Running (no-op si ya corre)
  POST /api/simulation/stop     → Running → Stopped (no-op si ya está detenida)
  GET  /api/metrics/final       → FinalMetricsSnapshot del último stop
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, WebSocket, status

from tickpulse.shared.logging import get_logger
from tickpulse.presentation.api.schemas import (
    FinalMetricsResponse,
    HealthResponse,
    PricesResponse,
    SimulationControlResponse,
    SystemStatusResponse,
)

logger = get_logger("api.routes")

router = APIRouter()

# Referencias a componentes inyectados desde main.py
_ws_manager = None
_scheduler = None
_generator = None
_tick_queue = None
_process_tick = None
_detector = None
_spike_log_listener = None


def init_routes(
    ws_manager,
    scheduler,
    generator,
    tick_queue=None,
    process_tick=None,
    detector=None,
    spike_log_listener=None,
) -> None:
    """Inyectar dependencias desde main.py al arrancar."""
    global _ws_manager, _scheduler, _generator
    global _tick_queue, _process_tick, _detector, _spike_log_listener
    _ws_manager = ws_manager
    _scheduler = scheduler
    _generator = generator
    _tick_queue = tick_queue
    _process_tick = process_tick
    _detector = detector
    _spike_log_listener = spike_log_listener


def _require_scheduler():
    if _scheduler is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Server not ready")
    return _scheduler


def _final_metrics() -> Optional[dict]:
    snapshot = _scheduler.final_snapshot if _scheduler is not None else None
    return snapshot.to_dict() if snapshot is not None else None


# ─── WebSocket endpoint del feed ───────────────────────────────────────

@router.websocket("/ws/feed")
async def feed_stream(websocket: WebSocket) -> None:
    """
    WebSocket principal. El manager gestiona suscripción al feed, envío y
    comandos de control; este handler solo delega.
    """
    if _ws_manager is None:
        await websocket.close(code=1011, reason="Server not ready")
        return
    await _ws_manager.handle(websocket)


# ─── REST endpoints ────────────────────────────────────────────────────

@router.get("/api/health", response_model=HealthResponse)
async def health_check() -> dict:
    """Health check para monitoreo."""
    return {"status": "ok", "service": "tickpulse"}


@router.get("/api/status", response_model=SystemStatusResponse)
async def system_status() -> dict:
    """Estado completo: run state, clientes, cola, contadores y métricas."""
    scheduler = _require_scheduler()
    return {
        "running": scheduler.is_running,
        "ws_clients": _ws_manager.client_count if _ws_manager is not None else 0,
        "controllers": _ws_manager.controller_count if _ws_manager is not None else 0,
        "queue": _tick_queue.stats if _tick_queue is not None else {},
        "pipeline": _process_tick.stats if _process_tick is not None else {},
        "detector": _detector.stats if _detector is not None else {},
        "spike_log": _spike_log_listener.stats if _spike_log_listener is not None else None,
        "metrics": scheduler.live_metrics(),
        "final_metrics": _final_metrics(),
    }


@router.get("/api/prices", response_model=PricesResponse)
async def current_prices() -> dict:
    """Precios actuales del generador (mismo contenido que initialData)."""
    if _generator is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Server not ready")
    return {"prices": _generator.current_prices()}


@router.post("/api/simulation/start", response_model=SimulationControlResponse)
async def start_simulation() -> dict:
    scheduler = _require_scheduler()
    changed = await scheduler.start()
    return {"running": scheduler.is_running, "changed": changed}


@router.post("/api/simulation/stop", response_model=SimulationControlResponse)
async def stop_simulation() -> dict:
    scheduler = _require_scheduler()
    changed = await scheduler.stop()
    return {
        "running": scheduler.is_running,
        "changed": changed,
        "final_metrics": _final_metrics(),
    }


@router.get("/api/metrics/final", response_model=FinalMetricsResponse)
async def final_metrics() -> dict:
    _require_scheduler()
    metrics = _final_metrics()
    return {"available": metrics is not None, "final_metrics": metrics}
