"""
TickPulse – Settings (Pydantic BaseSettings)
=============================================
Configuración centralizada cargada desde variables de entorno / .env.
Se usa pydantic-settings para validación estricta al arranque.

El universo de instrumentos es CERRADO: se define aquí y no se puede
ampliar en caliente. initial_prices debe cubrir exactamente ese universo.
"""

from __future__ import annotations

import os
import tempfile
from typing import Dict, List, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


def _default_spike_log_path() -> str:
    return os.path.join(tempfile.gettempdir(), "spike_log.csv")


class Settings(BaseSettings):
    # ─── Universo de instrumentos ───────────────────────────────────────
    instruments: List[str] = Field(
        default=["NSE:ACC", "NSE:SBIN", "NSE:TCS", "NSE:INFY"],
        description="Universo fijo de instrumentos simulados",
    )
    initial_prices: Dict[str, float] = Field(
        default={
            "NSE:ACC": 1800.00,
            "NSE:SBIN": 750.00,
            "NSE:TCS": 3300.00,
            "NSE:INFY": 1500.00,
        },
        description="Precio inicial por instrumento",
    )

    # ─── Generador de ticks ─────────────────────────────────────────────
    tick_interval_ms: float = Field(
        default=1.0, description="Periodo objetivo entre ticks (1 ms = 1000 Hz)"
    )
    base_volatility: float = Field(
        default=0.01, description="Rango total del factor aleatorio normal (±0.5%)"
    )
    spike_probability: float = Field(
        default=0.0002, description="Probabilidad por tick de forzar un movimiento grande"
    )
    spike_extra_range: float = Field(
        default=0.05, description="Amplitud extra sobre el umbral para spikes forzados"
    )
    price_precision: int = Field(default=2, description="Decimales de precio")
    min_price: float = Field(default=0.01, description="Precio mínimo permitido")
    seed: Optional[int] = Field(
        default=None, description="Semilla del RNG (None = no determinista)"
    )

    # ─── Pipeline ───────────────────────────────────────────────────────
    batch_size: int = Field(default=10, description="Ticks procesados por lote")
    spike_threshold: float = Field(
        default=0.10, description="Cambio relativo mínimo para considerar spike"
    )
    min_metrics_elapsed_ms: float = Field(
        default=500.0, description="Tiempo mínimo de ejecución para calcular tick rate"
    )
    tick_queue_max_size: int = Field(
        default=0, description="Capacidad de la cola de ticks (0 = sin límite)"
    )

    # ─── Event Bus / Broadcast ──────────────────────────────────────────
    event_bus_max_queue_size: int = Field(
        default=10_000,
        description="Tamaño máximo de cola por suscriptor del Event Bus",
    )
    ws_send_timeout: float = Field(
        default=5.0, description="Timeout (seg) de envío a un cliente WS"
    )
    stop_on_controller_disconnect: bool = Field(
        default=True,
        description="Detener la simulación si se desconecta el único controlador",
    )

    # ─── Agregación por observador ──────────────────────────────────────
    latency_window_size: int = Field(
        default=1000, description="Muestras de latencia retenidas por observador"
    )
    history_window_size: int = Field(
        default=500, description="Puntos de precio retenidos por instrumento"
    )
    max_spike_log_entries: int = Field(
        default=100, description="Spikes retenidos en el log del observador"
    )

    # ─── Spike Log (CSV) ────────────────────────────────────────────────
    spike_log_enabled: bool = Field(default=True, description="Habilitar log CSV")
    spike_log_path: str = Field(
        default_factory=_default_spike_log_path,
        description="Ruta del CSV de spikes",
    )

    # ─── Cliente observador ─────────────────────────────────────────────
    client_reconnect_base_delay: float = Field(
        default=1.0, description="Delay base (seg) para backoff exponencial"
    )
    client_reconnect_max_delay: float = Field(
        default=60.0, description="Delay máximo (seg) entre reconexiones"
    )
    client_report_interval: float = Field(
        default=1.0, description="Intervalo (seg) entre reportes de métricas"
    )

    # ─── Server ─────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    debug: bool = Field(default=False)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "TICKPULSE_",
        "case_sensitive": False,
    }

    @model_validator(mode="after")
    def _check_universe(self) -> "Settings":
        if set(self.initial_prices) != set(self.instruments):
            raise ValueError("initial_prices debe cubrir exactamente el universo de instrumentos")
        if any(price <= 0 for price in self.initial_prices.values()):
            raise ValueError("initial_prices debe contener solo precios positivos")
        if self.batch_size <= 0:
            raise ValueError("batch_size debe ser > 0")
        return self

    @property
    def tick_interval_seconds(self) -> float:
        return self.tick_interval_ms / 1000.0


# Singleton global – se importa donde se necesite
settings = Settings()
