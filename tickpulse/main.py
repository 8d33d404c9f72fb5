"""
TickPulse – Main Application Entry Point
=========================================
Orquesta el pipeline: Tick Generator + Tick Queue + Spike Detector +
Broadcaster + Spike Log, y expone el feed por WebSocket.

ARQUITECTURA DE ARRANQUE:
  1. Configurar logging
  2. Crear el contenedor (todas las instancias son perezosas)
  3. Lifespan startup:
     a. Inicializar el CSV de spikes (cabecera si está vacío)
     b. Iniciar SpikeLogListener (consumer del tópico "spike")
     c. Inyectar dependencias en las rutas
  4. Lifespan shutdown:
     a. Detener la simulación si corre
     b. Cerrar sesiones WS, listener y bus en orden inverso

FLUJO DE DATOS:
  PeriodicTask(1 ms) → TickGenerator → TickQueue
       → drain loop (lotes de 10) → SpikeDetector
       → EventBus("spike") → SpikeLogListener → CSV
       → Broadcaster → EventBus("feed") → sesiones WS → observadores

  uvicorn tickpulse.main:app --host 0.0.0.0 --port 3000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tickpulse import __version__
from tickpulse.container import init_container
from tickpulse.presentation.api.routes import init_routes, router
from tickpulse.shared.config.settings import Settings
from tickpulse.shared.logging import get_logger, setup_logging

logger = get_logger("main")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Construir la app FastAPI con su propio contenedor."""
    container = init_container(settings)
    cfg = container.settings
    setup_logging("DEBUG" if cfg.debug else "INFO")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle de la aplicación."""
        logger.info("=" * 60)
        logger.info("  TickPulse v%s", __version__)
        logger.info("  Instrumentos: %s", ", ".join(cfg.instruments))
        logger.info("  Cadencia: %.1f ms (~%.0f Hz), lote=%d",
                    cfg.tick_interval_ms, 1000.0 / cfg.tick_interval_ms, cfg.batch_size)
        logger.info("  Umbral de spike: %.1f%%", cfg.spike_threshold * 100)
        logger.info("=" * 60)

        listener = container.spike_log_listener
        if listener is not None:
            sink = container.spike_sink
            try:
                sink.initialize()
            except OSError as e:
                logger.error("No se pudo inicializar el spike log %s: %s", sink.location, e)
            await listener.start()
        else:
            logger.info("  Spike log: deshabilitado")

        init_routes(
            container.ws_manager,
            container.scheduler,
            container.tick_generator,
            tick_queue=container.tick_queue,
            process_tick=container.process_tick,
            detector=container.spike_detector,
            spike_log_listener=listener,
        )
        app.state.container = container
        logger.info("✓ Todos los componentes iniciados correctamente")

        yield  # ← La app está corriendo aquí

        # ── SHUTDOWN ──
        logger.info("Iniciando shutdown...")
        await container.scheduler.stop()
        await container.ws_manager.stop()
        if listener is not None:
            await listener.stop()
        await container.event_bus.unsubscribe_all()
        logger.info("✓ Shutdown completo")

    app = FastAPI(
        title="TickPulse",
        description="Feed de mercado simulado de alta frecuencia con detección de spikes",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS abierto: los observadores pueden servirse desde cualquier origen
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()
