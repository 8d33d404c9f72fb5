"""
TickPulse – WebSocket Manager (sesiones de observadores)
=========================================================
Gestiona las conexiones WebSocket de los observadores: cada una recibe el
feed difundido y puede enviar comandos de control.

ARQUITECTURA POR SESIÓN:
  Broadcaster ──(cola propia)──▸ _send_loop ──▸ WebSocket
  WebSocket ──▸ _receive_loop ──▸ start/stop del SimulationScheduler

- Cada cliente tiene su propia cola en el EventBus: un cliente lento no
  frena a los demás. Si su cola se desborda el bus lo expulsa y aquí se
  cierra la conexión (1013, try again later).
- El envío usa asyncio.wait_for con timeout para que un cliente colgado no
  bloquee su sesión indefinidamente.

COMANDOS ENTRANTES:
  {"type": "startSimulation"} | {"type": "stopSimulation"}
  (también se acepta el string plano "startSimulation" / "stopSimulation")

DESCONEXIÓN:
  Solo afecta a esa sesión. Si el cliente era el ÚNICO controlador conectado
  (el último que emitió start/stop) y la simulación sigue corriendo, se
  detiene.
"""

from __future__ import annotations

import asyncio
import itertools
import json
from dataclasses import dataclass, field
from typing import Dict, Optional

from fastapi import WebSocket

from tickpulse.application.broadcaster import Broadcaster
from tickpulse.application.simulation_scheduler import SimulationScheduler
from tickpulse.infrastructure.event_bus import SUBSCRIPTION_CLOSED
from tickpulse.shared.logging import get_logger

logger = get_logger("ws_manager")

START_SIMULATION = "startSimulation"
STOP_SIMULATION = "stopSimulation"

WS_TRY_AGAIN_LATER = 1013


@dataclass(eq=False)
class ClientSession:
    id: str
    websocket: WebSocket
    queue: asyncio.Queue
    is_controller: bool = False
    tasks: list[asyncio.Task] = field(default_factory=list)


def parse_command(raw: str) -> Optional[str]:
    """Extraer el nombre del comando de un mensaje de control."""
    raw = raw.strip()
    if raw in (START_SIMULATION, STOP_SIMULATION):
        return raw
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict):
        command = payload.get("type") or payload.get("event")
        return command if isinstance(command, str) else None
    return None


class WebSocketManager:
    """Gestiona sesiones de observadores y sus comandos de control."""

    def __init__(
        self,
        broadcaster: Broadcaster,
        scheduler: SimulationScheduler,
        *,
        send_timeout: float = 5.0,
        stop_on_controller_disconnect: bool = True,
    ) -> None:
        self._broadcaster = broadcaster
        self._scheduler = scheduler
        self._send_timeout = send_timeout
        self._stop_on_controller_disconnect = stop_on_controller_disconnect
        self._sessions: Dict[str, ClientSession] = {}
        self._ids = itertools.count(1)

    async def handle(self, websocket: WebSocket) -> None:
        """Ciclo de vida completo de una conexión."""
        await websocket.accept()
        session_id = f"ws-{next(self._ids)}"
        queue = await self._broadcaster.subscribe(session_id)
        session = ClientSession(id=session_id, websocket=websocket, queue=queue)
        self._sessions[session_id] = session
        logger.info("Cliente WS conectado (%s). Total: %d", session_id, len(self._sessions))

        session.tasks = [
            asyncio.create_task(self._send_loop(session), name=f"{session_id}-send"),
            asyncio.create_task(self._receive_loop(session), name=f"{session_id}-recv"),
        ]
        try:
            await asyncio.wait(session.tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            await self._disconnect(session)

    async def _send_loop(self, session: ClientSession) -> None:
        while True:
            message = await session.queue.get()
            if message is SUBSCRIPTION_CLOSED:
                logger.warning("Sesión %s expulsada por lentitud, cerrando", session.id)
                try:
                    await session.websocket.close(code=WS_TRY_AGAIN_LATER)
                except Exception:
                    pass
                return
            try:
                await asyncio.wait_for(
                    session.websocket.send_text(json.dumps(message)),
                    timeout=self._send_timeout,
                )
            except Exception as e:
                # Incluye WebSocketDisconnect y asyncio.TimeoutError
                logger.info("Envío a %s fallido (%s), cerrando sesión", session.id, type(e).__name__)
                return

    async def _receive_loop(self, session: ClientSession) -> None:
        while True:
            message = await session.websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            raw = message.get("text")
            if raw is None:
                logger.warning(
                    "Frame binario de %s ignorado (%d bytes)",
                    session.id,
                    len(message.get("bytes") or b""),
                )
                continue
            command = parse_command(raw)
            if command == START_SIMULATION:
                session.is_controller = True
                await asyncio.shield(self._scheduler.start())
            elif command == STOP_SIMULATION:
                session.is_controller = True
                await asyncio.shield(self._scheduler.stop())
            else:
                logger.warning("Comando desconocido de %s: %s", session.id, raw[:100])

    async def _disconnect(self, session: ClientSession) -> None:
        for task in session.tasks:
            if not task.done():
                task.cancel()
        for task in session.tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug("Task %s terminó con error: %s", task.get_name(), e)

        await self._broadcaster.unsubscribe(session.queue)
        self._sessions.pop(session.id, None)
        logger.info("Cliente WS desconectado (%s). Total: %d", session.id, len(self._sessions))

        if (
            self._stop_on_controller_disconnect
            and session.is_controller
            and self.controller_count == 0
            and self._scheduler.is_running
        ):
            logger.warning(
                "Se desconectó el único controlador (%s): deteniendo simulación", session.id
            )
            await self._scheduler.stop()

    async def stop(self) -> None:
        """Cerrar todas las sesiones (shutdown)."""
        for session in list(self._sessions.values()):
            try:
                await session.websocket.close()
            except Exception:
                pass
            for task in session.tasks:
                task.cancel()
        logger.info("WebSocketManager detenido")

    @property
    def client_count(self) -> int:
        return len(self._sessions)

    @property
    def controller_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.is_controller)
