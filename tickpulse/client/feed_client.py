"""
TickPulse – Feed Client (observador WebSocket)
===============================================
Observador headless: se conecta al feed, envía comandos de control y
alimenta un ClientAggregator propio con cada mensaje recibido.

RECONEXIÓN AUTOMÁTICA CON BACKOFF EXPONENCIAL:
- Ante cualquier desconexión el cliente espera base * 2^intento (capped a
  max_delay) más un jitter aleatorio, y vuelve a conectar.
- Un flag `_running` permite shutdown limpio.
- Al desconectarse, la agregación se detiene (equivale a status{running:false})
  y tras reconectar llega un initialData nuevo. No hay replay.

LATENCIA:
- received_at se toma al llegar el mensaje, antes de parsear, con el mismo
  reloj de pared (epoch ms) con el que el servidor marca sentAt.
"""

from __future__ import annotations

import asyncio
import json
import math
import random
from typing import Any, Callable, Dict, List, Mapping, Optional

import websockets
from websockets.asyncio.client import ClientConnection

from tickpulse.domain.exceptions import InvalidPriceError, ValidationError
from tickpulse.domain.services.client_aggregator import ClientAggregator
from tickpulse.domain.value_objects.spike_event import SpikeEvent
from tickpulse.domain.value_objects.tick import Tick
from tickpulse.shared.clock import epoch_ms
from tickpulse.shared.logging import get_logger

logger = get_logger("feed_client")

START_SIMULATION = "startSimulation"
STOP_SIMULATION = "stopSimulation"


class FeedClient:
    """
    Cliente WebSocket asíncrono del feed.

    Ciclo de vida:
      1. start()          → lanza task de conexión
      2. _connect_loop()  → reconexión perpetua con backoff
      3. _listen()        → parsear mensajes → ClientAggregator
      4. stop()           → shutdown limpio
    """

    def __init__(
        self,
        url: str,
        aggregator: ClientAggregator,
        *,
        start_on_connect: bool = False,
        reconnect_base_delay: float = 1.0,
        reconnect_max_delay: float = 60.0,
        clock: Callable[[], float] = epoch_ms,
    ) -> None:
        self._url = url
        self._aggregator = aggregator
        self._start_on_connect = start_on_connect
        self._base_delay = reconnect_base_delay
        self._max_delay = reconnect_max_delay
        self._clock = clock

        self._ws: Optional[ClientConnection] = None
        self._running = False
        self._connect_task: Optional[asyncio.Task] = None
        self._reconnect_attempt = 0

        # Estadísticas de monitoreo
        self._messages_received = 0
        self._malformed = 0

    @property
    def aggregator(self) -> ClientAggregator:
        return self._aggregator

    # ──────────────────────── Lifecycle ──────────────────────────────────

    async def start(self) -> None:
        """Iniciar cliente. Idempotente."""
        if self._running:
            logger.warning("FeedClient ya está corriendo, ignorando start()")
            return
        self._running = True
        self._connect_task = asyncio.create_task(self._connect_loop(), name="feed-connect-loop")
        logger.info("FeedClient iniciado → %s", self._url)

    async def stop(self) -> None:
        """Shutdown limpio: cerrar WS y cancelar tasks."""
        self._running = False
        if self._ws is not None:
            try:
                await self._ws.close()
            except Exception:
                pass
        if self._connect_task and not self._connect_task.done():
            self._connect_task.cancel()
            try:
                await self._connect_task
            except asyncio.CancelledError:
                pass
        logger.info("FeedClient detenido. Mensajes recibidos: %d", self._messages_received)

    # ──────────────────────── Control ───────────────────────────────────

    async def send_command(self, command: str) -> None:
        """Enviar startSimulation / stopSimulation al servidor."""
        if command not in (START_SIMULATION, STOP_SIMULATION):
            raise ValueError(f"Comando desconocido: {command}")
        if self._ws is None:
            raise ConnectionError("FeedClient no está conectado")
        await self._ws.send(json.dumps({"type": command}))
        logger.info("Comando enviado: %s", command)

    # ──────────────────────── Connection Loop ───────────────────────────

    async def _connect_loop(self) -> None:
        while self._running:
            try:
                logger.info("Conectando a %s", self._url)
                async with websockets.connect(
                    self._url,
                    close_timeout=10,
                    max_size=2**20,       # 1 MB máximo por mensaje
                ) as ws:
                    self._ws = ws
                    self._reconnect_attempt = 0
                    logger.info("✓ Conectado al feed")

                    if self._start_on_connect:
                        await self.send_command(START_SIMULATION)

                    await self._listen(ws)

            except websockets.exceptions.ConnectionClosed as e:
                logger.warning("Conexión cerrada: %s", e)
            except OSError as e:
                logger.error("Error de red: %s", e)
            except websockets.exceptions.InvalidHandshake as e:
                logger.error("Handshake rechazado por %s: %s", self._url, e)
            except Exception as e:
                logger.error("Error inesperado en connect_loop: %s", e, exc_info=True)
            finally:
                self._ws = None
                # Desconexión ⇒ la agregación de este observador se detiene
                self._aggregator.on_status(False, now=self._clock())

            if not self._running:
                break

            # ── Backoff exponencial con jitter ──
            delay = min(self._base_delay * (2 ** self._reconnect_attempt), self._max_delay)
            total_delay = delay + random.uniform(0, delay * 0.3)
            self._reconnect_attempt += 1
            logger.info(
                "Reconectando en %.1fs (intento #%d)...", total_delay, self._reconnect_attempt
            )
            await asyncio.sleep(total_delay)

    async def _listen(self, ws: ClientConnection) -> None:
        async for raw_msg in ws:
            if not self._running:
                break
            self.handle_message(raw_msg, received_at=self._clock())

    # ──────────────────────── Parsing ───────────────────────────────────

    def handle_message(self, raw: str | bytes, received_at: Optional[float] = None) -> Optional[str]:
        """
        Aplicar un mensaje del feed al agregador.
        Retorna el tipo de mensaje, o None si se ignoró.
        """
        received_at = self._clock() if received_at is None else received_at
        self._messages_received += 1

        try:
            message = json.loads(raw)
            msg_type = message["type"]
            data = message.get("data") or {}
            if not isinstance(data, dict):
                raise TypeError("data no es un objeto")
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError):
            self._malformed += 1
            logger.warning("Mensaje malformado ignorado: %.100s", raw)
            return None

        try:
            if msg_type == "priceUpdate":
                tick = Tick.from_wire(data.get("tick"))
                spikes = _parse_spikes(data.get("spikes"))
                self._aggregator.on_price_update(tick, spikes, received_at=received_at)
            elif msg_type == "status":
                self._aggregator.on_status(bool(data.get("running")), now=received_at)
            elif msg_type == "initialData":
                self._aggregator.on_initial_data(_parse_prices(data.get("prices")))
            else:
                logger.debug("Tipo de mensaje desconocido: %s", msg_type)
                return None
        except ValidationError as e:
            self._malformed += 1
            logger.warning("Payload inválido en '%s': %s", msg_type, e.message)
            return None

        return msg_type

    # ──────────────────────── Stats ─────────────────────────────────────

    @property
    def stats(self) -> dict:
        return {
            "running": self._running,
            "connected": self._ws is not None,
            "messages_received": self._messages_received,
            "malformed": self._malformed,
            "reconnect_attempts": self._reconnect_attempt,
        }


def _parse_prices(raw: Any) -> Dict[str, float]:
    """Snapshot de initialData: {instrumento: precio > 0}."""
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValidationError("prices debe ser un objeto", field="prices", value=raw)
    prices: Dict[str, float] = {}
    for instrument, price in raw.items():
        if (
            isinstance(price, bool)
            or not isinstance(price, (int, float))
            or not math.isfinite(price)
            or price <= 0
        ):
            raise InvalidPriceError(price, instrument)
        prices[instrument] = float(price)
    return prices


def _parse_spikes(raw: Any) -> List[SpikeEvent]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("spikes debe ser una lista", field="spikes", value=raw)
    return [SpikeEvent.from_dict(s) for s in raw]
