"""
Observador headless de línea de comandos.

  python -m tickpulse.client --start --duration 5
  python -m tickpulse.client --url ws://localhost:3000/ws/feed --instrument NSE:TCS
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Optional

from tickpulse.client.feed_client import STOP_SIMULATION, FeedClient
from tickpulse.domain.services.client_aggregator import ClientAggregator
from tickpulse.shared.config.settings import settings
from tickpulse.shared.logging import get_logger, setup_logging

logger = get_logger("client.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m tickpulse.client",
        description="Observador del feed TickPulse con métricas en consola",
    )
    parser.add_argument(
        "--url",
        default=f"ws://localhost:{settings.port}/ws/feed",
        help="URL WebSocket del feed (default: %(default)s)",
    )
    parser.add_argument("--start", action="store_true", help="enviar startSimulation al conectar")
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="segundos a observar; con --start envía stopSimulation al final",
    )
    parser.add_argument("--instrument", default=None, help="instrumento seleccionado")
    parser.add_argument(
        "--interval",
        type=float,
        default=settings.client_report_interval,
        help="segundos entre reportes (default: %(default)s)",
    )
    parser.add_argument("--log-level", default="INFO")
    return parser


def format_report(agg: ClientAggregator, now: Optional[float] = None) -> str:
    """Línea de métricas; "N/A" mientras no haya valores (antes del primer run)."""
    metrics = agg.displayed_metrics(now)
    rate = f"{metrics.tick_rate:.0f}/s" if metrics.tick_rate is not None else "N/A"
    latency = (
        f"{metrics.average_latency_ms:.3f}ms" if metrics.average_latency_ms is not None else "N/A"
    )
    selected = agg.selected_instrument
    price = agg.prices().get(selected) if selected else None
    return "[%s] ticks=%d rate=%s latency=%s | %s=%s Δ=%+.2f%% σ=%.4f | spikes=%d" % (
        "RUN" if metrics.running else "STOP",
        metrics.tick_count,
        rate,
        latency,
        selected or "-",
        f"{price:.2f}" if price is not None else "N/A",
        agg.percent_change(selected) if selected else 0.0,
        agg.volatility(),
        len(agg.spikes()),
    )


def report(client: FeedClient) -> None:
    logger.info(format_report(client.aggregator))


async def _run(args: argparse.Namespace) -> None:
    aggregator = ClientAggregator(
        latency_window_size=settings.latency_window_size,
        history_window_size=settings.history_window_size,
        min_elapsed_ms=settings.min_metrics_elapsed_ms,
        max_spike_entries=settings.max_spike_log_entries,
        selected_instrument=args.instrument,
    )
    client = FeedClient(
        args.url,
        aggregator,
        start_on_connect=args.start,
        reconnect_base_delay=settings.client_reconnect_base_delay,
        reconnect_max_delay=settings.client_reconnect_max_delay,
    )
    await client.start()

    loop = asyncio.get_running_loop()
    deadline: Optional[float] = loop.time() + args.duration if args.duration else None
    try:
        while deadline is None or loop.time() < deadline:
            await asyncio.sleep(args.interval)
            report(client)

        if args.start:
            await client.send_command(STOP_SIMULATION)
            # Dejar llegar el status{running:false} para congelar métricas
            await asyncio.sleep(min(args.interval, 0.5))
        report(client)
    finally:
        await client.stop()


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level.upper())
    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Interrumpido por el usuario")


if __name__ == "__main__":
    main()
