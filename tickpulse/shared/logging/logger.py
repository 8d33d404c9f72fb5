"""
TickPulse – Logging configuration
==================================
Configura logging legible para desarrollo. Todos los componentes piden su
logger vía get_logger() para compartir el namespace "tickpulse.*".

El servidor y el cliente CLI comparten el mismo formato; el nivel puede venir
como int (logging.INFO) o como nombre ("info", "DEBUG") desde argparse o
desde TICKPULSE_DEBUG.
"""

from __future__ import annotations

import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_NAMESPACE = "tickpulse"

# Librerías ruidosas en el hot-path (1 frame WS por tick)
NOISY_LOGGERS = ("websockets", "uvicorn.access")


class ConsoleHandler(logging.StreamHandler):
    """Handler stdout con el formato de TickPulse."""

    def __init__(self) -> None:
        super().__init__(sys.stdout)
        self.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))


def resolve_level(level: Union[int, str]) -> int:
    """Normalizar un nivel de logging; rechaza nombres desconocidos."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Nivel de logging desconocido: {level!r}")
    return resolved


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """Configura el root logger una sola vez al arranque."""
    numeric_level = resolve_level(level)
    root = logging.getLogger()
    # Respetar handlers existentes (uvicorn, pytest); create_app() puede llamarse varias veces
    if not root.handlers:
        root.addHandler(ConsoleHandler())
    root.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, numeric_level))


def get_logger(name: str) -> logging.Logger:
    """Fábrica de loggers con namespace prefijado."""
    return logging.getLogger(f"{ROOT_NAMESPACE}.{name}")
