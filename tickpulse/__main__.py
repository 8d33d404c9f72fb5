"""Arranque del servidor: python -m tickpulse"""

import uvicorn

from tickpulse.shared.config.settings import settings


def main() -> None:
    uvicorn.run(
        "tickpulse.main:app",
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
