from tickpulse.shared.logging.logger import get_logger, resolve_level, setup_logging

__all__ = ["setup_logging", "get_logger", "resolve_level"]
