from tickpulse.presentation.api.routes import init_routes, router

__all__ = ["router", "init_routes"]
