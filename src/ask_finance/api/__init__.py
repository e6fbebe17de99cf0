"""HTTP surface for ask-finance."""

from .server import SERVICE_KEY, create_app, run_server

__all__ = ["SERVICE_KEY", "create_app", "run_server"]
