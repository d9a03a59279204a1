"""HTTP surface: the FastAPI application and the ``/generate`` handler."""

from full_autorest.server.app import create_app, run
from full_autorest.server.handler import GenerateHandler

__all__ = ["GenerateHandler", "create_app", "run"]
