"""Middleware registration."""

from fastapi import FastAPI

from lifeleveling.config import Settings
from lifeleveling.middleware.cors import setup_cors
from lifeleveling.middleware.error_handler import setup_error_handlers
from lifeleveling.middleware.logging import setup_logging
from lifeleveling.middleware.request_gate import RequestGateMiddleware
from lifeleveling.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    FastAPI/Starlette executes middleware in reverse-add order (last added = outermost).
    The request id is bound before the gate runs so gate logs carry it, and
    CORS is outermost so it wraps 401s and redirects from the gate.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestGateMiddleware)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)  # added last → outermost
