"""HTTP service for the live-preview dev server."""

from .app import create_app, run_service

__all__ = ["create_app", "run_service"]
