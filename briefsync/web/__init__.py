"""HTTP bridge for the background refresh."""

from .app import ConfigureRequest, create_app

__all__ = ["create_app", "ConfigureRequest"]
