"""HTTP surface of the worklog bridge."""

from .main import create_app, health_check

__all__ = ["create_app", "health_check"]
