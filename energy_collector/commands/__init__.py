"""User-initiated device commands."""

from .dispatcher import CONFIG_MODE_WARNING, RESET_CONFIG_WARNING, CommandDispatcher

__all__ = ["CONFIG_MODE_WARNING", "RESET_CONFIG_WARNING", "CommandDispatcher"]
