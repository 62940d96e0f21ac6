"""Client for the energy collector impulse feed."""

__all__ = ["telemetry", "connection", "commands", "io", "gui", "session"]
__version__ = "0.1.0"
