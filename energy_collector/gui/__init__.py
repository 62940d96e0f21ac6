"""Qt dashboard for the energy collector feed."""

__all__ = ["main_window", "widgets"]
