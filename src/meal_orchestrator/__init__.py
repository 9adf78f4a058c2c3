"""Background AI orchestration for meal planning."""

__version__ = "0.1.0"
