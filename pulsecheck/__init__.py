"""pulsecheck — scheduled HTTP uptime checks with per-check rolling state."""

__version__ = "0.1.0"
