"""HAS status dashboard: task phases, team rosters and templates per client."""

__version__ = "1.0.0"
