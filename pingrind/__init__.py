"""pingrind: tournament lifecycle controller for a shared online pinball scoreboard."""

__version__ = "0.4.0"
