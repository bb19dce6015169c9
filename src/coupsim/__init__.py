"""CoupSim: server-authoritative engine and bots for the Coup card game."""

__version__ = "0.1.0"
