"""Parley Relay: real-time message delivery backend for chat clients."""

__version__ = "0.1.0"
