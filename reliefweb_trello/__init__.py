"""Synchronize ReliefWeb countries, disasters and topics with Trello boards."""

__version__ = "0.1.0"
