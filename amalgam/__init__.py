"""Amalgam - live file seek and clipboard trace."""

__version__ = "0.1.0"
