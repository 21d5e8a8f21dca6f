"""Newsroom API: account sessions, identity tokens and donation processing."""

__version__ = "0.1.0"
